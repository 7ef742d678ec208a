import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from picking.api.routes import picking_router
from picking.capture import get_camera
from picking.task.task import EntryMode
from picking.workflow.entry_mode import init_entry_mode
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    init_entry_mode(EntryMode.CAMERA)
    app = FastAPI()
    app.include_router(picking_router)
    register_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def fake_camera():
    return get_camera()
