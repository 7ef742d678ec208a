"""FastAPI routes for the Picking domain.

Each route translates a request into one workflow operation and answers with
the workflow's state after it. Domain errors are mapped to HTTP responses by
Protean's exception handlers (ValidationError → 400, InvalidState → 409).
"""

import os

from fastapi import APIRouter, HTTPException

from picking.api.schemas import (
    BulkPickRequest,
    CameraConfigResponse,
    CaptureResponse,
    CaptureShelfRequest,
    ConfigureCameraRequest,
    EnterSkuRequest,
    EntryModeResponse,
    FrameResponse,
    ItemActionResponse,
    SelectShelfRequest,
    SetEntryModeRequest,
    ShelfResponse,
    StartPickTaskRequest,
    WorkflowStateResponse,
)
from picking.capture import get_camera
from picking.capture.fake_adapter import FakeCamera
from picking.capture.session import CapturedFrame
from picking.workflow import get_workflow
from picking.workflow.entry_mode import get_entry_mode_selector

picking_router = APIRouter(prefix="/picking", tags=["picking"])


def _state() -> WorkflowStateResponse:
    return WorkflowStateResponse(**get_workflow().snapshot())


def _capture_response(frame: CapturedFrame | None) -> CaptureResponse:
    if frame is None:
        return CaptureResponse(captured=False, state=_state())
    return CaptureResponse(
        captured=True,
        frame=FrameResponse(
            frame_id=frame.frame_id,
            captured_at=frame.captured_at.isoformat(),
            size=len(frame.image_bytes),
        ),
        state=_state(),
    )


def _item_response(all_resolved: bool) -> ItemActionResponse:
    return ItemActionResponse(all_resolved=all_resolved, state=_state())


# ---------------------------------------------------------------------------
# Entry mode
# ---------------------------------------------------------------------------
@picking_router.get("/entry-mode", response_model=EntryModeResponse)
async def read_entry_mode() -> EntryModeResponse:
    selector = get_entry_mode_selector()
    return EntryModeResponse(mode=selector.mode.value, is_camera_mode=selector.is_camera_mode)


@picking_router.put("/entry-mode", response_model=EntryModeResponse)
async def set_entry_mode(body: SetEntryModeRequest) -> EntryModeResponse:
    """Switch between camera and manual entry. Applies from the next step."""
    selector = get_entry_mode_selector()
    selector.set_mode(body.mode)
    return EntryModeResponse(mode=selector.mode.value, is_camera_mode=selector.is_camera_mode)


# ---------------------------------------------------------------------------
# Task lifecycle
# ---------------------------------------------------------------------------
@picking_router.post("/tasks", status_code=201, response_model=WorkflowStateResponse)
async def start_pick_task(body: StartPickTaskRequest) -> WorkflowStateResponse:
    """Start picking a picklist, abandoning any task in progress."""
    get_workflow().start(body.picklist_id)
    return _state()


@picking_router.get("/state", response_model=WorkflowStateResponse)
async def read_state() -> WorkflowStateResponse:
    return _state()


@picking_router.post("/back", response_model=WorkflowStateResponse)
async def go_back() -> WorkflowStateResponse:
    get_workflow().back()
    return _state()


@picking_router.post("/close", response_model=WorkflowStateResponse)
async def close_task() -> WorkflowStateResponse:
    """Leave the workflow, releasing the camera."""
    get_workflow().close()
    return _state()


@picking_router.post("/confirm", response_model=WorkflowStateResponse)
async def confirm_completion() -> WorkflowStateResponse:
    """Acknowledge that every item on the shelf has been resolved."""
    get_workflow().confirm_completion()
    return _state()


# ---------------------------------------------------------------------------
# Tote and shelf
# ---------------------------------------------------------------------------
@picking_router.post("/tote/capture", response_model=CaptureResponse)
async def capture_tote() -> CaptureResponse:
    return _capture_response(get_workflow().capture_tote())


@picking_router.get("/shelves", response_model=list[ShelfResponse])
async def list_shelves() -> list[ShelfResponse]:
    return [
        ShelfResponse(
            shelf_code=shelf.shelf_code,
            sku_count=shelf.sku_count,
            pending_quantity=shelf.pending_quantity,
        )
        for shelf in get_workflow().shelves()
    ]


@picking_router.post("/shelf/capture", response_model=CaptureResponse)
async def capture_shelf(body: CaptureShelfRequest) -> CaptureResponse:
    return _capture_response(get_workflow().capture_shelf(body.shelf_code))


@picking_router.put("/shelf", response_model=WorkflowStateResponse)
async def select_shelf(body: SelectShelfRequest) -> WorkflowStateResponse:
    get_workflow().select_shelf(body.shelf_code)
    return _state()


# ---------------------------------------------------------------------------
# SKU entry and photos
# ---------------------------------------------------------------------------
@picking_router.post("/sku/enter", response_model=ItemActionResponse)
async def enter_sku(body: EnterSkuRequest) -> ItemActionResponse:
    return _item_response(get_workflow().enter_sku(body.code))


@picking_router.post("/sku/capture", response_model=CaptureResponse)
async def capture_sku() -> CaptureResponse:
    return _capture_response(get_workflow().capture_sku())


@picking_router.delete("/sku/frames/last", response_model=WorkflowStateResponse)
async def delete_last_sku_frame() -> WorkflowStateResponse:
    get_workflow().delete_last_sku_frame()
    return _state()


@picking_router.delete("/sku/frames/{index}", response_model=WorkflowStateResponse)
async def delete_sku_frame(index: int) -> WorkflowStateResponse:
    get_workflow().delete_sku_frame(index)
    return _state()


# ---------------------------------------------------------------------------
# Item dispositions
# ---------------------------------------------------------------------------
@picking_router.put("/items/{sku}/pick", response_model=ItemActionResponse)
async def pick_one(sku: str) -> ItemActionResponse:
    return _item_response(get_workflow().pick_one(sku))


@picking_router.put("/items/{sku}/unpick", response_model=ItemActionResponse)
async def unpick_one(sku: str) -> ItemActionResponse:
    return _item_response(get_workflow().unpick_one(sku))


@picking_router.put("/items/{sku}/bulk-pick", response_model=ItemActionResponse)
async def bulk_pick(sku: str, body: BulkPickRequest) -> ItemActionResponse:
    return _item_response(get_workflow().bulk_pick(sku, body.quantity, body.inventory_type))


@picking_router.put("/items/{sku}/damaged", response_model=ItemActionResponse)
async def mark_damaged(sku: str) -> ItemActionResponse:
    return _item_response(get_workflow().mark_damaged(sku))


@picking_router.put("/items/{sku}/not-found", response_model=ItemActionResponse)
async def mark_not_found(sku: str) -> ItemActionResponse:
    return _item_response(get_workflow().mark_not_found(sku))


@picking_router.put("/items/{sku}/short-pick", response_model=ItemActionResponse)
async def short_pick(sku: str) -> ItemActionResponse:
    return _item_response(get_workflow().short_pick(sku))


# ---------------------------------------------------------------------------
# Camera
# ---------------------------------------------------------------------------
@picking_router.post("/camera/retry", response_model=WorkflowStateResponse)
async def retry_camera() -> WorkflowStateResponse:
    get_workflow().retry_camera()
    return _state()


@picking_router.post("/camera/configure", response_model=CameraConfigResponse)
async def configure_camera(body: ConfigureCameraRequest) -> CameraConfigResponse:
    """Configure the FakeCamera behavior (non-production only).

    Lets a tester deny camera access or hold stream requests open to walk
    through the retry and cancellation paths by hand.
    """
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Camera configuration not available in production")

    camera = get_camera()
    if not isinstance(camera, FakeCamera):
        raise HTTPException(status_code=400, detail="Camera configuration only available for FakeCamera")

    camera.configure(
        available=body.available,
        failure_reason=body.failure_reason,
        deferred=body.deferred,
    )
    return _camera_config(camera)


@picking_router.post("/camera/resolve-pending", response_model=CameraConfigResponse)
async def resolve_pending_camera_requests() -> CameraConfigResponse:
    """Answer stream requests the FakeCamera is holding (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Camera configuration not available in production")

    camera = get_camera()
    if not isinstance(camera, FakeCamera):
        raise HTTPException(status_code=400, detail="Camera configuration only available for FakeCamera")

    camera.resolve_pending()
    return _camera_config(camera)


def _camera_config(camera: FakeCamera) -> CameraConfigResponse:
    return CameraConfigResponse(
        camera=type(camera).__name__,
        available=camera.available,
        failure_reason=camera.failure_reason,
        deferred=camera.deferred,
        pending_requests=camera.pending_requests(),
    )
