import pytest
from picking.capture.fake_adapter import FakeCamera
from picking.catalog.port import ItemRecord, PicklistRecord
from picking.catalog.sample_adapter import StaticCatalog
from picking.navigation import RecordingNavigator
from picking.task.task import EntryMode
from picking.workflow.entry_mode import EntryModeSelector
from picking.workflow.state_machine import PickingWorkflow
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def picking_bed():
    from picking.domain import picking

    bed = DomainFixture(picking)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(picking_bed):
    with picking_bed.domain_context():
        yield


def make_item(sku, total, picked=0, name=None):
    return ItemRecord(
        sku=sku,
        display_name=name or f"Item {sku}",
        vendor="B02363940",
        mrp=10000.0,
        mfg_date="12/03/23",
        total_quantity=total,
        picked_quantity=picked,
    )


@pytest.fixture()
def camera():
    return FakeCamera()


@pytest.fixture()
def catalog():
    """Two small shelves so tests can resolve a ledger in a few actions."""
    return StaticCatalog(
        picklists={"PK-T1": PicklistRecord(picklist_id="PK-T1", aisle="1", section="001", level="A")},
        shelf_items={
            "PK-T1": {
                "SHELF_B": [make_item("SKU-B1", 1)],
                "SHELF_A": [make_item("SKU-A1", 2), make_item("SKU-A2", 3)],
                "SHELF_C": [make_item("SKU-C1", 1, picked=1)],
            }
        },
    )


@pytest.fixture()
def navigator():
    return RecordingNavigator()


@pytest.fixture()
def selector():
    return EntryModeSelector(EntryMode.CAMERA)


@pytest.fixture()
def workflow(selector, camera, catalog, navigator):
    wf = PickingWorkflow(selector, camera=camera, catalog=catalog, navigator=navigator)
    yield wf
    wf.close()
