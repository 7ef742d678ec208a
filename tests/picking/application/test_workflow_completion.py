"""Tests for shelf completion, confirmation, close and restart."""

import pytest
from picking.errors import InvalidState
from picking.ledger.events import ShelfLedgerResolved
from picking.task.events import PickTaskAbandoned, PickTaskCompleted
from picking.task.task import EntryMode, PickStage
from protean.exceptions import ObjectNotFoundError


def _to_sku_pick(workflow, shelf_code="SHELF_A"):
    workflow.start("PK-T1")
    workflow.capture_tote()
    workflow.capture_shelf(shelf_code)
    return workflow


class TestCompletion:
    def test_last_resolution_completes_the_task(self, workflow):
        _to_sku_pick(workflow)
        workflow.bulk_pick("SKU-A1", 2, "Good")
        assert workflow.short_pick("SKU-A2") is True
        assert workflow.task.current_stage() == PickStage.COMPLETE
        assert workflow.awaiting_confirmation is True
        assert workflow.step is None

    def test_completion_releases_the_camera(self, workflow, camera):
        _to_sku_pick(workflow, "SHELF_B")
        workflow.capture_sku()
        workflow.pick_one("SKU-B1")
        assert camera.active_handles == set()
        assert workflow.sessions.active_keys() == []

    def test_listeners_notified_once(self, workflow):
        seen = []
        workflow.on_all_resolved(lambda task, ledger: seen.append((task.stage, ledger.shelf_code)))
        _to_sku_pick(workflow, "SHELF_B")
        workflow.pick_one("SKU-B1")
        with pytest.raises(InvalidState):
            workflow.pick_one("SKU-B1")
        assert seen == [(PickStage.COMPLETE.value, "SHELF_B")]

    def test_completion_events(self, workflow):
        _to_sku_pick(workflow, "SHELF_B")
        task, ledger = workflow.task, workflow.ledger
        workflow.pick_one("SKU-B1")
        assert sum(isinstance(e, PickTaskCompleted) for e in task._events) == 1
        assert sum(isinstance(e, ShelfLedgerResolved) for e in ledger._events) == 1

    def test_damaged_alone_does_not_complete(self, workflow):
        _to_sku_pick(workflow, "SHELF_B")
        assert workflow.mark_damaged("SKU-B1") is False
        assert workflow.task.current_stage() == PickStage.SKU_PICK

    def test_not_found_completes(self, workflow):
        _to_sku_pick(workflow, "SHELF_B")
        assert workflow.mark_not_found("SKU-B1") is True
        assert workflow.awaiting_confirmation is True

    def test_already_picked_shelf_completes_on_selection(self, workflow):
        workflow.start("PK-T1")
        workflow.capture_tote()
        workflow.select_shelf("SHELF_C")
        assert workflow.task.current_stage() == PickStage.COMPLETE
        assert workflow.awaiting_confirmation is True

    def test_item_actions_rejected_before_sku_pick(self, workflow):
        workflow.start("PK-T1")
        with pytest.raises(InvalidState):
            workflow.pick_one("SKU-A1")


class TestConfirmation:
    def test_confirm_returns_to_picklist(self, workflow, navigator):
        _to_sku_pick(workflow, "SHELF_B")
        workflow.pick_one("SKU-B1")
        workflow.confirm_completion()
        assert workflow.task is None
        assert workflow.ledger is None
        assert workflow.awaiting_confirmation is False
        assert navigator.current.path == "/picklist/PK-T1"

    def test_confirm_without_completion_is_rejected(self, workflow):
        _to_sku_pick(workflow)
        with pytest.raises(InvalidState):
            workflow.confirm_completion()


class TestClose:
    def test_close_abandons_and_releases(self, workflow, camera, navigator):
        _to_sku_pick(workflow)
        task = workflow.task
        workflow.close()
        assert task.abandoned is True
        assert isinstance(task._events[-1], PickTaskAbandoned)
        assert camera.active_handles == set()
        assert workflow.ledger is None
        assert navigator.current.path == "/picklist/PK-T1"

    def test_close_is_idempotent(self, workflow, navigator):
        workflow.start("PK-T1")
        workflow.close()
        history = list(navigator.history)
        workflow.close()
        assert list(navigator.history) == history
        assert workflow.task is None

    def test_close_without_task(self, workflow):
        workflow.close()
        assert workflow.snapshot()["stage"] is None

    def test_close_after_completion_does_not_abandon(self, workflow):
        _to_sku_pick(workflow, "SHELF_B")
        task = workflow.task
        workflow.pick_one("SKU-B1")
        workflow.close()
        assert task.abandoned is False
        assert task.current_stage() == PickStage.COMPLETE

    def test_close_while_camera_request_pending(self, workflow, camera):
        camera.configure(deferred=True)
        workflow.start("PK-T1")
        workflow.close()
        camera.resolve_pending()
        assert camera.active_handles == set()


class TestStart:
    def test_starting_again_abandons_the_active_task(self, workflow):
        first = workflow.start("PK-T1")
        second = workflow.start("PK-T1")
        assert first.abandoned is True
        assert second is workflow.task
        assert second.is_active() is True

    def test_unknown_picklist(self, workflow):
        with pytest.raises(ObjectNotFoundError):
            workflow.start("PK-NOPE")
        assert workflow.task is None

    def test_start_reads_the_mode_at_start_time(self, workflow, selector):
        selector.set_mode(EntryMode.MANUAL)
        task = workflow.start("PK-T1")
        assert task.current_stage() == PickStage.SHELF_SCAN


class TestSnapshot:
    def test_snapshot_in_sku_pick(self, workflow):
        _to_sku_pick(workflow)
        workflow.pick_one("SKU-A1")
        state = workflow.snapshot()
        assert state["stage"] == PickStage.SKU_PICK.value
        assert state["shelf_code"] == "SHELF_A"
        assert state["camera"]["status"] == "Streaming"
        assert state["ledger"]["picked_quantity"] == 1
        assert state["ledger"]["pending_quantity"] == 4
        entry = state["ledger"]["entries"][0]
        assert entry == {
            "sku": "SKU-A1",
            "display_name": "Item SKU-A1",
            "vendor": "B02363940",
            "mrp": 10000.0,
            "mfg_date": "12/03/23",
            "total_quantity": 2,
            "picked_quantity": 1,
            "pending_quantity": 1,
            "disposition": None,
            "resolved": False,
        }
