"""PickingWorkflow — drives one worker through a picklist.

The workflow owns the active PickTask, the step the worker is on, the
capture sessions opened by camera steps and the ShelfLedger of the shelf
being picked. Transitions always run in the same order:

    1. the task aggregate validates and records the new stage
    2. the old step exits (its capture session is closed)
    3. the new step is chosen from (stage, entry mode) and entered

The entry mode is read only in step 3, so switching modes changes the next
step, never the current one.
"""

from collections.abc import Callable

import structlog
from protean.exceptions import ValidationError

from picking.capture import get_camera
from picking.capture.port import CameraPort, StreamConstraints
from picking.capture.session import CapturedFrame, CaptureSessionManager, CaptureStatus
from picking.catalog import get_catalog
from picking.catalog.port import CatalogPort, ShelfRecord
from picking.errors import InvalidState
from picking.ledger.ledger import ShelfLedger
from picking.ledger.resolution import DispositionResolver
from picking.navigation import NavigatorPort, RecordingNavigator
from picking.task.task import PickStage, PickTask
from picking.utils.logging import add_context, clear_context
from picking.workflow.entry_mode import EntryModeSelector
from picking.workflow.steps import (
    CameraShelfStep,
    CameraSkuStep,
    CameraStep,
    CameraToteStep,
    ManualShelfStep,
    PickStep,
    StepContext,
    step_class_for,
)

logger = structlog.get_logger(__name__)

CompletionListener = Callable[[PickTask, ShelfLedger], None]


class PickingWorkflow:
    def __init__(
        self,
        entry_mode_selector: EntryModeSelector,
        camera: CameraPort | None = None,
        catalog: CatalogPort | None = None,
        navigator: NavigatorPort | None = None,
        constraints: StreamConstraints | None = None,
    ) -> None:
        self.entry_mode = entry_mode_selector
        self.camera = camera or get_camera()
        self.catalog = catalog or get_catalog()
        self.navigator = navigator or RecordingNavigator()
        self.constraints = constraints
        self.sessions = CaptureSessionManager(self.camera)

        self.task: PickTask | None = None
        self.step: PickStep | None = None
        self.ledger: ShelfLedger | None = None
        self.resolver: DispositionResolver | None = None
        self.awaiting_confirmation = False
        self._completion_listeners: list[CompletionListener] = []

    # -------------------------------------------------------------------
    # Step plumbing
    # -------------------------------------------------------------------
    def _require_task(self) -> PickTask:
        if self.task is None:
            raise InvalidState("No pick task in progress")
        return self.task

    def _require_step(self, *step_classes: type[PickStep]) -> PickStep:
        task = self._require_task()
        if not isinstance(self.step, step_classes):
            current = type(self.step).__name__ if self.step else "no step"
            raise InvalidState(f"Not available on {current} ({task.stage})")
        return self.step

    def _enter_step(self) -> None:
        task = self.task
        step_class = step_class_for(task.current_stage(), task.current_entry_mode())
        if step_class is None:
            self.step = None
            return

        self.step = step_class(StepContext(task, self.sessions, self.catalog, self.constraints))
        self.step.enter()
        self.navigator.advance(self.step.route, **self.step.route_params())
        logger.info(
            "Entered step",
            picklist_id=task.picklist_id,
            stage=task.stage,
            step=step_class.__name__,
        )

    def _leave_step(self) -> None:
        if self.step is not None:
            self.step.exit()
            self.step = None

    def _advance(self, change: Callable[[], None]) -> None:
        change()
        self._leave_step()
        self._enter_step()

    def _guarded(self, action: str, operation: Callable[[], object]):
        """Run a capture-side operation; an ordering race is logged and ignored."""
        try:
            return operation()
        except InvalidState as exc:
            logger.warning("Ignored out-of-order camera action", action=action, reason=str(exc))
            return None

    def _discard(self) -> None:
        self.sessions.close_all()
        self.step = None
        self.task = None
        self.ledger = None
        self.resolver = None
        self.awaiting_confirmation = False

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def start(self, picklist_id: str) -> PickTask:
        """Begin picking a picklist; an active task is abandoned first."""
        self.catalog.picklist(picklist_id)
        if self.task is not None:
            self.close()

        self.task = PickTask.start(picklist_id, self.entry_mode.mode)
        add_context(picklist_id=picklist_id, pick_task_id=str(self.task.id))
        logger.info("Pick task started", picklist_id=picklist_id, entry_mode=self.task.entry_mode)
        self._enter_step()
        return self.task

    def close(self) -> None:
        """Leave the workflow from any state. Calling it again does nothing."""
        self.sessions.close_all()
        task = self.task
        if task is None:
            return

        self._leave_step()
        if task.is_active():
            task.abandon()
        logger.info("Pick task closed", picklist_id=task.picklist_id, stage=task.stage, abandoned=task.abandoned)
        self._discard()
        clear_context("picklist_id", "pick_task_id")
        self.navigator.advance("picklist", picklist_id=task.picklist_id)

    def back(self) -> None:
        """Step back one stage. The tote is only rescanned in camera mode."""
        task = self._require_task()
        stage = task.current_stage()

        if stage == PickStage.SKU_PICK:
            self._advance(lambda: task.return_to_shelf_scan(self.entry_mode.mode))
            self.ledger = None
            self.resolver = None
        elif stage == PickStage.SHELF_SCAN and self.entry_mode.is_camera_mode:
            self._advance(task.return_to_tote_scan)
        else:
            self.close()

    def on_all_resolved(self, listener: CompletionListener) -> None:
        self._completion_listeners.append(listener)

    def _on_all_resolved(self, ledger: ShelfLedger) -> None:
        task = self.task
        if task is None or task.current_stage() != PickStage.SKU_PICK:
            return

        self._advance(task.complete)
        self.awaiting_confirmation = True
        logger.info("Pick task complete, awaiting confirmation", picklist_id=task.picklist_id, shelf_code=ledger.shelf_code)
        for listener in list(self._completion_listeners):
            listener(task, ledger)

    def confirm_completion(self) -> None:
        """Acknowledge the "all items resolved" dialog and return to the picklist."""
        if not self.awaiting_confirmation:
            raise InvalidState("There is no completed shelf to confirm")
        picklist_id = self.task.picklist_id
        self._discard()
        clear_context("picklist_id", "pick_task_id")
        self.navigator.advance("picklist", picklist_id=picklist_id)

    # -------------------------------------------------------------------
    # Tote
    # -------------------------------------------------------------------
    def capture_tote(self) -> CapturedFrame | None:
        step = self._require_step(CameraToteStep)
        frame = self._guarded("capture_tote", step.capture)
        if frame is None:
            return None

        self._advance(lambda: self.task.record_tote(frame.frame_id, self.entry_mode.mode))
        return frame

    # -------------------------------------------------------------------
    # Shelf
    # -------------------------------------------------------------------
    def shelves(self) -> list[ShelfRecord]:
        task = self._require_task()
        return sorted(self.catalog.shelves(task.picklist_id), key=lambda shelf: shelf.shelf_code)

    def _known_shelf(self, shelf_code: str) -> str:
        if shelf_code not in {shelf.shelf_code for shelf in self.shelves()}:
            raise ValidationError({"shelf_code": [f"Shelf {shelf_code} is not on picklist {self.task.picklist_id}"]})
        return shelf_code

    def _first_pending_shelf(self) -> str:
        pending = [shelf for shelf in self.shelves() if shelf.pending_quantity > 0]
        if not pending:
            raise ValidationError({"shelf_code": [f"No shelf on picklist {self.task.picklist_id} has pending items"]})
        return pending[0].shelf_code

    def capture_shelf(self, shelf_code: str | None = None) -> CapturedFrame | None:
        """Photograph the shelf label and start picking from that shelf."""
        step = self._require_step(CameraShelfStep)
        shelf_code = self._known_shelf(shelf_code) if shelf_code else self._first_pending_shelf()

        frame = self._guarded("capture_shelf", step.capture)
        if frame is None:
            return None

        self._open_shelf(shelf_code)
        return frame

    def select_shelf(self, shelf_code: str) -> ShelfLedger:
        self._require_step(CameraShelfStep, ManualShelfStep)
        return self._open_shelf(self._known_shelf(shelf_code))

    def _open_shelf(self, shelf_code: str) -> ShelfLedger:
        task = self.task
        items = self.catalog.items_for_shelf(task.picklist_id, shelf_code)
        ledger = ShelfLedger.load(
            pick_task_id=task.id,
            picklist_id=task.picklist_id,
            shelf_code=shelf_code,
            items_data=[item.as_entry_data() for item in items],
        )

        self._advance(lambda: task.select_shelf(shelf_code, self.entry_mode.mode))
        self.ledger = ledger
        self.resolver = DispositionResolver(ledger, on_resolved=self._on_all_resolved)
        logger.info("Shelf ledger loaded", shelf_code=shelf_code, entries=len(ledger.entries), pending=ledger.pending_quantity())

        # A shelf with nothing left to pick completes straight away
        self.resolver.check_resolved()
        return ledger

    # -------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------
    def _require_resolver(self) -> DispositionResolver:
        task = self._require_task()
        if task.current_stage() != PickStage.SKU_PICK or self.resolver is None:
            raise InvalidState(f"Items can only be changed during SkuPick, task is in {task.stage}")
        return self.resolver

    def pick_one(self, sku: str) -> bool:
        return self._require_resolver().pick_one(sku)

    def unpick_one(self, sku: str) -> bool:
        return self._require_resolver().unpick_one(sku)

    def bulk_pick(self, sku: str, quantity: int, inventory_type) -> bool:
        return self._require_resolver().bulk_pick(sku, quantity, inventory_type)

    def mark_damaged(self, sku: str) -> bool:
        return self._require_resolver().mark_damaged(sku)

    def mark_not_found(self, sku: str) -> bool:
        return self._require_resolver().mark_not_found(sku)

    def short_pick(self, sku: str) -> bool:
        return self._require_resolver().short_pick(sku)

    def enter_sku(self, code: str) -> bool:
        return self._require_resolver().enter_sku(code)

    # -------------------------------------------------------------------
    # SKU photos
    # -------------------------------------------------------------------
    def capture_sku(self) -> CapturedFrame | None:
        step = self._require_step(CameraSkuStep)
        return self._guarded("capture_sku", step.capture)

    def delete_sku_frame(self, index: int) -> CapturedFrame | None:
        step = self._require_step(CameraSkuStep)
        return self._guarded("delete_sku_frame", lambda: step.delete_frame(index))

    def delete_last_sku_frame(self) -> CapturedFrame | None:
        step = self._require_step(CameraSkuStep)
        return self._guarded("delete_last_sku_frame", step.delete_last)

    def retry_camera(self) -> CaptureStatus:
        step = self._require_step(CameraStep)
        return step.retry()

    # -------------------------------------------------------------------
    # Read model
    # -------------------------------------------------------------------
    def snapshot(self) -> dict:
        task = self.task
        location = self.navigator.current
        state = {
            "entry_mode": self.entry_mode.mode.value,
            "picklist_id": task.picklist_id if task else None,
            "stage": task.stage if task else None,
            "task_entry_mode": task.entry_mode if task else None,
            "tote_id": task.tote_id if task else None,
            "shelf_code": task.shelf_code if task else None,
            "awaiting_confirmation": self.awaiting_confirmation,
            "route": location.path if location else None,
            "camera": self.step.camera_state() if self.step else None,
            "ledger": None,
        }
        if self.ledger is not None:
            state["ledger"] = {
                "shelf_code": self.ledger.shelf_code,
                "pending_quantity": self.ledger.pending_quantity(),
                "picked_quantity": self.ledger.picked_quantity(),
                "short_quantity": self.ledger.short_quantity(),
                "all_resolved": self.ledger.all_resolved(),
                "entries": [
                    {
                        "sku": entry.sku,
                        "display_name": entry.display_name,
                        "vendor": entry.vendor,
                        "mrp": entry.mrp,
                        "mfg_date": entry.mfg_date,
                        "total_quantity": entry.total_quantity,
                        "picked_quantity": entry.picked_quantity,
                        "pending_quantity": entry.pending_quantity(),
                        "disposition": entry.disposition,
                        "resolved": entry.is_resolved(),
                    }
                    for entry in self.ledger.entries
                ],
            }
        return state
