"""PickTask aggregate — the stage a worker has reached on one picklist.

State Machine:
    TOTE_SCAN → SHELF_SCAN → SKU_PICK → COMPLETE
    SHELF_SCAN → TOTE_SCAN          (back, camera flow)
    SKU_PICK → SHELF_SCAN           (back)
    {TOTE_SCAN, SHELF_SCAN, SKU_PICK} → abandoned

Manual entry skips the tote entirely and starts at SHELF_SCAN. The aggregate
only records where the worker is; the device and ledger lifecycles are driven
by the workflow that owns the task.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, String

from picking.domain import picking
from picking.errors import InvalidState
from picking.task.events import (
    PickTaskAbandoned,
    PickTaskCompleted,
    PickTaskStarted,
    ShelfScanReentered,
    ShelfSelected,
    ToteScanned,
    ToteScanReentered,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PickStage(Enum):
    TOTE_SCAN = "ToteScan"
    SHELF_SCAN = "ShelfScan"
    SKU_PICK = "SkuPick"
    COMPLETE = "Complete"


class EntryMode(Enum):
    CAMERA = "Camera"
    MANUAL = "Manual"


_VALID_TRANSITIONS = {
    PickStage.TOTE_SCAN: {PickStage.SHELF_SCAN},
    PickStage.SHELF_SCAN: {PickStage.SKU_PICK, PickStage.TOTE_SCAN},
    PickStage.SKU_PICK: {PickStage.COMPLETE, PickStage.SHELF_SCAN},
    PickStage.COMPLETE: set(),  # terminal
}


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@picking.aggregate
class PickTask:
    picklist_id = String(required=True, max_length=100)
    stage = String(
        choices=PickStage,
        default=PickStage.TOTE_SCAN.value,
    )
    entry_mode = String(
        choices=EntryMode,
        default=EntryMode.CAMERA.value,
    )
    tote_id = String(max_length=100)
    shelf_code = String(max_length=100)
    abandoned = Boolean(default=False)
    started_at = DateTime()
    completed_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, picklist_id: str, entry_mode: EntryMode):
        """Start picking a picklist in the given entry mode."""
        now = datetime.now(UTC)
        first_stage = PickStage.TOTE_SCAN if entry_mode == EntryMode.CAMERA else PickStage.SHELF_SCAN
        task = cls(
            picklist_id=picklist_id,
            stage=first_stage.value,
            entry_mode=entry_mode.value,
            started_at=now,
            updated_at=now,
        )
        task.raise_(
            PickTaskStarted(
                pick_task_id=str(task.id),
                picklist_id=picklist_id,
                entry_mode=entry_mode.value,
                stage=first_stage.value,
                started_at=now,
            )
        )
        return task

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def current_stage(self) -> PickStage:
        return PickStage(self.stage)

    def current_entry_mode(self) -> EntryMode:
        return EntryMode(self.entry_mode)

    def is_active(self) -> bool:
        return not self.abandoned and self.current_stage() != PickStage.COMPLETE

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_stage: PickStage) -> None:
        if self.abandoned:
            raise InvalidState(f"Pick task for {self.picklist_id} was abandoned")
        current = self.current_stage()
        if target_stage not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidState(f"Cannot transition from {current.value} to {target_stage.value}")

    # -------------------------------------------------------------------
    # Forward transitions
    # -------------------------------------------------------------------
    def record_tote(self, tote_id: str, entry_mode: EntryMode) -> None:
        """Record the captured tote and move on to locating the shelf."""
        self._assert_can_transition(PickStage.SHELF_SCAN)
        if self.current_stage() != PickStage.TOTE_SCAN:
            raise InvalidState("A tote can only be recorded during ToteScan")

        now = datetime.now(UTC)
        self.stage = PickStage.SHELF_SCAN.value
        self.entry_mode = entry_mode.value
        self.tote_id = tote_id
        self.updated_at = now
        self.raise_(
            ToteScanned(
                pick_task_id=str(self.id),
                tote_id=tote_id,
                entry_mode=entry_mode.value,
                scanned_at=now,
            )
        )

    def select_shelf(self, shelf_code: str, entry_mode: EntryMode) -> None:
        """Record the chosen shelf and begin SKU picking."""
        self._assert_can_transition(PickStage.SKU_PICK)

        now = datetime.now(UTC)
        self.stage = PickStage.SKU_PICK.value
        self.entry_mode = entry_mode.value
        self.shelf_code = shelf_code
        self.updated_at = now
        self.raise_(
            ShelfSelected(
                pick_task_id=str(self.id),
                shelf_code=shelf_code,
                entry_mode=entry_mode.value,
                selected_at=now,
            )
        )

    def complete(self) -> None:
        """Close the task once the shelf ledger is fully resolved."""
        self._assert_can_transition(PickStage.COMPLETE)

        now = datetime.now(UTC)
        self.stage = PickStage.COMPLETE.value
        self.completed_at = now
        self.updated_at = now
        self.raise_(
            PickTaskCompleted(
                pick_task_id=str(self.id),
                picklist_id=self.picklist_id,
                shelf_code=self.shelf_code or "",
                completed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Backward transitions
    # -------------------------------------------------------------------
    def return_to_shelf_scan(self, entry_mode: EntryMode) -> None:
        """Leave SKU picking and go back to choosing a shelf."""
        if self.current_stage() != PickStage.SKU_PICK:
            raise InvalidState("Can only return to ShelfScan from SkuPick")
        self._assert_can_transition(PickStage.SHELF_SCAN)

        now = datetime.now(UTC)
        previous_shelf = self.shelf_code
        self.stage = PickStage.SHELF_SCAN.value
        self.entry_mode = entry_mode.value
        self.shelf_code = None
        self.updated_at = now
        self.raise_(
            ShelfScanReentered(
                pick_task_id=str(self.id),
                previous_shelf_code=previous_shelf or "",
                entry_mode=entry_mode.value,
                reentered_at=now,
            )
        )

    def return_to_tote_scan(self) -> None:
        """Leave the shelf scan and rescan the tote (camera flow only)."""
        self._assert_can_transition(PickStage.TOTE_SCAN)

        now = datetime.now(UTC)
        previous_tote = self.tote_id
        self.stage = PickStage.TOTE_SCAN.value
        self.entry_mode = EntryMode.CAMERA.value
        self.tote_id = None
        self.updated_at = now
        self.raise_(
            ToteScanReentered(
                pick_task_id=str(self.id),
                previous_tote_id=previous_tote or "",
                reentered_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Abandonment
    # -------------------------------------------------------------------
    def abandon(self) -> None:
        """Mark the task abandoned; it is discarded, never persisted."""
        if not self.is_active():
            raise InvalidState(f"Cannot abandon a task in {self.stage} state")

        now = datetime.now(UTC)
        self.abandoned = True
        self.updated_at = now
        self.raise_(
            PickTaskAbandoned(
                pick_task_id=str(self.id),
                picklist_id=self.picklist_id,
                stage=self.stage,
                abandoned_at=now,
            )
        )
