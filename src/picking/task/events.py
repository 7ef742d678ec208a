"""Pick task domain events — immutable facts about a worker's progress.

All events are past tense and versioned. They accumulate on the aggregate for
the lifetime of the in-memory session.
"""

from protean.fields import DateTime, Identifier, String

from picking.domain import picking


@picking.event(part_of="PickTask")
class PickTaskStarted:
    """A worker started picking a picklist."""

    __version__ = 1

    pick_task_id = Identifier(required=True)
    picklist_id = String(required=True)
    entry_mode = String(required=True)
    stage = String(required=True)
    started_at = DateTime(required=True)


@picking.event(part_of="PickTask")
class ToteScanned:
    """The tote was captured and the task moved on to the shelf."""

    __version__ = 1

    pick_task_id = Identifier(required=True)
    tote_id = String(required=True)
    entry_mode = String(required=True)
    scanned_at = DateTime(required=True)


@picking.event(part_of="PickTask")
class ShelfSelected:
    """A shelf was scanned or picked from the list; SKU picking begins."""

    __version__ = 1

    pick_task_id = Identifier(required=True)
    shelf_code = String(required=True)
    entry_mode = String(required=True)
    selected_at = DateTime(required=True)


@picking.event(part_of="PickTask")
class ShelfScanReentered:
    """The worker backed out of SKU picking to choose another shelf."""

    __version__ = 1

    pick_task_id = Identifier(required=True)
    previous_shelf_code = String()
    entry_mode = String(required=True)
    reentered_at = DateTime(required=True)


@picking.event(part_of="PickTask")
class ToteScanReentered:
    """The worker backed out of the shelf scan to rescan the tote."""

    __version__ = 1

    pick_task_id = Identifier(required=True)
    previous_tote_id = String()
    reentered_at = DateTime(required=True)


@picking.event(part_of="PickTask")
class PickTaskCompleted:
    """Every item on the shelf was resolved."""

    __version__ = 1

    pick_task_id = Identifier(required=True)
    picklist_id = String(required=True)
    shelf_code = String()
    completed_at = DateTime(required=True)


@picking.event(part_of="PickTask")
class PickTaskAbandoned:
    """The worker left the task before it was complete."""

    __version__ = 1

    pick_task_id = Identifier(required=True)
    picklist_id = String(required=True)
    stage = String(required=True)
    abandoned_at = DateTime(required=True)
