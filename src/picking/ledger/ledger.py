"""ShelfLedger aggregate — per-SKU quantity bookkeeping for one shelf.

A ledger is loaded when the worker reaches a shelf and discarded when the
shelf step ends. Each entry tracks how much of a SKU has been picked against
the quantity ordered from this shelf.

Quantity Model:
    total:    Ordered from this shelf
    picked:   Moved into the tote, 0 <= picked <= total
    pending:  picked < total
    resolved: picked == total, or disposition is NotFound / ShortPicked
              (those close out the remaining quantity without picking it)

``resolved_count`` is maintained per mutation so the "shelf done" check does
not rescan every entry; ``recount_resolved()`` recomputes it from scratch.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from picking.domain import picking
from picking.errors import QuantityOutOfRange
from picking.ledger.events import (
    ItemMarkedDamaged,
    ItemMarkedNotFound,
    ItemPicked,
    ItemsBulkPicked,
    ItemShortPicked,
    ItemUnpicked,
    ShelfLedgerLoaded,
    ShelfLedgerResolved,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Disposition(Enum):
    GOOD = "Good"
    DAMAGED = "Damaged"
    NOT_FOUND = "NotFound"
    SHORT_PICKED = "ShortPicked"


# Inventory types a bulk pick may be recorded under
BULK_INVENTORY_TYPES = {Disposition.GOOD, Disposition.DAMAGED}

# Dispositions that close out an entry's remaining quantity
_CLOSING_DISPOSITIONS = {Disposition.NOT_FOUND.value, Disposition.SHORT_PICKED.value}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@picking.entity(part_of="ShelfLedger")
class ShelfLedgerEntry:
    """One SKU visible on the current shelf."""

    sku = String(required=True, max_length=100)
    display_name = String(max_length=255)
    vendor = String(max_length=100)
    mrp = Float(min_value=0.0)
    mfg_date = String(max_length=20)
    total_quantity = Integer(required=True, min_value=0)
    picked_quantity = Integer(default=0, min_value=0)
    disposition = String(max_length=20, choices=Disposition)

    def pending_quantity(self) -> int:
        return self.total_quantity - self.picked_quantity

    def is_pending(self) -> bool:
        return self.picked_quantity < self.total_quantity

    def is_scanned(self) -> bool:
        return self.picked_quantity > 0

    def is_resolved(self) -> bool:
        return self.picked_quantity == self.total_quantity or self.disposition in _CLOSING_DISPOSITIONS


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@picking.aggregate
class ShelfLedger:
    pick_task_id = Identifier(required=True)
    picklist_id = String(required=True, max_length=100)
    shelf_code = String(required=True, max_length=100)
    entries = HasMany(ShelfLedgerEntry)
    resolved_count = Integer(default=0, min_value=0)
    completion_reported = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def picked_quantity_within_bounds(self):
        for entry in self.entries or []:
            if entry.picked_quantity < 0 or entry.picked_quantity > entry.total_quantity:
                raise ValidationError(
                    {"picked_quantity": [f"{entry.sku}: picked quantity must stay between 0 and {entry.total_quantity}"]}
                )

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def load(cls, pick_task_id: str, picklist_id: str, shelf_code: str, items_data: list[dict]):
        """Load a fresh ledger for the items on a shelf."""
        skus = [item["sku"] for item in items_data]
        if len(skus) != len(set(skus)):
            raise ValidationError({"entries": ["Each SKU may appear only once on a shelf"]})

        now = datetime.now(UTC)
        ledger = cls(
            pick_task_id=pick_task_id,
            picklist_id=picklist_id,
            shelf_code=shelf_code,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            ledger.add_entries(ShelfLedgerEntry(**item_data))
        ledger.resolved_count = ledger.recount_resolved()

        ledger.raise_(
            ShelfLedgerLoaded(
                ledger_id=str(ledger.id),
                pick_task_id=str(pick_task_id),
                shelf_code=shelf_code,
                entry_count=len(items_data),
                pending_quantity=ledger.pending_quantity(),
                loaded_at=now,
            )
        )
        return ledger

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def entry_for(self, sku: str) -> ShelfLedgerEntry:
        entry = next((e for e in (self.entries or []) if e.sku == sku), None)
        if entry is None:
            raise ValidationError({"sku": [f"SKU {sku} is not on shelf {self.shelf_code}"]})
        return entry

    def pending_entries(self) -> list[ShelfLedgerEntry]:
        return [e for e in (self.entries or []) if e.is_pending()]

    def scanned_entries(self) -> list[ShelfLedgerEntry]:
        return [e for e in (self.entries or []) if e.is_scanned()]

    def pending_quantity(self) -> int:
        """Units still to pick on entries that are not yet resolved."""
        return sum(e.pending_quantity() for e in (self.entries or []) if not e.is_resolved())

    def picked_quantity(self) -> int:
        return sum(e.picked_quantity for e in (self.entries or []))

    def short_quantity(self) -> int:
        """Units closed out by a NotFound or ShortPicked disposition."""
        return sum(e.pending_quantity() for e in (self.entries or []) if e.is_resolved())

    def recount_resolved(self) -> int:
        return sum(1 for e in (self.entries or []) if e.is_resolved())

    def all_resolved(self) -> bool:
        return self.resolved_count == len(self.entries or [])

    # -------------------------------------------------------------------
    # Helper
    # -------------------------------------------------------------------
    def _track_resolution(self, entry: ShelfLedgerEntry, was_resolved: bool) -> None:
        """Adjust resolved_count after a single entry changed."""
        now_resolved = entry.is_resolved()
        if now_resolved and not was_resolved:
            self.resolved_count += 1
        elif was_resolved and not now_resolved:
            self.resolved_count -= 1
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Single-unit picking
    # -------------------------------------------------------------------
    def pick_one(self, sku: str) -> ShelfLedgerEntry:
        """Pick one unit. Clamped at the total: picking a full entry is a no-op."""
        entry = self.entry_for(sku)
        if entry.picked_quantity >= entry.total_quantity:
            return entry

        was_resolved = entry.is_resolved()
        with atomic_change(self):
            entry.picked_quantity = entry.picked_quantity + 1
            self._track_resolution(entry, was_resolved)

        self.raise_(
            ItemPicked(
                ledger_id=str(self.id),
                sku=sku,
                picked_quantity=entry.picked_quantity,
                total_quantity=entry.total_quantity,
                picked_at=self.updated_at,
            )
        )
        return entry

    def unpick_one(self, sku: str) -> ShelfLedgerEntry:
        """Move one unit back to pending. Clamped at zero."""
        entry = self.entry_for(sku)
        if entry.picked_quantity <= 0:
            return entry

        was_resolved = entry.is_resolved()
        with atomic_change(self):
            entry.picked_quantity = entry.picked_quantity - 1
            self._track_resolution(entry, was_resolved)

        self.raise_(
            ItemUnpicked(
                ledger_id=str(self.id),
                sku=sku,
                picked_quantity=entry.picked_quantity,
                total_quantity=entry.total_quantity,
                unpicked_at=self.updated_at,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Dispositions
    # -------------------------------------------------------------------
    def bulk_pick(self, sku: str, quantity: int, inventory_type) -> ShelfLedgerEntry:
        """Pick several units at once, recorded as Good or Damaged stock.

        Rejects (rather than clamps) a quantity outside 1..pending, leaving
        the entry untouched.
        """
        entry = self.entry_for(sku)
        try:
            kind = Disposition(inventory_type.value if isinstance(inventory_type, Disposition) else inventory_type)
        except ValueError:
            kind = None
        if kind not in BULK_INVENTORY_TYPES:
            raise ValidationError({"inventory_type": [f"Inventory type must be Good or Damaged, got {inventory_type!r}"]})

        pending = entry.pending_quantity()
        if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= pending:
            raise QuantityOutOfRange(sku, quantity, pending)

        was_resolved = entry.is_resolved()
        with atomic_change(self):
            entry.disposition = kind.value
            entry.picked_quantity = entry.picked_quantity + quantity
            self._track_resolution(entry, was_resolved)

        self.raise_(
            ItemsBulkPicked(
                ledger_id=str(self.id),
                sku=sku,
                quantity=quantity,
                inventory_type=kind.value,
                picked_quantity=entry.picked_quantity,
                total_quantity=entry.total_quantity,
                picked_at=self.updated_at,
            )
        )
        return entry

    def _set_disposition(self, entry: ShelfLedgerEntry, disposition: Disposition) -> None:
        was_resolved = entry.is_resolved()
        with atomic_change(self):
            entry.disposition = disposition.value
            self._track_resolution(entry, was_resolved)

    def mark_damaged(self, sku: str) -> ShelfLedgerEntry:
        """Flag the SKU's shelf stock as damaged; picked quantity is unchanged."""
        entry = self.entry_for(sku)
        self._set_disposition(entry, Disposition.DAMAGED)
        self.raise_(
            ItemMarkedDamaged(
                ledger_id=str(self.id),
                sku=sku,
                pending_quantity=entry.pending_quantity(),
                marked_at=self.updated_at,
            )
        )
        return entry

    def mark_not_found(self, sku: str) -> ShelfLedgerEntry:
        """Close out the SKU's remaining quantity as not found."""
        entry = self.entry_for(sku)
        self._set_disposition(entry, Disposition.NOT_FOUND)
        self.raise_(
            ItemMarkedNotFound(
                ledger_id=str(self.id),
                sku=sku,
                pending_quantity=entry.pending_quantity(),
                marked_at=self.updated_at,
            )
        )
        return entry

    def short_pick(self, sku: str) -> ShelfLedgerEntry:
        """Close out the SKU's remaining quantity as short-picked."""
        entry = self.entry_for(sku)
        self._set_disposition(entry, Disposition.SHORT_PICKED)
        self.raise_(
            ItemShortPicked(
                ledger_id=str(self.id),
                sku=sku,
                pending_quantity=entry.pending_quantity(),
                marked_at=self.updated_at,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Completion
    # -------------------------------------------------------------------
    def report_if_resolved(self) -> bool:
        """Raise ShelfLedgerResolved the first time every entry is resolved.

        Returns True only on that first call, so a caller checking after each
        action sees the completion exactly once.
        """
        if self.completion_reported or not self.all_resolved():
            return False

        now = datetime.now(UTC)
        self.completion_reported = True
        self.updated_at = now
        self.raise_(
            ShelfLedgerResolved(
                ledger_id=str(self.id),
                pick_task_id=str(self.pick_task_id),
                shelf_code=self.shelf_code,
                picked_quantity=self.picked_quantity(),
                short_quantity=self.short_quantity(),
                resolved_at=now,
            )
        )
        return True
