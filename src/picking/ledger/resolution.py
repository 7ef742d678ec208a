"""Disposition resolver — applies worker actions to a shelf ledger.

Every action mutates a single entry, then runs the "all resolved" check once,
after the action has completed. The first time the check passes the listener
is told, and never again for the same ledger.
"""

from collections.abc import Callable

import structlog
from protean.exceptions import ValidationError

from picking.ledger.ledger import ShelfLedger, ShelfLedgerEntry

logger = structlog.get_logger(__name__)


class DispositionResolver:
    """Wraps ledger mutations and reports shelf completion."""

    def __init__(self, ledger: ShelfLedger, on_resolved: Callable[[ShelfLedger], None] | None = None):
        self.ledger = ledger
        self._on_resolved = on_resolved

    def _after(self, action: str, entry: ShelfLedgerEntry) -> bool:
        logger.debug(
            "Ledger entry updated",
            action=action,
            shelf_code=self.ledger.shelf_code,
            sku=entry.sku,
            picked=entry.picked_quantity,
            total=entry.total_quantity,
            disposition=entry.disposition,
            resolved=entry.is_resolved(),
        )
        return self.check_resolved()

    def check_resolved(self) -> bool:
        """Report completion if the ledger has just become fully resolved."""
        if not self.ledger.report_if_resolved():
            return False

        logger.info(
            "All items on shelf resolved",
            shelf_code=self.ledger.shelf_code,
            picked=self.ledger.picked_quantity(),
            short=self.ledger.short_quantity(),
        )
        if self._on_resolved is not None:
            self._on_resolved(self.ledger)
        return True

    def pick_one(self, sku: str) -> bool:
        return self._after("pick_one", self.ledger.pick_one(sku))

    def unpick_one(self, sku: str) -> bool:
        return self._after("unpick_one", self.ledger.unpick_one(sku))

    def bulk_pick(self, sku: str, quantity: int, inventory_type) -> bool:
        return self._after("bulk_pick", self.ledger.bulk_pick(sku, quantity, inventory_type))

    def mark_damaged(self, sku: str) -> bool:
        return self._after("mark_damaged", self.ledger.mark_damaged(sku))

    def mark_not_found(self, sku: str) -> bool:
        return self._after("mark_not_found", self.ledger.mark_not_found(sku))

    def short_pick(self, sku: str) -> bool:
        return self._after("short_pick", self.ledger.short_pick(sku))

    def enter_sku(self, code: str) -> bool:
        """Pick one unit of the SKU typed or scanned into the input box.

        An exact SKU match wins; otherwise the first pending entry whose SKU
        contains the code is picked.
        """
        return self._after("enter_sku", self.ledger.pick_one(self.match_sku(code)))

    def match_sku(self, code: str) -> str:
        code = (code or "").strip()
        if not code:
            raise ValidationError({"code": ["SKU code is required"]})

        entries = self.ledger.entries or []
        exact = next((e for e in entries if e.sku == code), None)
        if exact is not None:
            return exact.sku

        partial = next((e for e in entries if code in e.sku and e.is_pending()), None)
        if partial is None:
            raise ValidationError({"code": [f"No pending SKU on shelf {self.ledger.shelf_code} matches {code}"]})
        return partial.sku
