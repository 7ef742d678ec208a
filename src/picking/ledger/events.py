"""Shelf ledger domain events — per-SKU quantity changes during a shelf pick."""

from protean.fields import DateTime, Identifier, Integer, String

from picking.domain import picking


@picking.event(part_of="ShelfLedger")
class ShelfLedgerLoaded:
    """The item set for a shelf was loaded into a fresh ledger."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    pick_task_id = Identifier(required=True)
    shelf_code = String(required=True)
    entry_count = Integer(required=True)
    pending_quantity = Integer(required=True)
    loaded_at = DateTime(required=True)


@picking.event(part_of="ShelfLedger")
class ItemPicked:
    """One unit of a SKU moved from pending to scanned."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    sku = String(required=True)
    picked_quantity = Integer(required=True)
    total_quantity = Integer(required=True)
    picked_at = DateTime(required=True)


@picking.event(part_of="ShelfLedger")
class ItemUnpicked:
    """One unit of a SKU moved from scanned back to pending."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    sku = String(required=True)
    picked_quantity = Integer(required=True)
    total_quantity = Integer(required=True)
    unpicked_at = DateTime(required=True)


@picking.event(part_of="ShelfLedger")
class ItemsBulkPicked:
    """Several units of a SKU were picked at once under one inventory type."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    sku = String(required=True)
    quantity = Integer(required=True)
    inventory_type = String(required=True)
    picked_quantity = Integer(required=True)
    total_quantity = Integer(required=True)
    picked_at = DateTime(required=True)


@picking.event(part_of="ShelfLedger")
class ItemMarkedDamaged:
    """The SKU's stock on the shelf was flagged as damaged."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    sku = String(required=True)
    pending_quantity = Integer(required=True)
    marked_at = DateTime(required=True)


@picking.event(part_of="ShelfLedger")
class ItemMarkedNotFound:
    """The SKU could not be found; its remaining quantity is closed out."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    sku = String(required=True)
    pending_quantity = Integer(required=True)
    marked_at = DateTime(required=True)


@picking.event(part_of="ShelfLedger")
class ItemShortPicked:
    """The SKU was short-picked; its remaining quantity is closed out."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    sku = String(required=True)
    pending_quantity = Integer(required=True)
    marked_at = DateTime(required=True)


@picking.event(part_of="ShelfLedger")
class ShelfLedgerResolved:
    """Every entry on the shelf is fully resolved."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    pick_task_id = Identifier(required=True)
    shelf_code = String(required=True)
    picked_quantity = Integer(required=True)
    short_quantity = Integer(required=True)
    resolved_at = DateTime(required=True)
