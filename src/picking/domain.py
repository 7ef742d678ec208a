"""Picking bounded context — Warehouse pick fulfillment on the floor.

Drives a worker through one picklist: identify the tote, locate the shelf,
then reconcile SKU quantities until the shelf is fully resolved. Task and
ledger state live in memory for a single worker session; nothing here is
persisted.
"""

from protean.domain import Domain

from picking.utils.logging import get_logger

logger = get_logger(__name__)

# Domain Composition Root
picking = Domain(name="picking")
