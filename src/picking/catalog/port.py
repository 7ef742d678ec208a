"""Catalog port — read-only source of picklists, shelves and shelf items.

The workflow never decides how this data is fetched; it reads records shaped
like the ledger entries it builds.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class PicklistRecord:
    picklist_id: str
    aisle: str = ""
    section: str = ""
    level: str = ""


@dataclass(frozen=True)
class ShelfRecord:
    shelf_code: str
    sku_count: int
    pending_quantity: int


@dataclass(frozen=True)
class ItemRecord:
    sku: str
    display_name: str
    vendor: str
    mrp: float
    mfg_date: str
    total_quantity: int
    picked_quantity: int = 0

    def as_entry_data(self) -> dict:
        """Field values for a ShelfLedgerEntry."""
        return asdict(self)


class CatalogPort(ABC):
    """Abstract interface for catalog adapters."""

    @abstractmethod
    def picklist(self, picklist_id: str) -> PicklistRecord:
        """Return the picklist header. Raises ObjectNotFoundError if unknown."""
        ...

    @abstractmethod
    def shelves(self, picklist_id: str) -> list[ShelfRecord]:
        """Return the shelves holding items for the picklist."""
        ...

    @abstractmethod
    def items_for_shelf(self, picklist_id: str, shelf_code: str) -> list[ItemRecord]:
        """Return the items to pick from one shelf.

        Raises ObjectNotFoundError if the shelf is not on the picklist.
        """
        ...
