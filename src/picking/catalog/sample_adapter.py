"""Static catalog adapter — in-memory sample picklists for development and tests.

Ships the sample data shown on the picking screens: picklist PK1000 spread
over four shelves of sneakers. Tests pass their own data to the constructor.
"""

from protean.exceptions import ObjectNotFoundError

from picking.catalog.port import CatalogPort, ItemRecord, PicklistRecord, ShelfRecord


def _sneaker(colour: str, sku_suffix: int, total: int) -> ItemRecord:
    return ItemRecord(
        sku=f"SK238402-4374930230{sku_suffix}",
        display_name=f"Nike Shoes-{colour}-Size10-Mens Revolution 6 Nn-Sports Shoes-Men Sneaker",
        vendor="B02363940",
        mrp=10000.0,
        mfg_date="12/03/23",
        total_quantity=total,
    )


RED = _sneaker("Red", 12, 80)
BLUE = _sneaker("Blue", 13, 50)
BLACK = _sneaker("Black", 14, 60)
YELLOW = _sneaker("Yellow", 15, 20)

SAMPLE_PICKLISTS = {
    "PK1000": PicklistRecord(picklist_id="PK1000", aisle="15", section="006", level="A"),
    "PK1001": PicklistRecord(picklist_id="PK1001", aisle="16", section="002", level="B"),
}

SAMPLE_SHELF_ITEMS = {
    "PK1000": {
        "SHELF_001": [RED, BLUE, BLACK, YELLOW],
        "SHELF_002": [RED, BLUE, BLACK],
        "SHELF_003": [BLACK, YELLOW],
        "SHELF_004": [YELLOW],
    },
    "PK1001": {
        "SHELF_001": [BLUE, YELLOW],
    },
}


class StaticCatalog(CatalogPort):
    """Catalog backed by dictionaries held in memory."""

    def __init__(
        self,
        picklists: dict[str, PicklistRecord] | None = None,
        shelf_items: dict[str, dict[str, list[ItemRecord]]] | None = None,
    ) -> None:
        self._picklists = dict(SAMPLE_PICKLISTS if picklists is None else picklists)
        self._shelf_items = dict(SAMPLE_SHELF_ITEMS if shelf_items is None else shelf_items)

    def picklist(self, picklist_id: str) -> PicklistRecord:
        try:
            return self._picklists[picklist_id]
        except KeyError:
            raise ObjectNotFoundError(f"Picklist {picklist_id} does not exist") from None

    def shelves(self, picklist_id: str) -> list[ShelfRecord]:
        self.picklist(picklist_id)
        return [
            ShelfRecord(
                shelf_code=code,
                sku_count=len(items),
                pending_quantity=sum(item.total_quantity - item.picked_quantity for item in items),
            )
            for code, items in self._shelf_items.get(picklist_id, {}).items()
        ]

    def items_for_shelf(self, picklist_id: str, shelf_code: str) -> list[ItemRecord]:
        self.picklist(picklist_id)
        shelf_items = self._shelf_items.get(picklist_id, {})
        if shelf_code not in shelf_items:
            raise ObjectNotFoundError(f"Shelf {shelf_code} is not on picklist {picklist_id}")
        return list(shelf_items[shelf_code])
