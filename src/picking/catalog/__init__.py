"""Catalog factory.

Provides get_catalog() / set_catalog() to swap implementations. Defaults to
StaticCatalog with the bundled sample picklists.
"""

from picking.catalog.port import CatalogPort

_current_catalog: CatalogPort | None = None


def get_catalog() -> CatalogPort:
    """Return the current catalog. Defaults to StaticCatalog."""
    global _current_catalog
    if _current_catalog is None:
        from picking.catalog.sample_adapter import StaticCatalog

        _current_catalog = StaticCatalog()
    return _current_catalog


def set_catalog(catalog: CatalogPort) -> None:
    """Override the active catalog (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset to default catalog."""
    global _current_catalog
    _current_catalog = None
