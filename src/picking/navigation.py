"""Navigation boundary — the routes the workflow moves the worker between.

The router that maps URLs to screens lives outside this service. The
workflow only needs to say "advance to route X with parameters Y" and to
read back where it currently is.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger(__name__)

ROUTES = {
    "picklist": "/picklist/{picklist_id}",
    "tote_scanner": "/tote-scanner/{picklist_id}",
    "shelf_detail": "/shelf-detail/{picklist_id}",
    "shelf_selection": "/shelf-selection/{picklist_id}",
    "sku_scanner": "/sku-scanner/{tote_id}",
    "sku_input": "/sku-input/{picklist_id}/{shelf_code}",
}

# Locations kept by RecordingNavigator; older ones are dropped
HISTORY_SIZE = 50


@dataclass(frozen=True)
class Location:
    route: str
    params: dict = field(default_factory=dict)

    @property
    def path(self) -> str:
        return ROUTES[self.route].format(**self.params)


def resolve(route: str, **params) -> Location:
    """Build a Location, checking the route exists and has its parameters."""
    if route not in ROUTES:
        raise ValueError(f"Unknown route: {route}")
    try:
        ROUTES[route].format(**params)
    except KeyError as exc:
        raise ValueError(f"Route {route} requires parameter {exc.args[0]}") from None
    return Location(route=route, params=params)


class NavigatorPort(ABC):
    """Abstract interface for the external router."""

    @abstractmethod
    def advance(self, route: str, **params) -> Location:
        """Move the worker to ``route``."""
        ...

    @property
    @abstractmethod
    def current(self) -> Location | None:
        """The route the worker is on, with its parameters."""
        ...


class RecordingNavigator(NavigatorPort):
    """In-memory navigator that keeps the most recent locations."""

    def __init__(self, max_history: int = HISTORY_SIZE) -> None:
        self.history: deque[Location] = deque(maxlen=max_history)

    def advance(self, route: str, **params) -> Location:
        location = resolve(route, **params)
        self.history.append(location)
        logger.debug("Navigated", route=route, path=location.path)
        return location

    @property
    def current(self) -> Location | None:
        return self.history[-1] if self.history else None
