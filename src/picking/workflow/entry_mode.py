"""Entry mode selector — camera-driven or manual data entry.

The selector is created once per process by ``init_entry_mode()`` and passed
to each workflow at construction. Reading it before initialisation is a
programming error and raises instead of silently defaulting.
"""

import os

import structlog

from picking.task.task import EntryMode

logger = structlog.get_logger(__name__)


class EntryModeSelector:
    def __init__(self, mode: EntryMode = EntryMode.CAMERA) -> None:
        self._mode = EntryMode(mode)

    @property
    def mode(self) -> EntryMode:
        return self._mode

    @property
    def is_camera_mode(self) -> bool:
        return self._mode == EntryMode.CAMERA

    def set_mode(self, mode: EntryMode | str) -> EntryMode:
        """Switch channels. Last write wins."""
        new_mode = EntryMode(mode)
        if new_mode != self._mode:
            logger.info("Entry mode changed", previous=self._mode.value, mode=new_mode.value)
        self._mode = new_mode
        return new_mode


_selector: EntryModeSelector | None = None


def init_entry_mode(default: EntryMode | str | None = None) -> EntryModeSelector:
    """Create the process-wide selector.

    The starting mode comes from ``default``, then PICKING_ENTRY_MODE, then
    Camera.
    """
    global _selector
    mode = default or os.environ.get("PICKING_ENTRY_MODE") or EntryMode.CAMERA
    _selector = EntryModeSelector(EntryMode(mode))
    logger.info("Entry mode initialised", mode=_selector.mode.value)
    return _selector


def get_entry_mode_selector() -> EntryModeSelector:
    if _selector is None:
        raise RuntimeError("Entry mode selector read before init_entry_mode() was called")
    return _selector


def reset_entry_mode() -> None:
    """Drop the selector (useful for tests)."""
    global _selector
    _selector = None
