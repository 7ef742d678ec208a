"""Camera port — abstract interface for the platform's imaging capability.

Acquisition is asynchronous: the adapter answers a stream request through a
callback, either immediately or once the platform has resolved permissions.
The workflow programs against this port; adapters are swapped via
configuration.
"""

import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

FACING_MODES = ("back", "front")

# callback(handle, error_reason): exactly one of the two is set
StreamCallback = Callable[[object | None, str | None], None]


@dataclass(frozen=True)
class StreamConstraints:
    """Options passed to the platform when requesting a stream."""

    facing_mode: str = "back"
    width: int = 1280
    height: int = 720

    def __post_init__(self):
        if self.facing_mode not in FACING_MODES:
            raise ValueError(f"Unknown facing mode: {self.facing_mode}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Resolution hints must be positive")


def default_constraints() -> StreamConstraints:
    """Constraints from CAMERA_FACING_MODE / CAMERA_WIDTH / CAMERA_HEIGHT.

    Defaults to the back camera at 1280x720, which suits barcode labels.
    """
    return StreamConstraints(
        facing_mode=os.environ.get("CAMERA_FACING_MODE", "back"),
        width=int(os.environ.get("CAMERA_WIDTH", "1280")),
        height=int(os.environ.get("CAMERA_HEIGHT", "720")),
    )


class CameraPort(ABC):
    """Abstract interface for camera adapters."""

    @abstractmethod
    def request_stream(self, constraints: StreamConstraints, callback: StreamCallback) -> None:
        """Ask the platform for a live stream.

        The adapter calls ``callback(handle, None)`` on success or
        ``callback(None, reason)`` when the capability is denied or missing.
        """
        ...

    @abstractmethod
    def grab_frame(self, handle: object) -> bytes:
        """Return the current still image from an active stream."""
        ...

    @abstractmethod
    def release(self, handle: object) -> None:
        """Stop the stream and free the device."""
        ...
