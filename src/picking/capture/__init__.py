"""Camera adapter factory.

Provides get_camera() / set_camera() to swap implementations. Only the fake
camera ships with the service; the adapter is chosen with the CAMERA_ADAPTER
environment variable.
"""

import os

from picking.capture.port import CameraPort

_current_camera: CameraPort | None = None


def get_camera() -> CameraPort:
    """Return the configured camera adapter (singleton)."""
    global _current_camera
    if _current_camera is None:
        adapter = os.environ.get("CAMERA_ADAPTER", "fake")
        if adapter == "fake":
            from picking.capture.fake_adapter import FakeCamera

            _current_camera = FakeCamera()
        else:
            raise ValueError(f"Unknown camera adapter: {adapter}")
    return _current_camera


def set_camera(camera: CameraPort) -> None:
    """Override the active camera adapter (useful for tests)."""
    global _current_camera
    _current_camera = camera


def reset_camera() -> None:
    """Reset the camera singleton (useful for testing)."""
    global _current_camera
    _current_camera = None
