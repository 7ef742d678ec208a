"""Fake camera adapter — deterministic device for testing and development.

Hands out opaque handles and synthetic JPEG-like frames. Configurable to deny
access, and to hold stream requests until ``resolve_pending()`` so callers can
exercise the asynchronous acquisition path.
"""

from uuid import uuid4

from picking.capture.port import CameraPort, StreamCallback, StreamConstraints


class FakeCamera(CameraPort):
    """Fake camera that grants streams by default.

    The device is exclusive: while one handle is active, further requests
    are refused the same way a real platform reports a busy camera.
    """

    def __init__(self) -> None:
        self.available: bool = True
        self.failure_reason: str = "Camera access denied. Please allow camera permissions."
        self.deferred: bool = False
        self.calls: list[dict] = []
        self.active_handles: set[str] = set()
        self._pending: list[tuple[StreamConstraints, StreamCallback]] = []
        self._frame_count = 0

    def configure(
        self,
        available: bool = True,
        failure_reason: str = "Camera access denied. Please allow camera permissions.",
        deferred: bool = False,
    ) -> None:
        """Configure the fake camera behavior for testing."""
        self.available = available
        self.failure_reason = failure_reason
        self.deferred = deferred

    def request_stream(self, constraints: StreamConstraints, callback: StreamCallback) -> None:
        self.calls.append(
            {
                "method": "request_stream",
                "facing_mode": constraints.facing_mode,
                "width": constraints.width,
                "height": constraints.height,
            }
        )
        if self.deferred:
            self._pending.append((constraints, callback))
            return
        self._grant(callback)

    def pending_requests(self) -> int:
        return len(self._pending)

    def resolve_pending(self) -> int:
        """Answer every held request, in arrival order."""
        pending, self._pending = self._pending, []
        for _constraints, callback in pending:
            self._grant(callback)
        return len(pending)

    def _grant(self, callback: StreamCallback) -> None:
        if not self.available:
            callback(None, self.failure_reason)
            return
        if self.active_handles:
            callback(None, "Camera is in use by another session")
            return

        handle = f"cam-{uuid4().hex[:8]}"
        self.active_handles.add(handle)
        callback(handle, None)

    def grab_frame(self, handle: object) -> bytes:
        if handle not in self.active_handles:
            raise ValueError(f"Stream {handle} is not active")
        self._frame_count += 1
        self.calls.append({"method": "grab_frame", "handle": handle})
        return b"\xff\xd8\xff\xe0" + f"fake-frame-{self._frame_count}".encode()

    def release(self, handle: object) -> None:
        self.calls.append({"method": "release", "handle": handle})
        self.active_handles.discard(handle)
