"""Capture sessions — the lifecycle of one acquisition of the camera.

Status Machine:
    IDLE → REQUESTING → STREAMING
                      → ERROR       (denied / missing capability)
    any → STOPPED                   (close, always safe)
    STOPPED | ERROR → REQUESTING    (re-open is a fresh acquisition)

A stream request resolves through a callback. If the session is closed while
the request is still in flight, the request is cancelled: whatever handle it
eventually produces is released on arrival and the session stays STOPPED.

Captured frames are owned by the session and survive close/open until
``clear_frames()`` is called.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

import structlog

from picking.capture.port import CameraPort, StreamConstraints, default_constraints
from picking.errors import DeviceUnavailable, InvalidState

logger = structlog.get_logger(__name__)


class CaptureStatus(Enum):
    IDLE = "Idle"
    REQUESTING = "Requesting"
    STREAMING = "Streaming"
    ERROR = "Error"
    STOPPED = "Stopped"


@dataclass(frozen=True)
class CapturedFrame:
    """A still image taken from a live stream."""

    image_bytes: bytes
    captured_at: datetime
    frame_id: str = field(default_factory=lambda: f"frm-{uuid4().hex[:12]}")


class CaptureSession:
    """One logical step's use of the camera."""

    def __init__(self, camera: CameraPort, step_key: str = "default") -> None:
        self.camera = camera
        self.step_key = step_key
        self.status: CaptureStatus = CaptureStatus.IDLE
        self.error_reason: str | None = None
        self.frames: list[CapturedFrame] = []
        self._handle: object | None = None
        self._constraints: StreamConstraints | None = None
        # Bumped on every open/close; a callback carrying an older value is stale
        self._request_token = 0
        self._listeners: list[Callable[["CaptureSession"], None]] = []

    @property
    def device_handle(self) -> object | None:
        return self._handle

    def is_streaming(self) -> bool:
        return self.status == CaptureStatus.STREAMING

    def on_status_change(self, callback: Callable[["CaptureSession"], None]) -> None:
        self._listeners.append(callback)

    def _set_status(self, status: CaptureStatus, reason: str | None = None) -> None:
        self.status = status
        self.error_reason = reason
        for listener in list(self._listeners):
            listener(self)

    # -------------------------------------------------------------------
    # Acquisition
    # -------------------------------------------------------------------
    def open(self, constraints: StreamConstraints | None = None) -> CaptureStatus:
        """Request a stream from the camera.

        Raises DeviceUnavailable when the adapter refuses synchronously. A
        refusal that arrives later moves the session to ERROR instead.
        """
        if self.status == CaptureStatus.REQUESTING:
            logger.warning("Stream request already in flight", step_key=self.step_key)
            return self.status

        if self._handle is not None:
            self._release()

        self._constraints = constraints or self._constraints or default_constraints()
        self._request_token += 1
        token = self._request_token
        self._set_status(CaptureStatus.REQUESTING)
        logger.info(
            "Requesting camera stream",
            step_key=self.step_key,
            facing_mode=self._constraints.facing_mode,
            width=self._constraints.width,
            height=self._constraints.height,
        )

        self.camera.request_stream(self._constraints, lambda handle, reason: self._on_stream(token, handle, reason))

        if self.status == CaptureStatus.ERROR and token == self._request_token:
            raise DeviceUnavailable(self.error_reason)
        return self.status

    def _on_stream(self, token: int, handle: object | None, reason: str | None) -> None:
        if token != self._request_token or self.status != CaptureStatus.REQUESTING:
            if handle is not None:
                self.camera.release(handle)
                logger.info("Released stream granted after cancellation", step_key=self.step_key)
            return

        if handle is None:
            reason = reason or "Camera unavailable"
            logger.warning("Camera unavailable", step_key=self.step_key, reason=reason)
            self._set_status(CaptureStatus.ERROR, reason)
            return

        self._handle = handle
        logger.info("Camera stream started", step_key=self.step_key)
        self._set_status(CaptureStatus.STREAMING)

    def retry(self) -> CaptureStatus:
        """Re-run open() with the last constraints after a failure."""
        if self.status != CaptureStatus.ERROR:
            raise InvalidState(f"Retry is only valid after an error, session is {self.status.value}")
        return self.open(self._constraints)

    def _release(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            self.camera.release(handle)

    def close(self) -> None:
        """Release the stream. Safe to call in any status, any number of times."""
        if self.status == CaptureStatus.STOPPED and self._handle is None:
            return

        if self.status == CaptureStatus.REQUESTING:
            logger.info("Cancelling in-flight stream request", step_key=self.step_key)
        self._request_token += 1
        self._release()
        self._set_status(CaptureStatus.STOPPED)
        logger.info("Camera stream stopped", step_key=self.step_key, frames=len(self.frames))

    # -------------------------------------------------------------------
    # Frames
    # -------------------------------------------------------------------
    def capture(self) -> CapturedFrame:
        if self.status != CaptureStatus.STREAMING or self._handle is None:
            raise InvalidState(f"Cannot capture while the session is {self.status.value}")

        frame = CapturedFrame(
            image_bytes=self.camera.grab_frame(self._handle),
            captured_at=datetime.now(UTC),
        )
        self.frames.append(frame)
        logger.debug("Frame captured", step_key=self.step_key, frame_id=frame.frame_id, count=len(self.frames))
        return frame

    def _assert_frames_editable(self) -> None:
        if self.status == CaptureStatus.ERROR:
            raise InvalidState("Frames cannot be edited while the camera is in error")

    def delete_frame(self, index: int) -> CapturedFrame | None:
        """Remove the frame at ``index``; out-of-range indexes are ignored."""
        self._assert_frames_editable()
        if not 0 <= index < len(self.frames):
            return None
        return self.frames.pop(index)

    def delete_last(self) -> CapturedFrame | None:
        self._assert_frames_editable()
        if not self.frames:
            return None
        return self.frames.pop()

    def clear_frames(self) -> None:
        self._assert_frames_editable()
        self.frames.clear()


@contextmanager
def scoped_capture(
    camera: CameraPort,
    step_key: str = "default",
    constraints: StreamConstraints | None = None,
) -> Iterator[CaptureSession]:
    """Open a session for the duration of a block; it is closed on every exit path."""
    session = CaptureSession(camera, step_key)
    try:
        session.open(constraints)
        yield session
    finally:
        session.close()


class CaptureSessionManager:
    """Holds at most one session per logical step."""

    def __init__(self, camera: CameraPort) -> None:
        self.camera = camera
        self._sessions: dict[str, CaptureSession] = {}

    def session_for(self, step_key: str) -> CaptureSession | None:
        return self._sessions.get(step_key)

    def open(self, step_key: str, constraints: StreamConstraints | None = None) -> CaptureSession:
        """Acquire the camera for a step, closing the step's prior session first.

        The session is registered before acquisition, so a step that failed
        with DeviceUnavailable still has a session to retry.
        """
        prior = self._sessions.get(step_key)
        if prior is not None:
            prior.close()
            session = prior
        else:
            session = CaptureSession(self.camera, step_key)
            self._sessions[step_key] = session

        session.open(constraints)
        return session

    def close(self, step_key: str) -> None:
        session = self._sessions.pop(step_key, None)
        if session is not None:
            session.close()

    def close_all(self) -> None:
        for step_key in list(self._sessions):
            self.close(step_key)

    def active_keys(self) -> list[str]:
        return [
            key
            for key, session in self._sessions.items()
            if session.status in (CaptureStatus.REQUESTING, CaptureStatus.STREAMING)
        ]
