"""Step implementations — one per (stage, entry mode) pair.

A step owns what the worker sees at one stage: the route it lives on and,
for camera steps, the capture session it opens on entry. Every step's
``exit()`` releases what ``enter()`` acquired.

    ToteScan   → CameraToteStep           (the tote is only scanned by camera)
    ShelfScan  → CameraShelfStep | ManualShelfStep
    SkuPick    → CameraSkuStep   | ManualSkuStep
"""

from dataclasses import dataclass

import structlog

from picking.capture.port import StreamConstraints
from picking.capture.session import CapturedFrame, CaptureSession, CaptureSessionManager, CaptureStatus
from picking.catalog.port import CatalogPort, ShelfRecord
from picking.errors import DeviceUnavailable, InvalidState
from picking.task.task import EntryMode, PickStage, PickTask

logger = structlog.get_logger(__name__)


@dataclass
class StepContext:
    task: PickTask
    sessions: CaptureSessionManager
    catalog: CatalogPort
    constraints: StreamConstraints | None = None


class PickStep:
    stage: PickStage
    entry_mode: EntryMode
    route: str
    uses_camera = False

    def __init__(self, context: StepContext) -> None:
        self.context = context

    @property
    def task(self) -> PickTask:
        return self.context.task

    def route_params(self) -> dict:
        return {"picklist_id": self.task.picklist_id}

    def enter(self) -> None:
        pass

    def exit(self) -> None:
        pass

    def camera_state(self) -> dict | None:
        return None


class CameraStep(PickStep):
    """A step that holds the camera while the worker is on it."""

    step_key: str
    uses_camera = True

    @property
    def session(self) -> CaptureSession | None:
        return self.context.sessions.session_for(self.step_key)

    @property
    def error(self) -> str | None:
        session = self.session
        if session is not None and session.status == CaptureStatus.ERROR:
            return session.error_reason
        return None

    def enter(self) -> None:
        try:
            self.context.sessions.open(self.step_key, self.context.constraints)
        except DeviceUnavailable as exc:
            logger.warning("Camera unavailable, showing retry", step_key=self.step_key, reason=exc.reason)

    def retry(self) -> CaptureStatus:
        session = self.session
        if session is None or session.status != CaptureStatus.ERROR:
            raise InvalidState(f"Nothing to retry on the {self.step_key} step")
        try:
            return session.retry()
        except DeviceUnavailable as exc:
            logger.warning("Camera still unavailable", step_key=self.step_key, reason=exc.reason)
            return session.status

    def exit(self) -> None:
        self.context.sessions.close(self.step_key)

    def capture(self) -> CapturedFrame:
        session = self.session
        if session is None:
            raise InvalidState(f"No capture session on the {self.step_key} step")
        return session.capture()

    def camera_state(self) -> dict:
        session = self.session
        return {
            "status": session.status.value if session else CaptureStatus.IDLE.value,
            "error": self.error,
            "frame_count": len(session.frames) if session else 0,
            "retry_available": self.error is not None,
        }


def sorted_shelves(context: StepContext) -> list[ShelfRecord]:
    return sorted(context.catalog.shelves(context.task.picklist_id), key=lambda shelf: shelf.shelf_code)


class CameraToteStep(CameraStep):
    stage = PickStage.TOTE_SCAN
    entry_mode = EntryMode.CAMERA
    route = "tote_scanner"
    step_key = "tote"


class CameraShelfStep(CameraStep):
    stage = PickStage.SHELF_SCAN
    entry_mode = EntryMode.CAMERA
    route = "shelf_detail"
    step_key = "shelf"

    def shelves(self) -> list[ShelfRecord]:
        return sorted_shelves(self.context)


class ManualShelfStep(PickStep):
    stage = PickStage.SHELF_SCAN
    entry_mode = EntryMode.MANUAL
    route = "shelf_selection"

    def shelves(self) -> list[ShelfRecord]:
        return sorted_shelves(self.context)


class CameraSkuStep(CameraStep):
    """Multi-shot SKU photos; frames can be deleted before leaving the shelf."""

    stage = PickStage.SKU_PICK
    entry_mode = EntryMode.CAMERA
    route = "sku_scanner"
    step_key = "sku"

    def route_params(self) -> dict:
        # Manual shelf selection followed by a switch to camera has no tote
        return {"tote_id": self.task.tote_id or self.task.shelf_code}

    def delete_frame(self, index: int) -> CapturedFrame | None:
        session = self.session
        return session.delete_frame(index) if session else None

    def delete_last(self) -> CapturedFrame | None:
        session = self.session
        return session.delete_last() if session else None


class ManualSkuStep(PickStep):
    stage = PickStage.SKU_PICK
    entry_mode = EntryMode.MANUAL
    route = "sku_input"

    def route_params(self) -> dict:
        return {"picklist_id": self.task.picklist_id, "shelf_code": self.task.shelf_code}


_STEP_CLASSES = {
    (PickStage.SHELF_SCAN, EntryMode.CAMERA): CameraShelfStep,
    (PickStage.SHELF_SCAN, EntryMode.MANUAL): ManualShelfStep,
    (PickStage.SKU_PICK, EntryMode.CAMERA): CameraSkuStep,
    (PickStage.SKU_PICK, EntryMode.MANUAL): ManualSkuStep,
}


def step_class_for(stage: PickStage, entry_mode: EntryMode) -> type[PickStep] | None:
    """The step implementation for a stage, or None for Complete."""
    if stage == PickStage.TOTE_SCAN:
        return CameraToteStep
    return _STEP_CLASSES.get((stage, entry_mode))
