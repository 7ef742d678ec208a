"""Pydantic API schemas for the Picking domain.

These are the external API contracts. The routes translate between these
schemas and workflow operations.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class SetEntryModeRequest(BaseModel):
    mode: str


class StartPickTaskRequest(BaseModel):
    picklist_id: str


class CaptureShelfRequest(BaseModel):
    shelf_code: str | None = None


class SelectShelfRequest(BaseModel):
    shelf_code: str


class EnterSkuRequest(BaseModel):
    code: str


class BulkPickRequest(BaseModel):
    quantity: int
    inventory_type: str = "Good"


class ConfigureCameraRequest(BaseModel):
    available: bool = True
    failure_reason: str = "Camera access denied. Please allow camera permissions."
    deferred: bool = False


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class EntryModeResponse(BaseModel):
    mode: str
    is_camera_mode: bool


class CameraStateResponse(BaseModel):
    status: str
    error: str | None = None
    frame_count: int = 0
    retry_available: bool = False


class LedgerEntryResponse(BaseModel):
    sku: str
    display_name: str | None = None
    vendor: str | None = None
    mrp: float | None = None
    mfg_date: str | None = None
    total_quantity: int
    picked_quantity: int
    pending_quantity: int
    disposition: str | None = None
    resolved: bool


class LedgerResponse(BaseModel):
    shelf_code: str
    pending_quantity: int
    picked_quantity: int
    short_quantity: int
    all_resolved: bool
    entries: list[LedgerEntryResponse] = Field(default_factory=list)


class WorkflowStateResponse(BaseModel):
    entry_mode: str
    picklist_id: str | None = None
    stage: str | None = None
    task_entry_mode: str | None = None
    tote_id: str | None = None
    shelf_code: str | None = None
    awaiting_confirmation: bool = False
    route: str | None = None
    camera: CameraStateResponse | None = None
    ledger: LedgerResponse | None = None


class ShelfResponse(BaseModel):
    shelf_code: str
    sku_count: int
    pending_quantity: int


class FrameResponse(BaseModel):
    frame_id: str
    captured_at: str
    size: int


class CaptureResponse(BaseModel):
    captured: bool
    frame: FrameResponse | None = None
    state: WorkflowStateResponse


class ItemActionResponse(BaseModel):
    all_resolved: bool
    state: WorkflowStateResponse


class CameraConfigResponse(BaseModel):
    camera: str
    available: bool
    failure_reason: str
    deferred: bool
    pending_requests: int
