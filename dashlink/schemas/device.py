"""Device schemas for API request/response."""

from datetime import datetime

from pydantic import BaseModel, Field


class DeviceRegister(BaseModel):
    """Device-initiated registration."""

    device_id: str = Field(..., min_length=1, max_length=255, alias="deviceId")
    device_name: str | None = Field(None, max_length=255, alias="deviceName")
    device_model: str | None = Field(None, max_length=255, alias="deviceModel")
    app_version: str | None = Field(None, max_length=64, alias="appVersion")

    model_config = {"populate_by_name": True}


class DeviceRegisterResponse(BaseModel):
    """Registration result; the secret is returned on every call."""

    is_new: bool = Field(..., alias="isNew")
    device_secret: str = Field(..., alias="deviceSecret")
    message: str

    model_config = {"populate_by_name": True}


class HeartbeatRequest(BaseModel):
    """Heartbeat payload. Omitted fields leave the stored value unchanged."""

    status_info: str | None = Field(None, alias="statusInfo")
    recording: bool | None = None

    model_config = {"populate_by_name": True}


class HeartbeatResponse(BaseModel):
    """Heartbeat acknowledgement."""

    message: str = "heartbeat recorded"
    has_pending_commands: bool = Field(..., alias="hasPendingCommands")

    model_config = {"populate_by_name": True}


class DeviceBindRequest(BaseModel):
    """Owner-initiated bind (from a scanned pairing payload)."""

    device_id: str = Field(..., min_length=1, max_length=255, alias="deviceId")
    device_name: str | None = Field(None, max_length=255, alias="deviceName")

    model_config = {"populate_by_name": True}


class DeviceBrief(BaseModel):
    """Minimal device identity returned after binding."""

    device_id: str = Field(..., alias="deviceId")
    device_name: str = Field(..., alias="deviceName")

    model_config = {"populate_by_name": True}


class DeviceBindResponse(BaseModel):
    """Bind result."""

    is_new: bool = Field(..., alias="isNew")
    message: str
    device: DeviceBrief

    model_config = {"populate_by_name": True}


class DeviceDTO(BaseModel):
    """Device list item for an owner."""

    device_id: str = Field(..., alias="deviceId")
    device_name: str = Field(..., alias="deviceName")
    device_model: str | None = Field(None, alias="deviceModel")
    online: bool
    recording: bool = False
    status_info: str = Field("", alias="statusInfo")
    bound_time: datetime | None = Field(None, alias="boundTime")
    last_heartbeat: datetime | None = Field(None, alias="lastHeartbeat")

    model_config = {"populate_by_name": True, "from_attributes": True}


class DeviceListResponse(BaseModel):
    """Paged device list."""

    devices: list[DeviceDTO]
    total: int
    page: int
    page_size: int = Field(..., alias="pageSize")

    model_config = {"populate_by_name": True}


class DeviceStatusDTO(BaseModel):
    """Device status as shown to the owner's UI."""

    device_id: str = Field(..., alias="deviceId")
    device_name: str = Field(..., alias="deviceName")
    online: bool
    recording: bool = False
    status_info: str = Field("", alias="statusInfo")
    last_heartbeat: datetime | None = Field(None, alias="lastHeartbeat")
    last_heartbeat_time: int = Field(0, alias="lastHeartbeatTime")  # unix ms
    time_since_heartbeat: int | None = Field(None, alias="timeSinceHeartbeat")  # seconds
    preview_path: str = Field(..., alias="previewPath")

    model_config = {"populate_by_name": True}


class PreviewFrameDTO(BaseModel):
    """Signed URL for the latest preview snapshot."""

    path: str
    url: str
