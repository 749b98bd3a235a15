"""Pydantic schemas for API request/response validation."""

from dashlink.schemas.command import (
    ClaimedCommand,
    CommandCreate,
    CommandDTO,
    CommandEnqueued,
    CommandResultAck,
    CommandResultReport,
    PollRequest,
    PollResponse,
)
from dashlink.schemas.device import (
    DeviceBindRequest,
    DeviceBindResponse,
    DeviceBrief,
    DeviceDTO,
    DeviceListResponse,
    DeviceRegister,
    DeviceRegisterResponse,
    DeviceStatusDTO,
    HeartbeatRequest,
    HeartbeatResponse,
    PreviewFrameDTO,
)
from dashlink.schemas.file import (
    FileDTO,
    FilePagedResponse,
    FileQueryParams,
    FileRecordCreate,
    FileRecordCreated,
)

__all__ = [
    # Command
    "ClaimedCommand",
    "CommandCreate",
    "CommandDTO",
    "CommandEnqueued",
    "CommandResultAck",
    "CommandResultReport",
    "PollRequest",
    "PollResponse",
    # Device
    "DeviceBindRequest",
    "DeviceBindResponse",
    "DeviceBrief",
    "DeviceDTO",
    "DeviceListResponse",
    "DeviceRegister",
    "DeviceRegisterResponse",
    "DeviceStatusDTO",
    "HeartbeatRequest",
    "HeartbeatResponse",
    "PreviewFrameDTO",
    # File
    "FileDTO",
    "FilePagedResponse",
    "FileQueryParams",
    "FileRecordCreate",
    "FileRecordCreated",
]
