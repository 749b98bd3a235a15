"""Device-facing endpoints: registration, heartbeat, poll and reports.

All routes except ``/register`` require ``X-Device-Id`` and
``X-Device-Secret`` headers.
"""

from fastapi import APIRouter, Body, Request

from dashlink.core.deps import AuthenticatedDevice, BlobStore, DBSession
from dashlink.core.errors import InvalidArgumentError, UnauthorizedError
from dashlink.schemas.command import (
    CommandResultAck,
    CommandResultReport,
    PollRequest,
    PollResponse,
)
from dashlink.schemas.device import (
    DeviceRegister,
    DeviceRegisterResponse,
    HeartbeatRequest,
    HeartbeatResponse,
)
from dashlink.schemas.file import FileRecordCreate, FileRecordCreated
from dashlink.services.blob_storage import blob_owner_device, normalize_blob_id
from dashlink.services.command_service import CommandService
from dashlink.services.device_service import DeviceService
from dashlink.services.file_service import FileService

router = APIRouter()


@router.post("/register", response_model=DeviceRegisterResponse)
async def register_device(
    data: DeviceRegister,
    db: DBSession,
) -> DeviceRegisterResponse:
    """Register on first boot or refresh device info; returns the device secret."""
    device_service = DeviceService(db)
    return await device_service.register(data)


@router.post("/heartbeat", response_model=HeartbeatResponse)
async def heartbeat(
    device: AuthenticatedDevice,
    db: DBSession,
    data: HeartbeatRequest | None = Body(None),
) -> HeartbeatResponse:
    """Report liveness; ``hasPendingCommands`` tells the device to poll now."""
    device_service = DeviceService(db)
    has_pending = await device_service.heartbeat(device, data or HeartbeatRequest())
    return HeartbeatResponse(has_pending_commands=has_pending)


@router.post("/poll", response_model=PollResponse)
async def poll_commands(
    device: AuthenticatedDevice,
    db: DBSession,
    data: PollRequest | None = Body(None),
) -> PollResponse:
    """Claim the oldest pending commands for this device."""
    command_service = CommandService(db)
    limit = data.limit if data else None
    claimed = await command_service.claim_pending(device.device_id, limit)
    return PollResponse(commands=[command_service.to_claimed(c) for c in claimed])


@router.post("/result", response_model=CommandResultAck)
async def report_result(
    data: CommandResultReport,
    device: AuthenticatedDevice,
    db: DBSession,
) -> CommandResultAck:
    """Finalize a claimed command. Safe to retry."""
    command_service = CommandService(db)
    command = await command_service.report_result(
        device.device_id,
        data.command_id,
        data.success,
        data.result,
        data.error_message,
    )
    return CommandResultAck(command_id=command.command_id, status=command.status)


@router.post("/files", response_model=FileRecordCreated)
async def create_file_record(
    data: FileRecordCreate,
    device: AuthenticatedDevice,
    db: DBSession,
    storage: BlobStore,
) -> FileRecordCreated:
    """Record metadata for a photo or video the device uploaded."""
    file_service = FileService(db, storage)
    return await file_service.create_record(device, data)


@router.put("/blobs/{blob_id:path}")
async def upload_blob(
    blob_id: str,
    request: Request,
    device: AuthenticatedDevice,
    storage: BlobStore,
) -> dict:
    """
    Upload a blob (raw request body).

    Devices may only write under ``media/<deviceId>/`` or
    ``preview/<deviceId>/``.
    """
    blob_id = normalize_blob_id(blob_id)
    if blob_owner_device(blob_id) != device.device_id:
        raise UnauthorizedError("blob path not writable by this device", status_code=403)

    data = await request.body()
    if not data:
        raise InvalidArgumentError("empty blob")
    await storage.put(blob_id, data)
    return {"fileId": blob_id, "size": len(data)}
