"""Device API endpoints for the owner's phone."""

from fastapi import APIRouter, Query

from dashlink.core.deps import BlobStore, CurrentOwner, DBSession
from dashlink.core.errors import NotFoundError
from dashlink.schemas.device import (
    DeviceBindRequest,
    DeviceBindResponse,
    DeviceListResponse,
    DeviceStatusDTO,
    PreviewFrameDTO,
)
from dashlink.services.blob_storage import preview_blob_id
from dashlink.services.device_service import DeviceService

router = APIRouter()


@router.post("/bind", response_model=DeviceBindResponse)
async def bind_device(
    data: DeviceBindRequest,
    owner_id: CurrentOwner,
    db: DBSession,
) -> DeviceBindResponse:
    """
    Bind a device to the caller (from a scanned pairing payload).

    - **deviceId**: Device identifier
    - **deviceName**: Display name (optional)
    """
    device_service = DeviceService(db)
    return await device_service.bind(owner_id, data)


@router.post("/{device_id}/unbind")
async def unbind_device(
    device_id: str,
    owner_id: CurrentOwner,
    db: DBSession,
) -> dict:
    """Release a device bound to the caller."""
    device_service = DeviceService(db)
    await device_service.unbind(owner_id, device_id)
    return {"status": "success"}


@router.get("", response_model=DeviceListResponse)
async def get_devices(
    owner_id: CurrentOwner,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1, le=100),
) -> DeviceListResponse:
    """List devices bound to the caller, newest bind first."""
    device_service = DeviceService(db)
    return await device_service.list_bound(owner_id, page, page_size)


@router.get("/{device_id}/status", response_model=DeviceStatusDTO)
async def get_device_status(
    device_id: str,
    owner_id: CurrentOwner,
    db: DBSession,
) -> DeviceStatusDTO:
    """Online flag, recording state and heartbeat age of a bound device."""
    device_service = DeviceService(db)
    return await device_service.get_status(owner_id, device_id)


@router.get("/{device_id}/preview", response_model=PreviewFrameDTO)
async def get_preview_frame(
    device_id: str,
    owner_id: CurrentOwner,
    db: DBSession,
    storage: BlobStore,
) -> PreviewFrameDTO:
    """Signed URL of the latest preview snapshot, if the device published one."""
    await DeviceService(db).get_owned(owner_id, device_id)

    path = preview_blob_id(device_id)
    urls = await storage.get_temp_urls([path])
    if path not in urls:
        raise NotFoundError("no preview frame available")
    return PreviewFrameDTO(path=path, url=urls[path])
