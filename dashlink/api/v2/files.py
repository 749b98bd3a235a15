"""File API endpoints for the owner's phone."""

from fastapi import APIRouter, Query

from dashlink.core.deps import BlobStore, CurrentOwner, DBSession
from dashlink.schemas.file import FilePagedResponse, FileQueryParams
from dashlink.services.file_service import FileService

router = APIRouter()


@router.get("", response_model=FilePagedResponse)
async def get_files(
    owner_id: CurrentOwner,
    db: DBSession,
    storage: BlobStore,
    device_id: str = Query(..., alias="deviceId", min_length=1),
    file_type: str | None = Query(None, alias="fileType"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1, le=100),
) -> FilePagedResponse:
    """
    List a device's files, newest first.

    - **deviceId**: Device whose files to list
    - **fileType**: photo or video (optional)
    - **page**: Page number (1-based)
    - **pageSize**: Items per page
    """
    params = FileQueryParams(
        device_id=device_id,
        file_type=file_type,
        page=page,
        page_size=page_size,
    )

    file_service = FileService(db, storage)
    return await file_service.list_files(owner_id, params)


@router.delete("/{record_id}")
async def delete_file(
    record_id: str,
    owner_id: CurrentOwner,
    db: DBSession,
    storage: BlobStore,
) -> dict:
    """Delete a file record and, best effort, its blobs."""
    file_service = FileService(db, storage)
    await file_service.delete_file(owner_id, record_id)
    return {"status": "success"}
