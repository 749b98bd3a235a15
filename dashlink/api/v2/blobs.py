"""Signed blob download endpoint."""

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import FileResponse

from dashlink.core.deps import BlobStore
from dashlink.core.security import verify_blob_token
from dashlink.services.blob_storage import normalize_blob_id

router = APIRouter()


@router.get("/{blob_id:path}", response_model=None)
async def download_blob(
    blob_id: str,
    storage: BlobStore,
    token: str = Query(...),
) -> FileResponse:
    """Serve a blob to anyone holding an unexpired signed URL."""
    blob_id = normalize_blob_id(blob_id)
    if not verify_blob_token(token, blob_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired blob token",
        )

    if not await storage.exists(blob_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Blob not found",
        )

    return FileResponse(storage.path_for(blob_id), headers={"Cache-Control": "no-store"})
