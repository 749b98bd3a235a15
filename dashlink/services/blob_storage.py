"""Blob storage collaborator.

Blobs are addressed by an opaque, path-like id (``media/<device>/<name>``,
``preview/<device>/frame.jpg``). Reads go through short-lived signed URLs.
The local implementation keeps blobs on disk under ``settings.blob_root``.
"""

from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import quote

from loguru import logger

from dashlink.core.config import get_settings
from dashlink.core.errors import InvalidArgumentError, TransientError
from dashlink.core.security import create_blob_token

settings = get_settings()

PREVIEW_PREFIX = "preview"
MEDIA_PREFIX = "media"
PREVIEW_FRAME_NAME = "frame.jpg"


def preview_blob_id(device_id: str) -> str:
    """Conventional location of a device's latest preview snapshot."""
    return f"{PREVIEW_PREFIX}/{device_id}/{PREVIEW_FRAME_NAME}"


def normalize_blob_id(blob_id: str) -> str:
    """Validate a blob id and return its canonical form."""
    raw = (blob_id or "").strip()
    if not raw:
        raise InvalidArgumentError("blob id is required")
    path = PurePosixPath(raw)
    if path.is_absolute() or any(part in ("", ".", "..") for part in path.parts):
        raise InvalidArgumentError(f"invalid blob id: {blob_id}")
    return path.as_posix()


def blob_owner_device(blob_id: str) -> str | None:
    """Device id a blob id is namespaced under (second path segment)."""
    parts = PurePosixPath(blob_id).parts
    if len(parts) < 3 or parts[0] not in (PREVIEW_PREFIX, MEDIA_PREFIX):
        return None
    return parts[1]


class BlobStorage(Protocol):
    """Operations the service layer needs from blob storage."""

    def path_for(self, blob_id: str) -> Path: ...

    async def put(self, blob_id: str, data: bytes) -> None: ...

    async def exists(self, blob_id: str) -> bool: ...

    async def get_temp_urls(self, blob_ids: list[str]) -> dict[str, str]: ...

    async def delete(self, blob_ids: list[str]) -> None: ...


class LocalBlobStorage:
    """Filesystem-backed blob storage with JWT-signed download URLs."""

    def __init__(self, root: str | Path | None = None, base_url: str | None = None):
        self.root = Path(root or settings.blob_root)
        self.base_url = (base_url or settings.public_base_url).rstrip("/")

    def path_for(self, blob_id: str) -> Path:
        return self.root / normalize_blob_id(blob_id)

    async def put(self, blob_id: str, data: bytes) -> None:
        """Write a blob, replacing any previous content."""
        path = self.path_for(blob_id)
        tmp_path = path.with_name(path.name + ".part")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            # Readers never observe a half-written preview frame
            tmp_path.replace(path)
        except OSError as e:
            raise TransientError(f"failed to store blob {blob_id}: {e}") from e

    async def exists(self, blob_id: str) -> bool:
        return self.path_for(blob_id).is_file()

    async def get_temp_urls(self, blob_ids: list[str]) -> dict[str, str]:
        """Signed URLs for the blobs that exist; missing ids are omitted."""
        urls: dict[str, str] = {}
        for blob_id in dict.fromkeys(blob_ids):
            try:
                if not await self.exists(blob_id):
                    continue
            except OSError as e:
                raise TransientError(f"failed to stat blob {blob_id}: {e}") from e
            token = create_blob_token(normalize_blob_id(blob_id))
            urls[blob_id] = f"{self.base_url}/api/v2/blobs/{quote(blob_id)}?token={token}"
        return urls

    async def delete(self, blob_ids: list[str]) -> None:
        """Delete blobs; missing blobs are ignored."""
        failed: list[str] = []
        for blob_id in blob_ids:
            try:
                self.path_for(blob_id).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to delete blob {blob_id}: {e}")
                failed.append(blob_id)
        if failed:
            raise TransientError(f"failed to delete blobs: {', '.join(failed)}")


_blob_storage: LocalBlobStorage | None = None


def get_blob_storage() -> BlobStorage:
    """Process-wide blob storage (FastAPI dependency)."""
    global _blob_storage
    if _blob_storage is None:
        _blob_storage = LocalBlobStorage()
    return _blob_storage
