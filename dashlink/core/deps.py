"""FastAPI dependencies for dependency injection."""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from dashlink.core.security import decode_access_token
from dashlink.db.session import async_session_maker
from dashlink.models.device import Device
from dashlink.services.blob_storage import BlobStorage, get_blob_storage
from dashlink.services.device_service import DeviceService

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_current_owner(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Opaque owner identity from the identity provider's JWT ``sub`` claim."""
    payload = decode_access_token(credentials.credentials) if credentials else None
    owner_id = payload.get("sub") if payload else None
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return str(owner_id)


async def get_authenticated_device(
    db: Annotated[AsyncSession, Depends(get_db)],
    x_device_id: Annotated[str | None, Header()] = None,
    x_device_secret: Annotated[str | None, Header()] = None,
) -> Device:
    """Calling device, identified by ``X-Device-Id`` and ``X-Device-Secret``."""
    return await DeviceService(db).authenticate(x_device_id, x_device_secret)


# Type aliases for cleaner dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentOwner = Annotated[str, Depends(get_current_owner)]
AuthenticatedDevice = Annotated[Device, Depends(get_authenticated_device)]
BlobStore = Annotated[BlobStorage, Depends(get_blob_storage)]
