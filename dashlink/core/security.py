"""Security utilities: owner tokens, device secrets and blob URL tokens."""

import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from dashlink.core.config import get_settings

settings = get_settings()

DEVICE_SECRET_LENGTH = 32
_SECRET_ALPHABET = string.ascii_letters + string.digits

BLOB_TOKEN_SCOPE = "blob:read"


def generate_device_secret(length: int = DEVICE_SECRET_LENGTH) -> str:
    """Generate a new alphanumeric device secret."""
    return "".join(secrets.choice(_SECRET_ALPHABET) for _ in range(length))


def verify_device_secret(provided: str | None, stored: str | None) -> bool:
    """Constant-time comparison of a device secret."""
    if not provided or not stored:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), stored.encode("utf-8"))


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create JWT access token."""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.jwt_access_token_expire_minutes
        )

    to_encode.update({
        "exp": expire,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    })

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate JWT access token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
        return payload
    except JWTError:
        return None


def create_blob_token(blob_id: str, expires_seconds: int | None = None) -> str:
    """Short-lived token granting read access to a single blob."""
    seconds = expires_seconds or settings.blob_url_expire_seconds
    return create_access_token(
        {"sub": blob_id, "scope": BLOB_TOKEN_SCOPE},
        expires_delta=timedelta(seconds=seconds),
    )


def verify_blob_token(token: str, blob_id: str) -> bool:
    """Check a blob token was minted for this blob and is still valid."""
    payload = decode_access_token(token)
    if not payload:
        return False
    return payload.get("scope") == BLOB_TOKEN_SCOPE and payload.get("sub") == blob_id
