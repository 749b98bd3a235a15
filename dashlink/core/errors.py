"""Domain errors raised by the service layer.

Each error carries the HTTP status the API layer answers with and a short
``kind`` string that clients use to tell, say, an offline device from a
binding conflict when both map to 409.
"""

from fastapi import status


class DashlinkError(Exception):
    """Base class for all expected, caller-facing failures."""

    kind: str = "Error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(DashlinkError):
    """Device, command or file is absent or not owned by the caller."""

    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class OfflineError(DashlinkError):
    """Liveness check failed at admission time."""

    kind = "Offline"
    status_code = status.HTTP_409_CONFLICT


class InvalidArgumentError(DashlinkError):
    """Missing required field or unsupported command kind."""

    kind = "InvalidArgument"
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(DashlinkError):
    """Device secret mismatch (401) or ownership mismatch (403)."""

    kind = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class ConflictError(DashlinkError):
    """Device already bound to a different owner."""

    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class TransientError(DashlinkError):
    """Storage or network failure on a best-effort sub-operation."""

    kind = "Transient"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
