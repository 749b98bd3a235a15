"""Service layer for business logic."""

from dashlink.services.blob_storage import LocalBlobStorage, get_blob_storage
from dashlink.services.command_service import CommandService
from dashlink.services.device_service import DeviceService
from dashlink.services.file_service import FileService

__all__ = [
    "CommandService",
    "DeviceService",
    "FileService",
    "LocalBlobStorage",
    "get_blob_storage",
]
