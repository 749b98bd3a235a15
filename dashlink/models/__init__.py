"""Database models."""

from dashlink.models.bind_history import BindHistory
from dashlink.models.command import Command, CommandKind, CommandStatus
from dashlink.models.device import Device
from dashlink.models.file_record import FileRecord

__all__ = [
    "BindHistory",
    "Command",
    "CommandKind",
    "CommandStatus",
    "Device",
    "FileRecord",
]
