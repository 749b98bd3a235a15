"""
Model registry.

Import all models here to ensure they are registered with SQLAlchemy metadata
before ``Base.metadata.create_all`` runs.
"""

from dashlink.db.base import Base
from dashlink.models.bind_history import BindHistory
from dashlink.models.command import Command
from dashlink.models.device import Device
from dashlink.models.file_record import FileRecord

__all__ = [
    "Base",
    "BindHistory",
    "Command",
    "Device",
    "FileRecord",
]
