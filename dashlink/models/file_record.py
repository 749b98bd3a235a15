"""File record model for uploaded photos and videos."""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from dashlink.core.clock import utcnow
from dashlink.db.base import Base

FILE_TYPES = ("photo", "video")


class FileRecord(Base):
    """Metadata for a blob a device produced and uploaded out-of-band."""

    __tablename__ = "files"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    device_id: Mapped[str] = mapped_column(String(255), index=True)
    # Owner at upload time; may be null for an unbound device
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Blob storage identifiers
    file_id: Mapped[str] = mapped_column(String(1024))
    thumb_file_id: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    file_name: Mapped[str] = mapped_column(String(255))
    file_type: Mapped[str] = mapped_column(String(16))
    file_size: Mapped[int] = mapped_column(BigInteger, default=0)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds

    command_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_files_device_type_created", "device_id", "file_type", "created_at"),
    )
