"""Device model for registered dashcams."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dashlink.core.clock import utcnow
from dashlink.db.base import Base


class Device(Base):
    """Device database model - one row per camera, never hard-deleted."""

    __tablename__ = "devices"

    # Opaque identifier assigned by the device at first boot
    device_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    device_name: Mapped[str] = mapped_column(String(255))
    device_model: Mapped[str] = mapped_column(String(255), default="unknown")
    app_version: Mapped[str] = mapped_column(String(64), default="unknown")

    # Generated once at creation, never rotated
    device_secret: Mapped[str] = mapped_column(String(64))

    # Binding
    bound_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    bound_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Liveness and device-reported state
    last_heartbeat: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status_info: Mapped[str] = mapped_column(Text, default="")
    recording: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    register_time: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    last_register_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_bound(self) -> bool:
        return self.bound_user_id is not None

    def __repr__(self) -> str:
        return f"<Device(device_id={self.device_id}, bound_user_id={self.bound_user_id})>"
