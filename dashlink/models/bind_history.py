"""Bind history model (audit trail of bind/unbind actions)."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from dashlink.core.clock import utcnow
from dashlink.db.base import Base

ACTION_BIND = "bind"
ACTION_REGISTER_AND_BIND = "register_and_bind"
ACTION_UNBIND = "unbind"


class BindHistory(Base):
    __tablename__ = "bind_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    device_id: Mapped[str] = mapped_column(String(255), index=True)
    user_id: Mapped[str] = mapped_column(String(255))
    action: Mapped[str] = mapped_column(String(32))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
