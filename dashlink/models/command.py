"""Command model for the per-device command mailbox."""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dashlink.core.clock import utcnow
from dashlink.db.base import Base


class CommandKind(str, Enum):
    """Closed set of commands a device understands."""

    CAPTURE_PHOTO = "capture_photo"
    RECORD = "record"
    BEGIN_CONTINUOUS_RECORD = "begin_continuous_record"
    END_CONTINUOUS_RECORD = "end_continuous_record"
    QUERY_STATUS = "query_status"
    BEGIN_PREVIEW = "begin_preview"
    END_PREVIEW = "end_preview"


class CommandStatus(str, Enum):
    """pending -> executing -> completed | failed."""

    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CommandStatus.COMPLETED, CommandStatus.FAILED)


class Command(Base):
    """Command database model - append-only, retained as history."""

    __tablename__ = "commands"

    # SQLite requires INTEGER (not BIGINT) for autoincrement. Also breaks
    # created_at ties when ordering the queue.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Public identifier, e.g. cmd_1718000000000_k3j9x0a2b
    command_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    device_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("devices.device_id"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(255))

    command: Mapped[str] = mapped_column(String(64))
    params: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON object

    status: Mapped[str] = mapped_column(String(32), default=CommandStatus.PENDING.value)
    result: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON object
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_commands_device_status_created", "device_id", "status", "created_at"),
    )

    def get_params(self) -> dict[str, Any]:
        """Deserialize params JSON."""
        if not self.params:
            return {}
        try:
            return json.loads(self.params)
        except json.JSONDecodeError:
            return {}

    def set_params(self, params: dict[str, Any] | None) -> None:
        """Serialize params to JSON."""
        self.params = json.dumps(params) if params else None

    def get_result(self) -> Any:
        """Deserialize result JSON (None when unset)."""
        if self.result is None:
            return None
        try:
            return json.loads(self.result)
        except json.JSONDecodeError:
            return None

    def set_result(self, result: Any) -> None:
        """Serialize result to JSON."""
        self.result = json.dumps(result) if result is not None else None

    def __repr__(self) -> str:
        return f"<Command(command_id={self.command_id}, status={self.status})>"
