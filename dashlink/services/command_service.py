"""Command service: the per-device mailbox.

Lifecycle is ``pending -> executing -> completed | failed``. The phone
enqueues, the device claims on poll and later reports the outcome. Every
status change out of ``pending`` or ``executing`` is a conditional UPDATE
on the current status, so concurrent polls never claim the same command
twice and a terminal command never goes back to ``pending`` or ``executing``.
"""

import secrets
import string
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dashlink.core.clock import to_millis, utcnow
from dashlink.core.config import get_settings
from dashlink.core.errors import InvalidArgumentError, NotFoundError, OfflineError
from dashlink.models.command import Command, CommandKind, CommandStatus
from dashlink.models.device import Device
from dashlink.schemas.command import ClaimedCommand, CommandCreate, CommandDTO
from dashlink.services import liveness
from dashlink.services.base_service import BaseService

settings = get_settings()

_ID_ALPHABET = string.ascii_lowercase + string.digits

DEFAULT_RECORD_DURATION = 60

# Keys attach_file writes into a command result
FILE_LINK_KEYS = ("fileId", "fileRecordId")


def generate_command_id(now: datetime | None = None) -> str:
    """``cmd_<unix ms>_<9 random chars>``; sorts by creation time."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"cmd_{to_millis(now or utcnow())}_{suffix}"


def parse_kind(value: str) -> CommandKind:
    try:
        return CommandKind(value)
    except ValueError:
        raise InvalidArgumentError(f"unsupported command: {value}") from None


def normalize_params(kind: CommandKind, params: dict[str, Any] | None) -> dict[str, Any]:
    """Validate kind-specific parameters."""
    params = dict(params or {})
    if kind == CommandKind.RECORD:
        duration = params.get("duration", DEFAULT_RECORD_DURATION)
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise InvalidArgumentError("record duration must be a positive integer")
        params["duration"] = duration
    return params


class CommandService(BaseService[Command]):
    """Command queue operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Command)

    async def enqueue(
        self,
        owner_id: str,
        data: CommandCreate,
        now: datetime | None = None,
    ) -> Command:
        """Queue a command for a device the caller owns.

        Raises InvalidArgumentError for an unknown kind, NotFoundError when the
        device is missing or bound to someone else, and OfflineError when the
        device missed the admission heartbeat window.
        """
        now = now or utcnow()
        kind = parse_kind(data.command)
        params = normalize_params(kind, data.params)

        device = await self.db.get(Device, data.device_id)
        if device is None or device.bound_user_id != owner_id:
            raise NotFoundError("device not found or not bound to you")
        if not liveness.is_online_for_admission(device, now):
            raise OfflineError("device is offline")

        command = Command(
            command_id=generate_command_id(now),
            device_id=device.device_id,
            user_id=owner_id,
            command=kind.value,
            status=CommandStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        command.set_params(params)
        await self.create(command)
        logger.info(f"Command {command.command_id} ({kind.value}) queued for {device.device_id}")
        return command

    async def get_by_command_id(self, command_id: str) -> Command | None:
        result = await self.db.execute(select(Command).where(Command.command_id == command_id))
        return result.scalar_one_or_none()

    async def get_for_owner(self, owner_id: str, command_id: str) -> Command:
        """Command lookup for the issuing client; read-only."""
        command = await self.get_by_command_id(command_id)
        if command is None or command.user_id != owner_id:
            raise NotFoundError(f"command {command_id} not found")
        return command

    async def claim_pending(
        self,
        device_id: str,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[Command]:
        """Claim up to ``limit`` oldest pending commands for a device.

        Candidates are read oldest-first, then each is moved to executing
        with ``UPDATE ... WHERE status = 'pending'``. A candidate whose
        update touched no row was claimed by a concurrent poll and is
        dropped from this batch.
        """
        now = now or utcnow()
        batch = settings.claim_batch_limit
        if limit is not None:
            batch = max(0, min(limit, batch))
        if batch == 0:
            return []

        query = (
            select(Command)
            .where(Command.device_id == device_id)
            .where(Command.status == CommandStatus.PENDING.value)
            .order_by(Command.created_at, Command.id)
            .limit(batch)
        )
        result = await self.db.execute(query)
        candidates = list(result.scalars().all())

        claimed: list[Command] = []
        for command in candidates:
            changed = await self.guarded_update(
                update(Command)
                .where(Command.id == command.id)
                .where(Command.status == CommandStatus.PENDING.value)
                .values(status=CommandStatus.EXECUTING.value, updated_at=now)
            )
            if changed == 1:
                claimed.append(command)
        await self.db.commit()

        for command in claimed:
            await self.db.refresh(command)
        if claimed:
            logger.info(f"Device {device_id} claimed {len(claimed)} command(s)")
        return claimed

    async def report_result(
        self,
        device_id: str,
        command_id: str,
        success: bool,
        result: Any = None,
        error_message: str | None = None,
        now: datetime | None = None,
    ) -> Command:
        """Finalize a claimed command.

        Reporting again on a terminal command overwrites the outcome (last
        write wins), so device-side retries are safe. A command that was
        never claimed cannot be finalized. A file link written by an earlier
        upload survives the report.
        """
        now = now or utcnow()
        command = await self.get_by_command_id(command_id)
        if command is None or command.device_id != device_id:
            raise NotFoundError(f"command {command_id} not found for this device")

        if command.status == CommandStatus.PENDING.value:
            raise InvalidArgumentError("command has not been claimed")

        status = CommandStatus.COMPLETED if success else CommandStatus.FAILED
        command.status = status.value
        command.set_result(self._keep_file_link(command.get_result(), result))
        command.error_message = None if success else (error_message or "command failed")
        command.updated_at = now
        command.completed_at = now
        await self.update(command)
        logger.info(f"Command {command_id} finalized as {status.value}")
        return command

    @staticmethod
    def _keep_file_link(current: Any, result: Any) -> Any:
        """Carry ``fileId``/``fileRecordId`` from ``current`` into ``result``.

        Dict results are merged with the link taking precedence; any other result is
        wrapped as ``{..., "value": result}``.
        """
        if not isinstance(current, dict):
            return result
        link = {k: current[k] for k in FILE_LINK_KEYS if k in current}
        if not link:
            return result
        if isinstance(result, dict):
            return {**result, **link}
        if result is None:
            return link
        return {**link, "value": result}

    async def attach_file(
        self,
        device_id: str,
        command_id: str,
        file_id: str,
        file_record_id: str,
        now: datetime | None = None,
    ) -> bool:
        """Point a command's result at an uploaded file; status is untouched."""
        command = await self.get_by_command_id(command_id)
        if command is None or command.device_id != device_id:
            return False
        current = command.get_result()
        merged = dict(current) if isinstance(current, dict) else {}
        merged.update({"fileId": file_id, "fileRecordId": file_record_id})
        command.set_result(merged)
        command.updated_at = now or utcnow()
        await self.update(command)
        return True

    async def fail_stale(self, now: datetime | None = None) -> int:
        """Fail commands stuck in executing or pending past their timeouts."""
        now = now or utcnow()
        sweeps = (
            (
                CommandStatus.EXECUTING,
                timedelta(seconds=settings.executing_command_timeout_seconds),
                Command.updated_at,
                "command timed out",
            ),
            (
                CommandStatus.PENDING,
                timedelta(seconds=settings.pending_command_timeout_seconds),
                Command.created_at,
                "device never claimed command",
            ),
        )

        total = 0
        for status, timeout, column, message in sweeps:
            total += await self.guarded_update(
                update(Command)
                .where(Command.status == status.value)
                .where(column < now - timeout)
                .values(
                    status=CommandStatus.FAILED.value,
                    error_message=message,
                    updated_at=now,
                    completed_at=now,
                )
            )
        await self.db.commit()
        return total

    def to_dto(self, command: Command) -> CommandDTO:
        return CommandDTO(
            command_id=command.command_id,
            device_id=command.device_id,
            command=command.command,
            params=command.get_params(),
            status=command.status,
            result=command.get_result(),
            error_message=command.error_message,
            created_at=command.created_at,
            updated_at=command.updated_at,
            completed_at=command.completed_at,
        )

    @staticmethod
    def to_claimed(command: Command) -> ClaimedCommand:
        return ClaimedCommand(
            command_id=command.command_id,
            command=command.command,
            params=command.get_params(),
            created_at=command.created_at,
        )
