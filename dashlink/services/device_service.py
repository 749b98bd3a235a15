"""Device service: registration, heartbeat, binding and status."""

from datetime import datetime

from loguru import logger
from sqlalchemy import desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dashlink.core.clock import to_millis, utcnow
from dashlink.core.config import get_settings
from dashlink.core.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from dashlink.core.security import generate_device_secret, verify_device_secret
from dashlink.models.bind_history import (
    ACTION_BIND,
    ACTION_REGISTER_AND_BIND,
    ACTION_UNBIND,
    BindHistory,
)
from dashlink.models.command import Command, CommandStatus
from dashlink.models.device import Device
from dashlink.schemas.device import (
    DeviceBindRequest,
    DeviceBindResponse,
    DeviceBrief,
    DeviceDTO,
    DeviceListResponse,
    DeviceRegister,
    DeviceRegisterResponse,
    DeviceStatusDTO,
    HeartbeatRequest,
)
from dashlink.services import liveness
from dashlink.services.base_service import BaseService
from dashlink.services.blob_storage import preview_blob_id

settings = get_settings()


class DeviceService(BaseService[Device]):
    """Device lifecycle operations for both the device and its owner."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Device)

    # ------------------------------------------------------------------
    # Device-initiated
    # ------------------------------------------------------------------

    async def register(
        self, data: DeviceRegister, now: datetime | None = None
    ) -> DeviceRegisterResponse:
        """Create a device on first boot, or refresh its descriptive fields.

        The secret is generated once and returned on every call so a device
        that lost local storage can recover it.
        """
        now = now or utcnow()
        device = await self.get_by_id(data.device_id)

        if device is None:
            device = Device(
                device_id=data.device_id,
                device_name=data.device_name or settings.default_device_name,
                device_model=data.device_model or "unknown",
                app_version=data.app_version or "unknown",
                device_secret=generate_device_secret(),
                register_time=now,
                last_register_time=now,
                created_at=now,
                updated_at=now,
            )
            await self.create(device)
            logger.info(f"Device registered: {device.device_id}")
            return DeviceRegisterResponse(
                is_new=True,
                device_secret=device.device_secret,
                message="device registered",
            )

        if data.device_name:
            device.device_name = data.device_name
        if data.device_model:
            device.device_model = data.device_model
        if data.app_version:
            device.app_version = data.app_version
        device.last_register_time = now
        await self.update(device)
        logger.info(f"Device re-registered: {device.device_id}")
        return DeviceRegisterResponse(
            is_new=False,
            device_secret=device.device_secret,
            message="device info updated",
        )

    async def authenticate(self, device_id: str | None, secret: str | None) -> Device:
        """Resolve the calling device and check its shared secret."""
        if not device_id:
            raise InvalidArgumentError("device id is required")

        device = await self.get_or_raise(device_id, f"device {device_id} not registered")

        if secret or settings.device_secret_required:
            if not verify_device_secret(secret, device.device_secret):
                logger.warning(f"Device secret mismatch: {device_id}")
                raise UnauthorizedError("device secret mismatch")
        return device

    async def heartbeat(
        self,
        device: Device,
        data: HeartbeatRequest,
        now: datetime | None = None,
    ) -> bool:
        """Record liveness and device state; return whether commands are waiting."""
        device.last_heartbeat = now or utcnow()
        if data.status_info is not None:
            device.status_info = data.status_info
        if data.recording is not None:
            device.recording = data.recording
        await self.update(device)
        return await self.has_pending_commands(device.device_id)

    async def has_pending_commands(self, device_id: str) -> bool:
        query = (
            select(Command.id)
            .where(Command.device_id == device_id)
            .where(Command.status == CommandStatus.PENDING.value)
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.first() is not None

    # ------------------------------------------------------------------
    # Owner-initiated
    # ------------------------------------------------------------------

    async def bind(
        self,
        owner_id: str,
        data: DeviceBindRequest,
        now: datetime | None = None,
    ) -> DeviceBindResponse:
        """Bind a device to the caller, auto-registering an unknown device.

        Binding is exclusive: a device bound to someone else is a Conflict.
        Re-binding by the same owner refreshes the bind time.
        """
        now = now or utcnow()
        device = await self.get_by_id(data.device_id)

        if device is None:
            device = Device(
                device_id=data.device_id,
                device_name=data.device_name or settings.default_device_name,
                device_secret=generate_device_secret(),
                bound_user_id=owner_id,
                bound_time=now,
                register_time=now,
                created_at=now,
                updated_at=now,
            )
            self.db.add(device)
            self._add_history(device.device_id, owner_id, ACTION_REGISTER_AND_BIND, now)
            await self.db.commit()
            await self.db.refresh(device)
            logger.info(f"Device {device.device_id} registered and bound to {owner_id}")
            return DeviceBindResponse(
                is_new=True,
                message="device registered and bound",
                device=DeviceBrief(device_id=device.device_id, device_name=device.device_name),
            )

        if device.bound_user_id and device.bound_user_id != owner_id:
            raise ConflictError("device is already bound to another user")

        values = {"bound_user_id": owner_id, "bound_time": now, "updated_at": now}
        if data.device_name:
            values["device_name"] = data.device_name
        # Owner may have changed since the read above
        changed = await self.guarded_update(
            update(Device)
            .where(Device.device_id == device.device_id)
            .where(or_(Device.bound_user_id.is_(None), Device.bound_user_id == owner_id))
            .values(**values)
        )
        if changed == 0:
            await self.db.rollback()
            raise ConflictError("device is already bound to another user")

        self._add_history(device.device_id, owner_id, ACTION_BIND, now)
        await self.db.commit()
        await self.db.refresh(device)
        logger.info(f"Device {device.device_id} bound to {owner_id}")
        return DeviceBindResponse(
            is_new=False,
            message="device bound",
            device=DeviceBrief(device_id=device.device_id, device_name=device.device_name),
        )

    async def unbind(self, owner_id: str, device_id: str, now: datetime | None = None) -> None:
        """Release a device the caller owns."""
        device = await self.get_owned(owner_id, device_id)
        device.bound_user_id = None
        device.bound_time = None
        self._add_history(device_id, owner_id, ACTION_UNBIND, now or utcnow())
        await self.db.commit()
        logger.info(f"Device {device_id} unbound from {owner_id}")

    async def get_owned(self, owner_id: str, device_id: str) -> Device:
        """Device bound to ``owner_id``; anything else is NotFound."""
        device = await self.get_by_id(device_id)
        if device is None or device.bound_user_id != owner_id:
            raise NotFoundError("device not found or not bound to you")
        return device

    async def list_bound(
        self,
        owner_id: str,
        page: int = 1,
        page_size: int = 20,
        now: datetime | None = None,
    ) -> DeviceListResponse:
        """Devices bound to the caller, newest bind first."""
        now = now or utcnow()
        query = select(Device).where(Device.bound_user_id == owner_id)

        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = (
            query.order_by(desc(Device.bound_time))
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(query)
        devices = list(result.scalars().all())

        return DeviceListResponse(
            devices=[
                DeviceDTO(
                    device_id=d.device_id,
                    device_name=d.device_name,
                    device_model=d.device_model,
                    # The list screen decides whether controls are enabled,
                    # so it uses the enqueue admission threshold.
                    online=liveness.is_online_for_admission(d, now),
                    recording=bool(d.recording),
                    status_info=d.status_info or "",
                    bound_time=d.bound_time,
                    last_heartbeat=d.last_heartbeat,
                )
                for d in devices
            ],
            total=total,
            page=page,
            page_size=page_size,
        )

    async def get_status(
        self, owner_id: str, device_id: str, now: datetime | None = None
    ) -> DeviceStatusDTO:
        """Status view for the owner's UI (status-report timeout)."""
        now = now or utcnow()
        device = await self.get_owned(owner_id, device_id)
        return DeviceStatusDTO(
            device_id=device.device_id,
            device_name=device.device_name,
            online=liveness.is_online_for_status(device, now),
            recording=bool(device.recording),
            status_info=device.status_info or "",
            last_heartbeat=device.last_heartbeat,
            last_heartbeat_time=to_millis(device.last_heartbeat),
            time_since_heartbeat=liveness.seconds_since_heartbeat(device.last_heartbeat, now),
            preview_path=preview_blob_id(device.device_id),
        )

    def _add_history(self, device_id: str, user_id: str, action: str, now: datetime) -> None:
        self.db.add(
            BindHistory(device_id=device_id, user_id=user_id, action=action, created_at=now)
        )
