"""Tests for device registration, binding and status."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from dashlink.core.clock import utcnow
from dashlink.core.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from dashlink.models.bind_history import BindHistory
from dashlink.models.device import Device
from dashlink.schemas.device import DeviceBindRequest, DeviceRegister, HeartbeatRequest
from dashlink.services.device_service import DeviceService
from tests.factories import DEVICE_SECRET, OTHER_OWNER_ID, OWNER_ID, make_command, make_device


async def _history(db, device_id: str) -> list[str]:
    result = await db.execute(
        select(BindHistory.action)
        .where(BindHistory.device_id == device_id)
        .order_by(BindHistory.id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_register_new_device(db_session):
    service = DeviceService(db_session)

    reply = await service.register(DeviceRegister(device_id="cam-new", device_model="EV-2"))

    assert reply.is_new is True
    assert len(reply.device_secret) == 32
    device = await service.get_by_id("cam-new")
    assert device.device_name == "EVCam device"
    assert device.device_model == "EV-2"
    assert device.bound_user_id is None


@pytest.mark.asyncio
async def test_register_existing_device_keeps_secret(db_session):
    service = DeviceService(db_session)
    first = await service.register(DeviceRegister(device_id="cam-new"))

    second = await service.register(
        DeviceRegister(device_id="cam-new", device_name="Front cam", app_version="2.0")
    )

    assert second.is_new is False
    assert second.device_secret == first.device_secret
    device = await service.get_by_id("cam-new")
    assert device.device_name == "Front cam"
    assert device.app_version == "2.0"


@pytest.mark.asyncio
async def test_authenticate(db_session, online_device):
    service = DeviceService(db_session)

    device = await service.authenticate(online_device.device_id, DEVICE_SECRET)
    assert device.device_id == online_device.device_id

    with pytest.raises(UnauthorizedError):
        await service.authenticate(online_device.device_id, "wrong")
    with pytest.raises(UnauthorizedError):
        await service.authenticate(online_device.device_id, None)
    with pytest.raises(NotFoundError):
        await service.authenticate("ghost", DEVICE_SECRET)
    with pytest.raises(InvalidArgumentError):
        await service.authenticate(None, DEVICE_SECRET)


@pytest.mark.asyncio
async def test_heartbeat_updates_state_and_reports_pending(db_session, offline_device):
    service = DeviceService(db_session)
    now = utcnow()

    has_pending = await service.heartbeat(
        offline_device, HeartbeatRequest(status_info="parked", recording=True), now
    )
    assert has_pending is False
    assert offline_device.last_heartbeat == now
    assert offline_device.status_info == "parked"
    assert offline_device.recording is True

    await make_command(db_session, offline_device, "queued")
    assert await service.heartbeat(offline_device, HeartbeatRequest()) is True
    # Omitted fields leave stored values alone
    assert offline_device.status_info == "parked"
    assert offline_device.recording is True


@pytest.mark.asyncio
async def test_bind_auto_registers_unknown_device(db_session):
    service = DeviceService(db_session)

    reply = await service.bind(OWNER_ID, DeviceBindRequest(device_id="cam-qr", device_name="Car"))

    assert reply.is_new is True
    assert reply.device.device_name == "Car"
    device = await service.get_by_id("cam-qr")
    assert device.bound_user_id == OWNER_ID
    assert device.device_secret
    assert await _history(db_session, "cam-qr") == ["register_and_bind"]


@pytest.mark.asyncio
async def test_bind_is_exclusive(db_session, online_device):
    service = DeviceService(db_session)

    with pytest.raises(ConflictError):
        await service.bind(OTHER_OWNER_ID, DeviceBindRequest(device_id=online_device.device_id))

    # Re-binding by the same owner is allowed
    reply = await service.bind(OWNER_ID, DeviceBindRequest(device_id=online_device.device_id))
    assert reply.is_new is False
    await db_session.refresh(online_device)
    assert online_device.bound_user_id == OWNER_ID


@pytest.mark.asyncio
async def test_bind_rejects_owner_change_after_read(session_maker, db_session):
    await make_device(db_session, "cam-free", owner_id=None)

    async with session_maker() as slow:
        # Loaded while still unbound; stays cached in this session
        stale = await slow.get(Device, "cam-free")
        await slow.commit()
        assert stale.bound_user_id is None

        async with session_maker() as fast:
            await DeviceService(fast).bind(
                OTHER_OWNER_ID, DeviceBindRequest(device_id="cam-free")
            )

        with pytest.raises(ConflictError):
            await DeviceService(slow).bind(OWNER_ID, DeviceBindRequest(device_id="cam-free"))

    owner = await db_session.scalar(
        select(Device.bound_user_id).where(Device.device_id == "cam-free")
    )
    assert owner == OTHER_OWNER_ID
    assert await _history(db_session, "cam-free") == ["bind"]


@pytest.mark.asyncio
async def test_unbind_then_rebind_by_other_owner(db_session, online_device):
    service = DeviceService(db_session)

    with pytest.raises(NotFoundError):
        await service.unbind(OTHER_OWNER_ID, online_device.device_id)

    await service.unbind(OWNER_ID, online_device.device_id)
    await service.bind(OTHER_OWNER_ID, DeviceBindRequest(device_id=online_device.device_id))

    await db_session.refresh(online_device)
    assert online_device.bound_user_id == OTHER_OWNER_ID
    assert await _history(db_session, online_device.device_id) == ["unbind", "bind"]


@pytest.mark.asyncio
async def test_list_bound_uses_admission_threshold(db_session):
    await make_device(db_session, "cam-a", heartbeat_age=timedelta(seconds=50))
    await make_device(db_session, "cam-b", heartbeat_age=timedelta(minutes=3))
    await make_device(db_session, "cam-c", owner_id=OTHER_OWNER_ID)

    listing = await DeviceService(db_session).list_bound(OWNER_ID)

    assert listing.total == 2
    online = {d.device_id: d.online for d in listing.devices}
    assert online == {"cam-a": True, "cam-b": False}


@pytest.mark.asyncio
async def test_list_bound_pagination(db_session):
    for i in range(3):
        await make_device(db_session, f"cam-{i}")

    page = await DeviceService(db_session).list_bound(OWNER_ID, page=2, page_size=2)

    assert page.total == 3
    assert len(page.devices) == 1


@pytest.mark.asyncio
async def test_status_uses_status_threshold(db_session):
    device = await make_device(db_session, "cam-s", heartbeat_age=timedelta(seconds=50))
    service = DeviceService(db_session)

    status = await service.get_status(OWNER_ID, device.device_id)

    assert status.online is False
    assert 49 <= status.time_since_heartbeat <= 51
    assert status.last_heartbeat_time > 0
    assert status.preview_path == "preview/cam-s/frame.jpg"

    with pytest.raises(NotFoundError):
        await service.get_status(OTHER_OWNER_ID, device.device_id)
