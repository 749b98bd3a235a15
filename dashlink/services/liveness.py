"""Liveness tracking derived from the last heartbeat timestamp.

Two thresholds are in use, each with its own setting:

- admission timeout (default 60s): may a new command be enqueued?
- status timeout (default 45s): should the UI show the device as online?
"""

from datetime import datetime, timedelta

from dashlink.core.config import get_settings
from dashlink.models.device import Device

settings = get_settings()


def admission_timeout() -> timedelta:
    return timedelta(seconds=settings.admission_heartbeat_timeout_seconds)


def status_timeout() -> timedelta:
    return timedelta(seconds=settings.status_heartbeat_timeout_seconds)


def is_online(last_heartbeat: datetime | None, now: datetime, timeout: timedelta) -> bool:
    """Online iff a heartbeat exists and is younger than ``timeout``."""
    if last_heartbeat is None:
        return False
    return now - last_heartbeat < timeout


def seconds_since_heartbeat(last_heartbeat: datetime | None, now: datetime) -> int | None:
    if last_heartbeat is None:
        return None
    return int((now - last_heartbeat).total_seconds())


def is_online_for_admission(device: Device, now: datetime) -> bool:
    return is_online(device.last_heartbeat, now, admission_timeout())


def is_online_for_status(device: Device, now: datetime) -> bool:
    return is_online(device.last_heartbeat, now, status_timeout())
