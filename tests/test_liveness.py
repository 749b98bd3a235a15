"""Tests for heartbeat-derived liveness."""

from datetime import datetime, timedelta

from dashlink.core.clock import to_millis
from dashlink.models.device import Device
from dashlink.services import liveness

T0 = datetime(2024, 6, 1, 12, 0, 0)


def _device(last_heartbeat: datetime | None) -> Device:
    return Device(device_id="cam", device_name="cam", device_secret="x", last_heartbeat=last_heartbeat)


def test_never_heartbeated_device_is_offline():
    device = _device(None)
    assert liveness.is_online_for_admission(device, T0) is False
    assert liveness.is_online_for_status(device, T0) is False
    assert liveness.seconds_since_heartbeat(None, T0) is None


def test_admission_and_status_thresholds_differ():
    device = _device(T0)
    now = T0 + timedelta(seconds=50)

    # 50s old: fine for enqueue admission (60s), stale for UI status (45s)
    assert liveness.is_online_for_admission(device, now) is True
    assert liveness.is_online_for_status(device, now) is False


def test_timeout_boundary_is_exclusive():
    timeout = timedelta(seconds=60)
    assert liveness.is_online(T0, T0 + timedelta(seconds=59, microseconds=999999), timeout)
    assert not liveness.is_online(T0, T0 + timedelta(seconds=60), timeout)


def test_online_is_monotonic_without_new_heartbeat():
    timeout = liveness.admission_timeout()
    samples = [
        liveness.is_online(T0, T0 + timedelta(seconds=s), timeout) for s in range(0, 180, 5)
    ]
    first_offline = samples.index(False)
    assert all(samples[:first_offline])
    assert not any(samples[first_offline:])


def test_new_heartbeat_restores_online():
    timeout = liveness.status_timeout()
    now = T0 + timedelta(minutes=10)
    assert not liveness.is_online(T0, now, timeout)
    assert liveness.is_online(now - timedelta(seconds=1), now, timeout)


def test_seconds_since_heartbeat_and_millis():
    assert liveness.seconds_since_heartbeat(T0, T0 + timedelta(seconds=42, milliseconds=900)) == 42
    assert to_millis(datetime(1970, 1, 1, 0, 0, 1)) == 1000
    assert to_millis(None) == 0
