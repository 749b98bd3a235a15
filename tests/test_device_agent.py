"""End-to-end tests: phone client and device agent against the API."""

import pytest
from httpx import AsyncClient

from dashlink.client.api_client import ApiResult, DashlinkClient
from dashlink.client.device_agent import CommandOutcome, DeviceAgent
from dashlink.client.dispatch import CommandRunner, Surface, TrackerState
from tests.factories import DEVICE_SECRET, OWNER_ID, owner_headers


def _phone(client: AsyncClient) -> DashlinkClient:
    token = owner_headers(OWNER_ID)["Authorization"].split(" ", 1)[1]
    return DashlinkClient(token=token, http_client=client)


def _camera(client: AsyncClient, device_id: str) -> DashlinkClient:
    return DashlinkClient(device_id=device_id, device_secret=DEVICE_SECRET, http_client=client)


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.mark.asyncio
async def test_agent_executes_and_phone_sees_completion(client: AsyncClient, online_device):
    executed = []

    async def handler(command):
        executed.append(command["command"])
        return CommandOutcome(success=True, result={"fileId": "f1"})

    agent = DeviceAgent(_camera(client, online_device.device_id), handler, sleep=_no_sleep)
    runner = CommandRunner(_phone(client), online_device.device_id, Surface.HOME, autostart=False)

    reply = await runner.send("capture_photo")
    assert reply.ok

    heartbeat = await agent.heartbeat()
    assert heartbeat.data["hasPendingCommands"] is True
    assert agent.poll_interval == 2.0

    ids = await agent.poll_once()
    assert ids == [reply.data["commandId"]]
    assert executed == ["capture_photo"]

    await runner.tracker.tick()
    assert runner.tracker.state == TrackerState.COMPLETED
    assert runner.tracker.result == {"fileId": "f1"}


@pytest.mark.asyncio
async def test_agent_reports_handler_failure(client: AsyncClient, online_device):
    async def handler(command):
        raise RuntimeError("sensor offline")

    agent = DeviceAgent(_camera(client, online_device.device_id), handler, sleep=_no_sleep)
    phone = _phone(client)
    reply = await phone.send_command(online_device.device_id, "query_status")

    await agent.poll_once()

    command = await phone.get_command(reply.data["commandId"])
    assert command.data["status"] == "failed"
    assert command.data["errorMessage"] == "sensor offline"


@pytest.mark.asyncio
async def test_agent_skips_duplicate_claims():
    calls = []

    class DuplicatingClient:
        device_id = "cam-001"

        async def poll(self, limit=None):
            command = {"commandId": "cmd_dup", "command": "capture_photo", "params": {}}
            return ApiResult(ok=True, data={"commands": [command]})

        async def report_result(self, command_id, success, result=None, error_message=None):
            return ApiResult(ok=True, data={"commandId": command_id, "status": "completed"})

    async def handler(command):
        calls.append(command["commandId"])
        return CommandOutcome(success=True)

    agent = DeviceAgent(DuplicatingClient(), handler, sleep=_no_sleep)

    assert await agent.poll_once() == ["cmd_dup"]
    assert await agent.poll_once() == []
    assert calls == ["cmd_dup"]


@pytest.mark.asyncio
async def test_agent_retries_transient_report_failures():
    attempts = []

    class FlakyClient:
        device_id = "cam-001"

        async def report_result(self, command_id, success, result=None, error_message=None):
            attempts.append(command_id)
            if len(attempts) < 3:
                return ApiResult(ok=False, error_kind="Transient", message="timeout")
            return ApiResult(ok=True)

    async def handler(command):
        return CommandOutcome(success=True)

    agent = DeviceAgent(FlakyClient(), handler, sleep=_no_sleep)

    assert await agent.report("cmd_1", CommandOutcome(success=True)) is True
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_register_stores_secret(client: AsyncClient):
    camera = DashlinkClient(device_id="cam-fresh", http_client=client)

    reply = await camera.register(device_name="Rear cam")

    assert reply.ok
    assert camera.device_secret == reply.data["deviceSecret"]
    heartbeat = await camera.heartbeat(status_info="ok")
    assert heartbeat.ok
