"""Device-side loop: heartbeat, poll, execute, report.

The camera cannot accept inbound connections, so it heartbeats every 15s and
polls for commands every 5s (every 2s while commands are waiting or one was
seen in the last minute). Commands are executed through a pluggable handler.
"""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from dashlink.client import constants
from dashlink.client.api_client import ApiResult, DashlinkClient


@dataclass
class CommandOutcome:
    success: bool
    result: Any = None
    error_message: str | None = None


CommandHandler = Callable[[dict[str, Any]], Awaitable[CommandOutcome]]
StatusProvider = Callable[[], tuple[str | None, bool | None]]


class DeviceAgent:
    """Runs the device half of the command protocol."""

    def __init__(
        self,
        client: DashlinkClient,
        handler: CommandHandler,
        status_provider: StatusProvider | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        report_attempts: int = constants.RESULT_REPORT_ATTEMPTS,
    ):
        self.client = client
        self.handler = handler
        self.status_provider = status_provider
        self.clock = clock
        self.sleep = sleep
        self.report_attempts = report_attempts

        self._recent_ids: deque[str] = deque(maxlen=constants.RECENT_COMMAND_MEMORY)
        self._pending_hint = False
        self._last_command_at: float | None = None
        self._last_heartbeat_at: float | None = None
        self._consecutive_errors = 0
        self._running = False

    @property
    def poll_interval(self) -> float:
        if self._pending_hint:
            return constants.AGENT_FAST_POLL_INTERVAL_SECONDS
        if (
            self._last_command_at is not None
            and self.clock() - self._last_command_at < constants.ACTIVE_POLL_WINDOW_SECONDS
        ):
            return constants.AGENT_FAST_POLL_INTERVAL_SECONDS
        return constants.AGENT_POLL_INTERVAL_SECONDS

    def seen(self, command_id: str) -> bool:
        return command_id in self._recent_ids

    async def heartbeat(self) -> ApiResult:
        status_info, recording = self.status_provider() if self.status_provider else (None, None)
        reply = await self.client.heartbeat(status_info, recording)
        self._last_heartbeat_at = self.clock()
        self._track(reply)
        if reply.ok and reply.data:
            self._pending_hint = bool(reply.data.get("hasPendingCommands"))
        return reply

    async def poll_once(self) -> list[str]:
        """Claim and execute commands; returns the ids that were executed."""
        reply = await self.client.poll()
        self._track(reply)
        if not reply.ok:
            return []

        self._pending_hint = False
        executed: list[str] = []
        for command in reply.data.get("commands", []):
            command_id = command["commandId"]
            if self.seen(command_id):
                logger.warning(f"Skipping duplicate claim of {command_id}")
                continue
            self._recent_ids.append(command_id)
            self._last_command_at = self.clock()
            await self.execute(command)
            executed.append(command_id)
        return executed

    async def execute(self, command: dict[str, Any]) -> CommandOutcome:
        """Run one command through the handler and report its outcome."""
        command_id = command["commandId"]
        logger.info(f"Executing {command['command']} ({command_id})")
        try:
            outcome = await asyncio.wait_for(
                self.handler(command), timeout=self._execution_timeout(command)
            )
        except asyncio.TimeoutError:
            outcome = CommandOutcome(success=False, error_message="command execution timed out")
        except Exception as e:
            logger.error(f"Command {command_id} raised: {e}")
            outcome = CommandOutcome(success=False, error_message=str(e) or type(e).__name__)

        await self.report(command_id, outcome)
        return outcome

    async def report(self, command_id: str, outcome: CommandOutcome) -> bool:
        """Report a result, retrying transport failures. Reports are idempotent."""
        for attempt in range(1, self.report_attempts + 1):
            reply = await self.client.report_result(
                command_id, outcome.success, outcome.result, outcome.error_message
            )
            if reply.ok:
                return True
            if reply.error_kind != "Transient":
                logger.error(f"Result for {command_id} rejected: {reply.message}")
                return False
            logger.warning(f"Result report for {command_id} failed (attempt {attempt})")
            if attempt < self.report_attempts:
                await self.sleep(float(attempt))
        return False

    async def run(self) -> None:
        """Run until ``stop()`` is called."""
        self._running = True
        logger.info(f"Device agent started for {self.client.device_id}")
        try:
            while self._running:
                now = self.clock()
                if (
                    self._last_heartbeat_at is None
                    or now - self._last_heartbeat_at >= constants.HEARTBEAT_INTERVAL_SECONDS
                ):
                    await self.heartbeat()
                await self.poll_once()

                if self._consecutive_errors >= constants.MAX_CONSECUTIVE_ERRORS:
                    logger.warning("Too many consecutive errors, backing off")
                    self._consecutive_errors = 0
                    await self.sleep(constants.ERROR_BACKOFF_SECONDS)
                else:
                    await self.sleep(self.poll_interval)
        finally:
            self._running = False
            logger.info("Device agent stopped")

    def stop(self) -> None:
        self._running = False

    def _execution_timeout(self, command: dict[str, Any]) -> float:
        timeout = constants.COMMAND_EXECUTION_TIMEOUT_SECONDS
        if command.get("command") == "record":
            duration = (command.get("params") or {}).get("duration") or 0
            timeout += duration
        return timeout

    def _track(self, reply: ApiResult) -> None:
        if reply.ok:
            self._consecutive_errors = 0
        else:
            self._consecutive_errors += 1
