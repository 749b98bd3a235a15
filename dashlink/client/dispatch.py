"""Client-side confirmation strategies for dispatched commands.

A command is fire-and-forget on the wire; the phone still wants a bounded
"take photo ... done" flow. Two strategies exist and are kept separate:

``ActivePollTracker``
    Polls the command's status every second for at most 60 ticks.
    ``idle -> pending -> completed | failed | timedOut``

``CountdownTracker``
    Counts down a known worst-case duration and then declares success
    without looking at the command (optimistic completion). The file list
    stays the source of truth.
    ``idle -> pending -> assumedComplete``

Both trackers are advanced by ``tick()``; ``CommandRunner`` wires them to a
``Ticker`` so that one UI surface has at most one running timer.
"""

from enum import Enum
from typing import Any

from loguru import logger

from dashlink.client import constants
from dashlink.client.api_client import ApiResult, DashlinkClient
from dashlink.client.timers import Ticker


class TrackerState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timedOut"
    ASSUMED_COMPLETE = "assumedComplete"

    @property
    def is_final(self) -> bool:
        return self not in (TrackerState.IDLE, TrackerState.PENDING)


class Strategy(str, Enum):
    ACTIVE_POLL = "active_poll"
    COUNTDOWN = "countdown"


class Surface(str, Enum):
    """UI surface a command is issued from."""

    HOME = "home"  # quick actions
    CONTROL = "control"  # full control screen


_ACTION_LABELS = {
    "capture_photo": "Photo",
    "record": "Recording",
    "begin_continuous_record": "Continuous recording",
    "end_continuous_record": "Stop recording",
    "query_status": "Status query",
    "begin_preview": "Preview",
    "end_preview": "Stop preview",
}


def action_label(kind: str) -> str:
    return _ACTION_LABELS.get(kind, kind)


def select_strategy(kind: str, surface: Surface) -> Strategy:
    """Control-screen photo and record use the countdown; everything else polls."""
    if surface == Surface.CONTROL and kind in ("capture_photo", "record"):
        return Strategy.COUNTDOWN
    return Strategy.ACTIVE_POLL


class ActivePollTracker:
    """Confirms a command by polling ``get_command`` once per tick."""

    strategy = Strategy.ACTIVE_POLL

    def __init__(
        self,
        client: DashlinkClient,
        command_id: str,
        kind: str,
        max_ticks: int = constants.POLL_MAX_TICKS,
    ):
        self.client = client
        self.command_id = command_id
        self.kind = kind
        self.max_ticks = max_ticks
        self.state = TrackerState.IDLE
        self.ticks = 0
        self.message = ""
        self.result: Any = None
        self.cancelled = False

    def start(self) -> None:
        self.state = TrackerState.PENDING
        self.ticks = 0
        self.message = f"{action_label(self.kind)} command sent, waiting for device..."

    def cancel(self) -> None:
        """Stop observing; the recorded state is left as is."""
        self.cancelled = True

    async def tick(self) -> bool:
        """Advance one poll; returns True while more ticks are wanted."""
        if self.cancelled or self.state != TrackerState.PENDING:
            return False

        self.ticks += 1
        reply = await self.client.get_command(self.command_id)
        if reply.ok and reply.data:
            status = reply.data.get("status")
            if status == "completed":
                self.state = TrackerState.COMPLETED
                self.result = reply.data.get("result")
                self.message = f"{action_label(self.kind)} completed"
                return False
            if status == "failed":
                self.state = TrackerState.FAILED
                self.message = reply.data.get("errorMessage") or "execution failed"
                return False
            if status == "executing":
                self.message = f"{action_label(self.kind)} in progress..."
        elif not reply.ok:
            # A failed poll is not a command failure; keep waiting
            logger.warning(f"Polling {self.command_id} failed: {reply.message}")

        if self.ticks >= self.max_ticks:
            self.state = TrackerState.TIMED_OUT
            self.message = "Timed out waiting for the device, check the file list for the result"
            return False
        return True


class CountdownTracker:
    """Declares completion once a fixed countdown reaches zero."""

    strategy = Strategy.COUNTDOWN

    def __init__(self, kind: str, duration: int | None = None):
        self.kind = kind
        self.duration = duration
        self.state = TrackerState.IDLE
        self.remaining = 0
        self.message = ""
        self.cancelled = False

    @staticmethod
    def wait_seconds(kind: str, duration: int | None = None) -> int:
        """Countdown length: record duration plus margin, or the photo bound."""
        if kind == "record":
            return (duration or constants.DEFAULT_RECORD_DURATION) + (
                constants.RECORD_PROCESSING_MARGIN_SECONDS
            )
        return constants.PHOTO_COUNTDOWN_SECONDS

    def start(self) -> None:
        self.state = TrackerState.PENDING
        self.remaining = self.wait_seconds(self.kind, self.duration)
        self.message = (
            f"{action_label(self.kind)} in progress, expected to finish in "
            f"{self.remaining}s; check the file list afterwards"
        )

    def cancel(self) -> None:
        self.cancelled = True

    async def tick(self) -> bool:
        if self.cancelled or self.state != TrackerState.PENDING:
            return False

        self.remaining -= 1
        if self.remaining <= 0:
            self.remaining = 0
            self.state = TrackerState.ASSUMED_COMPLETE
            self.message = f"{action_label(self.kind)} finished, see the file list"
            return False
        return True


Tracker = ActivePollTracker | CountdownTracker


class CommandRunner:
    """Sends commands from one UI surface and tracks the latest one."""

    def __init__(
        self,
        client: DashlinkClient,
        device_id: str,
        surface: Surface,
        autostart: bool = True,
    ):
        self.client = client
        self.device_id = device_id
        self.surface = surface
        self.autostart = autostart
        self.tracker: Tracker | None = None
        self._ticker: Ticker | None = None

    async def send(self, kind: str, params: dict[str, Any] | None = None) -> ApiResult:
        """Enqueue a command and begin confirming it.

        Admission failures (Offline, NotFound, ...) come back as a failed
        ``ApiResult`` and no tracker is started.
        """
        params = dict(params or {})
        if kind == "record":
            params.setdefault("duration", constants.DEFAULT_RECORD_DURATION)

        reply = await self.client.send_command(self.device_id, kind, params)
        if not reply.ok:
            logger.info(f"{kind} rejected: {reply.error_kind} {reply.message}")
            return reply

        self.close()
        strategy = select_strategy(kind, self.surface)
        if strategy == Strategy.COUNTDOWN:
            tracker: Tracker = CountdownTracker(kind, params.get("duration"))
            interval = constants.COUNTDOWN_TICK_SECONDS
        else:
            tracker = ActivePollTracker(self.client, reply.data["commandId"], kind)
            interval = constants.POLL_INTERVAL_SECONDS
        tracker.start()
        self.tracker = tracker

        if self.autostart:
            self._ticker = Ticker(interval, tracker.tick)
            self._ticker.start()
        return reply

    def close(self) -> None:
        """Leaving the surface: stop the timer, keep the last known state."""
        if self._ticker:
            self._ticker.stop()
            self._ticker = None
        if self.tracker:
            self.tracker.cancel()
