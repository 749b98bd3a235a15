"""Snapshot-polling preview session.

Live view is approximated by asking the device to publish a still frame to
``preview/<deviceId>/frame.jpg`` and re-fetching it every two seconds.
"""

import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from loguru import logger

from dashlink.client import constants
from dashlink.client.api_client import DashlinkClient
from dashlink.client.timers import Ticker


class PreviewState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    ERROR = "error"
    STOPPED = "stopped"


class PreviewSession:
    """One open preview screen.

    ``clock`` returns seconds and is only used for the grace window and the
    last-update stamp, so tests can drive it by hand.
    """

    def __init__(
        self,
        client: DashlinkClient,
        device_id: str,
        clock: Callable[[], float] = time.monotonic,
        warmup: float = constants.PREVIEW_WARMUP_SECONDS,
        interval: float = constants.PREVIEW_REFRESH_INTERVAL_SECONDS,
        grace: float = constants.PREVIEW_GRACE_SECONDS,
        autostart: bool = True,
    ):
        self.client = client
        self.device_id = device_id
        self.clock = clock
        self.warmup = warmup
        self.interval = interval
        self.grace = grace
        self.autostart = autostart

        self.state = PreviewState.IDLE
        self.image_url: str | None = None
        self.last_update: float | None = None
        self.error: str | None = None
        self.started_at: float | None = None
        self._ticker: Ticker | None = None

    @property
    def streaming(self) -> bool:
        return self.state == PreviewState.STREAMING

    async def __aenter__(self) -> "PreviewSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def start(self) -> bool:
        """Ask the device to publish frames, then start fetching them."""
        if self.streaming:
            return True

        reply = await self.client.send_command(self.device_id, "begin_preview")
        if not reply.ok:
            self.state = PreviewState.ERROR
            self.error = reply.message or "failed to start preview"
            return False

        self.state = PreviewState.STREAMING
        self.error = None
        self.started_at = self.clock()
        if self.autostart:
            self._ticker = Ticker(self.interval, self.tick, delay=self.warmup)
            self._ticker.start()
        return True

    async def tick(self) -> bool:
        """Fetch the latest frame once; returns True while the session runs."""
        if not self.streaming:
            return False

        reply = await self.client.get_preview_frame(self.device_id)
        now = self.clock()
        if reply.ok and reply.data:
            # Same path every time, so bust intermediate caches
            separator = "&" if "?" in reply.data["url"] else "?"
            self.image_url = f"{reply.data['url']}{separator}t={int(now * 1000)}"
            self.last_update = now
            self.error = None
            return True

        # The first frames can lag the begin_preview command
        if self.started_at is not None and now - self.started_at >= self.grace:
            self.error = reply.message or "no preview frame available"
        return True

    async def stop(self) -> None:
        """Stop fetching and tell the device to stop publishing (best effort)."""
        self._stop_ticker()
        if not self.streaming:
            return
        self.state = PreviewState.STOPPED
        self.image_url = None

        reply = await self.client.send_command(self.device_id, "end_preview")
        if not reply.ok:
            logger.warning(f"end_preview for {self.device_id} not delivered: {reply.message}")

    async def close(self) -> None:
        """Screen teardown; stops the session even if the user never did."""
        await self.stop()

    def _stop_ticker(self) -> None:
        if self._ticker:
            self._ticker.stop()
            self._ticker = None
