"""Command reaper worker for commands a device never finished."""

from datetime import datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dashlink.core.config import get_settings
from dashlink.db.session import async_session_maker
from dashlink.services.command_service import CommandService

settings = get_settings()


class CommandReaperWorker:
    """Fails commands stuck in ``executing`` or ``pending`` past their timeouts.

    A device that crashes after claiming a command never reports a result;
    without this sweep the issuing client would see ``executing`` forever.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession] | None = None):
        self.session_maker = session_maker or async_session_maker

    async def run(self, now: datetime | None = None) -> int:
        """Run one sweep; returns the number of commands failed."""
        async with self.session_maker() as db:
            try:
                reaped = await CommandService(db).fail_stale(now)
            except Exception as e:
                logger.error(f"Command reaper error: {e}")
                await db.rollback()
                return 0

        if reaped:
            logger.info(f"Command reaper: failed {reaped} stale command(s)")
        return reaped
