"""Background workers."""

from dashlink.workers.command_reaper import CommandReaperWorker

__all__ = ["CommandReaperWorker"]
