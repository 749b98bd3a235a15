"""
Dashlink Relay API - FastAPI Application

Mailbox between a phone and a dashcam that cannot accept inbound
connections: the phone enqueues commands, the device polls, executes and
reports back.
"""

from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from dashlink.api import router as api_router
from dashlink.core.config import get_settings
from dashlink.core.errors import DashlinkError
from dashlink.db import models_registry  # noqa: F401 - Import to register models
from dashlink.db.base import Base
from dashlink.db.session import engine
from dashlink.workers.command_reaper import CommandReaperWorker

settings = get_settings()

# Global instances
scheduler: AsyncIOScheduler | None = None


async def init_database() -> None:
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def start_background_services() -> None:
    """Start background services."""
    global scheduler

    if not settings.enable_background_workers:
        logger.info("Background workers disabled - skipping scheduler")
        return

    scheduler = AsyncIOScheduler()

    # Fail commands a device claimed but never reported
    command_reaper = CommandReaperWorker()
    scheduler.add_job(
        command_reaper.run,
        "interval",
        seconds=settings.command_reaper_interval_seconds,
        id="command_reaper",
    )

    scheduler.start()
    logger.info("Scheduler started")


async def stop_background_services() -> None:
    """Stop background services."""
    global scheduler

    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting Dashlink Relay API...")

    Path(settings.data_save_folder).mkdir(parents=True, exist_ok=True)
    Path(settings.blob_root).mkdir(parents=True, exist_ok=True)

    await init_database()
    await start_background_services()

    logger.info(f"Dashlink Relay API started on port {settings.port}")

    yield

    # Shutdown
    logger.info("Shutting down Dashlink Relay API...")
    await stop_background_services()
    logger.info("Dashlink Relay API stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Dashlink Relay API - dashcam command mailbox",
    lifespan=lifespan,
    docs_url="/swagger" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# Exception handlers
@app.exception_handler(DashlinkError)
async def dashlink_exception_handler(request: Request, exc: DashlinkError) -> JSONResponse:
    """Expected service failures: status and kind come from the error class."""
    if exc.status_code >= 500:
        logger.warning(f"{exc.kind} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"Code": exc.status_code, "Message": exc.message, "Error": exc.kind},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"Code": 500, "Message": str(exc)},
    )


@app.get("/healthz")
async def healthz() -> dict:
    """Liveness probe."""
    return {"status": "ok"}


# Include API router
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dashlink.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.workers,
    )
