"""Pytest configuration and fixtures."""

from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dashlink.core.deps import get_db
from dashlink.db.base import Base
from dashlink.db import models_registry  # noqa: F401 - Import to register models
from dashlink.main import app
from dashlink.models.device import Device
from dashlink.services.blob_storage import LocalBlobStorage, get_blob_storage
from tests.factories import (
    OTHER_OWNER_ID,
    OWNER_ID,
    device_headers,
    make_device,
    owner_headers,
)

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def blob_storage(tmp_path) -> LocalBlobStorage:
    """Blob storage rooted in a per-test temp directory."""
    return LocalBlobStorage(root=tmp_path / "blobs", base_url="http://test")


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, blob_storage: LocalBlobStorage
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with overridden dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: blob_storage

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """Authorization headers for the owner of the sample devices."""
    return owner_headers(OWNER_ID)


@pytest.fixture
def other_auth_headers() -> dict:
    return owner_headers(OTHER_OWNER_ID)


@pytest_asyncio.fixture(scope="function")
async def online_device(db_session: AsyncSession) -> Device:
    """Bound device with a fresh heartbeat."""
    return await make_device(db_session, "cam-001")


@pytest_asyncio.fixture(scope="function")
async def offline_device(db_session: AsyncSession) -> Device:
    """Bound device whose last heartbeat is older than the admission window."""
    return await make_device(db_session, "cam-002", heartbeat_age=timedelta(minutes=5))


@pytest.fixture
def online_device_headers(online_device: Device) -> dict:
    return device_headers(online_device)
