"""Base service class with common database operations."""

from typing import Any, Generic, TypeVar

from sqlalchemy import Update
from sqlalchemy.ext.asyncio import AsyncSession

from dashlink.core.errors import NotFoundError
from dashlink.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(Generic[ModelType]):
    """Session-bound persistence helpers shared by the domain services."""

    def __init__(self, db: AsyncSession, model: type[ModelType]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: Any) -> ModelType | None:
        return await self.db.get(self.model, id)

    async def get_or_raise(self, id: Any, message: str) -> ModelType:
        """Row by primary key, or NotFoundError with ``message``."""
        obj = await self.db.get(self.model, id)
        if obj is None:
            raise NotFoundError(message)
        return obj

    async def create(self, obj: ModelType) -> ModelType:
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def update(self, obj: ModelType) -> ModelType:
        """Flush pending attribute changes on ``obj`` and reload it."""
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def delete(self, obj: ModelType) -> None:
        await self.db.delete(obj)
        await self.db.commit()

    async def guarded_update(self, stmt: Update) -> int:
        """Run an UPDATE whose WHERE clause encodes the expected current state.

        Returns the number of rows changed; 0 means another writer got there
        first. The caller commits. Loaded instances are not synchronized, so
        refresh them after the commit.
        """
        result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount or 0
