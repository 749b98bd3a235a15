"""File record service for device-uploaded photos and videos."""

from datetime import datetime

from loguru import logger
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dashlink.core.clock import utcnow
from dashlink.core.errors import DashlinkError, InvalidArgumentError, NotFoundError
from dashlink.models.command import Command
from dashlink.models.device import Device
from dashlink.models.file_record import FILE_TYPES, FileRecord
from dashlink.schemas.file import (
    FileDTO,
    FilePagedResponse,
    FileQueryParams,
    FileRecordCreate,
    FileRecordCreated,
)
from dashlink.services.base_service import BaseService
from dashlink.services.blob_storage import BlobStorage
from dashlink.services.command_service import CommandService


class FileService(BaseService[FileRecord]):
    """File metadata operations. Blob I/O goes through ``BlobStorage``."""

    def __init__(self, db: AsyncSession, storage: BlobStorage):
        super().__init__(db, FileRecord)
        self.storage = storage

    async def create_record(
        self,
        device: Device,
        data: FileRecordCreate,
        now: datetime | None = None,
    ) -> FileRecordCreated:
        """Store metadata for a blob the device already uploaded."""
        now = now or utcnow()
        if data.file_type not in FILE_TYPES:
            raise InvalidArgumentError(f"unsupported file type: {data.file_type}")

        command_id = data.command_id
        if command_id and await self._command_has_file(command_id):
            logger.warning(f"Command {command_id} already has a linked file; not relinking")
            command_id = None

        record = FileRecord(
            device_id=device.device_id,
            user_id=device.bound_user_id,
            file_id=data.file_id,
            thumb_file_id=data.thumb_file_id,
            file_name=data.file_name or data.file_id.rsplit("/", 1)[-1],
            file_type=data.file_type,
            file_size=data.file_size,
            duration=data.duration if data.file_type == "video" else None,
            command_id=command_id,
            created_at=now,
        )
        await self.create(record)
        logger.info(f"File record {record.id} saved for device {device.device_id}")

        if command_id:
            linked = await CommandService(self.db).attach_file(
                device.device_id, command_id, record.file_id, record.id, now
            )
            if not linked:
                logger.warning(f"Command {command_id} not found for file {record.id}")

        urls = await self._temp_urls([record.file_id, record.thumb_file_id])
        return FileRecordCreated(
            record_id=record.id,
            temp_file_url=urls.get(record.file_id),
            thumb_url=urls.get(record.thumb_file_id) if record.thumb_file_id else None,
        )

    async def list_files(self, owner_id: str, params: FileQueryParams) -> FilePagedResponse:
        """Paged files of one owned device, newest first."""
        device = await self.db.get(Device, params.device_id)
        if device is None or device.bound_user_id != owner_id:
            raise NotFoundError("device not found or not bound to you")

        if params.file_type and params.file_type not in FILE_TYPES:
            raise InvalidArgumentError(f"unsupported file type: {params.file_type}")

        query = select(FileRecord).where(FileRecord.device_id == params.device_id)
        if params.file_type:
            query = query.where(FileRecord.file_type == params.file_type)

        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        offset = (params.page - 1) * params.page_size
        query = (
            query.order_by(desc(FileRecord.created_at))
            .offset(offset)
            .limit(params.page_size)
        )
        result = await self.db.execute(query)
        records = list(result.scalars().all())

        blob_ids: list[str] = []
        for r in records:
            blob_ids.append(r.file_id)
            if r.thumb_file_id:
                blob_ids.append(r.thumb_file_id)
        urls = await self._temp_urls(blob_ids)

        return FilePagedResponse(
            files=[self._to_dto(r, urls) for r in records],
            total=total,
            page=params.page,
            page_size=params.page_size,
            has_more=offset + len(records) < total,
        )

    async def delete_file(self, owner_id: str, record_id: str) -> None:
        """Delete a file record; blob removal is attempted first, best effort."""
        record = await self.get_or_raise(record_id, f"file {record_id} not found")

        if record.user_id != owner_id:
            device = await self.db.get(Device, record.device_id)
            if device is None or device.bound_user_id != owner_id:
                raise NotFoundError(f"file {record_id} not found")

        blob_ids = [b for b in (record.file_id, record.thumb_file_id) if b]
        try:
            await self.storage.delete(blob_ids)
        except DashlinkError as e:
            logger.warning(f"Blob delete failed for file {record_id}: {e.message}")

        await self.delete(record)
        logger.info(f"File record {record_id} deleted by {owner_id}")

    async def _command_has_file(self, command_id: str) -> bool:
        query = select(FileRecord.id).where(FileRecord.command_id == command_id).limit(1)
        result = await self.db.execute(query)
        return result.first() is not None

    async def _temp_urls(self, blob_ids: list[str | None]) -> dict[str, str]:
        """Signed URLs; a storage failure yields no URLs rather than an error."""
        wanted = [b for b in blob_ids if b]
        if not wanted:
            return {}
        try:
            return await self.storage.get_temp_urls(wanted)
        except DashlinkError as e:
            logger.warning(f"Temp URL refresh failed: {e.message}")
            return {}

    def _to_dto(self, record: FileRecord, urls: dict[str, str]) -> FileDTO:
        return FileDTO(
            id=record.id,
            file_id=record.file_id,
            file_name=record.file_name,
            file_type=record.file_type,
            file_size=record.file_size or 0,
            duration=record.duration,
            command_id=record.command_id,
            created_at=record.created_at,
            temp_file_url=urls.get(record.file_id),
            thumb_url=urls.get(record.thumb_file_id) if record.thumb_file_id else None,
        )
