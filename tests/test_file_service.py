"""Tests for file records and blob storage."""

from datetime import timedelta

import pytest

from dashlink.core.clock import utcnow
from dashlink.core.errors import InvalidArgumentError, NotFoundError, TransientError
from dashlink.core.security import verify_blob_token
from dashlink.models.command import CommandStatus
from dashlink.models.file_record import FileRecord
from dashlink.schemas.file import FileQueryParams, FileRecordCreate
from dashlink.services.blob_storage import blob_owner_device, normalize_blob_id
from dashlink.services.command_service import CommandService
from dashlink.services.file_service import FileService
from tests.factories import OTHER_OWNER_ID, OWNER_ID, make_command, make_device


class FailingStorage:
    """Blob storage whose every call fails transiently."""

    async def get_temp_urls(self, blob_ids):
        raise TransientError("storage unavailable")

    async def delete(self, blob_ids):
        raise TransientError("storage unavailable")


async def _add_files(db, device, count: int, file_type: str = "photo") -> list[FileRecord]:
    now = utcnow()
    records = []
    for i in range(count):
        record = FileRecord(
            device_id=device.device_id,
            user_id=device.bound_user_id,
            file_id=f"media/{device.device_id}/{file_type}-{i}.jpg",
            file_name=f"{file_type}-{i}.jpg",
            file_type=file_type,
            file_size=1000 + i,
            created_at=now - timedelta(minutes=count - i),
        )
        db.add(record)
        records.append(record)
    await db.commit()
    return records


def test_normalize_blob_id():
    assert normalize_blob_id("media/cam/a.jpg") == "media/cam/a.jpg"
    for bad in ("", "  ", "/etc/passwd", "media/../secret"):
        with pytest.raises(InvalidArgumentError):
            normalize_blob_id(bad)


def test_blob_owner_device():
    assert blob_owner_device("preview/cam-1/frame.jpg") == "cam-1"
    assert blob_owner_device("media/cam-1/2024/a.mp4") == "cam-1"
    assert blob_owner_device("other/cam-1/a.jpg") is None
    assert blob_owner_device("media/a.jpg") is None


@pytest.mark.asyncio
async def test_local_storage_put_urls_delete(blob_storage):
    await blob_storage.put("media/cam/a.jpg", b"jpeg")

    urls = await blob_storage.get_temp_urls(["media/cam/a.jpg", "media/cam/missing.jpg"])

    assert list(urls) == ["media/cam/a.jpg"]
    url = urls["media/cam/a.jpg"]
    assert url.startswith("http://test/api/v2/blobs/media/cam/a.jpg?token=")
    assert verify_blob_token(url.split("token=", 1)[1], "media/cam/a.jpg")

    await blob_storage.delete(["media/cam/a.jpg", "media/cam/missing.jpg"])
    assert not await blob_storage.exists("media/cam/a.jpg")


@pytest.mark.asyncio
async def test_create_record_links_command(db_session, blob_storage, online_device):
    await make_command(db_session, online_device, "cmd-1", status=CommandStatus.COMPLETED)
    await blob_storage.put("media/cam-001/p.jpg", b"jpeg")
    service = FileService(db_session, blob_storage)

    reply = await service.create_record(
        online_device,
        FileRecordCreate(
            file_id="media/cam-001/p.jpg", file_type="photo", file_size=4, command_id="cmd-1"
        ),
    )

    assert reply.temp_file_url is not None
    record = await service.get_by_id(reply.record_id)
    assert record.user_id == OWNER_ID
    assert record.file_name == "p.jpg"
    command = await CommandService(db_session).get_by_command_id("cmd-1")
    assert command.get_result() == {"fileId": "media/cam-001/p.jpg", "fileRecordId": record.id}
    assert command.status == "completed"


@pytest.mark.asyncio
async def test_second_file_for_command_is_not_linked(db_session, blob_storage, online_device):
    await make_command(db_session, online_device, "cmd-1", status=CommandStatus.COMPLETED)
    service = FileService(db_session, blob_storage)
    first = await service.create_record(
        online_device,
        FileRecordCreate(file_id="media/cam-001/a.jpg", file_type="photo", command_id="cmd-1"),
    )

    second = await service.create_record(
        online_device,
        FileRecordCreate(file_id="media/cam-001/b.jpg", file_type="photo", command_id="cmd-1"),
    )

    record = await service.get_by_id(second.record_id)
    assert record.command_id is None
    command = await CommandService(db_session).get_by_command_id("cmd-1")
    assert command.get_result()["fileRecordId"] == first.record_id


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reported, expected_extra",
    [
        (None, {}),
        ({"width": 1920}, {"width": 1920}),
        ("ok", {"value": "ok"}),
    ],
)
async def test_report_after_upload_keeps_file_link(
    db_session, blob_storage, online_device, reported, expected_extra
):
    await make_command(db_session, online_device, "cmd-shot", status=CommandStatus.EXECUTING)
    upload = await FileService(db_session, blob_storage).create_record(
        online_device,
        FileRecordCreate(
            file_id="media/cam-001/shot.jpg", file_type="photo", command_id="cmd-shot"
        ),
    )

    command = await CommandService(db_session).report_result(
        online_device.device_id, "cmd-shot", True, reported
    )

    assert command.status == CommandStatus.COMPLETED.value
    assert command.get_result() == {
        "fileId": "media/cam-001/shot.jpg",
        "fileRecordId": upload.record_id,
        **expected_extra,
    }


@pytest.mark.asyncio
async def test_failed_report_after_upload_keeps_file_link(db_session, blob_storage, online_device):
    await make_command(db_session, online_device, "cmd-rec", "record", CommandStatus.EXECUTING)
    upload = await FileService(db_session, blob_storage).create_record(
        online_device,
        FileRecordCreate(
            file_id="media/cam-001/clip.mp4", file_type="video", duration=12, command_id="cmd-rec"
        ),
    )
    service = CommandService(db_session)

    await service.report_result(online_device.device_id, "cmd-rec", False, error_message="sd full")
    # A retried report must not drop the link either
    command = await service.report_result(
        online_device.device_id, "cmd-rec", False, {"fileId": "other"}, "sd full"
    )

    assert command.error_message == "sd full"
    assert command.get_result() == {
        "fileId": "media/cam-001/clip.mp4",
        "fileRecordId": upload.record_id,
    }


@pytest.mark.asyncio
async def test_create_record_rejects_unknown_type(db_session, blob_storage, online_device):
    with pytest.raises(InvalidArgumentError):
        await FileService(db_session, blob_storage).create_record(
            online_device, FileRecordCreate(file_id="media/cam-001/x.gif", file_type="gif")
        )


@pytest.mark.asyncio
async def test_list_files_paged_newest_first(db_session, blob_storage, online_device):
    await _add_files(db_session, online_device, 5)
    await _add_files(db_session, online_device, 2, file_type="video")
    service = FileService(db_session, blob_storage)

    page = await service.list_files(
        OWNER_ID, FileQueryParams(device_id=online_device.device_id, file_type="photo", page_size=3)
    )

    assert page.total == 5
    assert page.has_more is True
    assert [f.file_name for f in page.files] == ["photo-4.jpg", "photo-3.jpg", "photo-2.jpg"]

    last = await service.list_files(
        OWNER_ID,
        FileQueryParams(device_id=online_device.device_id, file_type="photo", page=2, page_size=3),
    )
    assert len(last.files) == 2
    assert last.has_more is False


@pytest.mark.asyncio
async def test_list_files_swallows_url_failures(db_session, online_device):
    await _add_files(db_session, online_device, 2)

    page = await FileService(db_session, FailingStorage()).list_files(
        OWNER_ID, FileQueryParams(device_id=online_device.device_id)
    )

    assert page.total == 2
    assert all(f.temp_file_url is None for f in page.files)


@pytest.mark.asyncio
async def test_list_files_requires_ownership(db_session, blob_storage, online_device):
    with pytest.raises(NotFoundError):
        await FileService(db_session, blob_storage).list_files(
            OTHER_OWNER_ID, FileQueryParams(device_id=online_device.device_id)
        )


@pytest.mark.asyncio
async def test_delete_file_removes_blob_and_record(db_session, blob_storage, online_device):
    (record,) = await _add_files(db_session, online_device, 1)
    await blob_storage.put(record.file_id, b"jpeg")
    service = FileService(db_session, blob_storage)

    await service.delete_file(OWNER_ID, record.id)

    assert await service.get_by_id(record.id) is None
    assert not await blob_storage.exists(record.file_id)


@pytest.mark.asyncio
async def test_delete_file_proceeds_when_blob_delete_fails(db_session, online_device):
    (record,) = await _add_files(db_session, online_device, 1)
    service = FileService(db_session, FailingStorage())

    await service.delete_file(OWNER_ID, record.id)

    assert await service.get_by_id(record.id) is None


@pytest.mark.asyncio
async def test_delete_file_allowed_for_current_device_owner(db_session, blob_storage):
    device = await make_device(db_session, "cam-x", owner_id=OTHER_OWNER_ID)
    (record,) = await _add_files(db_session, device, 1)
    record.user_id = None
    await db_session.commit()
    service = FileService(db_session, blob_storage)

    with pytest.raises(NotFoundError):
        await service.delete_file(OWNER_ID, record.id)
    await service.delete_file(OTHER_OWNER_ID, record.id)
    assert await service.get_by_id(record.id) is None
