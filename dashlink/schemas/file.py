"""File record schemas for API request/response."""

from datetime import datetime

from pydantic import BaseModel, Field


class FileRecordCreate(BaseModel):
    """File metadata reported by a device after uploading a blob."""

    file_id: str = Field(..., min_length=1, max_length=1024, alias="fileId")
    file_name: str | None = Field(None, max_length=255, alias="fileName")
    file_type: str = Field(..., alias="fileType")
    file_size: int = Field(0, ge=0, alias="fileSize")
    duration: int | None = Field(None, ge=0)
    thumb_file_id: str | None = Field(None, max_length=1024, alias="thumbFileId")
    command_id: str | None = Field(None, max_length=64, alias="commandId")

    model_config = {"populate_by_name": True}


class FileRecordCreated(BaseModel):
    """Upload acknowledgement."""

    record_id: str = Field(..., alias="recordId")
    temp_file_url: str | None = Field(None, alias="tempFileUrl")
    thumb_url: str | None = Field(None, alias="thumbUrl")
    message: str = "file record saved"

    model_config = {"populate_by_name": True}


class FileDTO(BaseModel):
    """File list item."""

    id: str
    file_id: str = Field(..., alias="fileId")
    file_name: str = Field(..., alias="fileName")
    file_type: str = Field(..., alias="fileType")
    file_size: int = Field(0, alias="fileSize")
    duration: int | None = None
    command_id: str | None = Field(None, alias="commandId")
    created_at: datetime = Field(..., alias="createdAt")
    temp_file_url: str | None = Field(None, alias="tempFileUrl")
    thumb_url: str | None = Field(None, alias="thumbUrl")

    model_config = {"populate_by_name": True}


class FileQueryParams(BaseModel):
    """File list query parameters."""

    device_id: str = Field(..., min_length=1, alias="deviceId")
    file_type: str | None = Field(None, alias="fileType")
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100, alias="pageSize")

    model_config = {"populate_by_name": True}


class FilePagedResponse(BaseModel):
    """Paged file list."""

    files: list[FileDTO]
    total: int
    page: int
    page_size: int = Field(..., alias="pageSize")
    has_more: bool = Field(..., alias="hasMore")

    model_config = {"populate_by_name": True}
