"""Command schemas for API request/response."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class CommandCreate(BaseModel):
    """Command enqueue schema.

    ``command`` is a free string here; the service validates it against the
    closed set so an unsupported kind answers InvalidArgument rather than 422.
    """

    device_id: str = Field(..., min_length=1, max_length=255, alias="deviceId")
    command: str = Field(..., min_length=1, max_length=64)
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


class CommandEnqueued(BaseModel):
    """Enqueue acknowledgement."""

    command_id: str = Field(..., alias="commandId")
    message: str = "command queued"

    model_config = {"populate_by_name": True}


class CommandDTO(BaseModel):
    """Full command view for the issuing client."""

    command_id: str = Field(..., alias="commandId")
    device_id: str = Field(..., alias="deviceId")
    command: str
    params: dict[str, Any] = Field(default_factory=dict)
    status: str
    result: Any = None
    error_message: str | None = Field(None, alias="errorMessage")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    completed_at: datetime | None = Field(None, alias="completedAt")

    model_config = {"populate_by_name": True}


class ClaimedCommand(BaseModel):
    """Command as handed to the device on poll."""

    command_id: str = Field(..., alias="commandId")
    command: str
    params: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(..., alias="createdAt")

    model_config = {"populate_by_name": True}


class PollRequest(BaseModel):
    """Device poll; limit is capped by the server batch bound."""

    limit: int | None = Field(None, ge=1)


class PollResponse(BaseModel):
    """Commands claimed by this poll."""

    commands: list[ClaimedCommand]


class CommandResultReport(BaseModel):
    """Device-reported execution outcome."""

    command_id: str = Field(..., min_length=1, alias="commandId")
    success: bool
    result: Any = None
    error_message: str | None = Field(None, alias="errorMessage")

    model_config = {"populate_by_name": True}


class CommandResultAck(BaseModel):
    """Result report acknowledgement."""

    command_id: str = Field(..., alias="commandId")
    status: str
    message: str = "result recorded"

    model_config = {"populate_by_name": True}
