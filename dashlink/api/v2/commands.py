"""Command API endpoints for the issuing client."""

from fastapi import APIRouter

from dashlink.core.deps import CurrentOwner, DBSession
from dashlink.schemas.command import CommandCreate, CommandDTO, CommandEnqueued
from dashlink.services.command_service import CommandService

router = APIRouter()


@router.post("", response_model=CommandEnqueued)
async def enqueue_command(
    data: CommandCreate,
    owner_id: CurrentOwner,
    db: DBSession,
) -> CommandEnqueued:
    """
    Queue a command for a bound, online device.

    - **deviceId**: Target device
    - **command**: capture_photo, record, begin_continuous_record,
      end_continuous_record, query_status, begin_preview or end_preview
    - **params**: Command parameters (``duration`` for record)
    """
    command_service = CommandService(db)
    command = await command_service.enqueue(owner_id, data)
    return CommandEnqueued(command_id=command.command_id)


@router.get("/{command_id}", response_model=CommandDTO)
async def get_command(
    command_id: str,
    owner_id: CurrentOwner,
    db: DBSession,
) -> CommandDTO:
    """Current status and result of a command the caller issued."""
    command_service = CommandService(db)
    command = await command_service.get_for_owner(owner_id, command_id)
    return command_service.to_dto(command)
