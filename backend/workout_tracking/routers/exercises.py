import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from workout_tracking.db import get_db
from workout_tracking.deps.auth import get_current_user_id
from workout_tracking.schemas.exercise import CommandRequest, CommandResult
from workout_tracking.services.command_service import CommandService

router = APIRouter(prefix="/workout-exercises", tags=["exercises"])

@router.post("/{exercise_id}/commands", response_model=CommandResult)
def apply_command(
    exercise_id: uuid.UUID,
    payload: CommandRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    # replays return the recorded result with the same 200
    return CommandService(db).apply(
        user_id=user_id,
        exercise_id=exercise_id,
        command_id=payload.command_id,
        expected_version=payload.expected_version,
        command=payload.command,
        client_meta=payload.client_meta,
    )
