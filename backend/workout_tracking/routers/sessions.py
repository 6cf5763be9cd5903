import uuid
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from workout_tracking.db import get_db
from workout_tracking.deps.auth import get_current_user_id
from workout_tracking.schemas.session import (
    CompleteRequest,
    SessionCreate,
    SessionDetail,
    SessionSummary,
    StopRequest,
)
from workout_tracking.services.generator import WorkoutGenerator, get_generator
from workout_tracking.services.session_service import SessionService

router = APIRouter(prefix="/workout-sessions", tags=["sessions"])

@router.post("", response_model=SessionDetail, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: SessionCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    generator: WorkoutGenerator = Depends(get_generator),
):
    return SessionService(db, generator).create_session(user_id, payload)

@router.get("/{session_id}", response_model=SessionDetail)
def get_session(
    session_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return SessionService(db).get_session_detail(user_id, session_id)

@router.post("/{session_id}/complete", response_model=SessionSummary)
def complete_session(
    session_id: uuid.UUID,
    payload: CompleteRequest | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    payload = payload or CompleteRequest()
    return SessionService(db).finalize_session(
        user_id, session_id, mode="complete", reflection=payload.reflection
    )

@router.post("/{session_id}/stop", response_model=SessionSummary)
def stop_session(
    session_id: uuid.UUID,
    payload: StopRequest | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    payload = payload or StopRequest()
    return SessionService(db).finalize_session(
        user_id, session_id, mode="stop", reflection=payload.reflection, reason=payload.reason
    )
