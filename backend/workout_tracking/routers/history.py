from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from workout_tracking.db import get_db
from workout_tracking.deps.auth import get_current_user_id
from workout_tracking.schemas.session import HistoryPage
from workout_tracking.services.session_service import SessionService

router = APIRouter(prefix="/workout-history", tags=["history"])

@router.get("", response_model=HistoryPage)
def list_history(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    limit: int = Query(20, ge=1, le=200),
    cursor: str | None = Query(None, max_length=128),
):
    page = SessionService(db).list_history(user_id, limit=limit, cursor=cursor)
    return HistoryPage(items=page.items, next_cursor=page.next_cursor)
