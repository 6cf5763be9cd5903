from __future__ import annotations
import uuid
from datetime import datetime
from typing import Any
from sqlalchemy import and_, or_, select
from workout_tracking.models import WorkoutSession, SessionStatus, TERMINAL_STATUSES
from workout_tracking.repositories.base import BaseRepository

class SessionRepository(BaseRepository[WorkoutSession]):
    model = WorkoutSession

    def list_terminal_by_user(
        self,
        user_id: str,
        *,
        limit: int,
        before: datetime | None = None,
        before_id: uuid.UUID | None = None,
    ) -> list[WorkoutSession]:
        stmt = select(WorkoutSession).where(
            WorkoutSession.user_id == user_id,
            WorkoutSession.status.in_(TERMINAL_STATUSES),
        )
        if before is not None and before_id is not None:
            # keyset on (started_at, id), matching the ORDER BY
            stmt = stmt.where(or_(
                WorkoutSession.started_at < before,
                and_(WorkoutSession.started_at == before, WorkoutSession.id < before_id),
            ))
        elif before is not None:
            stmt = stmt.where(WorkoutSession.started_at < before)
        stmt = stmt.order_by(WorkoutSession.started_at.desc(), WorkoutSession.id.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def create(
        self,
        user_id: str,
        *,
        coach_mode: str,
        metadata: dict[str, Any],
        started_at: datetime,
    ) -> WorkoutSession:
        sess = WorkoutSession(
            user_id=user_id,
            status=SessionStatus.in_progress.value,
            coach_mode=coach_mode,
            metadata_json=metadata,
            summary_json={},
            started_at=started_at,
        )
        self.db.add(sess)
        self.db.commit()
        self.db.refresh(sess)
        return sess

    def delete(self, session_id) -> None:
        sess = self.get(session_id)
        if sess is not None:
            self.db.delete(sess)
            self.db.commit()
