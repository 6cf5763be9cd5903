from __future__ import annotations
import uuid
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from workout_tracking.errors import AlreadyExists
from workout_tracking.models import WorkoutActionLog
from workout_tracking.repositories.base import BaseRepository

class ActionLogRepository(BaseRepository[WorkoutActionLog]):
    """Append-only; the unique (user_id, command_id) constraint is the idempotency guarantee."""
    model = WorkoutActionLog

    def get_by_command(self, user_id: str, command_id: uuid.UUID) -> WorkoutActionLog | None:
        stmt = select(WorkoutActionLog).where(
            WorkoutActionLog.user_id == user_id,
            WorkoutActionLog.command_id == command_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def insert(self, entry: WorkoutActionLog) -> WorkoutActionLog:
        """Flush (not commit) the entry. A collision rolls back the whole unit of work."""
        try:
            return self.add_and_refresh(entry)
        except IntegrityError:
            self.db.rollback()
            raise AlreadyExists(str(entry.command_id))
