from __future__ import annotations
from typing import Any, Iterable
from sqlalchemy import select
from workout_tracking.models import Workout, WorkoutExercise
from workout_tracking.repositories.base import BaseRepository

class WorkoutRepository(BaseRepository[Workout]):
    model = Workout

    def get_by_session(self, session_id) -> Workout | None:
        stmt = select(Workout).where(Workout.session_id == session_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_by_sessions(self, session_ids: Iterable) -> list[Workout]:
        ids = list(session_ids)
        if not ids:
            return []
        stmt = select(Workout).where(Workout.session_id.in_(ids))
        return list(self.db.execute(stmt).scalars().all())

    def create_with_exercises(
        self,
        session_id,
        *,
        title: str,
        workout_type: str | None,
        planned_duration_min: int | None,
        exercise_rows: list[dict[str, Any]],
    ) -> Workout:
        """Workout and its exercise rows land in one commit."""
        workout = Workout(
            session_id=session_id,
            title=title,
            workout_type=workout_type,
            planned_duration_min=planned_duration_min,
        )
        self.db.add(workout)
        self.db.flush()
        self.db.add_all(WorkoutExercise(workout_id=workout.id, **row) for row in exercise_rows)
        self.db.commit()
        self.db.refresh(workout)
        return workout
