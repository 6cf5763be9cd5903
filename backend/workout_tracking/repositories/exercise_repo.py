from __future__ import annotations
from datetime import datetime
from typing import Any, Iterable
from sqlalchemy import select, update
from workout_tracking.models import WorkoutExercise
from workout_tracking.repositories.base import BaseRepository

class ExerciseRepository(BaseRepository[WorkoutExercise]):
    model = WorkoutExercise

    def list_by_workout(self, workout_id) -> list[WorkoutExercise]:
        stmt = (
            select(WorkoutExercise)
            .where(WorkoutExercise.workout_id == workout_id)
            .order_by(WorkoutExercise.exercise_order.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_by_workouts(self, workout_ids: Iterable) -> list[WorkoutExercise]:
        ids = list(workout_ids)
        if not ids:
            return []
        stmt = (
            select(WorkoutExercise)
            .where(WorkoutExercise.workout_id.in_(ids))
            .order_by(WorkoutExercise.workout_id, WorkoutExercise.exercise_order.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def current_version(self, exercise_id) -> int | None:
        stmt = select(WorkoutExercise.payload_version).where(WorkoutExercise.id == exercise_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def compare_and_swap(
        self,
        exercise_id,
        *,
        expected_version: int,
        payload: dict[str, Any],
        status: str,
        derived: dict[str, Any],
        completed_at: datetime | None,
    ) -> bool:
        """
        Single-statement conditional write: only lands if the stored version
        still equals ``expected_version``. Does not commit; the caller commits
        together with the ledger entry. Returns False when another writer won.
        """
        stmt = (
            update(WorkoutExercise)
            .where(
                WorkoutExercise.id == exercise_id,
                WorkoutExercise.payload_version == expected_version,
            )
            .values(
                payload_json=payload,
                payload_version=expected_version + 1,
                status=status,
                completed_at=completed_at,
                **derived,
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1
