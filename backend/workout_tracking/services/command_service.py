"""
Command gate: idempotency ledger + optimistic concurrency around the reducer.

Flow per command:
  1. ledger lookup by (user, command_id); a hit replays the recorded result
  2. load the exercise (ownership via workout -> session), check expected version
  3. reduce, then conditional UPDATE ... WHERE payload_version = expected
  4. insert the ledger entry in the same transaction and commit

A lost compare-and-swap or a ledger collision rolls the unit of work back, so
each command_id produces exactly one version increment.
"""
from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from workout_tracking.errors import AlreadyExists, Forbidden, NotFound, SessionClosed, ValidationError, VersionConflict
from workout_tracking.models import SessionStatus, WorkoutActionLog, WorkoutExercise, WorkoutSession
from workout_tracking.repositories.action_log_repo import ActionLogRepository
from workout_tracking.repositories.exercise_repo import ExerciseRepository
from workout_tracking.repositories.session_repo import SessionRepository
from workout_tracking.repositories.workout_repo import WorkoutRepository
from workout_tracking.schemas.commands import Command, parse_command
from workout_tracking.schemas.exercise import ClientMeta, CommandResult
from workout_tracking.schemas.payload import ExerciseStatus, normalize_payload
from workout_tracking.services.reducer import ReducerResult, apply_command
from workout_tracking.timeutils import utcnow

logger = logging.getLogger(__name__)


class CommandService:
    def __init__(self, db: Session):
        self.db = db
        self.exercises = ExerciseRepository(db)
        self.ledger = ActionLogRepository(db)

    def load_owned_exercise(self, user_id: str, exercise_id: uuid.UUID) -> tuple[WorkoutExercise, WorkoutSession]:
        exercise = self.exercises.get(exercise_id)
        if exercise is None:
            raise NotFound("Exercise not found")
        workout = WorkoutRepository(self.db).get(exercise.workout_id)
        if workout is None:
            raise NotFound("Workout not found for exercise")
        session = SessionRepository(self.db).get(workout.session_id)
        if session is None or session.user_id != user_id:
            raise Forbidden("Exercise does not belong to this user")
        return exercise, session

    def apply(
        self,
        *,
        user_id: str,
        exercise_id: uuid.UUID,
        command_id: uuid.UUID,
        expected_version: int,
        command: Command | dict[str, Any],
        client_meta: ClientMeta | None = None,
        now: datetime | None = None,
    ) -> CommandResult:
        if isinstance(command, dict):
            command = parse_command(command)
        if isinstance(expected_version, bool) or not isinstance(expected_version, int) or expected_version < 1:
            raise ValidationError("expected_version must be a positive integer")
        client_meta = client_meta or ClientMeta()

        existing = self.ledger.get_by_command(user_id, command_id)
        if existing is not None:
            return self._replay(existing, exercise_id)

        exercise, session = self.load_owned_exercise(user_id, exercise_id)
        if session.status != SessionStatus.in_progress.value:
            raise SessionClosed(f"Session is {session.status}; exercises can no longer change")
        if exercise.payload_version != expected_version:
            logger.info(
                "version conflict exercise=%s expected=%s current=%s",
                exercise_id, expected_version, exercise.payload_version,
            )
            raise VersionConflict(exercise.payload_version, expected_version)

        applied_at = now or utcnow()
        result = apply_command(normalize_payload(exercise.payload_json), exercise.status, command, now=applied_at)
        payload_json = result.payload.model_dump(mode="json")
        next_version = expected_version + 1

        written = self.exercises.compare_and_swap(
            exercise.id,
            expected_version=expected_version,
            payload=payload_json,
            status=result.status.value,
            derived=_derived_fields(result),
            completed_at=_completed_at(exercise, result.status, applied_at),
        )
        if not written:
            self.db.rollback()
            return self._lost_race(user_id, command_id, exercise_id, expected_version)

        entry = WorkoutActionLog(
            user_id=user_id,
            session_id=session.id,
            workout_id=exercise.workout_id,
            exercise_id=exercise.id,
            command_id=command_id,
            action_type=command.type,
            resulting_version=next_version,
            resulting_status=result.status.value,
            action_payload_json={
                "command": command.model_dump(mode="json"),
                "expected_version": expected_version,
                "resulting_version": next_version,
                "resulting_status": result.status.value,
                "payload": payload_json,
            },
            source_screen=client_meta.source_screen,
            app_version=client_meta.app_version,
            device_id=client_meta.device_id,
            correlation_id=client_meta.correlation_id,
            client_timestamp=client_meta.client_timestamp,
        )
        try:
            self.ledger.insert(entry)
        except AlreadyExists:
            # a concurrent request with the same command_id committed first
            logger.info("ledger collision for command_id=%s; replaying winner", command_id)
            return self._lost_race(user_id, command_id, exercise_id, expected_version)

        self.db.commit()
        logger.debug("applied %s to exercise=%s -> v%s %s", command.type, exercise_id, next_version, result.status.value)
        return CommandResult(
            exercise_id=exercise.id,
            payload_version=next_version,
            status=result.status.value,
            payload=payload_json,
        )

    def _replay(self, entry: WorkoutActionLog, exercise_id: uuid.UUID) -> CommandResult:
        if entry.exercise_id != exercise_id:
            raise ValidationError("command_id was already used for a different exercise")
        logger.info("replaying command_id=%s (v%s)", entry.command_id, entry.resulting_version)
        return CommandResult(
            exercise_id=entry.exercise_id,
            payload_version=entry.resulting_version,
            status=entry.resulting_status,
            payload=entry.action_payload_json["payload"],
        )

    def _lost_race(
        self, user_id: str, command_id: uuid.UUID, exercise_id: uuid.UUID, expected_version: int
    ) -> CommandResult:
        winner = self.ledger.get_by_command(user_id, command_id)
        if winner is not None:
            return self._replay(winner, exercise_id)
        current = self.exercises.current_version(exercise_id)
        if current is None:
            raise NotFound("Exercise not found")
        raise VersionConflict(current, expected_version)


def _derived_fields(result: ReducerResult) -> dict[str, Any]:
    m = result.metrics
    return {
        "exercise_name": m.exercise_name,
        "exercise_rpe": m.exercise_rpe,
        "total_reps": m.total_reps,
        "volume": m.volume,
        "duration_sec": m.duration_sec,
    }


def _completed_at(exercise: WorkoutExercise, status: ExerciseStatus, applied_at: datetime) -> datetime | None:
    if status is not ExerciseStatus.completed:
        return None
    if exercise.status == ExerciseStatus.completed.value and exercise.completed_at is not None:
        return exercise.completed_at
    return applied_at
