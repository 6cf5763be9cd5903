"""
Session lifecycle: create (seeded by the generator), detail, finalize, history.
"""
from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from workout_tracking.errors import Forbidden, GeneratorError, NotFound, SessionClosed, ValidationError
from workout_tracking.models import SessionStatus, Workout, WorkoutExercise, WorkoutSession
from workout_tracking.repositories.base import CursorPage
from workout_tracking.repositories.exercise_repo import ExerciseRepository
from workout_tracking.repositories.session_repo import SessionRepository
from workout_tracking.repositories.workout_repo import WorkoutRepository
from workout_tracking.schemas.exercise import ExerciseRead
from workout_tracking.schemas.generator import GeneratedWorkout
from workout_tracking.schemas.payload import ExerciseStatus, normalize_payload
from workout_tracking.schemas.session import (
    HistoryItem,
    Reflection,
    SessionCreate,
    SessionDetail,
    SessionRead,
    SessionSummary,
    WorkoutRead,
)
from workout_tracking.services.generator import WorkoutGenerator
from workout_tracking.services.instance_view import to_instance
from workout_tracking.services.payload_builder import build_initial_payload
from workout_tracking.services.reducer import derive_metrics
from workout_tracking.settings import get_settings
from workout_tracking.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

DEFAULT_STOP_REASON = "user_stopped"
DEFAULT_NEXT_FOCUS = "Continue progressive training next session."


def _constraints(req: SessionCreate) -> dict[str, Any]:
    return {
        "intent": req.intent or "planned",
        "request_text": req.request_text,
        "time_available_min": req.time_available_min,
        "equipment": req.equipment,
        "planned_session": req.planned_session,
        "planned_intent_original": req.planned_intent_original,
        "planned_intent_edited": req.planned_intent_edited,
    }


def _session_metadata(req: SessionCreate) -> dict[str, Any]:
    metadata = dict(req.metadata)
    if req.calendar_event_id:
        metadata["calendar_event_id"] = str(req.calendar_event_id)
    if req.planned_session_id:
        metadata["planned_session_id"] = str(req.planned_session_id)
    if req.planned_intent_original:
        metadata["planned_intent_original"] = req.planned_intent_original
    if req.planned_intent_edited:
        metadata["planned_intent_edited"] = req.planned_intent_edited
    return metadata


def exercise_rows_from_instance(instance: GeneratedWorkout) -> list[dict[str, Any]]:
    rows = []
    for order, proposal in enumerate(instance.exercises):
        payload = build_initial_payload(proposal)
        metrics = derive_metrics(payload)
        rows.append({
            "exercise_order": order,
            "exercise_type": payload.identity.type.value,
            "status": ExerciseStatus.pending.value,
            "payload_json": payload.model_dump(mode="json"),
            "payload_version": 1,
            "exercise_name": metrics.exercise_name,
            "exercise_rpe": metrics.exercise_rpe,
            "total_reps": metrics.total_reps,
            "volume": metrics.volume,
            "duration_sec": metrics.duration_sec,
        })
    return rows


def build_summary(
    workout: Workout | None,
    exercises: list[WorkoutExercise],
    reflection: Reflection,
    *,
    stop_reason: str | None = None,
) -> SessionSummary:
    completed = sum(1 for ex in exercises if ex.status == ExerciseStatus.completed.value)
    skipped = sum(1 for ex in exercises if ex.status == ExerciseStatus.skipped.value)
    total_sets = sum(
        1
        for ex in exercises
        for s in normalize_payload(ex.payload_json).performance.sets
        if s.has_actuals()
    )

    wins = []
    if completed:
        wins.append(f"Completed {completed} of {len(exercises)} exercises.")
    if total_sets:
        wins.append(f"Logged {total_sets} completed sets.")

    return SessionSummary(
        title=(workout.title if workout else None) or "Workout complete",
        exercises_completed=completed,
        exercises_skipped=skipped,
        exercises_resolved=completed + skipped,
        total_exercises=len(exercises),
        total_sets=total_sets,
        overall_rpe=reflection.rpe,
        pain_notes=reflection.pain or None,
        wins=wins or ["Workout tracked successfully."],
        next_session_focus=reflection.notes or DEFAULT_NEXT_FOCUS,
        stop_reason=stop_reason,
    )


class SessionService:
    def __init__(self, db: Session, generator: WorkoutGenerator | None = None):
        self.db = db
        self.generator = generator
        self.sessions = SessionRepository(db)
        self.workouts = WorkoutRepository(db)
        self.exercises = ExerciseRepository(db)

    def _owned_session(self, user_id: str, session_id: uuid.UUID) -> WorkoutSession:
        sess = self.sessions.get(session_id)
        if sess is None:
            raise NotFound("Session not found")
        if sess.user_id != user_id:
            raise Forbidden("Session does not belong to this user")
        return sess

    # CREATE
    def create_session(self, user_id: str, req: SessionCreate) -> SessionDetail:
        if self.generator is None:
            raise RuntimeError("SessionService.create_session needs a generator")

        sess = self.sessions.create(
            user_id,
            coach_mode=req.coach_mode,
            metadata=_session_metadata(req),
            started_at=utcnow(),
        )
        session_id = sess.id
        try:
            raw = self.generator.generate(user_id, _constraints(req))
            if not isinstance(raw, dict):
                raise GeneratorError("Workout generator returned an unexpected shape")
            instance = GeneratedWorkout.model_validate(raw)
            self.workouts.create_with_exercises(
                session_id,
                title=instance.title,
                workout_type=instance.focus[0] if instance.focus else req.intent,
                planned_duration_min=instance.estimated_duration_min,
                exercise_rows=exercise_rows_from_instance(instance),
            )
            detail = self.get_session_detail(user_id, session_id)
        except Exception:
            logger.warning("session %s creation failed; rolling back", session_id, exc_info=True)
            self.db.rollback()
            self.sessions.delete(session_id)
            raise

        logger.info("created session %s for user %s", session_id, user_id)
        return detail

    # READ
    def get_session_detail(self, user_id: str, session_id: uuid.UUID) -> SessionDetail:
        sess = self._owned_session(user_id, session_id)
        workout = self.workouts.get_by_session(sess.id)
        exercises = self.exercises.list_by_workout(workout.id) if workout else []
        return SessionDetail(
            session=SessionRead.model_validate(sess),
            workout=WorkoutRead.model_validate(workout) if workout else None,
            exercises=[ExerciseRead.model_validate(ex) for ex in exercises],
            instance=to_instance(workout, exercises) if workout else None,
            instance_version=1 if workout else None,
        )

    # FINALIZE
    def finalize_session(
        self,
        user_id: str,
        session_id: uuid.UUID,
        *,
        mode: str = "complete",
        reflection: Reflection | None = None,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> SessionSummary:
        if mode not in ("complete", "stop"):
            raise ValidationError(f"unknown finalize mode {mode!r}")
        reflection = reflection or Reflection()
        sess = self._owned_session(user_id, session_id)
        if sess.status != SessionStatus.in_progress.value:
            raise SessionClosed(f"Session is already {sess.status}")

        workout = self.workouts.get_by_session(sess.id)
        exercises = self.exercises.list_by_workout(workout.id) if workout else []
        stop_reason = (reason or DEFAULT_STOP_REASON) if mode == "stop" else None
        summary = build_summary(workout, exercises, reflection, stop_reason=stop_reason)

        finished_at = now or utcnow()
        sess.status = SessionStatus.stopped.value if mode == "stop" else SessionStatus.completed.value
        sess.completed_at = finished_at
        sess.session_rpe = reflection.rpe
        sess.notes = reflection.notes
        sess.summary_json = summary.model_dump(mode="json")
        if workout is not None:
            started = as_utc(sess.started_at)
            elapsed = (finished_at - started).total_seconds() if started else None
            workout.actual_duration_min = None if elapsed is None else max(0, round(elapsed / 60))
        self.db.commit()

        logger.info("session %s finalized as %s", sess.id, sess.status)
        return summary

    # HISTORY
    def list_history(self, user_id: str, *, limit: int | None = None, cursor: str | None = None) -> CursorPage[HistoryItem]:
        settings = get_settings()
        safe_limit = max(1, min(limit or settings.HISTORY_DEFAULT_LIMIT, settings.HISTORY_MAX_LIMIT))
        before, before_id = _parse_cursor(cursor)

        rows = self.sessions.list_terminal_by_user(
            user_id, limit=safe_limit + 1, before=before, before_id=before_id
        )
        has_more = len(rows) > safe_limit
        page = rows[:safe_limit]
        if not page:
            return CursorPage(items=[], next_cursor=None)

        workouts = {w.session_id: w for w in self.workouts.list_by_sessions(s.id for s in page)}
        by_workout: dict[uuid.UUID, list[WorkoutExercise]] = {}
        for ex in self.exercises.list_by_workouts(w.id for w in workouts.values()):
            by_workout.setdefault(ex.workout_id, []).append(ex)

        items = []
        for s in page:
            workout = workouts.get(s.id)
            exercises = by_workout.get(workout.id, []) if workout else []
            items.append(HistoryItem(
                session_id=s.id,
                status=s.status,
                started_at=as_utc(s.started_at),
                completed_at=as_utc(s.completed_at),
                title=workout.title if workout else "Workout",
                workout_type=workout.workout_type if workout else None,
                planned_duration_min=workout.planned_duration_min if workout else None,
                actual_duration_min=workout.actual_duration_min if workout else None,
                exercise_count=len(exercises),
                completed_exercise_count=sum(1 for ex in exercises if ex.status == ExerciseStatus.completed.value),
                skipped_exercise_count=sum(1 for ex in exercises if ex.status == ExerciseStatus.skipped.value),
                total_volume=round(sum(float(ex.volume or 0) for ex in exercises)),
                session_rpe=s.session_rpe,
            ))

        next_cursor = _make_cursor(page[-1]) if has_more else None
        return CursorPage(items=items, next_cursor=next_cursor)


CURSOR_SEP = "|"


def _make_cursor(sess: WorkoutSession) -> str:
    return f"{as_utc(sess.started_at).isoformat()}{CURSOR_SEP}{sess.id}"


def _parse_cursor(cursor: str | None) -> tuple[datetime | None, uuid.UUID | None]:
    """Accepts `<started_at>|<session id>`, or a bare timestamp from older clients."""
    if not cursor:
        return None, None
    stamp, _, raw_id = cursor.partition(CURSOR_SEP)
    try:
        parsed = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
        before_id = uuid.UUID(raw_id) if raw_id else None
    except ValueError:
        raise ValidationError("cursor must be `<ISO-8601 timestamp>|<session id>`")
    return as_utc(parsed), before_id
