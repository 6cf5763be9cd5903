"""
Pure command reducer: (payload, status, command) -> (payload, status, metrics).

No I/O and no store access. The only ambient input is the clock, and callers
that need determinism pass ``now`` explicitly.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone

from workout_tracking.errors import InvalidSetIndex
from workout_tracking.schemas.commands import (
    AdjustRestSeconds,
    Command,
    CompleteExercise,
    CompleteSet,
    ReopenExercise,
    SetExerciseNote,
    SetExerciseRpe,
    SkipExercise,
    UnskipExercise,
    UpdateSetActual,
    UpdateSetTarget,
)
from workout_tracking.schemas.payload import CURRENT_SCHEMA_VERSION, ExerciseStatus, Payload

DEFAULT_SKIP_REASON = "user_skipped"


@dataclass(frozen=True, slots=True)
class ExerciseMetrics:
    exercise_name: str
    exercise_rpe: int | None
    total_reps: int
    volume: float
    duration_sec: int


@dataclass(frozen=True, slots=True)
class ReducerResult:
    payload: Payload
    status: ExerciseStatus
    metrics: ExerciseMetrics


def derive_status(payload: Payload, current_status: ExerciseStatus | str) -> ExerciseStatus:
    if ExerciseStatus(current_status) is ExerciseStatus.skipped:
        return ExerciseStatus.skipped

    sets = payload.performance.sets
    done = sum(1 for s in sets if s.has_actuals())
    if done == 0:
        return ExerciseStatus.pending
    if done >= len(sets):
        return ExerciseStatus.completed
    return ExerciseStatus.in_progress


def derive_metrics(payload: Payload) -> ExerciseMetrics:
    total_reps = 0
    volume = 0.0
    duration_sec = 0
    set_rpes: list[int] = []

    for s in payload.performance.sets:
        reps = s.actual_reps or 0
        total_reps += reps
        volume += reps * (s.actual_load or 0)
        duration_sec += s.actual_duration_sec or 0
        if s.rpe is not None:
            set_rpes.append(s.rpe)

    exercise_rpe = payload.performance.exercise_rpe
    if exercise_rpe is None and set_rpes:
        # round half up, matching what clients display
        exercise_rpe = int(sum(set_rpes) / len(set_rpes) + 0.5)

    return ExerciseMetrics(
        exercise_name=payload.identity.name,
        exercise_rpe=exercise_rpe,
        total_reps=total_reps,
        volume=volume,
        duration_sec=duration_sec,
    )


def _check_set_index(payload: Payload, set_index: int) -> None:
    count = len(payload.performance.sets)
    if set_index < 0 or set_index >= count:
        raise InvalidSetIndex(set_index, count)


def _write_actuals(payload: Payload, cmd: CompleteSet | UpdateSetActual) -> None:
    target = payload.performance.sets[cmd.set_index]
    for field in ("actual_reps", "actual_load", "load_unit", "actual_duration_sec", "actual_distance_km", "rpe"):
        value = getattr(cmd, field)
        if value is not None:
            setattr(target, field, value)


def apply_command(
    payload: Payload,
    status: ExerciseStatus | str,
    command: Command,
    *,
    now: datetime | None = None,
) -> ReducerResult:
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    current = ExerciseStatus(status)
    nxt = payload.model_copy(deep=True)
    next_status: ExerciseStatus | None = None  # None -> derive from performance

    match command:
        case CompleteSet():
            _check_set_index(nxt, command.set_index)
            _write_actuals(nxt, command)
            nxt.performance.sets[command.set_index].completed_at = stamp

        case UpdateSetActual():
            _check_set_index(nxt, command.set_index)
            _write_actuals(nxt, command)
            target = nxt.performance.sets[command.set_index]
            if target.has_actuals() and target.completed_at is None:
                target.completed_at = stamp

        case UpdateSetTarget():
            _check_set_index(nxt, command.set_index)
            target = nxt.prescription.sets[command.set_index]
            for field in ("target_reps", "target_load", "load_unit", "target_duration_sec", "target_distance_km"):
                value = getattr(command, field)
                if value is not None:
                    setattr(target, field, value)
            nxt.flags.modified = True

        case SetExerciseRpe():
            nxt.performance.exercise_rpe = command.rpe

        case SetExerciseNote():
            nxt.performance.notes = command.notes

        case SkipExercise():
            nxt.flags.skip_reason = command.reason or DEFAULT_SKIP_REASON
            next_status = ExerciseStatus.skipped

        case UnskipExercise():
            nxt.flags.skip_reason = None
            next_status = derive_status(nxt, ExerciseStatus.pending)

        case CompleteExercise():
            for s in nxt.performance.sets:
                if s.completed_at is None and s.has_actuals():
                    s.completed_at = stamp
            next_status = ExerciseStatus.completed

        case ReopenExercise():
            next_status = derive_status(nxt, ExerciseStatus.pending)

        case AdjustRestSeconds():
            nxt.prescription.rest_seconds = command.rest_seconds
            nxt.flags.modified = True

        case _:
            raise TypeError(f"Unsupported command: {type(command).__name__}")

    if next_status is None:
        next_status = derive_status(nxt, current)
    elif current is ExerciseStatus.skipped and not isinstance(command, UnskipExercise):
        # skipped only leaves through an explicit unskip
        next_status = ExerciseStatus.skipped

    nxt.schema_version = CURRENT_SCHEMA_VERSION
    # re-validate so a transform can never persist an out-of-shape document
    nxt = Payload.model_validate(nxt.model_dump())
    return ReducerResult(payload=nxt, status=next_status, metrics=derive_metrics(nxt))
