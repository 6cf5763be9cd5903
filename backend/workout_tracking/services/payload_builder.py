"""Turn an (untrusted) generator exercise proposal into an initial payload."""
from __future__ import annotations
import math
from typing import Any

from workout_tracking.schemas.payload import (
    CURRENT_SCHEMA_VERSION,
    MAX_DISTANCE_KM,
    MAX_LOAD,
    MAX_REPS,
    MAX_SECONDS,
    MAX_SETS,
    ExerciseType,
    Payload,
    PerformanceSet,
    PrescriptionSet,
)

DEFAULT_EXERCISE_NAME = "Exercise"


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _count(value: Any, cap: int) -> int | None:
    n = _number(value)
    return None if n is None else min(cap, max(0, round(n)))


def _amount(value: Any, cap: float) -> float | None:
    n = _number(value)
    return None if n is None else min(cap, max(0.0, n))


def _at(values: Any, i: int) -> Any:
    if isinstance(values, list) and i < len(values):
        return values[i]
    return None


def _length(values: Any) -> int:
    return len(values) if isinstance(values, list) else 0


def infer_exercise_type(proposal: dict[str, Any]) -> ExerciseType:
    raw = proposal.get("exercise_type") or proposal.get("type") or ""
    try:
        return ExerciseType(str(raw).lower())
    except ValueError:
        return ExerciseType.reps


def infer_set_count(proposal: dict[str, Any], kind: ExerciseType) -> int:
    explicit = _count(proposal.get("sets"), MAX_SETS)
    if explicit is not None:
        return max(1, explicit)
    if kind is ExerciseType.intervals:
        rounds = _count(proposal.get("rounds"), MAX_SETS)
        if rounds is not None:
            return max(1, rounds)
    if kind is ExerciseType.duration:
        return 1
    longest = max(
        _length(proposal.get("reps")),
        _length(proposal.get("load_each")),
        _length(proposal.get("hold_duration_sec")),
    )
    return min(MAX_SETS, max(1, longest))


def _target_load(load_each: Any, i: int) -> float | None:
    load = _amount(_at(load_each, i), MAX_LOAD)
    if load is None and _length(load_each) == 1:
        # one load given for the whole exercise
        load = _amount(load_each[0], MAX_LOAD)
    return load


def _prescription_set(proposal: dict[str, Any], kind: ExerciseType, i: int, load_unit: str | None) -> PrescriptionSet:
    target = PrescriptionSet(load_unit=load_unit)
    if kind is ExerciseType.reps:
        target.target_reps = _count(_at(proposal.get("reps"), i), MAX_REPS)
        target.target_load = _target_load(proposal.get("load_each"), i)
    elif kind is ExerciseType.hold:
        target.target_duration_sec = _count(_at(proposal.get("hold_duration_sec"), i), MAX_SECONDS)
    elif kind is ExerciseType.duration:
        minutes = _count(proposal.get("duration_min"), MAX_SECONDS // 60)
        target.target_duration_sec = None if minutes is None else minutes * 60
        target.target_distance_km = _amount(proposal.get("distance_km"), MAX_DISTANCE_KM)
    elif kind is ExerciseType.intervals:
        target.target_duration_sec = _count(proposal.get("work_sec"), MAX_SECONDS)
    return target


def build_initial_payload(proposal: dict[str, Any] | None) -> Payload:
    proposal = proposal if isinstance(proposal, dict) else {}
    kind = infer_exercise_type(proposal)
    set_count = infer_set_count(proposal, kind)
    load_unit = proposal.get("load_unit") if isinstance(proposal.get("load_unit"), str) else None

    name = proposal.get("exercise_name") or proposal.get("name")
    if not isinstance(name, str) or not name.strip():
        name = DEFAULT_EXERCISE_NAME

    prescription = [_prescription_set(proposal, kind, i, load_unit) for i in range(set_count)]
    performance = [PerformanceSet(load_unit=load_unit) for _ in prescription]

    return Payload.model_validate({
        "schema_version": CURRENT_SCHEMA_VERSION,
        "identity": {"name": name.strip(), "type": kind},
        "prescription": {
            "sets": [s.model_dump() for s in prescription],
            "rest_seconds": _count(proposal.get("rest_seconds"), MAX_SECONDS),
        },
        "performance": {
            "sets": [s.model_dump() for s in performance],
            "exercise_rpe": None,
            "notes": None,
        },
        "flags": {"pain": False, "modified": False, "skip_reason": None},
    })
