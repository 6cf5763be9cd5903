"""Legacy flat "workout instance" view, still consumed by older clients."""
from __future__ import annotations
from typing import Any

from workout_tracking.models import Workout, WorkoutExercise
from workout_tracking.schemas.payload import ExerciseType, normalize_payload
from workout_tracking.timeutils import utcnow


def exercise_to_instance_item(row: WorkoutExercise) -> dict[str, Any]:
    payload = normalize_payload(row.payload_json)
    kind = payload.identity.type
    sets = payload.prescription.sets
    first = sets[0]

    reps = [s.target_reps for s in sets if s.target_reps is not None]
    loads = [s.target_load for s in sets if s.target_load is not None]
    holds = [s.target_duration_sec for s in sets if s.target_duration_sec is not None]
    minutes = round(first.target_duration_sec / 60) if first.target_duration_sec is not None else None

    return {
        "id": str(row.id),
        "exercise_name": payload.identity.name,
        "exercise_type": kind.value,
        "sets": 1 if kind is ExerciseType.duration else len(sets),
        "reps": reps or None,
        "load_each": loads or None,
        "load_unit": first.load_unit,
        "hold_duration_sec": (holds or None) if kind is ExerciseType.hold else None,
        "duration_min": minutes if kind is ExerciseType.duration else None,
        "distance_km": first.target_distance_km,
        "rounds": len(sets) if kind is ExerciseType.intervals else None,
        "work_sec": first.target_duration_sec if kind is ExerciseType.intervals else None,
        "total_duration_min": minutes if kind is ExerciseType.duration else None,
        "rest_seconds": payload.prescription.rest_seconds,
    }


def to_instance(workout: Workout, exercises: list[WorkoutExercise]) -> dict[str, Any]:
    return {
        "title": workout.title or "Workout",
        "estimated_duration_min": workout.planned_duration_min,
        "focus": [workout.workout_type] if workout.workout_type else [],
        "exercises": [exercise_to_instance_item(row) for row in exercises],
        "metadata": {"generated_at": utcnow().isoformat()},
    }
