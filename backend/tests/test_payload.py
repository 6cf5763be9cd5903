import pytest

from workout_tracking.errors import UnsupportedSchemaVersion, ValidationError
from workout_tracking.schemas.payload import (
    CURRENT_SCHEMA_VERSION,
    MAX_LOAD,
    MAX_REPS,
    MAX_SECONDS,
    MAX_SETS,
    ExerciseType,
    normalize_payload,
)
from workout_tracking.services.payload_builder import build_initial_payload


def test_reps_exercise_set_count_from_target_arrays():
    p = build_initial_payload({"exercise_name": "Squat", "exercise_type": "reps", "reps": [10, 8, 6], "load_each": [60]})
    assert p.identity.type is ExerciseType.reps
    assert [s.target_reps for s in p.prescription.sets] == [10, 8, 6]
    # a single load applies to every set
    assert [s.target_load for s in p.prescription.sets] == [60, 60, 60]
    assert len(p.performance.sets) == 3


def test_explicit_sets_wins_and_missing_targets_are_null():
    p = build_initial_payload({"name": "Row", "type": "reps", "sets": 4, "reps": [12, 10], "load_each": [30, 35], "load_unit": "kg"})
    assert len(p.prescription.sets) == 4
    assert [s.target_reps for s in p.prescription.sets] == [12, 10, None, None]
    assert [s.target_load for s in p.prescription.sets] == [30, 35, None, None]
    assert all(s.load_unit == "kg" for s in p.performance.sets)


def test_hold_exercise_uses_hold_durations():
    p = build_initial_payload({"exercise_name": "Plank", "exercise_type": "hold", "hold_duration_sec": [30, 45]})
    assert [s.target_duration_sec for s in p.prescription.sets] == [30, 45]
    assert all(s.target_reps is None for s in p.prescription.sets)


def test_duration_exercise_is_one_set_in_seconds():
    p = build_initial_payload({"exercise_name": "Run", "exercise_type": "duration", "duration_min": 20, "distance_km": 3.5})
    assert len(p.prescription.sets) == 1
    assert p.prescription.sets[0].target_duration_sec == 1200
    assert p.prescription.sets[0].target_distance_km == 3.5


def test_intervals_use_rounds_and_work_seconds():
    p = build_initial_payload({"exercise_name": "Sprints", "exercise_type": "intervals", "rounds": 4, "work_sec": 30, "rest_seconds": 60})
    assert len(p.prescription.sets) == 4
    assert {s.target_duration_sec for s in p.prescription.sets} == {30}
    assert p.prescription.rest_seconds == 60


def test_malformed_proposal_is_defaulted():
    p = build_initial_payload({
        "exercise_type": "yoga",
        "reps": [float("nan"), "ten", -4],
        "rest_seconds": "soon",
        "load_unit": 5,
    })
    assert p.identity.name == "Exercise"
    assert p.identity.type is ExerciseType.reps
    assert [s.target_reps for s in p.prescription.sets] == [None, None, 0]
    assert p.prescription.rest_seconds is None
    assert p.prescription.sets[0].load_unit is None


def test_initial_performance_is_nulled_in_lock_step():
    p = build_initial_payload({"exercise_name": "Bench", "exercise_type": "reps", "sets": 3})
    assert p.schema_version == CURRENT_SCHEMA_VERSION
    assert len(p.performance.sets) == len(p.prescription.sets) == 3
    assert not any(s.has_actuals() or s.completed_at for s in p.performance.sets)
    assert p.flags.pain is False and p.flags.modified is False and p.flags.skip_reason is None


def _v1_doc(**overrides):
    doc = {
        "schema_version": 1,
        "identity": {"name": "Bench", "type": "reps"},
        "prescription": {
            "sets": [{"target_reps": 10, "target_load": 40, "load_unit": "lb"},
                     {"target_reps": 8, "target_load": 45, "load_unit": "lb"}],
            "rest_seconds": 90,
        },
        "performance": {
            "sets": [{"actual_reps": 10, "actual_load": 40, "rpe": 7, "completed_at": "2026-01-01T10:00:00+00:00"},
                     {"actual_reps": None}],
            "exercise_rpe": None,
            "notes": "felt good",
        },
        "flags": {"modified": True, "skip_reason": None},
    }
    doc.update(overrides)
    return doc


def test_v1_payload_is_upgraded_without_losing_data():
    p = normalize_payload(_v1_doc())
    assert p.schema_version == CURRENT_SCHEMA_VERSION
    assert [s.load_unit for s in p.performance.sets] == ["lb", "lb"]
    assert p.performance.sets[0].actual_reps == 10
    assert p.performance.sets[0].completed_at == "2026-01-01T10:00:00+00:00"
    assert p.performance.notes == "felt good"
    assert p.flags.modified is True and p.flags.pain is False


def test_missing_schema_version_is_treated_as_v1():
    doc = _v1_doc()
    del doc["schema_version"]
    assert normalize_payload(doc).schema_version == CURRENT_SCHEMA_VERSION


def test_v1_document_is_validated_against_its_own_shape():
    doc = _v1_doc(flags={"modified": False, "skip_reason": None, "pain": True})
    with pytest.raises(ValidationError):
        normalize_payload(doc)


def test_newer_schema_version_is_rejected():
    doc = build_initial_payload({"exercise_name": "Bench", "sets": 1}).model_dump(mode="json")
    doc["schema_version"] = CURRENT_SCHEMA_VERSION + 1
    with pytest.raises(UnsupportedSchemaVersion):
        normalize_payload(doc)


def test_misaligned_sets_are_rejected():
    doc = build_initial_payload({"exercise_name": "Bench", "sets": 2}).model_dump(mode="json")
    doc["performance"]["sets"].pop()
    with pytest.raises(ValidationError):
        normalize_payload(doc)


@pytest.mark.parametrize("sets", [0, -3, 0.2])
def test_explicit_set_count_below_one_means_one_set(sets):
    p = build_initial_payload({"exercise_name": "Bench", "exercise_type": "reps", "sets": sets, "reps": [10, 8, 6]})
    assert len(p.prescription.sets) == 1
    assert p.prescription.sets[0].target_reps == 10


def test_oversized_proposal_values_are_clamped():
    p = build_initial_payload({
        "exercise_name": "Bench", "exercise_type": "reps", "sets": 10**6,
        "reps": [10**9], "load_each": [1e12], "rest_seconds": 10**12,
    })
    assert len(p.prescription.sets) == MAX_SETS
    assert p.prescription.sets[0].target_reps == MAX_REPS
    assert p.prescription.sets[0].target_load == MAX_LOAD
    assert p.prescription.rest_seconds == MAX_SECONDS


@pytest.mark.parametrize("value", [float("inf"), float("nan"), MAX_LOAD + 1])
def test_stored_payload_with_out_of_range_load_is_rejected(value):
    doc = build_initial_payload({"exercise_name": "Bench", "sets": 1}).model_dump(mode="json")
    doc["performance"]["sets"][0]["actual_load"] = value
    with pytest.raises(ValidationError):
        normalize_payload(doc)
