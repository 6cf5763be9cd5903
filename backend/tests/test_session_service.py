import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from conftest import SAMPLE_INSTANCE, FakeGenerator
from workout_tracking.errors import Forbidden, GeneratorError, NotFound, SessionClosed, ValidationError
from workout_tracking.models import Workout, WorkoutExercise, WorkoutSession
from workout_tracking.schemas.commands import CompleteExercise, CompleteSet, SkipExercise
from workout_tracking.schemas.session import Reflection, SessionCreate
from workout_tracking.services.command_service import CommandService
from workout_tracking.services.session_service import SessionService


def count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_create_session_seeds_one_exercise_row_per_proposal(db, user_id):
    gen = FakeGenerator()
    req = SessionCreate(intent="strength", time_available_min=45, equipment=["dumbbells"], coach_mode="ringer")
    detail = SessionService(db, gen).create_session(user_id, req)

    assert detail.session.status == "in_progress"
    assert detail.session.coach_mode == "ringer"
    assert detail.workout.title == "Upper Body Strength"
    assert detail.workout.planned_duration_min == 45
    assert detail.workout.workout_type == "strength"

    names = [ex.exercise_name for ex in detail.exercises]
    assert names == ["Bench Press", "Plank", "Easy Run", "Bike Sprints"]
    assert [ex.exercise_order for ex in detail.exercises] == [0, 1, 2, 3]
    assert all(ex.payload_version == 1 and ex.status == "pending" for ex in detail.exercises)
    assert [ex.exercise_type for ex in detail.exercises] == ["reps", "hold", "duration", "intervals"]
    assert len(detail.exercises[0].payload["prescription"]["sets"]) == 3

    # constraints forwarded to the generator
    (called_user, constraints), = gen.calls
    assert called_user == user_id
    assert constraints["time_available_min"] == 45
    assert constraints["equipment"] == ["dumbbells"]

    assert len(detail.instance["exercises"]) == 4
    assert detail.instance_version == 1


def test_create_session_records_calendar_links_in_metadata(db, user_id):
    event_id = uuid.uuid4()
    detail = SessionService(db, FakeGenerator()).create_session(
        user_id, SessionCreate(calendar_event_id=event_id, metadata={"source": "calendar"})
    )
    assert detail.session.metadata == {"source": "calendar", "calendar_event_id": str(event_id)}


def test_generator_failure_leaves_no_rows(db, user_id):
    svc = SessionService(db, FakeGenerator(error=GeneratorError("generator down")))
    with pytest.raises(GeneratorError):
        svc.create_session(user_id, SessionCreate())
    assert count(db, WorkoutSession) == 0
    assert count(db, Workout) == 0
    assert count(db, WorkoutExercise) == 0


def test_unexpected_generator_shape_rolls_back(db, user_id):
    svc = SessionService(db, FakeGenerator(instance=["not", "a", "workout"]))
    with pytest.raises(GeneratorError):
        svc.create_session(user_id, SessionCreate())
    assert count(db, WorkoutSession) == 0


def test_sparse_generator_output_is_defaulted(db, user_id):
    instance = {"exercises": [{"exercise_name": "Push-up"}, "junk"], "estimated_duration_min": "soon"}
    detail = SessionService(db, FakeGenerator(instance=instance)).create_session(user_id, SessionCreate())
    assert detail.workout.title == "Workout"
    assert detail.workout.planned_duration_min is None
    assert [ex.exercise_name for ex in detail.exercises] == ["Push-up"]
    assert detail.exercises[0].exercise_type == "reps"


def test_detail_checks_ownership(db, user_id):
    detail = SessionService(db, FakeGenerator()).create_session(user_id, SessionCreate())
    with pytest.raises(Forbidden):
        SessionService(db).get_session_detail("intruder", detail.session.id)
    with pytest.raises(NotFound):
        SessionService(db).get_session_detail(user_id, uuid.uuid4())


def _finish_three_skip_one(db, user_id, detail):
    svc = CommandService(db)
    bench, plank, run, bike = (ex.id for ex in detail.exercises)
    svc.apply(user_id=user_id, exercise_id=bench, command_id=uuid.uuid4(), expected_version=1,
              command=CompleteSet(set_index=0, actual_reps=10, actual_load=40))
    svc.apply(user_id=user_id, exercise_id=bench, command_id=uuid.uuid4(), expected_version=2,
              command=CompleteExercise())
    svc.apply(user_id=user_id, exercise_id=plank, command_id=uuid.uuid4(), expected_version=1,
              command=CompleteExercise())
    svc.apply(user_id=user_id, exercise_id=run, command_id=uuid.uuid4(), expected_version=1,
              command=CompleteExercise())
    svc.apply(user_id=user_id, exercise_id=bike, command_id=uuid.uuid4(), expected_version=1,
              command=SkipExercise(reason="knee pain"))


def test_complete_session_summarizes_exercises(db, user_id):
    detail = SessionService(db, FakeGenerator()).create_session(user_id, SessionCreate())
    _finish_three_skip_one(db, user_id, detail)

    finished = detail.session.started_at + timedelta(minutes=31)
    summary = SessionService(db).finalize_session(
        user_id, detail.session.id,
        reflection=Reflection(rpe=7, pain="  left knee  ", notes="More pulling"),
        now=finished,
    )
    assert summary.title == "Upper Body Strength"
    assert summary.exercises_completed == 3
    assert summary.exercises_skipped == 1
    assert summary.exercises_resolved == 4
    assert summary.total_exercises == 4
    assert summary.total_sets == 1
    assert summary.overall_rpe == 7
    assert summary.pain_notes == "left knee"
    assert summary.next_session_focus == "More pulling"
    assert summary.wins == ["Completed 3 of 4 exercises.", "Logged 1 completed sets."]
    assert summary.stop_reason is None

    sess = db.get(WorkoutSession, detail.session.id)
    assert sess.status == "completed"
    assert sess.session_rpe == 7
    assert sess.summary_json["exercises_resolved"] == 4
    assert db.get(Workout, detail.workout.id).actual_duration_min == 31


def test_stop_session_uses_default_reason(db, user_id):
    detail = SessionService(db, FakeGenerator()).create_session(user_id, SessionCreate())
    summary = SessionService(db).finalize_session(user_id, detail.session.id, mode="stop")
    assert summary.stop_reason == "user_stopped"
    assert summary.wins == ["Workout tracked successfully."]
    assert db.get(WorkoutSession, detail.session.id).status == "stopped"


def test_finalize_twice_is_rejected(db, user_id):
    detail = SessionService(db, FakeGenerator()).create_session(user_id, SessionCreate())
    SessionService(db).finalize_session(user_id, detail.session.id)
    with pytest.raises(SessionClosed):
        SessionService(db).finalize_session(user_id, detail.session.id, mode="stop")


def test_unknown_finalize_mode(db, user_id):
    detail = SessionService(db, FakeGenerator()).create_session(user_id, SessionCreate())
    with pytest.raises(ValidationError):
        SessionService(db).finalize_session(user_id, detail.session.id, mode="cancel")


def _finished_sessions(db, user_id, n):
    base = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)
    ids = []
    for i in range(n):
        detail = SessionService(db, FakeGenerator()).create_session(user_id, SessionCreate())
        sess = db.get(WorkoutSession, detail.session.id)
        sess.started_at = base + timedelta(days=i)
        db.commit()
        SessionService(db).finalize_session(user_id, detail.session.id, now=base + timedelta(days=i, minutes=40))
        ids.append(detail.session.id)
    return ids


def test_history_pages_newest_first(db, user_id):
    ids = _finished_sessions(db, user_id, 3)
    # in-progress sessions are not history
    SessionService(db, FakeGenerator()).create_session(user_id, SessionCreate())

    svc = SessionService(db)
    first = svc.list_history(user_id, limit=2)
    assert [item.session_id for item in first.items] == [ids[2], ids[1]]
    assert first.next_cursor is not None

    second = svc.list_history(user_id, limit=2, cursor=first.next_cursor)
    assert [item.session_id for item in second.items] == [ids[0]]
    assert second.next_cursor is None

    item = first.items[0]
    assert item.status == "completed"
    assert item.exercise_count == 4
    assert item.actual_duration_min == 40
    assert item.title == "Upper Body Strength"


def test_history_is_scoped_to_user(db, user_id):
    _finished_sessions(db, user_id, 1)
    assert SessionService(db).list_history("someone-else").items == []


def test_history_rejects_bad_cursor(db, user_id):
    with pytest.raises(ValidationError):
        SessionService(db).list_history(user_id, cursor="yesterday")


def test_history_volume_totals_exercises(db, user_id):
    detail = SessionService(db, FakeGenerator()).create_session(user_id, SessionCreate())
    bench = detail.exercises[0].id
    CommandService(db).apply(user_id=user_id, exercise_id=bench, command_id=uuid.uuid4(), expected_version=1,
                             command=CompleteSet(set_index=0, actual_reps=10, actual_load=40))
    SessionService(db).finalize_session(user_id, detail.session.id, mode="stop", reason="ran out of time")
    (item,) = SessionService(db).list_history(user_id).items
    assert item.status == "stopped"
    assert item.total_volume == 400
    assert item.title == SAMPLE_INSTANCE["title"]


def test_failed_detail_read_rolls_back_the_new_session(db, user_id, monkeypatch):
    def broken_read(self, user_id, session_id):
        raise RuntimeError("read failed")

    monkeypatch.setattr(SessionService, "get_session_detail", broken_read)
    with pytest.raises(RuntimeError):
        SessionService(db, FakeGenerator()).create_session(user_id, SessionCreate())
    assert count(db, WorkoutSession) == 0
    assert count(db, Workout) == 0
    assert count(db, WorkoutExercise) == 0


def test_history_pages_through_identical_start_times(db, user_id):
    ids = _finished_sessions(db, user_id, 3)
    same = datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc)
    for sid in ids:
        db.get(WorkoutSession, sid).started_at = same
    db.commit()

    svc = SessionService(db)
    first = svc.list_history(user_id, limit=2)
    second = svc.list_history(user_id, limit=2, cursor=first.next_cursor)
    seen = [item.session_id for item in first.items + second.items]
    assert sorted(seen) == sorted(ids)
    assert second.next_cursor is None


def test_history_accepts_a_bare_timestamp_cursor(db, user_id):
    ids = _finished_sessions(db, user_id, 3)
    # sessions start on Feb 1, 2 and 3
    page = SessionService(db).list_history(user_id, cursor="2026-02-03T00:00:00Z")
    assert [item.session_id for item in page.items] == [ids[1], ids[0]]
