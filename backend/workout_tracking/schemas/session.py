import uuid
from typing import Annotated, Any, Literal
from workout_tracking.timeutils import UtcDatetime
from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from workout_tracking.schemas.exercise import ExerciseRead

# Notes: trimmed, up to 2000 chars
NotesStr = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2000)]
Rpe = Annotated[int, Field(ge=1, le=10)]

class SessionCreate(BaseModel):
    intent: Annotated[str, Field(max_length=120)] | None = None
    request_text: Annotated[str, Field(max_length=2000)] | None = None
    time_available_min: Annotated[int, Field(ge=5, le=240)] | None = None
    equipment: list[str] = Field(default_factory=list)
    coach_mode: Literal["quiet", "ringer"] = "quiet"
    planned_session: dict[str, Any] | None = None
    planned_intent_original: dict[str, Any] | None = None
    planned_intent_edited: dict[str, Any] | None = None
    calendar_event_id: uuid.UUID | None = None
    planned_session_id: uuid.UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

class Reflection(BaseModel):
    rpe: Rpe | None = None
    pain: NotesStr | None = None
    notes: NotesStr | None = None

class CompleteRequest(BaseModel):
    reflection: Reflection = Field(default_factory=Reflection)

class StopRequest(CompleteRequest):
    reason: Annotated[str, Field(max_length=200)] | None = None

class SessionRead(BaseModel):
    id: uuid.UUID
    user_id: str
    status: str
    coach_mode: str
    started_at: UtcDatetime
    completed_at: UtcDatetime | None = None
    session_rpe: int | None = None
    notes: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_json")

    model_config = {"from_attributes": True}

class WorkoutRead(BaseModel):
    id: uuid.UUID
    session_id: uuid.UUID
    title: str
    workout_type: str | None = None
    planned_duration_min: int | None = None
    actual_duration_min: int | None = None
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None

    model_config = {"from_attributes": True}

class SessionDetail(BaseModel):
    session: SessionRead
    workout: WorkoutRead | None = None
    exercises: list[ExerciseRead] = Field(default_factory=list)
    instance: dict[str, Any] | None = None
    instance_version: int | None = None

class SessionSummary(BaseModel):
    title: str
    exercises_completed: int
    exercises_skipped: int
    exercises_resolved: int
    total_exercises: int
    total_sets: int
    overall_rpe: int | None = None
    pain_notes: str | None = None
    wins: list[str]
    next_session_focus: str
    stop_reason: str | None = None

class HistoryItem(BaseModel):
    session_id: uuid.UUID
    status: str
    started_at: UtcDatetime
    completed_at: UtcDatetime | None = None
    title: str
    workout_type: str | None = None
    planned_duration_min: int | None = None
    actual_duration_min: int | None = None
    exercise_count: int
    completed_exercise_count: int
    skipped_exercise_count: int
    total_volume: int
    session_rpe: int | None = None

class HistoryPage(BaseModel):
    items: list[HistoryItem]
    next_cursor: str | None = None
