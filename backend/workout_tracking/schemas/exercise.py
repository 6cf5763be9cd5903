import uuid
from typing import Annotated, Any
from workout_tracking.timeutils import UtcDatetime
from pydantic import BaseModel, ConfigDict, Field, StrictInt

from workout_tracking.schemas.commands import Command

ShortStr = Annotated[str, Field(max_length=200)]

class ClientMeta(BaseModel):
    """Audit-only context from the client; never affects the reducer."""
    source_screen: ShortStr | None = None
    app_version: ShortStr | None = None
    device_id: ShortStr | None = None
    correlation_id: ShortStr | None = None
    client_timestamp: UtcDatetime | None = None

    model_config = ConfigDict(extra="ignore")

class CommandRequest(BaseModel):
    command_id: uuid.UUID
    expected_version: Annotated[StrictInt, Field(ge=1)]
    command: Command
    client_meta: ClientMeta = Field(default_factory=ClientMeta)

class CommandResult(BaseModel):
    exercise_id: uuid.UUID
    payload_version: int
    status: str
    payload: dict[str, Any]

class ExerciseRead(BaseModel):
    id: uuid.UUID
    workout_id: uuid.UUID
    exercise_order: int
    exercise_type: str
    status: str
    payload: dict[str, Any] = Field(validation_alias="payload_json")
    payload_version: int
    exercise_name: str
    exercise_rpe: int | None = None
    total_reps: int
    volume: float
    duration_sec: int
    completed_at: UtcDatetime | None = None
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None

    model_config = {"from_attributes": True}
