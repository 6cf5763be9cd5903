from __future__ import annotations
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError as PydanticValidationError

from workout_tracking.errors import ValidationError
from workout_tracking.schemas.payload import DistanceKm, Load, Reps, Rpe, Seconds

SetIndex = Annotated[int, Field(ge=0)]


class _Command(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)


class _SetActuals(_Command):
    set_index: SetIndex
    actual_reps: Reps | None = None
    actual_load: Load | None = None
    load_unit: str | None = None
    actual_duration_sec: Seconds | None = None
    actual_distance_km: DistanceKm | None = None
    rpe: Rpe | None = None


class CompleteSet(_SetActuals):
    type: Literal["complete_set"] = "complete_set"


class UpdateSetActual(_SetActuals):
    type: Literal["update_set_actual"] = "update_set_actual"


class UpdateSetTarget(_Command):
    type: Literal["update_set_target"] = "update_set_target"
    set_index: SetIndex
    target_reps: Reps | None = None
    target_load: Load | None = None
    load_unit: str | None = None
    target_duration_sec: Seconds | None = None
    target_distance_km: DistanceKm | None = None


class SetExerciseRpe(_Command):
    type: Literal["set_exercise_rpe"] = "set_exercise_rpe"
    rpe: Rpe | None = None


class SetExerciseNote(_Command):
    type: Literal["set_exercise_note"] = "set_exercise_note"
    notes: Annotated[str, Field(max_length=2000)] | None = None


class SkipExercise(_Command):
    type: Literal["skip_exercise"] = "skip_exercise"
    reason: Annotated[str, Field(max_length=200)] | None = None


class UnskipExercise(_Command):
    type: Literal["unskip_exercise"] = "unskip_exercise"


class CompleteExercise(_Command):
    type: Literal["complete_exercise"] = "complete_exercise"


class ReopenExercise(_Command):
    type: Literal["reopen_exercise"] = "reopen_exercise"


class AdjustRestSeconds(_Command):
    type: Literal["adjust_rest_seconds"] = "adjust_rest_seconds"
    rest_seconds: Seconds | None = None


Command = Annotated[
    Union[
        CompleteSet,
        UpdateSetActual,
        UpdateSetTarget,
        SetExerciseRpe,
        SetExerciseNote,
        SkipExercise,
        UnskipExercise,
        CompleteExercise,
        ReopenExercise,
        AdjustRestSeconds,
    ],
    Field(discriminator="type"),
]

_command_adapter = TypeAdapter(Command)


def parse_command(body: Any) -> Command:
    """Validate a raw command body; raises the service ValidationError before any store access."""
    try:
        return _command_adapter.validate_python(body)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'command'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(details or "invalid command") from e
