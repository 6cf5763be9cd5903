"""
Versioned exercise payload.

Each historical shape keeps its own model so stored documents are validated
against the shape they were written with, then upgraded one version at a
time. Nothing is ever validated against ``Payload`` before it is migrated.
"""
from __future__ import annotations
from enum import Enum
from typing import Annotated, Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, model_validator

from workout_tracking.errors import UnsupportedSchemaVersion, ValidationError

CURRENT_SCHEMA_VERSION = 2

# Upper bounds keep derived totals inside their columns (Integer, Numeric(14,2)).
MAX_SETS = 100
MAX_REPS = 10_000
MAX_LOAD = 100_000
MAX_SECONDS = 1_000_000
MAX_DISTANCE_KM = 10_000

Reps = Annotated[int, Field(ge=0, le=MAX_REPS)]
Load = Annotated[float, Field(ge=0, le=MAX_LOAD, allow_inf_nan=False)]
Seconds = Annotated[int, Field(ge=0, le=MAX_SECONDS)]
DistanceKm = Annotated[float, Field(ge=0, le=MAX_DISTANCE_KM, allow_inf_nan=False)]
Rpe = Annotated[int, Field(ge=1, le=10)]


class ExerciseType(str, Enum):
    reps = "reps"
    hold = "hold"
    duration = "duration"
    intervals = "intervals"


class ExerciseStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    skipped = "skipped"


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class Identity(_Strict):
    name: Annotated[str, Field(min_length=1)]
    type: ExerciseType


class PrescriptionSet(_Strict):
    target_reps: Reps | None = None
    target_load: Load | None = None
    load_unit: str | None = None
    target_duration_sec: Seconds | None = None
    target_distance_km: DistanceKm | None = None


class Prescription(_Strict):
    sets: Annotated[list[PrescriptionSet], Field(min_length=1, max_length=MAX_SETS)]
    rest_seconds: Seconds | None = None


# ---- v1 -------------------------------------------------------------------

class PerformanceSetV1(_Strict):
    actual_reps: Reps | None = None
    actual_load: Load | None = None
    actual_duration_sec: Seconds | None = None
    actual_distance_km: DistanceKm | None = None
    rpe: Rpe | None = None
    completed_at: str | None = None


class PerformanceV1(_Strict):
    sets: Annotated[list[PerformanceSetV1], Field(min_length=1, max_length=MAX_SETS)]
    exercise_rpe: Rpe | None = None
    notes: str | None = None


class FlagsV1(_Strict):
    modified: bool = False
    skip_reason: str | None = None


class PayloadV1(_Strict):
    schema_version: int = 1
    identity: Identity
    prescription: Prescription
    performance: PerformanceV1
    flags: FlagsV1 = Field(default_factory=FlagsV1)


# ---- v2 (current) ---------------------------------------------------------

class PerformanceSet(_Strict):
    actual_reps: Reps | None = None
    actual_load: Load | None = None
    load_unit: str | None = None
    actual_duration_sec: Seconds | None = None
    actual_distance_km: DistanceKm | None = None
    rpe: Rpe | None = None
    completed_at: str | None = None

    def has_actuals(self) -> bool:
        return any(
            v is not None
            for v in (self.actual_reps, self.actual_load, self.actual_duration_sec, self.actual_distance_km)
        )


class Performance(_Strict):
    sets: Annotated[list[PerformanceSet], Field(min_length=1, max_length=MAX_SETS)]
    exercise_rpe: Rpe | None = None
    notes: Annotated[str, Field(max_length=2000)] | None = None


class Flags(_Strict):
    pain: bool = False
    modified: bool = False
    skip_reason: str | None = None


class Payload(_Strict):
    schema_version: int = CURRENT_SCHEMA_VERSION
    identity: Identity
    prescription: Prescription
    performance: Performance
    flags: Flags = Field(default_factory=Flags)

    @model_validator(mode="after")
    def _sets_aligned(self) -> "Payload":
        if len(self.performance.sets) != len(self.prescription.sets):
            raise ValueError("performance.sets must be index-aligned with prescription.sets")
        return self


# ---- migration ------------------------------------------------------------

def upgrade_v1_to_v2(old: PayloadV1) -> dict[str, Any]:
    """Performance sets gain ``load_unit`` (from the aligned prescription set); flags gain ``pain``."""
    data = old.model_dump(mode="json")
    for i, perf in enumerate(data["performance"]["sets"]):
        target = data["prescription"]["sets"][i] if i < len(data["prescription"]["sets"]) else {}
        perf["load_unit"] = target.get("load_unit")
    data["flags"]["pain"] = False
    data["schema_version"] = 2
    return data


# version -> (model the stored document is validated with, upgrade to version + 1)
UPGRADES: dict[int, tuple[type[BaseModel], Callable[[Any], dict[str, Any]]]] = {
    1: (PayloadV1, upgrade_v1_to_v2),
}


def _stored_version(raw: dict[str, Any]) -> int:
    version = raw.get("schema_version", 1)
    if version is None:
        return 1
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ValidationError(f"invalid payload schema_version {version!r}")
    return version


def migrate_payload(raw: dict[str, Any]) -> dict[str, Any]:
    """Upgrade a stored payload document to ``CURRENT_SCHEMA_VERSION``."""
    version = _stored_version(raw)
    if version > CURRENT_SCHEMA_VERSION:
        raise UnsupportedSchemaVersion(version, CURRENT_SCHEMA_VERSION)

    data = dict(raw)
    data["schema_version"] = version
    while version < CURRENT_SCHEMA_VERSION:
        model, upgrade = UPGRADES[version]
        try:
            data = upgrade(model.model_validate(data))
        except PydanticValidationError as e:
            raise ValidationError(f"stored payload v{version} is malformed: {e}") from e
        version += 1
    return data


def normalize_payload(raw: dict[str, Any] | None) -> Payload:
    if not isinstance(raw, dict):
        raise ValidationError("payload must be an object")
    data = migrate_payload(raw)
    try:
        return Payload.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"payload is malformed: {e}") from e
