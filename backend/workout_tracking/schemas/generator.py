import math
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_DURATION_MIN = 24 * 60

class GeneratedWorkout(BaseModel):
    """
    Lenient view of a generator response. Anything malformed is defaulted
    here; per-exercise fields are sanitised by the payload builder.
    """
    title: str = "Workout"
    estimated_duration_min: int | None = None
    focus: list[str] = Field(default_factory=list)
    exercises: list[dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("title", mode="before")
    @classmethod
    def title_or_default(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return "Workout"

    @field_validator("estimated_duration_min", mode="before")
    @classmethod
    def round_duration(cls, v: Any) -> int | None:
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            return None
        return min(MAX_DURATION_MIN, max(0, round(v)))

    @field_validator("focus", mode="before")
    @classmethod
    def only_strings(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [f for f in v if isinstance(f, str) and f.strip()]

    @field_validator("exercises", mode="before")
    @classmethod
    def only_objects(cls, v: Any) -> list[dict[str, Any]]:
        if not isinstance(v, list):
            return []
        return [e for e in v if isinstance(e, dict)]
