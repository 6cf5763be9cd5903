import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    Integer, String, DateTime, ForeignKey, Numeric, Text, Uuid,
    CheckConstraint, Index, UniqueConstraint, func,
)
from workout_tracking.db import Base, JSONType

class WorkoutExercise(Base):
    __tablename__ = "workout_exercises"
    __table_args__ = (
        UniqueConstraint("workout_id", "exercise_order", name="uq_workout_exercises_order"),
        CheckConstraint("exercise_type IN ('reps', 'hold', 'duration', 'intervals')", name="ck_workout_exercises_type"),
        CheckConstraint("status IN ('pending', 'in_progress', 'completed', 'skipped')", name="ck_workout_exercises_status"),
        CheckConstraint("payload_version >= 1", name="ck_workout_exercises_payload_version"),
        CheckConstraint("exercise_rpe BETWEEN 1 AND 10", name="ck_workout_exercises_rpe"),
        Index("idx_workout_exercises_workout_status", "workout_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workout_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("workouts.id", ondelete="CASCADE"), index=True, nullable=False)
    exercise_order: Mapped[int] = mapped_column(Integer, nullable=False)
    exercise_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    payload_json: Mapped[dict] = mapped_column(JSONType, nullable=False)
    # optimistic-concurrency token; bumped by exactly one per applied command
    payload_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # denormalized from payload for cheap querying
    exercise_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    exercise_rpe: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_reps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    volume: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    duration_sec: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    workout = relationship("Workout", back_populates="exercises")
