import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, DateTime, Text, Uuid, CheckConstraint, Index, func
from workout_tracking.db import Base, JSONType

class SessionStatus(str, Enum):
    in_progress = "in_progress"
    completed = "completed"
    stopped = "stopped"
    canceled = "canceled"

class CoachMode(str, Enum):
    quiet = "quiet"
    ringer = "ringer"

TERMINAL_STATUSES = (SessionStatus.completed.value, SessionStatus.stopped.value, SessionStatus.canceled.value)

class WorkoutSession(Base):
    __tablename__ = "workout_sessions"
    __table_args__ = (
        CheckConstraint("status IN ('in_progress', 'completed', 'stopped', 'canceled')", name="ck_workout_sessions_status"),
        CheckConstraint("coach_mode IN ('quiet', 'ringer')", name="ck_workout_sessions_coach_mode"),
        CheckConstraint("session_rpe BETWEEN 1 AND 10", name="ck_workout_sessions_rpe"),
        Index("idx_workout_sessions_user_started", "user_id", "started_at"),
        Index("idx_workout_sessions_user_status", "user_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SessionStatus.in_progress.value)
    coach_mode: Mapped[str] = mapped_column(String(20), nullable=False, default=CoachMode.quiet.value)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    session_rpe: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary_json: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    metadata_json: Mapped[dict] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    workout = relationship("Workout", back_populates="session", uselist=False, cascade="all, delete-orphan")
