import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, ForeignKey, Text, Uuid, Index, UniqueConstraint, func
from workout_tracking.db import Base, JSONType

class WorkoutActionLog(Base):
    """Append-only ledger: one row per applied command_id, never updated."""
    __tablename__ = "workout_action_logs"
    __table_args__ = (
        UniqueConstraint("user_id", "command_id", name="uq_workout_action_logs_command"),
        Index("idx_workout_action_logs_session_time", "session_id", "server_timestamp"),
        Index("idx_workout_action_logs_exercise_time", "exercise_id", "server_timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    session_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("workout_sessions.id", ondelete="CASCADE"), nullable=False)
    workout_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False)
    exercise_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("workout_exercises.id", ondelete="SET NULL"), nullable=True
    )
    command_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    action_type: Mapped[str] = mapped_column(String(40), nullable=False)
    resulting_version: Mapped[int] = mapped_column(Integer, nullable=False)
    resulting_status: Mapped[str] = mapped_column(String(20), nullable=False)
    # command body, expected version and the resulting payload
    action_payload_json: Mapped[dict] = mapped_column(JSONType, nullable=False)

    source_screen: Mapped[str | None] = mapped_column(Text, nullable=True)
    app_version: Mapped[str | None] = mapped_column(Text, nullable=True)
    device_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    correlation_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    server_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
