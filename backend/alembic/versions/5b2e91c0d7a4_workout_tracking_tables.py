"""workout tracking: sessions, workouts, exercises, action logs

Revision ID: 5b2e91c0d7a4
Revises:
Create Date: 2026-02-18 10:12:40.118203

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


# revision identifiers, used by Alembic.
revision: str = '5b2e91c0d7a4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1) sessions
    op.create_table(
        'workout_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='in_progress'),
        sa.Column('coach_mode', sa.String(length=20), nullable=False, server_default='quiet'),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('session_rpe', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('summary_json', json_type, nullable=False),
        sa.Column('metadata', json_type, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("status IN ('in_progress', 'completed', 'stopped', 'canceled')", name='ck_workout_sessions_status'),
        sa.CheckConstraint("coach_mode IN ('quiet', 'ringer')", name='ck_workout_sessions_coach_mode'),
        sa.CheckConstraint('session_rpe BETWEEN 1 AND 10', name='ck_workout_sessions_rpe'),
    )
    op.create_index('idx_workout_sessions_user_started', 'workout_sessions', ['user_id', 'started_at'])
    op.create_index('idx_workout_sessions_user_status', 'workout_sessions', ['user_id', 'status'])

    # 2) workouts (1:1 with a session)
    op.create_table(
        'workouts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('workout_sessions.id', ondelete='CASCADE'), nullable=False, unique=True, index=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('workout_type', sa.String(length=120), nullable=True),
        sa.Column('planned_duration_min', sa.Integer(), nullable=True),
        sa.Column('actual_duration_min', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )

    # 3) exercises; payload_version is the compare-and-swap token
    op.create_table(
        'workout_exercises',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('workout_id', sa.Uuid(), sa.ForeignKey('workouts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('exercise_order', sa.Integer(), nullable=False),
        sa.Column('exercise_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('payload_json', json_type, nullable=False),
        sa.Column('payload_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('exercise_name', sa.Text(), nullable=False, index=True),
        sa.Column('exercise_rpe', sa.Integer(), nullable=True),
        sa.Column('total_reps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('volume', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('duration_sec', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.UniqueConstraint('workout_id', 'exercise_order', name='uq_workout_exercises_order'),
        sa.CheckConstraint("exercise_type IN ('reps', 'hold', 'duration', 'intervals')", name='ck_workout_exercises_type'),
        sa.CheckConstraint("status IN ('pending', 'in_progress', 'completed', 'skipped')", name='ck_workout_exercises_status'),
        sa.CheckConstraint('payload_version >= 1', name='ck_workout_exercises_payload_version'),
        sa.CheckConstraint('exercise_rpe BETWEEN 1 AND 10', name='ck_workout_exercises_rpe'),
    )
    op.create_index('idx_workout_exercises_workout_status', 'workout_exercises', ['workout_id', 'status'])

    # 4) append-only command ledger
    op.create_table(
        'workout_action_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('workout_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('workout_id', sa.Uuid(), sa.ForeignKey('workouts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('exercise_id', sa.Uuid(), sa.ForeignKey('workout_exercises.id', ondelete='SET NULL'), nullable=True),
        sa.Column('command_id', sa.Uuid(), nullable=False),
        sa.Column('action_type', sa.String(length=40), nullable=False),
        sa.Column('resulting_version', sa.Integer(), nullable=False),
        sa.Column('resulting_status', sa.String(length=20), nullable=False),
        sa.Column('action_payload_json', json_type, nullable=False),
        sa.Column('source_screen', sa.Text(), nullable=True),
        sa.Column('app_version', sa.Text(), nullable=True),
        sa.Column('device_id', sa.Text(), nullable=True),
        sa.Column('correlation_id', sa.Text(), nullable=True),
        sa.Column('client_timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('server_timestamp', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.UniqueConstraint('user_id', 'command_id', name='uq_workout_action_logs_command'),
    )
    op.create_index('idx_workout_action_logs_session_time', 'workout_action_logs', ['session_id', 'server_timestamp'])
    op.create_index('idx_workout_action_logs_exercise_time', 'workout_action_logs', ['exercise_id', 'server_timestamp'])


def downgrade() -> None:
    # drop child tables in reverse order
    op.drop_table('workout_action_logs')
    op.drop_table('workout_exercises')
    op.drop_table('workouts')
    op.drop_table('workout_sessions')
