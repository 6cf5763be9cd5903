from workout_tracking.models.session import WorkoutSession, SessionStatus, CoachMode, TERMINAL_STATUSES
from workout_tracking.models.workout import Workout
from workout_tracking.models.exercise import WorkoutExercise
from workout_tracking.models.action_log import WorkoutActionLog

__all__ = [
    "WorkoutSession",
    "SessionStatus",
    "CoachMode",
    "TERMINAL_STATUSES",
    "Workout",
    "WorkoutExercise",
    "WorkoutActionLog",
]
