from __future__ import annotations

MARKER_KEY = "workoutTracker"
PLACEHOLDER = "-"
DEFAULT_EXERCISE_NAME = "Unknown Exercise"
DEFAULT_WORKOUT_NAME = "Workout"
DEFAULT_WORKOUT_FOLDER = "Workouts"
DEFAULT_SYNC_DELAY_MS = 2000
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DOCUMENT_SUFFIX = ".md"

TABLE_HEADER = "| Set | Reps | Weight | Duration | Distance | Rest |"
TABLE_SEPARATOR = "|-----|------|--------|----------|----------|------|"

# On-disk key for each ExerciseSet attribute, in table column order.
SET_FIELDS: tuple[tuple[str, str], ...] = (
    ("reps", "reps"),
    ("weight", "weight"),
    ("duration", "duration"),
    ("distance", "distance"),
    ("rest_time", "restTime"),
)
