from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .models import Number, ValidationError, Workout, parse_iso_date

SET_COLUMNS = [
    "workout_index",
    "workout_id",
    "date",
    "workout",
    "exercise",
    "set_number",
    "reps",
    "weight",
    "duration",
    "distance",
    "rest_time",
    "volume",
]
WORKOUT_COLUMNS = ["workout_index", "workout_id", "date", "month", "workout", "duration", "exercises", "sets", "volume"]
_NUMERIC_SET_COLUMNS = ("reps", "weight", "duration", "distance", "rest_time", "volume")


@dataclass(frozen=True)
class PersonalRecord:
    """Heaviest set logged for an exercise (more reps wins at equal weight)."""

    weight: Number
    reps: int
    date: str


@dataclass
class WorkoutStatistics:
    total_workouts: int = 0
    total_exercises: int = 0
    total_sets: int = 0
    total_volume: float = 0.0
    average_duration: float = 0.0
    exercise_frequency: Dict[str, int] = field(default_factory=dict)
    workouts_by_date: Dict[str, List[Workout]] = field(default_factory=dict)
    personal_records: Dict[str, PersonalRecord] = field(default_factory=dict)
    current_streak: int = 0
    last_workout_date: Optional[str] = None


@dataclass(frozen=True)
class ProgressionPoint:
    date: str
    max_weight: float
    total_volume: float


def aggregate(workouts: Sequence[Workout], *, today: date | None = None) -> WorkoutStatistics:
    """
    Compute totals, frequencies, personal records and the current streak.

    Workouts are visited in date order so that personal-record ties keep the
    earliest date. The input sequence is not modified.
    """
    stats = WorkoutStatistics(total_workouts=len(workouts))
    if not workouts:
        return stats

    ordered = sorted(workouts, key=lambda workout: workout.date)
    stats.last_workout_date = ordered[-1].date

    durations: list[float] = []
    for workout in ordered:
        stats.total_exercises += len(workout.exercises)
        stats.workouts_by_date.setdefault(workout.date, []).append(workout)
        if workout.duration:
            durations.append(float(workout.duration))

        for exercise in workout.exercises:
            stats.exercise_frequency[exercise.name] = stats.exercise_frequency.get(exercise.name, 0) + 1
            stats.total_sets += len(exercise.sets)

            for item in exercise.sets:
                stats.total_volume += item.volume
                if not item.weight or not item.reps:
                    continue
                current = stats.personal_records.get(exercise.name)
                if (
                    current is None
                    or item.weight > current.weight
                    or (item.weight == current.weight and item.reps > current.reps)
                ):
                    stats.personal_records[exercise.name] = PersonalRecord(
                        weight=item.weight,
                        reps=item.reps,
                        date=workout.date,
                    )

    if durations:
        stats.average_duration = sum(durations) / len(durations)

    stats.current_streak = calculate_streak((workout.date for workout in ordered), today=today)
    return stats


def calculate_streak(dates: Iterable[str], *, today: date | None = None) -> int:
    """
    Count consecutive training days ending today or yesterday.

    Walking back from `today`, each distinct date at most one day before the
    cursor extends the streak; a gap of two or more days ends it. Future and
    non-ISO dates are ignored.
    """
    today = today or date.today()
    days = {day for day in (_as_date(value) for value in dates) if day is not None and day <= today}

    streak = 0
    cursor = today
    for day in sorted(days, reverse=True):
        if (cursor - day).days > 1:
            break
        streak += 1
        cursor = day
    return streak


def top_exercises(workouts: Sequence[Workout], limit: int = 10) -> list[tuple[str, int]]:
    frequency = aggregate(workouts).exercise_frequency
    ranked = sorted(frequency.items(), key=lambda item: item[1], reverse=True)
    return ranked[: max(limit, 0)]


def workouts_in_date_range(
    workouts: Sequence[Workout],
    start: str | date,
    end: str | date,
) -> list[Workout]:
    """Workouts whose date falls within `[start, end]` (ISO strings compare lexically)."""
    start_text = _as_text(start)
    end_text = _as_text(end)
    return [workout for workout in workouts if start_text <= workout.date <= end_text]


def statistics_for_period(
    workouts: Sequence[Workout],
    start: str | date,
    end: str | date,
    *,
    today: date | None = None,
) -> WorkoutStatistics:
    return aggregate(workouts_in_date_range(workouts, start, end), today=today)


def recent_dates(stats: WorkoutStatistics, limit: int = 7) -> list[str]:
    """The last `limit` dates that have at least one workout, oldest first."""
    if limit <= 0:
        return []
    return sorted(stats.workouts_by_date)[-limit:]


def workouts_to_dataframe(workouts: Sequence[Workout]) -> pd.DataFrame:
    """One row per workout."""
    records = [
        {
            "workout_index": index,
            "workout_id": workout.id,
            "date": workout.date,
            "month": workout.date[:7],
            "workout": workout.name,
            "duration": workout.duration,
            "exercises": len(workout.exercises),
            "sets": workout.total_sets,
            "volume": workout.volume,
        }
        for index, workout in enumerate(workouts)
    ]
    if not records:
        return pd.DataFrame(columns=WORKOUT_COLUMNS)
    df = pd.DataFrame(records, columns=WORKOUT_COLUMNS)
    df["duration"] = pd.to_numeric(df["duration"], errors="coerce")
    return df


def sets_to_dataframe(workouts: Sequence[Workout]) -> pd.DataFrame:
    """Flatten workouts into one row per set; absent measurements become NaN."""
    records: list[dict[str, object]] = []
    for index, workout in enumerate(workouts):
        for exercise in workout.exercises:
            for number, item in enumerate(exercise.sets, start=1):
                records.append(
                    {
                        "workout_index": index,
                        "workout_id": workout.id,
                        "date": workout.date,
                        "workout": workout.name,
                        "exercise": exercise.name,
                        "set_number": number,
                        "reps": item.reps,
                        "weight": item.weight,
                        "duration": item.duration,
                        "distance": item.distance,
                        "rest_time": item.rest_time,
                        "volume": item.volume,
                    }
                )
    if not records:
        return pd.DataFrame(columns=SET_COLUMNS)
    df = pd.DataFrame(records, columns=SET_COLUMNS)
    for column in _NUMERIC_SET_COLUMNS:
        df[column] = pd.to_numeric(df[column], errors="coerce")
    return df


def monthly_workout_counts(workouts: Sequence[Workout]) -> dict[str, int]:
    """Number of workouts per `YYYY-MM` month."""
    df = workouts_to_dataframe(workouts)
    if df.empty:
        return {}
    counts = df.groupby("month").size()
    return {str(month): int(count) for month, count in counts.items()}


def exercise_progression(workouts: Sequence[Workout], exercise_name: str) -> list[ProgressionPoint]:
    """
    Heaviest weight and total volume of `exercise_name` per workout, oldest first.

    Workouts where the exercise was done without any weight are left out.
    """
    df = sets_to_dataframe(workouts)
    if df.empty:
        return []
    subset = df[df["exercise"] == exercise_name]
    if subset.empty:
        return []

    per_workout = (
        subset.groupby(["workout_index", "date"], as_index=False)
        .agg(max_weight=("weight", "max"), total_volume=("volume", "sum"))
    )
    per_workout = per_workout[per_workout["max_weight"].fillna(0) > 0]
    per_workout = per_workout.sort_values(["date", "workout_index"], kind="mergesort")
    return [
        ProgressionPoint(
            date=str(row["date"]),
            max_weight=float(row["max_weight"]),
            total_volume=float(row["total_volume"]),
        )
        for row in per_workout.to_dict("records")
    ]


def _as_date(value: str | date) -> date | None:
    try:
        return parse_iso_date(value)
    except ValidationError:
        return None


def _as_text(value: str | date) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()
