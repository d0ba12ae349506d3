from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Mapping, Sequence

from .constants import PLACEHOLDER
from .metrics import (
    WorkoutStatistics,
    exercise_progression,
    monthly_workout_counts,
    recent_dates,
)
from .models import (
    Exercise,
    ExerciseSet,
    ValidationError,
    Workout,
    new_workout_id,
    normalise_measure,
    parse_iso_date,
)
from .narrative import format_value

_WEIGHT_REPS_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*[x×]\s*(\d+)$", re.IGNORECASE)
_SET_KEYS = {
    "reps": "reps",
    "weight": "weight",
    "duration": "duration",
    "distance": "distance",
    "rest": "rest_time",
    "rest_time": "rest_time",
}


@dataclass(frozen=True)
class LogResult:
    """Structured outcome of building a workout from CLI arguments."""

    workout: Workout

    @property
    def confirmation(self) -> str:
        exercise_count = len(self.workout.exercises)
        return (
            f"Logged {self.workout.name} on {self.workout.date} "
            f"({exercise_count} exercise{'s' if exercise_count != 1 else ''}, "
            f"{self.workout.total_sets} set{'s' if self.workout.total_sets != 1 else ''})."
        )

    @property
    def verbose_tokens(self) -> list[str]:
        tokens = [f"id={self.workout.id}"]
        if self.workout.duration:
            tokens.append(f"duration={format_value(self.workout.duration)} min")
        if self.workout.volume:
            tokens.append(f"volume={self.workout.volume:.1f}")
        if self.workout.exercises:
            tokens.append("exercises=" + ", ".join(exercise.name for exercise in self.workout.exercises))
        if self.workout.notes:
            tokens.append("notes recorded")
        return tokens


def parse_set_spec(token: str) -> ExerciseSet:
    """
    Parse one set written on the command line.

    Accepted forms:
        "100x10"                 -> weight 100, reps 10
        "12"                     -> reps only
        "-"                      -> placeholder set with no measurements
        "reps=10 weight=60 rest=90" (also duration=, distance=)
    """
    text = (token or "").strip()
    if not text:
        raise ValidationError("set cannot be empty.")
    if text == PLACEHOLDER:
        return ExerciseSet()

    match = _WEIGHT_REPS_RE.match(text)
    if match:
        return ExerciseSet(weight=match.group(1), reps=match.group(2))

    if text.isdigit():
        return ExerciseSet(reps=text)

    values: dict[str, Any] = {}
    for pair in text.split():
        key, sep, raw = pair.partition("=")
        attr = _SET_KEYS.get(key.strip().lower())
        if not sep or attr is None:
            raise ValidationError(
                f"set must look like '100x10', '12', '-' or 'reps=10 weight=60'; received {token!r}."
            )
        values[attr] = normalise_measure(raw, field=attr, whole=attr == "reps")
    return ExerciseSet(**values)


def parse_exercise_spec(spec: str) -> Exercise:
    """Parse `"Bench Press: 100x10, 110x8"`; the part after the colon is optional."""
    name, _, sets_text = (spec or "").partition(":")
    if not name.strip():
        raise ValidationError(f"exercise name is required; received {spec!r}.")
    tokens = [token for token in (chunk.strip() for chunk in sets_text.split(",")) if token]
    return Exercise(name=name, sets=[parse_set_spec(token) for token in tokens])


def build_workout_from_inputs(
    *,
    name: str | None,
    date_text: str | None,
    exercises: Sequence[str],
    duration_minutes: float | None,
    notes: str | None,
    exercise_notes: Mapping[str, str] | None = None,
) -> LogResult:
    """Convert CLI inputs into a validated workout."""
    workout_date = parse_iso_date(date_text, field="date") if date_text else date.today()
    workout_name = (name or "").strip()
    if not workout_name:
        raise ValidationError("name is required.")

    parsed = [parse_exercise_spec(spec) for spec in exercises]
    for exercise in parsed:
        note = (exercise_notes or {}).get(exercise.name)
        if note and note.strip():
            exercise.notes = note.strip()

    workout = Workout(
        id=new_workout_id(),
        date=workout_date.isoformat(),
        name=workout_name,
        exercises=parsed,
        duration=normalise_measure(duration_minutes, field="duration_minutes"),
        notes=notes.strip() if notes and notes.strip() else None,
    )
    return LogResult(workout=workout)


def parse_exercise_notes(values: Sequence[str]) -> dict[str, str]:
    """Parse repeated `"Exercise=note"` options."""
    notes: dict[str, str] = {}
    for value in values:
        name, sep, note = value.partition("=")
        if not sep or not name.strip():
            raise ValidationError(f"exercise notes must look like 'Exercise=note'; received {value!r}.")
        notes[name.strip()] = note.strip()
    return notes


def render_workout(workout: Workout) -> str:
    """Compact text summary of one workout."""
    lines = [f"{workout.name} ({workout.date})"]
    if workout.duration:
        lines.append(f"Duration: {format_value(workout.duration)} minutes")
    for exercise in workout.exercises:
        set_text = ", ".join(_describe_set(item) for item in exercise.sets) or "no sets"
        lines.append(f"  {exercise.name}: {set_text}")
        if exercise.notes:
            lines.append(f"    Notes: {exercise.notes}")
    if workout.notes:
        lines.append(f"Notes: {workout.notes}")
    return "\n".join(lines)


def render_statistics(stats: WorkoutStatistics) -> str:
    streak = stats.current_streak
    rows = [
        ("Total workouts", str(stats.total_workouts)),
        ("Total exercises", str(stats.total_exercises)),
        ("Total sets", str(stats.total_sets)),
        ("Total volume", f"{stats.total_volume:,.1f}"),
        ("Average duration", f"{stats.average_duration:.1f} minutes"),
        ("Current streak", f"{streak} day{'s' if streak != 1 else ''}"),
        ("Last workout", stats.last_workout_date or "No workouts yet"),
    ]
    width = max(len(label) for label, _ in rows)
    return "\n".join(f"{label.ljust(width)}  {value}" for label, value in rows)


def render_frequency_table(stats: WorkoutStatistics, limit: int = 10) -> str:
    """Render a fixed-width table of the most frequent exercises."""
    ranked = sorted(stats.exercise_frequency.items(), key=lambda item: item[1], reverse=True)[:limit]
    rows = [{"exercise": name, "count": str(count)} for name, count in ranked]
    return _render_table(("exercise", "count"), rows)


def render_personal_records(stats: WorkoutStatistics) -> str:
    rows = [
        {
            "exercise": name,
            "weight": format_value(record.weight),
            "reps": str(record.reps),
            "date": record.date,
        }
        for name, record in sorted(stats.personal_records.items())
    ]
    return _render_table(("exercise", "weight", "reps", "date"), rows)


def render_recent_activity(stats: WorkoutStatistics, limit: int = 7) -> str:
    lines = []
    for day in reversed(recent_dates(stats, limit)):
        names = ", ".join(workout.name for workout in stats.workouts_by_date[day])
        lines.append(f"{day}: {names}")
    return "\n".join(lines)


def generate_plots(
    workouts: Sequence[Workout],
    *,
    output_dir: Path,
    exercise: str | None = None,
) -> list[Path]:
    """Create a monthly workout bar chart and, optionally, an exercise progression chart."""

    try:
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - exercised via CLI
        raise RuntimeError("matplotlib is required to generate plots.") from exc

    if not workouts:
        raise ValueError("No workouts available to plot.")

    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")

    paths = [_create_monthly_plot(workouts, output_dir, timestamp, plt)]
    if exercise:
        paths.append(_create_progression_plot(workouts, exercise, output_dir, timestamp, plt))
    return paths


def _create_monthly_plot(workouts: Sequence[Workout], output_dir: Path, timestamp: str, plt: Any) -> Path:
    counts = monthly_workout_counts(workouts)
    labels = list(counts.keys())
    values = list(counts.values())

    bar_path = output_dir / f"monthly_workouts_{timestamp}.png"
    fig, ax = plt.subplots()
    ax.bar(labels, values, color="#4C72B0")
    ax.set_title("Workouts per Month")
    ax.set_xlabel("Month")
    ax.set_ylabel("Workouts")
    if labels:
        plt.setp(ax.get_xticklabels(), rotation=45, ha="right")
    fig.tight_layout()
    fig.savefig(bar_path, dpi=150)
    plt.close(fig)
    return bar_path


def _create_progression_plot(
    workouts: Sequence[Workout],
    exercise: str,
    output_dir: Path,
    timestamp: str,
    plt: Any,
) -> Path:
    points = exercise_progression(workouts, exercise)
    if not points:
        raise ValueError(f"No weighted sets logged for {exercise!r}.")

    slug = re.sub(r"[^a-z0-9]+", "_", exercise.lower()).strip("_") or "exercise"
    line_path = output_dir / f"progression_{slug}_{timestamp}.png"
    fig, ax = plt.subplots()
    ax.plot([point.date for point in points], [point.max_weight for point in points], marker="o", linewidth=2)
    ax.set_title(f"{exercise} Max Weight Over Time")
    ax.set_xlabel("Date")
    ax.set_ylabel("Max Weight")
    fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(line_path, dpi=150)
    plt.close(fig)
    return line_path


def _describe_set(item: ExerciseSet) -> str:
    if item.is_placeholder:
        return PLACEHOLDER
    parts: list[str] = []
    if item.weight is not None and item.reps is not None:
        parts.append(f"{format_value(item.weight)}x{item.reps}")
    elif item.reps is not None:
        parts.append(f"{item.reps} reps")
    elif item.weight is not None:
        parts.append(f"@{format_value(item.weight)}")
    if item.duration is not None:
        parts.append(f"{format_value(item.duration)} min")
    if item.distance is not None:
        parts.append(f"{format_value(item.distance)} dist")
    if item.rest_time is not None:
        parts.append(f"rest {format_value(item.rest_time)}")
    return " ".join(parts)


def _render_table(headers: Sequence[str], rows: Sequence[Mapping[str, str]]) -> str:
    widths = {key: len(key) for key in headers}
    for row in rows:
        for key in headers:
            widths[key] = max(widths[key], len(row[key]))

    def _format_line(values: Mapping[str, str]) -> str:
        return "  ".join(values[key].ljust(widths[key]) for key in headers).rstrip()

    header_line = "  ".join(key.upper().ljust(widths[key]) for key in headers).rstrip()
    body = "\n".join(_format_line(row) for row in rows)
    return "\n".join(filter(None, [header_line, body]))
