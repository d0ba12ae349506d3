from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from .constants import DEFAULT_WORKOUT_NAME, SET_FIELDS

Number = Union[int, float]

__all__ = [
    "parse_iso_date",
    "coerce_number",
    "normalise_measure",
    "optional_measure",
    "new_workout_id",
    "today_iso",
    "fallback_workout_name",
    "clean_workout_notes",
    "clean_exercise_notes",
    "ExerciseSet",
    "Exercise",
    "Workout",
    "ValidationError",
]


class ValidationError(ValueError):
    """Raised when user-supplied data cannot be normalised safely."""


def parse_iso_date(value: Any, *, field: str = "date") -> date:
    """
    Parse user-supplied ISO-8601 dates.

    Accepts `datetime.date`, `datetime.datetime`, or strings. Raises `ValidationError`
    with a friendlier message if the payload cannot be parsed.
    """
    if isinstance(value, date):
        return value if not isinstance(value, datetime) else value.date()

    if not isinstance(value, str):
        raise ValidationError(
            f"{field} must be provided as YYYY-MM-DD text; received {value!r}."
        )

    candidate = value.strip()
    if not candidate:
        raise ValidationError(f"{field} cannot be empty.")

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValidationError(
            f"{field} must be a valid ISO date (YYYY-MM-DD); received {candidate!r}."
        ) from exc

    return parsed.date()


def coerce_number(
    value: Any,
    *,
    field: str = "value",
    minimum: float | None = None,
    allow_float: bool = True,
) -> float:
    """
    Convert arbitrary input into a float with guardrails.

    The `minimum` bound (inclusive) triggers a ValidationError when breached.
    When `allow_float` is False, the coerced number must be whole.
    """
    if value is None:
        raise ValidationError(f"{field} is required.")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number; received {value!r}.")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} is required.")
        try:
            number = float(stripped)
        except ValueError as exc:
            raise ValidationError(f"{field} must be a number; received {value!r}.") from exc
    else:
        raise ValidationError(f"{field} must be a number; received {value!r}.")

    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number; received {value!r}.")

    if not allow_float and number != round(number):
        raise ValidationError(f"{field} must be an integer; received {value!r}.")

    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be >= {minimum}; received {number}.")

    return number


def normalise_measure(value: Any, *, field: str, whole: bool = False) -> Optional[Number]:
    """
    Normalise an optional non-negative quantity.

    Whole quantities come back as `int`; others as `int` when integral and
    `float` otherwise, so `100.0` and `100` render and compare the same way.
    """
    if value is None:
        return None
    number = coerce_number(value, field=field, minimum=0.0, allow_float=not whole)
    if whole or number.is_integer():
        return int(number)
    return number


def optional_measure(value: Any, *, field: str, whole: bool = False) -> Optional[Number]:
    """Lenient variant of `normalise_measure`: invalid input becomes absent."""
    try:
        return normalise_measure(value, field=field, whole=whole)
    except ValidationError:
        return None


def new_workout_id() -> str:
    """Timestamp-based identifier (epoch milliseconds)."""
    return str(int(time.time() * 1000))


def today_iso() -> str:
    return date.today().isoformat()


def fallback_workout_name(name: Optional[str]) -> str:
    """Name used when a document has none of its own (usually the file stem)."""
    return (name or "").strip() or DEFAULT_WORKOUT_NAME


def clean_workout_notes(value: Optional[str]) -> Optional[str]:
    """Workout notes as the body renders them: trimmed, `\\n` line endings."""
    if value is None:
        return None
    text = "\n".join(str(value).splitlines()).strip()
    return text or None


def clean_exercise_notes(value: Optional[str]) -> Optional[str]:
    """Exercise notes fit on one `**Notes:**` line, so lines are joined with spaces."""
    if value is None:
        return None
    text = " ".join(line.strip() for line in str(value).splitlines() if line.strip())
    return text or None


@dataclass
class ExerciseSet:
    """One performed set or interval. Every field is optional."""

    reps: Optional[int] = None
    weight: Optional[Number] = None
    duration: Optional[Number] = None  # minutes
    distance: Optional[Number] = None
    rest_time: Optional[Number] = None

    def __post_init__(self) -> None:
        self.reps = normalise_measure(self.reps, field="reps", whole=True)
        self.weight = normalise_measure(self.weight, field="weight")
        self.duration = normalise_measure(self.duration, field="duration")
        self.distance = normalise_measure(self.distance, field="distance")
        self.rest_time = normalise_measure(self.rest_time, field="rest_time")

    @property
    def volume(self) -> float:
        """Load x reps, or zero when either is missing."""
        if self.weight is None or self.reps is None:
            return 0.0
        return float(self.weight) * self.reps

    @property
    def is_placeholder(self) -> bool:
        return all(getattr(self, attr) is None for attr, _ in SET_FIELDS)

    def to_dict(self) -> Dict[str, Any]:
        """On-disk mapping; absent fields are left out rather than zero-filled."""
        payload: Dict[str, Any] = {}
        for attr, key in SET_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                payload[key] = value
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ExerciseSet":
        values = {
            attr: optional_measure(payload.get(key), field=attr, whole=attr == "reps")
            for attr, key in SET_FIELDS
        }
        return cls(**values)


@dataclass
class Exercise:
    """A named movement inside a workout; set order is meaningful."""

    name: str
    sets: List[ExerciseSet] = field(default_factory=list)
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("exercise name cannot be empty.")
        self.notes = clean_exercise_notes(self.notes)

    @property
    def volume(self) -> float:
        return sum(item.volume for item in self.sets)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "sets": [item.to_dict() for item in self.sets],
        }
        if self.notes:
            payload["notes"] = self.notes
        return payload


@dataclass
class Workout:
    """A logged training session, persisted as one document."""

    id: str
    date: str
    name: str
    exercises: List[Exercise] = field(default_factory=list)
    duration: Optional[Number] = None  # minutes
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.date, date):
            self.date = parse_iso_date(self.date).isoformat()
        self.date = str(self.date or "").strip() or today_iso()
        self.id = str(self.id).strip() if self.id is not None else ""
        if not self.id:
            self.id = new_workout_id()
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("workout name cannot be empty.")
        duration = normalise_measure(self.duration, field="duration")
        # Zero minutes is treated as "not recorded".
        self.duration = duration or None
        self.notes = clean_workout_notes(self.notes)

    @property
    def day(self) -> date | None:
        """The workout date as a `date`, or None when the text is not ISO."""
        try:
            return parse_iso_date(self.date)
        except ValidationError:
            return None

    @property
    def total_sets(self) -> int:
        return sum(len(exercise.sets) for exercise in self.exercises)

    @property
    def volume(self) -> float:
        return sum(exercise.volume for exercise in self.exercises)

    def to_dict(self) -> Dict[str, Any]:
        """Plain mapping in document key order; absent optionals are omitted."""
        payload: Dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "name": self.name,
        }
        if self.duration is not None:
            payload["duration"] = self.duration
        payload["exercises"] = [exercise.to_dict() for exercise in self.exercises]
        if self.notes:
            payload["notes"] = self.notes
        return payload
