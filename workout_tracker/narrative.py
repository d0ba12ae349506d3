"""
Human-readable body of a workout document.

The body is rendered in a fixed order (title, date, duration, exercises with
their set tables, notes) and parsed back line by line. Parsing is lenient:
every field is extracted on its own and a malformed section only costs that
field, never the whole document.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from .constants import DEFAULT_EXERCISE_NAME, PLACEHOLDER, SET_FIELDS, TABLE_HEADER, TABLE_SEPARATOR
from .frontmatter import read_identifier, split_document
from .models import (
    Exercise,
    ExerciseSet,
    Number,
    Workout,
    fallback_workout_name,
    new_workout_id,
    optional_measure,
    today_iso,
)

LOGGER = logging.getLogger(__name__)

TITLE_RE = re.compile(r"^#[ \t]+(\S.*?)[ \t]*$")
SECTION_RE = re.compile(r"^##[ \t]+(\S.*?)[ \t]*$")
EXERCISE_RE = re.compile(r"^###[ \t]+(\S.*?)[ \t]*$")
DATE_RE = re.compile(r"^\*\*Date:\*\*[ \t]*(\S.*?)[ \t]*$")
DURATION_RE = re.compile(r"^\*\*Duration:\*\*[ \t]*(\d+(?:\.\d+)?)[ \t]*minutes?[ \t]*$")
NOTES_LINE_RE = re.compile(r"^\*\*Notes:\*\*[ \t]*(.*?)[ \t]*$")
SEPARATOR_CELL_RE = re.compile(r"^:?-{3,}:?$")
NOTES_SECTION = "notes"
TABLE_COLUMNS = 6

T = TypeVar("T")


@dataclass
class NarrativeFields:
    """Everything recovered from a body; each field is None when its extraction failed."""

    identifier: Optional[str] = None
    name: Optional[str] = None
    date: Optional[str] = None
    duration: Optional[Number] = None
    exercises: List[Exercise] = field(default_factory=list)
    notes: Optional[str] = None

    @property
    def has_structure(self) -> bool:
        """True when the text looks like a workout body (a title or any exercise heading)."""
        return self.name is not None or bool(self.exercises)


def format_value(value: Optional[Number]) -> str:
    if value is None:
        return PLACEHOLDER
    return str(value)


def encode_narrative(workout: Workout) -> str:
    """Render the body. The line layout here is what `extract_narrative` reads back."""
    content = f"# {workout.name}\n\n"
    content += f"**Date:** {workout.date}\n"
    if workout.duration:
        content += f"**Duration:** {format_value(workout.duration)} minutes\n"
    content += "\n## Exercises\n\n"

    for exercise in workout.exercises:
        content += f"### {exercise.name}\n\n"
        if exercise.sets:
            content += TABLE_HEADER + "\n"
            content += TABLE_SEPARATOR + "\n"
            for index, item in enumerate(exercise.sets, start=1):
                cells = [str(index)] + [format_value(getattr(item, attr)) for attr, _ in SET_FIELDS]
                content += "| " + " | ".join(cells) + " |\n"
        if exercise.notes:
            content += f"\n**Notes:** {exercise.notes}\n"
        content += "\n"

    if workout.notes:
        content += f"## Notes\n\n{workout.notes}\n"

    return content


def extract_narrative(text: str) -> NarrativeFields:
    """Pull every recognisable field out of `text` without ever raising."""
    _, body = _attempt(lambda: split_document(text), (None, text or ""))
    lines = (body or "").splitlines()
    main_lines, notes_lines = _split_notes_section(lines)

    return NarrativeFields(
        identifier=_attempt(lambda: read_identifier(text), None),
        name=_attempt(lambda: _first_match(TITLE_RE, main_lines), None),
        date=_attempt(lambda: _first_match(DATE_RE, main_lines), None),
        duration=_attempt(lambda: _extract_duration(main_lines), None),
        exercises=_attempt(lambda: _extract_exercises(main_lines), []),
        notes=_attempt(lambda: _join_notes(notes_lines), None),
    )


def decode_narrative(text: str, fallback_name: str) -> Workout:
    """
    Rebuild a workout from the body of `text`.

    The id is taken from the metadata block when one is readable, so editing
    the body never changes a workout's identity. Missing fields fall back to
    a fresh id, today's date and `fallback_name`.
    """
    fields = extract_narrative(text)
    return workout_from_fields(fields, fallback_name)


def workout_from_fields(fields: NarrativeFields, fallback_name: str) -> Workout:
    return Workout(
        id=fields.identifier or new_workout_id(),
        date=fields.date or today_iso(),
        name=fields.name or fallback_workout_name(fallback_name),
        exercises=fields.exercises,
        duration=fields.duration,
        notes=fields.notes,
    )


def _attempt(extractor: Callable[[], T], default: T) -> T:
    try:
        return extractor()
    except Exception:  # noqa: BLE001 - each field degrades on its own
        LOGGER.debug("Narrative extraction step failed", exc_info=True)
        return default


def _split_notes_section(lines: Sequence[str]) -> tuple[list[str], list[str]]:
    for index, line in enumerate(lines):
        match = SECTION_RE.match(line)
        if match and match.group(1).lower() == NOTES_SECTION:
            return list(lines[:index]), list(lines[index + 1:])
    return list(lines), []


def _first_match(pattern: re.Pattern[str], lines: Sequence[str]) -> Optional[str]:
    for line in lines:
        match = pattern.match(line)
        if match:
            return match.group(1)
    return None


def _extract_duration(lines: Sequence[str]) -> Optional[Number]:
    raw = _first_match(DURATION_RE, lines)
    return optional_measure(raw, field="duration")


def _join_notes(lines: Sequence[str]) -> Optional[str]:
    text = "\n".join(lines).strip()
    return text or None


def _extract_exercises(lines: Sequence[str]) -> List[Exercise]:
    exercises: List[Exercise] = []
    current_name: Optional[str] = None
    span: list[str] = []

    def _flush() -> None:
        if current_name is not None:
            exercises.append(_attempt(lambda: _parse_exercise(current_name, span), Exercise(name=current_name)))

    for line in lines:
        heading = EXERCISE_RE.match(line)
        if heading:
            _flush()
            current_name = heading.group(1)
            span = []
            continue
        if TITLE_RE.match(line) or SECTION_RE.match(line):
            _flush()
            current_name = None
            span = []
            continue
        if current_name is not None:
            span.append(line)
    _flush()
    return exercises


def _parse_exercise(name: str, span: Sequence[str]) -> Exercise:
    notes = _first_match(NOTES_LINE_RE, span)
    return Exercise(
        name=name or DEFAULT_EXERCISE_NAME,
        sets=_parse_table(span),
        notes=notes or None,
    )


def _split_cells(line: str) -> list[str]:
    stripped = line.strip()
    cells = stripped.split("|")[1:]
    if cells and not cells[-1].strip():
        cells = cells[:-1]
    return [cell.strip() for cell in cells]


def _is_separator(cells: Sequence[str]) -> bool:
    return bool(cells) and all(SEPARATOR_CELL_RE.match(cell) for cell in cells)


def _parse_table(span: Sequence[str]) -> List[ExerciseSet]:
    rows = [_split_cells(line) for line in span if line.strip().startswith("|")]
    sets: List[ExerciseSet] = []
    for index, cells in enumerate(rows):
        if _is_separator(cells):
            continue
        following = rows[index + 1] if index + 1 < len(rows) else None
        if following is not None and _is_separator(following):
            # Header row.
            continue
        if cells and cells[0].lower() == "set":
            continue
        if len(cells) < TABLE_COLUMNS:
            LOGGER.debug("Skipping short table row %r", cells)
            continue
        sets.append(_parse_row(cells))
    return sets


def _parse_row(cells: Sequence[str]) -> ExerciseSet:
    values: dict[str, Any] = {}
    for column, (attr, _) in enumerate(SET_FIELDS, start=1):
        cell = cells[column]
        if not cell or cell == PLACEHOLDER:
            values[attr] = None
            continue
        values[attr] = optional_measure(cell, field=attr, whole=attr == "reps")
    return ExerciseSet(**values)
