"""
Metadata block codec.

A workout document starts with a YAML block fenced by `---` lines. The block
is the lossless, machine-readable copy of the workout and carries the
`workoutTracker: true` marker that identifies documents owned by this tool.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .constants import DEFAULT_EXERCISE_NAME, MARKER_KEY
from .models import (
    Exercise,
    ExerciseSet,
    Workout,
    fallback_workout_name,
    new_workout_id,
    optional_measure,
    today_iso,
)

LOGGER = logging.getLogger(__name__)

BLOCK_PATTERN = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*\r?$\n?", re.DOTALL | re.MULTILINE)

__all__ = [
    "MetadataError",
    "MetadataNotFound",
    "MalformedMetadata",
    "NotAnOwnedRecord",
    "split_document",
    "load_block",
    "is_owned_block",
    "encode_metadata",
    "render_block",
    "decode_metadata",
    "read_identifier",
]


class MetadataError(Exception):
    """Base class for metadata block failures."""


class MetadataNotFound(MetadataError):
    """The text does not start with a metadata block."""


class MalformedMetadata(MetadataError):
    """The metadata block is present but is not valid YAML."""


class NotAnOwnedRecord(MetadataError):
    """The block parsed fine but lacks the `workoutTracker: true` marker."""


def split_document(text: str) -> Tuple[Optional[str], str]:
    """Return `(block_text, body)`; `block_text` is None when there is no block."""
    match = BLOCK_PATTERN.match(text or "")
    if not match:
        return None, text or ""
    return match.group(1), text[match.end():].lstrip("\r\n")


def load_block(text: str) -> Any:
    """Parse the leading metadata block, raising `MetadataNotFound`/`MalformedMetadata`."""
    block, _ = split_document(text)
    if block is None:
        raise MetadataNotFound("No metadata block at the start of the document.")
    try:
        return yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise MalformedMetadata(f"Could not parse metadata block: {exc}") from exc


def is_owned_block(payload: Any) -> bool:
    return isinstance(payload, Mapping) and payload.get(MARKER_KEY) is True


def encode_metadata(workout: Workout) -> Dict[str, Any]:
    """Mapping written to the metadata block (the workout plus the ownership marker)."""
    payload = workout.to_dict()
    payload[MARKER_KEY] = True
    return payload


def render_block(workout: Workout) -> str:
    dumped = yaml.safe_dump(
        encode_metadata(workout),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"---\n{dumped}---\n"


def decode_metadata(text: str, fallback_name: str) -> Workout:
    """
    Rebuild a workout from the metadata block of `text`.

    Raises:
        MetadataNotFound: the document has no leading block.
        MalformedMetadata: the block is not valid YAML.
        NotAnOwnedRecord: the block is missing the ownership marker.

    Missing or odd-shaped fields are coerced rather than rejected: a missing
    id gets a fresh one, a missing date becomes today, a missing name becomes
    `fallback_name`, and a non-list `exercises` becomes an empty list.
    """
    payload = load_block(text)
    if not is_owned_block(payload):
        raise NotAnOwnedRecord(f"Metadata block lacks '{MARKER_KEY}: true'.")

    return Workout(
        id=_coerce_identifier(payload.get("id")) or new_workout_id(),
        date=_coerce_date(payload.get("date")),
        name=_clean_text(payload.get("name")) or fallback_workout_name(fallback_name),
        exercises=_coerce_exercises(payload.get("exercises")),
        duration=optional_measure(payload.get("duration"), field="duration"),
        notes=_clean_text(payload.get("notes")),
    )


def read_identifier(text: str) -> Optional[str]:
    """Best-effort id lookup that never raises, used when the body is authoritative."""
    try:
        payload = load_block(text)
    except MetadataError:
        return None
    if not isinstance(payload, Mapping):
        return None
    return _coerce_identifier(payload.get("id"))


def _coerce_identifier(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _coerce_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = _clean_text(value)
    return text or today_iso()


def _clean_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (Mapping, list)):
        return None
    text = str(value).strip()
    return text or None


def _coerce_exercises(raw: Any) -> List[Exercise]:
    if not isinstance(raw, list):
        if raw is not None:
            LOGGER.debug("Ignoring non-list exercises value %r", raw)
        return []

    exercises: List[Exercise] = []
    for item in raw:
        if isinstance(item, Mapping):
            exercises.append(
                Exercise(
                    name=_clean_text(item.get("name")) or DEFAULT_EXERCISE_NAME,
                    sets=_coerce_sets(item.get("sets")),
                    notes=_clean_text(item.get("notes")),
                )
            )
            continue
        name = _clean_text(item)
        if name:
            exercises.append(Exercise(name=name))
        else:
            LOGGER.debug("Skipping unusable exercise entry %r", item)
    return exercises


def _coerce_sets(raw: Any) -> List[ExerciseSet]:
    if not isinstance(raw, list):
        return []
    sets: List[ExerciseSet] = []
    for item in raw:
        if isinstance(item, Mapping):
            sets.append(ExerciseSet.from_dict(item))
        else:
            sets.append(ExerciseSet())
    return sets
