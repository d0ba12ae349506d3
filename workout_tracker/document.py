"""
Workout documents: the metadata block followed by the narrative body.

`generate` is the only producer of canonical document text. `parse` trusts
the metadata block alone; falling back to the body is the reconciler's job
(see `workout_tracker.sync`), so a file without the ownership marker is never
mistaken for workout data by casual readers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .frontmatter import MetadataError, decode_metadata, render_block
from .models import Workout
from .narrative import encode_narrative

LOGGER = logging.getLogger(__name__)


class ParsedFrom(str, Enum):
    """Which representation a workout was recovered from."""

    METADATA = "metadata"
    NARRATIVE = "narrative"
    NONE = "none"


@dataclass(frozen=True)
class ParseOutcome:
    workout: Optional[Workout]
    source: ParsedFrom
    error: Optional[MetadataError] = None

    @property
    def ok(self) -> bool:
        return self.workout is not None


def generate(workout: Workout) -> str:
    return render_block(workout) + "\n" + encode_narrative(workout)


def parse_outcome(text: str, fallback_name: str) -> ParseOutcome:
    """Like `parse`, but keeps the reason a document was rejected."""
    try:
        workout = decode_metadata(text, fallback_name)
    except MetadataError as exc:
        LOGGER.debug("Not a workout document (%s): %s", fallback_name, exc)
        return ParseOutcome(workout=None, source=ParsedFrom.NONE, error=exc)
    return ParseOutcome(workout=workout, source=ParsedFrom.METADATA)


def parse(text: str, fallback_name: str) -> Workout | None:
    """Recover a workout from its metadata block, or None when `text` is not one of ours."""
    return parse_outcome(text, fallback_name).workout
