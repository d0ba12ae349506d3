from __future__ import annotations

import pytest

from workout_tracker.frontmatter import (
    MalformedMetadata,
    MetadataNotFound,
    NotAnOwnedRecord,
    decode_metadata,
    read_identifier,
    render_block,
    split_document,
)
from workout_tracker.models import Exercise, ExerciseSet, Workout


def _workout() -> Workout:
    return Workout(
        id="1714567890123",
        date="2024-05-01",
        name="Push Day",
        duration=45,
        exercises=[Exercise(name="Bench Press", sets=[ExerciseSet(reps=10, weight=100)], notes="Paused reps")],
        notes="Felt strong",
    )


def test_render_block_keeps_key_order_and_marker() -> None:
    block = render_block(_workout())
    assert block.startswith("---\n")
    assert block.endswith("---\n")
    keys = [line.split(":")[0] for line in block.splitlines()[1:-1] if line and not line.startswith(" ") and not line.startswith("-")]
    assert keys == ["id", "date", "name", "duration", "exercises", "notes", "workoutTracker"]
    assert "workoutTracker: true" in block


def test_decode_metadata_round_trips() -> None:
    text = render_block(_workout()) + "\n# ignored body\n"
    assert decode_metadata(text, "file-stem") == _workout()


def test_decode_metadata_requires_block() -> None:
    with pytest.raises(MetadataNotFound):
        decode_metadata("# Just a note\n", "note")


def test_decode_metadata_rejects_invalid_yaml() -> None:
    with pytest.raises(MalformedMetadata):
        decode_metadata("---\nname: [unclosed\n---\n", "note")


@pytest.mark.parametrize(
    "block",
    [
        "title: Reading list\n",
        "workoutTracker: false\nname: Push Day\n",
        "workoutTracker: 'true'\nname: Push Day\n",
        "- just\n- a list\n",
    ],
)
def test_decode_metadata_requires_marker(block: str) -> None:
    with pytest.raises(NotAnOwnedRecord):
        decode_metadata(f"---\n{block}---\n", "note")


def test_decode_metadata_coerces_odd_fields() -> None:
    text = (
        "---\n"
        "id: 42\n"
        "date: 2024-05-01\n"
        "exercises:\n"
        "  - Plank\n"
        "  - name: Row\n"
        "    sets:\n"
        "      - reps: 12\n"
        "      - oops\n"
        "duration: -3\n"
        "workoutTracker: true\n"
        "---\n"
    )
    workout = decode_metadata(text, "2024-05-01-row-day")

    assert workout.id == "42"
    assert workout.date == "2024-05-01"
    assert workout.name == "2024-05-01-row-day"
    assert workout.duration is None
    assert [exercise.name for exercise in workout.exercises] == ["Plank", "Row"]
    assert workout.exercises[0].sets == []
    assert workout.exercises[1].sets[0].reps == 12
    assert workout.exercises[1].sets[1].is_placeholder


def test_decode_metadata_fills_missing_identity() -> None:
    workout = decode_metadata("---\nworkoutTracker: true\nexercises: nope\n---\n", "")
    assert workout.id
    assert workout.date
    assert workout.name == "Workout"
    assert workout.exercises == []


def test_split_document_and_read_identifier() -> None:
    block, body = split_document("---\nid: '7'\n---\n\n# Title\n")
    assert block == "id: '7'\n"
    assert body == "# Title\n"
    assert split_document("# Title\n") == (None, "# Title\n")

    assert read_identifier("---\nid: '7'\n---\n") == "7"
    assert read_identifier("---\nid: [broken\n---\n") is None
    assert read_identifier("no block") is None


def test_crlf_documents_are_recognised() -> None:
    text = render_block(_workout()).replace("\n", "\r\n") + "\r\n# Push Day\r\n"
    block, body = split_document(text)
    assert block is not None
    assert body == "# Push Day\r\n"
    assert decode_metadata(text, "file-stem") == _workout()
