from __future__ import annotations

from datetime import date

from workout_tracker.models import Exercise, ExerciseSet, Workout
from workout_tracker.narrative import decode_narrative, encode_narrative, extract_narrative


def _workout() -> Workout:
    return Workout(
        id="1714567890123",
        date="2024-05-01",
        name="Push Day",
        duration=45,
        exercises=[
            Exercise(
                name="Bench Press",
                sets=[ExerciseSet(reps=10, weight=100, rest_time=90), ExerciseSet(reps=8, weight=82.5)],
                notes="Paused reps",
            ),
            Exercise(name="Plank", sets=[ExerciseSet(duration=1.5), ExerciseSet()]),
            Exercise(name="Stretching"),
        ],
        notes="Felt strong.\nSleep was good.",
    )


def test_encode_narrative_layout() -> None:
    body = encode_narrative(_workout())
    assert body.startswith("# Push Day\n\n**Date:** 2024-05-01\n**Duration:** 45 minutes\n\n## Exercises\n\n")
    assert "| Set | Reps | Weight | Duration | Distance | Rest |" in body
    assert "| 1 | 10 | 100 | - | - | 90 |" in body
    assert "| 2 | 8 | 82.5 | - | - | - |" in body
    assert "| 2 | - | - | - | - | - |" in body
    assert "\n**Notes:** Paused reps\n" in body
    assert body.endswith("## Notes\n\nFelt strong.\nSleep was good.\n")


def test_encode_narrative_omits_absent_duration_and_notes() -> None:
    workout = Workout(id="1", date="2024-05-01", name="Walk")
    body = encode_narrative(workout)
    assert "**Duration:**" not in body
    assert "## Notes" not in body


def test_zero_is_not_a_placeholder() -> None:
    workout = Workout(
        id="1",
        date="2024-05-01",
        name="Drills",
        exercises=[Exercise(name="Sprint", sets=[ExerciseSet(reps=0, weight=None, distance=0)])],
    )
    body = encode_narrative(workout)
    assert "| 1 | 0 | - | - | 0 | - |" in body

    recovered = decode_narrative(body, "drills")
    item = recovered.exercises[0].sets[0]
    assert item.reps == 0
    assert item.weight is None
    assert item.distance == 0


def test_decode_narrative_round_trips_with_metadata_id() -> None:
    original = _workout()
    text = "---\nid: '1714567890123'\nworkoutTracker: true\n---\n\n" + encode_narrative(original)
    assert decode_narrative(text, "ignored") == original


def test_extract_narrative_tolerates_hand_edited_tables() -> None:
    body = (
        "# Upper Body\n"
        "\n"
        "**Date:** 2024-06-02\n"
        "**Duration:** 52.5 minutes\n"
        "\n"
        "## Exercises\n"
        "\n"
        "### Overhead Press\n"
        "\n"
        "| Set | Reps | Weight | Duration | Distance | Rest |\n"
        "| :---: | --- | --- | --- | --- | --- |\n"
        "| 1 | 5 | 50 |  | - | 120 |\n"
        "| 2 | five | 50 | - | - | - |\n"
        "| 3 | 5 |\n"
        "\n"
        "**Notes:**   strict form  \n"
        "\n"
        "### Dips\n"
    )
    fields = extract_narrative(body)

    assert fields.name == "Upper Body"
    assert fields.date == "2024-06-02"
    assert fields.duration == 52.5
    assert fields.identifier is None
    press, dips = fields.exercises
    assert press.name == "Overhead Press"
    assert [item.reps for item in press.sets] == [5, None]
    assert [item.weight for item in press.sets] == [50, 50]
    assert press.sets[0].duration is None
    assert press.sets[0].rest_time == 120
    assert press.notes == "strict form"
    assert dips.sets == []
    assert fields.notes is None


def test_extract_narrative_of_free_text() -> None:
    fields = extract_narrative("Groceries: eggs, milk\n")
    assert not fields.has_structure
    assert fields.exercises == []


def test_decode_narrative_defaults() -> None:
    workout = decode_narrative("### Push-up\n\n| 1 | 20 | - | - | - | - |\n", "2024-05-01-push")
    assert workout.name == "2024-05-01-push"
    assert workout.date == date.today().isoformat()
    assert workout.exercises[0].sets[0].reps == 20


def test_date_text_is_kept_verbatim() -> None:
    workout = decode_narrative("# Run\n\n**Date:** May 1st\n", "run")
    assert workout.date == "May 1st"
    assert workout.day is None
