from __future__ import annotations

from datetime import date

import pytest

from workout_tracker.metrics import aggregate
from workout_tracker.models import Exercise, ExerciseSet, ValidationError, Workout
from workout_tracker.services import (
    build_workout_from_inputs,
    generate_plots,
    parse_exercise_notes,
    parse_exercise_spec,
    parse_set_spec,
    render_frequency_table,
    render_personal_records,
    render_statistics,
    render_workout,
)


def test_parse_set_spec_forms() -> None:
    assert parse_set_spec("100x10") == ExerciseSet(weight=100, reps=10)
    assert parse_set_spec("82.5 × 5") == ExerciseSet(weight=82.5, reps=5)
    assert parse_set_spec("12") == ExerciseSet(reps=12)
    assert parse_set_spec("-").is_placeholder
    assert parse_set_spec("reps=10 weight=60 rest=90") == ExerciseSet(reps=10, weight=60, rest_time=90)
    assert parse_set_spec("duration=20 distance=5.5") == ExerciseSet(duration=20, distance=5.5)


@pytest.mark.parametrize("token", ["", "heavy", "reps=ten", "sets=3", "reps=-1"])
def test_parse_set_spec_rejects_garbage(token: str) -> None:
    with pytest.raises(ValidationError):
        parse_set_spec(token)


def test_parse_exercise_spec() -> None:
    exercise = parse_exercise_spec("Bench Press: 100x10, 110x8")
    assert exercise.name == "Bench Press"
    assert [item.weight for item in exercise.sets] == [100, 110]
    assert parse_exercise_spec("Stretching").sets == []
    with pytest.raises(ValidationError):
        parse_exercise_spec(": 10")


def test_build_workout_from_inputs() -> None:
    result = build_workout_from_inputs(
        name=" Push Day ",
        date_text="2024-05-01",
        exercises=["Bench Press: 100x10, 110x8", "Push-up: 20, 15"],
        duration_minutes=45.0,
        notes="  ",
        exercise_notes={"Bench Press": "Paused"},
    )
    workout = result.workout

    assert workout.name == "Push Day"
    assert workout.date == "2024-05-01"
    assert workout.duration == 45
    assert workout.notes is None
    assert workout.exercises[0].notes == "Paused"
    assert result.confirmation == "Logged Push Day on 2024-05-01 (2 exercises, 4 sets)."
    assert "volume=1880.0" in result.verbose_tokens


def test_build_workout_defaults_to_today() -> None:
    result = build_workout_from_inputs(
        name="Walk",
        date_text=None,
        exercises=[],
        duration_minutes=None,
        notes=None,
    )
    assert result.workout.date == date.today().isoformat()
    assert result.confirmation.endswith("(0 exercises, 0 sets).")


def test_build_workout_rejects_bad_date() -> None:
    with pytest.raises(ValidationError):
        build_workout_from_inputs(name="Walk", date_text="05/01/2024", exercises=[], duration_minutes=None, notes=None)


def test_parse_exercise_notes() -> None:
    assert parse_exercise_notes(["Bench Press = slow eccentric"]) == {"Bench Press": "slow eccentric"}
    with pytest.raises(ValidationError):
        parse_exercise_notes(["no separator"])


def _workouts() -> list[Workout]:
    return [
        Workout(
            id="1",
            date="2024-05-01",
            name="Push Day",
            duration=45,
            exercises=[
                Exercise(name="Bench Press", sets=[ExerciseSet(reps=10, weight=100), ExerciseSet()], notes="Paused"),
                Exercise(name="Run", sets=[ExerciseSet(duration=20, distance=4)]),
            ],
            notes="Solid",
        ),
        Workout(
            id="2",
            date="2024-05-03",
            name="Push Day",
            exercises=[Exercise(name="Bench Press", sets=[ExerciseSet(reps=5, weight=105)])],
        ),
    ]


def test_render_workout() -> None:
    text = render_workout(_workouts()[0])
    assert text.splitlines()[0] == "Push Day (2024-05-01)"
    assert "Duration: 45 minutes" in text
    assert "  Bench Press: 100x10, -" in text
    assert "    Notes: Paused" in text
    assert "  Run: 20 min 4 dist" in text
    assert text.endswith("Notes: Solid")


def test_render_statistics_tables() -> None:
    stats = aggregate(_workouts(), today=date(2024, 5, 3))
    summary = render_statistics(stats)
    assert "Total workouts" in summary
    assert "Current streak    1 day" in summary

    frequency = render_frequency_table(stats)
    assert frequency.splitlines()[0].split() == ["EXERCISE", "COUNT"]
    assert frequency.splitlines()[1].split() == ["Bench", "Press", "2"]

    records = render_personal_records(stats)
    assert "105" in records
    assert "2024-05-03" in records


def test_generate_plots_writes_png_files(tmp_path) -> None:
    matplotlib = pytest.importorskip("matplotlib")
    matplotlib.use("Agg")

    paths = generate_plots(_workouts(), output_dir=tmp_path, exercise="Bench Press")
    assert len(paths) == 2
    for path in paths:
        assert path.exists()
        assert path.suffix == ".png"


def test_generate_plots_requires_data(tmp_path) -> None:
    pytest.importorskip("matplotlib")
    with pytest.raises(ValueError):
        generate_plots([], output_dir=tmp_path)
    with pytest.raises(ValueError):
        generate_plots(_workouts(), output_dir=tmp_path, exercise="Run")
