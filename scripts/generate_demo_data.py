from __future__ import annotations

import argparse
import random
from datetime import date, timedelta
from pathlib import Path
from typing import Sequence

from workout_tracker.models import Exercise, ExerciseSet, Workout
from workout_tracker.storage import WorkoutStore

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_FOLDER = ROOT / "demo" / "Workouts"
ROUTINES: dict[str, Sequence[tuple[str, float]]] = {
    "Push Day": (("Bench Press", 80.0), ("Overhead Press", 45.0), ("Push-up", 0.0)),
    "Pull Day": (("Deadlift", 120.0), ("Barbell Row", 70.0), ("Pull-up", 0.0)),
    "Leg Day": (("Back Squat", 100.0), ("Romanian Deadlift", 90.0), ("Walking Lunge", 20.0)),
}


def _build_workouts(days: int, start: date, seed: int) -> list[Workout]:
    rng = random.Random(seed)
    workouts: list[Workout] = []
    routine_names = list(ROUTINES)

    for offset in range(days):
        if rng.random() < 0.3:
            continue
        workout_day = start + timedelta(days=offset)
        progress = 1 + 0.005 * offset
        name = routine_names[offset % len(routine_names)]
        exercises: list[Exercise] = []
        for exercise_name, base_weight in ROUTINES[name]:
            sets = []
            for _ in range(rng.randint(3, 5)):
                reps = rng.randint(5, 12)
                if base_weight:
                    weight = round(base_weight * progress + rng.choice([-5, -2.5, 0, 2.5]), 1)
                    sets.append(ExerciseSet(reps=reps, weight=weight, rest_time=rng.choice([60, 90, 120])))
                else:
                    sets.append(ExerciseSet(reps=reps + 5))
            exercises.append(Exercise(name=exercise_name, sets=sets))
        note = rng.choice([None, "Felt strong.", "Short on sleep, kept it easy.", "New gym, unfamiliar kit."])
        workouts.append(
            Workout(
                id=f"demo{seed}{offset:04d}",
                date=workout_day.isoformat(),
                name=name,
                exercises=exercises,
                duration=rng.randint(40, 80),
                notes=note,
            )
        )
    return workouts


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate synthetic demo workout documents.")
    parser.add_argument("--days", type=int, default=28, help="Number of sequential days to cover.")
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=(date.today() - timedelta(days=27)).isoformat(),
        help="Start date (YYYY-MM-DD). Defaults to 27 days before today.",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility.")
    parser.add_argument("--folder", type=Path, default=DEFAULT_FOLDER, help="Destination workout folder.")
    args = parser.parse_args()

    if isinstance(args.start_date, str):
        start = date.fromisoformat(args.start_date)
    else:
        start = args.start_date

    store = WorkoutStore(args.folder)
    workouts = _build_workouts(days=args.days, start=start, seed=args.seed)
    for workout in workouts:
        store.save_workout(workout)

    print(f"Wrote {len(workouts)} demo workouts to {args.folder}")


if __name__ == "__main__":
    main()
