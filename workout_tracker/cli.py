from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

import typer

from .config import as_dict as config_as_dict, get_config
from .env import get_env
from .metrics import aggregate, exercise_progression, workouts_in_date_range
from .models import ValidationError, parse_iso_date
from .services import (
    LogResult,
    build_workout_from_inputs,
    generate_plots,
    parse_exercise_notes,
    render_frequency_table,
    render_personal_records,
    render_recent_activity,
    render_statistics,
    render_workout,
)
from .storage import WorkoutStore, watch_folder
from .sync import SyncScheduler

app = typer.Typer(help="Log workouts as Markdown documents and review training statistics.")

_FOLDER_HELP = "Workout folder (defaults to WORKOUT_TRACKER_WORKOUT_DIR or the configured folder)."


def _fail(message: str, *, code: int = 1) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


def _store(folder: Optional[Path]) -> WorkoutStore:
    return WorkoutStore(folder)


def _parse_date_option(value: Optional[str], *, name: str) -> Optional[str]:
    if value is None:
        return None
    try:
        return parse_iso_date(value, field=name).isoformat()
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_name=name) from exc


@app.command()
def log(
    name: str = typer.Option(
        ...,
        "--name",
        "-n",
        help="Workout name (e.g. 'Push Day').",
    ),
    date: Optional[str] = typer.Option(
        None,
        "--date",
        "-d",
        help="Workout date in YYYY-MM-DD format (defaults to today).",
    ),
    exercise: list[str] = typer.Option(
        [],
        "--exercise",
        "-e",
        help="Exercise and sets, e.g. 'Bench Press: 100x10, 110x8' (repeatable).",
    ),
    exercise_note: list[str] = typer.Option(
        [],
        "--exercise-note",
        help="Per-exercise note as 'Exercise=note' (repeatable).",
    ),
    duration_minutes: Optional[float] = typer.Option(
        None,
        "--duration-minutes",
        "-m",
        help="Total workout duration in minutes.",
    ),
    notes: Optional[str] = typer.Option(
        None,
        "--notes",
        help="Free-form notes about the workout.",
    ),
    folder: Optional[Path] = typer.Option(None, "--folder", "-f", help=_FOLDER_HELP),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show the parsed details after saving.",
    ),
) -> None:
    """
    Save a workout as a Markdown document.

    Examples:
        workout-tracker log -n "Push Day" -e "Bench Press: 100x10, 110x8" -e "Push-up: 20, 15"
    """
    try:
        result: LogResult = build_workout_from_inputs(
            name=name,
            date_text=date,
            exercises=exercise,
            duration_minutes=duration_minutes,
            notes=notes,
            exercise_notes=parse_exercise_notes(exercise_note),
        )
    except ValidationError as exc:
        _fail(str(exc), code=2)

    store = _store(folder)
    try:
        path = store.save_workout(result.workout)
    except OSError as exc:
        _fail(f"Error saving workout: {exc}")

    typer.echo(result.confirmation)
    typer.echo(f"Saved to {path}")
    if verbose:
        for token in result.verbose_tokens:
            typer.echo(f" • {token}")


@app.command()
def show(
    path: Path = typer.Argument(..., help="Workout document to display."),
) -> None:
    """
    Print the workout stored in a document.
    """
    store = WorkoutStore(path.parent)
    try:
        workout = store.load_workout(path)
    except (OSError, UnicodeDecodeError) as exc:
        _fail(f"Error loading workout file: {exc}")
    if workout is None:
        _fail("This file does not contain valid workout data")
    typer.echo(render_workout(workout))


@app.command()
def stats(
    since: Optional[str] = typer.Option(
        None,
        "--since",
        help="Only include workouts on or after this date (YYYY-MM-DD).",
    ),
    until: Optional[str] = typer.Option(
        None,
        "--until",
        help="Only include workouts on or before this date (YYYY-MM-DD).",
    ),
    top: int = typer.Option(
        10,
        "--top",
        min=1,
        help="How many of the most frequent exercises to list.",
    ),
    exercise: Optional[str] = typer.Option(
        None,
        "--exercise",
        "-e",
        help="Also show the weight progression for this exercise.",
    ),
    folder: Optional[Path] = typer.Option(None, "--folder", "-f", help=_FOLDER_HELP),
) -> None:
    """
    Summarise every workout in the folder: totals, streak, frequencies and PRs.
    """
    workouts = _store(folder).load_all_workouts()
    start = _parse_date_option(since, name="since")
    end = _parse_date_option(until, name="until")
    if start or end:
        workouts = workouts_in_date_range(workouts, start or "0000-01-01", end or "9999-12-31")

    if not workouts:
        typer.echo("No workouts found.")
        raise typer.Exit(code=0)

    summary = aggregate(workouts)
    typer.echo(render_statistics(summary))

    if summary.exercise_frequency:
        typer.echo("\nMost frequent exercises")
        typer.echo(render_frequency_table(summary, limit=top))
    if summary.personal_records:
        typer.echo("\nPersonal records")
        typer.echo(render_personal_records(summary))
    recent = render_recent_activity(summary)
    if recent:
        typer.echo("\nRecent activity")
        typer.echo(recent)

    if exercise:
        points = exercise_progression(workouts, exercise)
        if not points:
            typer.secho(f"No weighted sets logged for {exercise}.", fg=typer.colors.YELLOW)
        else:
            typer.echo(f"\nProgression: {exercise}")
            for point in points:
                typer.echo(f"{point.date}  max {point.max_weight:g}  volume {point.total_volume:g}")


@app.command()
def sync(
    path: Optional[Path] = typer.Argument(None, help="Document to sync (defaults to every document)."),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Report documents that would change without writing them.",
    ),
    folder: Optional[Path] = typer.Option(None, "--folder", "-f", help=_FOLDER_HELP),
) -> None:
    """
    Rebuild the metadata block of edited documents from their body.
    """
    store = WorkoutStore(path.parent) if path is not None else _store(folder)
    targets = [path] if path is not None else store.list_candidate_documents()
    if path is not None and not store.is_workout_file(path):
        _fail(f"{path} is not a workout document.")

    verb = "Would update" if dry_run else "Updated"
    changed = 0
    for target in targets:
        try:
            result = store.sync_document(target, dry_run=dry_run)
        except (OSError, UnicodeDecodeError) as exc:
            typer.secho(f"Error syncing {target}: {exc}", fg=typer.colors.RED, err=True)
            continue
        if result.changed:
            changed += 1
            typer.echo(f"{verb} {target} (from {result.source.value})")

    plural = "s" if changed != 1 else ""
    typer.echo(f"{changed} document{plural} {'would change' if dry_run else 'updated'}.")


@app.command()
def watch(
    delay_ms: Optional[int] = typer.Option(
        None,
        "--delay-ms",
        min=0,
        help="Quiet period after the last edit before syncing (defaults to the configured delay).",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        min=0.05,
        help="Seconds between folder scans (defaults to the configured interval).",
    ),
    folder: Optional[Path] = typer.Option(None, "--folder", "-f", help=_FOLDER_HELP),
) -> None:
    """
    Watch the workout folder and re-sync documents shortly after they are edited.
    """
    config = get_config()
    if not config.enable_auto_sync:
        _fail("Auto-sync is disabled in the configuration.", code=2)

    store = _store(folder)
    delay = (delay_ms if delay_ms is not None else config.auto_sync_delay_ms) / 1000.0

    def _sync(key: str) -> None:
        target = Path(key)
        if not target.exists():
            return
        result = store.sync_document(target)
        if result.changed:
            typer.echo(f"Auto-synced metadata for: {target}")

    stop = threading.Event()
    typer.echo(f"Watching {store.folder} (Ctrl+C to stop).")
    with SyncScheduler(_sync, delay_seconds=delay) as scheduler:
        try:
            watch_folder(store, scheduler, interval=interval or config.poll_interval_seconds, stop=stop)
        except KeyboardInterrupt:
            stop.set()
    typer.echo("Stopped watching.")


@app.command()
def plot(
    exercise: Optional[str] = typer.Option(
        None,
        "--exercise",
        "-e",
        help="Also chart the max weight progression for this exercise.",
    ),
    to: Path = typer.Option(
        Path("plots"),
        "--to",
        help="Directory for the generated PNG files.",
    ),
    folder: Optional[Path] = typer.Option(None, "--folder", "-f", help=_FOLDER_HELP),
) -> None:
    """
    Render monthly workout counts (and optionally an exercise progression) as PNG charts.
    """
    workouts = _store(folder).load_all_workouts()
    try:
        paths = generate_plots(workouts, output_dir=to.expanduser(), exercise=exercise)
    except (RuntimeError, ValueError) as exc:
        _fail(str(exc))
    for path in paths:
        typer.echo(f"Wrote {path}")


@app.command("config")
def config_show() -> None:
    """
    Show the effective configuration (workout folder, auto-sync settings).
    """
    config = config_as_dict()
    typer.echo(f"Config source: {config.get('source')}")
    typer.echo(f"Workout folder: {config.get('workout_folder')}")
    sync_settings = config.get("sync", {})
    typer.echo(
        "Auto-sync: "
        f"{'on' if sync_settings.get('enabled') else 'off'}, "
        f"delay={sync_settings.get('delay_ms')} ms, "
        f"poll={sync_settings.get('poll_interval_seconds')} s"
    )


def main() -> None:
    logging.basicConfig(
        level=(get_env("LOG_LEVEL") or "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    app()


if __name__ == "__main__":
    main()
