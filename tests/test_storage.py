from __future__ import annotations

import os
import threading

import pytest

from workout_tracker.document import generate
from workout_tracker.models import Exercise, ExerciseSet, Workout
from workout_tracker.storage import WorkoutStore, file_name_for, watch_folder


def _workout(**overrides) -> Workout:
    values = dict(
        id="1714567890123",
        date="2024-05-01",
        name="Push Day!",
        exercises=[Exercise(name="Bench Press", sets=[ExerciseSet(reps=10, weight=100)])],
    )
    values.update(overrides)
    return Workout(**values)


def test_file_name_for_strips_unsafe_characters() -> None:
    assert file_name_for(_workout()) == "2024-05-01-1714567890123-Push-Day.md"
    assert file_name_for(_workout(name="  Legs  &  Core ")) == "2024-05-01-1714567890123-Legs-Core.md"


def test_save_and_load_round_trip(tmp_path) -> None:
    store = WorkoutStore(tmp_path / "Workouts")
    path = store.save_workout(_workout())

    assert path.parent == tmp_path / "Workouts"
    assert path.read_text(encoding="utf-8") == generate(_workout())
    assert store.load_workout(path) == _workout()

    updated = _workout(notes="Added later")
    assert store.save_workout(updated) == path
    assert store.load_workout(path).notes == "Added later"


def test_load_all_workouts_skips_foreign_documents(tmp_path) -> None:
    store = WorkoutStore(tmp_path)
    store.save_workout(_workout())
    store.save_workout(_workout(id="2", date="2024-05-03", name="Legs"))
    (tmp_path / "reading-list.md").write_text("# Books\n", encoding="utf-8")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "other.md").write_text("---\ntitle: x\n---\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    workouts = store.load_all_workouts()
    assert sorted(workout.id for workout in workouts) == ["1714567890123", "2"]
    assert len(store.list_candidate_documents()) == 4
    assert not store.is_workout_file(tmp_path / "reading-list.md")
    assert not store.is_workout_file(tmp_path / "missing.md")


def test_missing_folder_has_no_documents(tmp_path) -> None:
    store = WorkoutStore(tmp_path / "absent")
    assert store.list_candidate_documents() == []
    assert store.load_all_workouts() == []


def test_store_defaults_to_env_folder(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("WORKOUT_TRACKER_WORKOUT_DIR", str(tmp_path / "env-folder"))
    assert WorkoutStore().folder == tmp_path / "env-folder"


def test_sync_document_writes_body_edits(tmp_path) -> None:
    store = WorkoutStore(tmp_path)
    path = store.save_workout(_workout())
    edited = path.read_text(encoding="utf-8").replace("| 1 | 10 | 100 |", "| 1 | 10 | 120 |")
    path.write_text(edited, encoding="utf-8")

    preview = store.sync_document(path, dry_run=True)
    assert preview.changed
    assert path.read_text(encoding="utf-8") == edited

    result = store.sync_document(path)
    assert result.changed
    assert "weight: 120" in path.read_text(encoding="utf-8")
    assert not store.sync_document(path).changed


def test_sync_document_ignores_unowned_files(tmp_path) -> None:
    store = WorkoutStore(tmp_path)
    path = tmp_path / "journal.md"
    path.write_text("# Journal\n\n### Bench Press\n", encoding="utf-8")

    assert not store.sync_document(path).changed
    assert path.read_text(encoding="utf-8") == "# Journal\n\n### Bench Press\n"


def test_create_text_refuses_to_overwrite(tmp_path) -> None:
    store = WorkoutStore(tmp_path)
    target = tmp_path / "a.md"
    store.create_text(target, "first")
    with pytest.raises(FileExistsError):
        store.create_text(target, "second")
    store.write_text(target, "second")
    assert store.read_text(target) == "second"


def test_changed_since_reports_new_and_modified_documents(tmp_path) -> None:
    store = WorkoutStore(tmp_path)
    first = store.save_workout(_workout())
    snapshot = store.snapshot()

    changed, snapshot = store.changed_since(snapshot)
    assert changed == []

    os.utime(first, (1_000_000, 1_000_000))
    second = store.save_workout(_workout(id="2", name="Legs"))
    changed, _ = store.changed_since(snapshot)
    assert sorted(changed) == sorted([first, second])


def test_watch_folder_notifies_scheduler_of_edits(tmp_path) -> None:
    store = WorkoutStore(tmp_path)
    path = store.save_workout(_workout())

    class _Recorder:
        def __init__(self) -> None:
            self.keys: list[str] = []
            self.seen = threading.Event()

        def notify(self, key: str) -> bool:
            self.keys.append(key)
            self.seen.set()
            return True

    recorder = _Recorder()
    stop = threading.Event()
    watcher = threading.Thread(
        target=watch_folder,
        args=(store, recorder),
        kwargs={"interval": 0.05, "stop": stop},
        daemon=True,
    )
    watcher.start()
    try:
        # Keep touching the file until the watcher's first snapshot is behind us.
        for offset in range(20):
            os.utime(path, (1_000_000 + offset, 1_000_000 + offset))
            if recorder.seen.wait(0.2):
                break
        assert recorder.seen.is_set()
    finally:
        stop.set()
        watcher.join(2.0)

    assert not watcher.is_alive()
    assert recorder.keys[0] == str(path)
