from __future__ import annotations

import logging
import re
import threading
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Dict, List, Mapping

from .config import workout_dir
from .constants import DOCUMENT_SUFFIX
from .document import generate, parse
from .models import Workout
from .sync import SyncResult, SyncScheduler, is_owned_document, reconcile

LOGGER = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def file_name_for(workout: Workout) -> str:
    """`<date>-<id>-<Safe-Name>.md`, e.g. `2024-05-01-1714567890123-Push-Day.md`."""
    safe_name = _WHITESPACE.sub("-", _UNSAFE_NAME_CHARS.sub("", workout.name).strip())
    return f"{workout.date}-{workout.id}-{safe_name}{DOCUMENT_SUFFIX}"


class WorkoutStore:
    """
    Workout documents stored as Markdown files under one folder.

    The primitives (`read_text`, `write_text`, `create_text`, `exists`,
    `create_folder`) are plain single-call file operations; nothing here is
    transactional beyond the atomic replace in `write_text`.
    """

    def __init__(self, folder: Path | str | None = None) -> None:
        self.folder = Path(folder).expanduser() if folder is not None else workout_dir()

    def list_candidate_documents(self) -> List[Path]:
        if not self.folder.is_dir():
            return []
        return sorted(path for path in self.folder.rglob(f"*{DOCUMENT_SUFFIX}") if path.is_file())

    def read_text(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")

    def write_text(self, path: Path, text: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile("w", dir=target.parent, delete=False, encoding="utf-8", newline="") as tmp:
            tmp.write(text)
            temp_path = Path(tmp.name)
        temp_path.replace(target)

    def create_text(self, path: Path, text: str) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("x", encoding="utf-8", newline="") as handle:
            handle.write(text)
        return target

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def create_folder(self, path: Path | None = None) -> None:
        Path(path or self.folder).mkdir(parents=True, exist_ok=True)

    def path_for(self, workout: Workout) -> Path:
        return self.folder / file_name_for(workout)

    def save_workout(self, workout: Workout) -> Path:
        """Write `workout` to its canonical path, creating or overwriting the document."""
        if not self.exists(self.folder):
            self.create_folder()
        target = self.path_for(workout)
        content = generate(workout)
        if self.exists(target):
            self.write_text(target, content)
            LOGGER.info("Workout updated: %s", target.name)
        else:
            self.create_text(target, content)
            LOGGER.info("Workout saved: %s", target.name)
        return target

    def load_workout(self, path: Path) -> Workout | None:
        target = Path(path)
        return parse(self.read_text(target), target.stem)

    def load_all_workouts(self) -> List[Workout]:
        workouts: List[Workout] = []
        for path in self.list_candidate_documents():
            try:
                workout = self.load_workout(path)
            except (OSError, UnicodeDecodeError) as exc:
                LOGGER.warning("Could not read %s: %s", path, exc)
                continue
            if workout is not None:
                workouts.append(workout)
        return workouts

    def is_workout_file(self, path: Path) -> bool:
        try:
            return is_owned_document(self.read_text(path))
        except (OSError, UnicodeDecodeError):
            return False

    def sync_document(self, path: Path, *, dry_run: bool = False) -> SyncResult:
        """Reconcile one owned document, writing the canonical text back when it changed."""
        target = Path(path)
        text = self.read_text(target)
        if not is_owned_document(text):
            return SyncResult(changed=False)
        result = reconcile(text, target.stem)
        if result.changed and result.updated_text is not None and not dry_run:
            self.write_text(target, result.updated_text)
            LOGGER.info("Auto-synced metadata for: %s", target)
        return result

    def changed_since(self, previous: Mapping[Path, float]) -> tuple[List[Path], Dict[Path, float]]:
        """Documents added or modified since `previous`, plus the fresh snapshot."""
        current = self.snapshot()
        changed = [path for path, stamp in current.items() if previous.get(path) != stamp]
        return changed, current

    def snapshot(self) -> Dict[Path, float]:
        """Modification time of every candidate document, for change polling."""
        stamps: Dict[Path, float] = {}
        for path in self.list_candidate_documents():
            try:
                stamps[path] = path.stat().st_mtime
            except OSError:
                continue
        return stamps


def watch_folder(
    store: WorkoutStore,
    scheduler: SyncScheduler,
    *,
    interval: float,
    stop: threading.Event,
) -> None:
    """
    Poll `store` every `interval` seconds and notify `scheduler` of edited documents.

    Runs until `stop` is set. Documents present when watching starts are not
    synced until they change.
    """
    previous = store.snapshot()
    while not stop.wait(interval):
        changed, previous = store.changed_since(previous)
        for path in changed:
            LOGGER.debug("Detected change in %s", path)
            scheduler.notify(str(path))
