"""
Keep the metadata block in step with hand edits to the body.

The body is what people edit, so `reconcile` rebuilds the workout from the
narrative first and only falls back to the metadata block when the body has
no recognisable structure. `SyncScheduler` debounces edit notifications so a
burst of saves to one document triggers a single reconciliation.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .document import ParsedFrom, generate, parse
from .frontmatter import MetadataError, is_owned_block, load_block
from .models import Workout
from .narrative import extract_narrative, workout_from_fields

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    changed: bool
    updated_text: Optional[str] = None
    source: ParsedFrom = ParsedFrom.NONE
    workout: Optional[Workout] = None


def is_owned_document(text: str) -> bool:
    """Cheap gate: does `text` start with a metadata block carrying the marker?"""
    try:
        return is_owned_block(load_block(text))
    except MetadataError:
        return False


def recover_workout(text: str, fallback_name: str) -> tuple[Optional[Workout], ParsedFrom]:
    fields = extract_narrative(text)
    if fields.has_structure:
        return workout_from_fields(fields, fallback_name), ParsedFrom.NARRATIVE
    workout = parse(text, fallback_name)
    if workout is not None:
        return workout, ParsedFrom.METADATA
    return None, ParsedFrom.NONE


def reconcile(text: str, fallback_name: str) -> SyncResult:
    """
    Regenerate the canonical document for `text`.

    Returns `changed=True` with the new text when it differs byte-for-byte
    from the input. Writing it back is left to the caller.
    """
    workout, source = recover_workout(text, fallback_name)
    if workout is None:
        return SyncResult(changed=False, source=source)

    expected = generate(workout)
    if expected == text:
        return SyncResult(changed=False, source=source, workout=workout)
    return SyncResult(changed=True, updated_text=expected, source=source, workout=workout)


class SyncScheduler:
    """
    Trailing-edge debounce of reconciliation requests keyed by document.

    `notify(key)` (re)arms a timer for `key`; only the last notification in a
    burst fires `callback(key)`. `stop()` cancels everything still pending.
    """

    def __init__(self, callback: Callable[[str], Any], delay_seconds: float = 2.0) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0.")
        self._callback = callback
        self._delay = delay_seconds
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            self._running = True

    def stop(self) -> None:
        with self._lock:
            self._running = False
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def __enter__(self) -> "SyncScheduler":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    def pending(self) -> List[str]:
        with self._lock:
            return sorted(self._timers)

    def notify(self, key: str) -> bool:
        """Schedule a sync for `key`, replacing any pending one. False when stopped."""
        with self._lock:
            if not self._running:
                return False
            existing = self._timers.pop(key, None)
            if existing is not None:
                existing.cancel()
            timer = threading.Timer(self._delay, self._fire, args=(key,))
            timer.daemon = True
            self._timers[key] = timer
            timer.start()
        return True

    def _fire(self, key: str) -> None:
        current = threading.current_thread()
        with self._lock:
            if self._timers.get(key) is not current:
                return
        try:
            self._callback(key)
        except Exception:  # noqa: BLE001 - keep the timer thread alive
            LOGGER.exception("Error syncing %s", key)
        finally:
            with self._lock:
                if self._timers.get(key) is current:
                    del self._timers[key]
