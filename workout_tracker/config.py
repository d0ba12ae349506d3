from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from .constants import DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_SYNC_DELAY_MS, DEFAULT_WORKOUT_FOLDER
from .env import get_env

try:  # pragma: no cover - Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    try:
        import tomli as tomllib  # type: ignore
    except ModuleNotFoundError:
        tomllib = None  # type: ignore


@dataclass(frozen=True)
class AppConfig:
    workout_folder: str = DEFAULT_WORKOUT_FOLDER
    enable_auto_sync: bool = True
    auto_sync_delay_ms: int = DEFAULT_SYNC_DELAY_MS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS

    @property
    def auto_sync_delay_seconds(self) -> float:
        return self.auto_sync_delay_ms / 1000.0


def _config_path() -> Path | None:
    """Resolve the TOML configuration file, if present."""
    env_override = get_env("CONFIG")
    if env_override:
        path = Path(env_override).expanduser()
        return path if path.exists() else None

    default_path = Path("config/workout_tracker.toml")
    if default_path.exists():
        return default_path
    return None


def _load_toml(path: Path) -> Mapping[str, Any]:
    if tomllib is None:
        raise RuntimeError("TOML configuration requires Python 3.11+ or the 'tomli' package.")
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _coerce_folder(raw: Any) -> str:
    if isinstance(raw, str) and raw.strip():
        return raw.strip().rstrip("/")
    return DEFAULT_WORKOUT_FOLDER


def _coerce_bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return default


def _coerce_delay(raw: Any) -> int:
    if raw is None or isinstance(raw, bool):
        return DEFAULT_SYNC_DELAY_MS
    try:
        delay = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_SYNC_DELAY_MS
    return delay if delay >= 0 else DEFAULT_SYNC_DELAY_MS


def _coerce_interval(raw: Any) -> float:
    if raw is None or isinstance(raw, bool):
        return DEFAULT_POLL_INTERVAL_SECONDS
    try:
        interval = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_POLL_INTERVAL_SECONDS
    return interval if interval > 0 else DEFAULT_POLL_INTERVAL_SECONDS


def _build_config(raw: Mapping[str, Any]) -> AppConfig:
    sync_section = raw.get("sync")
    sync = sync_section if isinstance(sync_section, Mapping) else {}
    return AppConfig(
        workout_folder=_coerce_folder(raw.get("workout_folder")),
        enable_auto_sync=_coerce_bool(sync.get("enabled"), True),
        auto_sync_delay_ms=_coerce_delay(sync.get("delay_ms")),
        poll_interval_seconds=_coerce_interval(sync.get("poll_interval_seconds")),
    )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load configuration once, falling back to built-in defaults."""
    path = _config_path()
    if not path:
        return AppConfig()
    data = _load_toml(path)
    return _build_config(data)


def workout_dir() -> Path:
    """Folder holding workout documents; `WORKOUT_TRACKER_WORKOUT_DIR` wins over the config file."""
    override = get_env("WORKOUT_DIR")
    if override:
        return Path(override).expanduser()
    return Path(get_config().workout_folder).expanduser()


def as_dict() -> dict[str, Any]:
    """Return the effective configuration for debug/CLI display."""
    config = get_config()
    return {
        "workout_folder": str(workout_dir()),
        "sync": {
            "enabled": config.enable_auto_sync,
            "delay_ms": config.auto_sync_delay_ms,
            "poll_interval_seconds": config.poll_interval_seconds,
        },
        "source": str(_config_path() or "defaults"),
    }
