from __future__ import annotations

import os

PRIMARY_PREFIX = "WORKOUT_TRACKER_"


def get_env(name: str, default: str | None = None) -> str | None:
    """
    Resolve configuration environment variables.

    Every setting lives under the `WORKOUT_TRACKER_` prefix, e.g.
    `WORKOUT_TRACKER_WORKOUT_DIR`.
    """
    value = os.getenv(f"{PRIMARY_PREFIX}{name}")
    if value is not None:
        return value
    return default
