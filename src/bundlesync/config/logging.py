"""Shared logging helpers for bundlesync."""

from __future__ import annotations

import logging

from .env import optional_env_var
from .errors import InvalidConfigurationError

LOG_LEVEL_ENV = "BUNDLESYNC_LOG_LEVEL"


def get_log_level(default: int = logging.INFO) -> int:
    """Resolve the log level from ``BUNDLESYNC_LOG_LEVEL`` (name or number)."""

    raw = optional_env_var(LOG_LEVEL_ENV)
    if raw is None:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelNamesMapping().get(raw.upper())
    if level is None:
        raise InvalidConfigurationError(f"{LOG_LEVEL_ENV} has unknown level {raw!r}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: the level
    defaults to ``BUNDLESYNC_LOG_LEVEL`` (or INFO) and the format is terse enough for
    CLI output. Pass ``force=True`` to reconfigure during tests or specialised entry
    points.
    """

    logging.basicConfig(
        level=get_log_level() if level is None else level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
