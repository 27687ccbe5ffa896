"""Controller tuning knobs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_float, env_int, optional_env_float, optional_env_var

DEFAULT_MANAGED_BY: Final[str] = "bundlesync-controller"
DEFAULT_SOURCE_REQUEUE_SECONDS: Final[float] = 30.0
DEFAULT_MAX_CONFLICT_RETRIES: Final[int] = 3
DEFAULT_BACKOFF_BASE_SECONDS: Final[float] = 1.0
DEFAULT_BACKOFF_MAX_SECONDS: Final[float] = 300.0


@dataclass(frozen=True, slots=True)
class ControllerConfig:
    """Identity and scheduling settings for the reconciliation controller."""

    managed_by: str = DEFAULT_MANAGED_BY
    source_requeue_seconds: float = DEFAULT_SOURCE_REQUEUE_SECONDS
    max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES
    pass_timeout_seconds: float | None = None
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS
    backoff_max_seconds: float = DEFAULT_BACKOFF_MAX_SECONDS


def get_controller_config() -> ControllerConfig:
    return ControllerConfig(
        managed_by=optional_env_var("BUNDLESYNC_MANAGED_BY") or DEFAULT_MANAGED_BY,
        source_requeue_seconds=env_float(
            "BUNDLESYNC_SOURCE_REQUEUE_SECONDS", DEFAULT_SOURCE_REQUEUE_SECONDS
        ),
        max_conflict_retries=env_int(
            "BUNDLESYNC_MAX_CONFLICT_RETRIES", DEFAULT_MAX_CONFLICT_RETRIES
        ),
        pass_timeout_seconds=optional_env_float("BUNDLESYNC_PASS_TIMEOUT_SECONDS"),
        backoff_base_seconds=env_float(
            "BUNDLESYNC_BACKOFF_BASE_SECONDS", DEFAULT_BACKOFF_BASE_SECONDS
        ),
        backoff_max_seconds=env_float(
            "BUNDLESYNC_BACKOFF_MAX_SECONDS", DEFAULT_BACKOFF_MAX_SECONDS
        ),
    )
