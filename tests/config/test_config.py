from __future__ import annotations

import logging
import os

import pytest

from bundlesync.config import (
    ControllerConfig,
    InvalidConfigurationError,
    MissingConfigurationError,
    env_float,
    env_int,
    get_controller_config,
    get_log_level,
    optional_env_var,
    require_env_var,
    require_env_vars,
)

CONTROLLER_VARS = (
    "BUNDLESYNC_MANAGED_BY",
    "BUNDLESYNC_SOURCE_REQUEUE_SECONDS",
    "BUNDLESYNC_MAX_CONFLICT_RETRIES",
    "BUNDLESYNC_PASS_TIMEOUT_SECONDS",
    "BUNDLESYNC_BACKOFF_BASE_SECONDS",
    "BUNDLESYNC_BACKOFF_MAX_SECONDS",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (*CONTROLLER_VARS, "BUNDLESYNC_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("PRESENT_VAR", "x")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["PRESENT_VAR", "MISSING_VAR"])

    assert "MISSING_VAR" in str(exc.value)
    assert "PRESENT_VAR" not in str(exc.value)


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")
    assert optional_env_var("EXAMPLE_VAR") is None
    assert os.getenv("EXAMPLE_VAR") == "   "


def test_numeric_env_vars_fall_back_and_validate(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NUMERIC_VAR", raising=False)
    assert env_float("NUMERIC_VAR", 2.5) == 2.5
    assert env_int("NUMERIC_VAR", 4) == 4

    monkeypatch.setenv("NUMERIC_VAR", " 7 ")
    assert env_float("NUMERIC_VAR", 2.5) == 7.0
    assert env_int("NUMERIC_VAR", 4) == 7

    monkeypatch.setenv("NUMERIC_VAR", "-1")
    with pytest.raises(InvalidConfigurationError, match=">= 0"):
        env_int("NUMERIC_VAR", 4)

    monkeypatch.setenv("NUMERIC_VAR", "soon")
    with pytest.raises(InvalidConfigurationError, match="must be a number"):
        env_float("NUMERIC_VAR", 2.5)


def test_controller_config_defaults(clean_env: pytest.MonkeyPatch) -> None:
    _ = clean_env

    assert get_controller_config() == ControllerConfig()
    assert ControllerConfig().source_requeue_seconds == 30.0


def test_controller_config_reads_environment(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("BUNDLESYNC_MANAGED_BY", "staging-controller")
    clean_env.setenv("BUNDLESYNC_SOURCE_REQUEUE_SECONDS", "10")
    clean_env.setenv("BUNDLESYNC_MAX_CONFLICT_RETRIES", "5")
    clean_env.setenv("BUNDLESYNC_PASS_TIMEOUT_SECONDS", "2.5")
    clean_env.setenv("BUNDLESYNC_BACKOFF_BASE_SECONDS", "0.5")
    clean_env.setenv("BUNDLESYNC_BACKOFF_MAX_SECONDS", "30")

    config = get_controller_config()

    assert config == ControllerConfig(
        managed_by="staging-controller",
        source_requeue_seconds=10.0,
        max_conflict_retries=5,
        pass_timeout_seconds=2.5,
        backoff_base_seconds=0.5,
        backoff_max_seconds=30.0,
    )


def test_controller_config_rejects_garbage(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("BUNDLESYNC_MAX_CONFLICT_RETRIES", "many")

    with pytest.raises(InvalidConfigurationError, match="BUNDLESYNC_MAX_CONFLICT_RETRIES"):
        get_controller_config()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("15", 15)],
)
def test_log_level_from_environment(
    clean_env: pytest.MonkeyPatch, raw: str, expected: int
) -> None:
    clean_env.setenv("BUNDLESYNC_LOG_LEVEL", raw)

    assert get_log_level() == expected


def test_log_level_default_and_unknown(clean_env: pytest.MonkeyPatch) -> None:
    assert get_log_level() == logging.INFO

    clean_env.setenv("BUNDLESYNC_LOG_LEVEL", "chatty")
    with pytest.raises(InvalidConfigurationError):
        get_log_level()
