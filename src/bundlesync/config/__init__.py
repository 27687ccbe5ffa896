"""Application configuration helpers."""

from __future__ import annotations

from .controller import ControllerConfig, get_controller_config
from .env import (
    env_float,
    env_int,
    optional_env_float,
    optional_env_var,
    require_env_var,
    require_env_vars,
)
from .errors import ConfigurationError, InvalidConfigurationError, MissingConfigurationError
from .logging import configure_logging, get_log_level
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "ConfigurationError",
    "ControllerConfig",
    "DatabaseConfig",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "get_controller_config",
    "get_database_config",
    "get_database_uri",
    "get_log_level",
    "get_storage_config",
    "optional_env_float",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
]
