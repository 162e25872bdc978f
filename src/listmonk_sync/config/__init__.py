"""Application configuration helpers."""

from __future__ import annotations

from .env import (
    optional_env_bool,
    optional_env_float,
    optional_env_int,
    require_env_var,
    require_env_vars,
)
from .errors import ConfigurationError, MissingConfigurationError
from .listmonk import ListmonkConfig, get_listmonk_config
from .logging import configure_logging
from .transport import RateLimit, TransportConfig

__all__ = [
    "ConfigurationError",
    "ListmonkConfig",
    "MissingConfigurationError",
    "RateLimit",
    "TransportConfig",
    "configure_logging",
    "get_listmonk_config",
    "optional_env_bool",
    "optional_env_float",
    "optional_env_int",
    "require_env_var",
    "require_env_vars",
]
