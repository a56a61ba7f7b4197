"""Configuration for libcheck runs."""

from .settings import CheckConfig, ConfigError, load_config

__all__ = [
    "CheckConfig",
    "ConfigError",
    "load_config",
]
