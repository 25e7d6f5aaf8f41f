"""Common utilities for pkgmigrate."""

from .logger import setup_logger, get_logger
from .config import ConfigError, MigrateConfig, load_typed_config

__all__ = [
    "ConfigError",
    "MigrateConfig",
    "get_logger",
    "load_typed_config",
    "setup_logger",
]
