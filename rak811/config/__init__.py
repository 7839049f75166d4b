"""Configuration management package.

Provides centralized configuration access with defaults, file loading,
and environment variable overrides.
"""

from rak811.config.config_manager import ConfigManager
from rak811.config.config_models import (
    Config,
    SerialConfig,
    DriverConfig,
    LoggingConfig,
    LogLevel
)
from rak811.config.defaults import get_default_config

__all__ = [
    'ConfigManager',
    'Config',
    'SerialConfig',
    'DriverConfig',
    'LoggingConfig',
    'LogLevel',
    'get_default_config',
]
