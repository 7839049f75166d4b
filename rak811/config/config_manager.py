"""Configuration manager for the RAK811 driver.

Loads driver configuration from defaults, a YAML file and environment
variable overrides, then validates it against the JSON schema.
"""

from copy import deepcopy
from pathlib import Path
from typing import Optional, Dict, Any
import os

import yaml

from rak811.config.config_models import (
    Config,
    SerialConfig,
    DriverConfig,
    LoggingConfig,
    LogLevel
)
from rak811.config.config_schema import ConfigSchema
from rak811.config.defaults import get_default_config
from rak811.core.exceptions import ConfigurationError

ENV_PREFIX = "RAK811_"


class ConfigManager:
    """Configuration loader.

    Layered loading:
    1. Load defaults
    2. Load from file (if exists)
    3. Apply environment variable overrides
    4. Validate configuration against JSON schema
    5. Return validated Config object
    """

    @classmethod
    def load(cls,
             config_path: Optional[Path] = None,
             skip_validation: bool = False) -> Config:
        """Build a validated Config.

        Args:
            config_path: Optional path to a YAML file. If None, searches default paths.
            skip_validation: Skip schema validation.

        Raises:
            ConfigurationError: File missing or unreadable, or configuration invalid.
        """
        # Step 1: Load defaults
        config_dict = get_default_config().to_dict()

        # Step 2: Load from file if exists
        if config_path is None:
            config_path = cls._search_config_paths()
        elif not Path(config_path).exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        if config_path is not None:
            file_config = cls._load_from_file(Path(config_path))
            config_dict = cls._merge_configs(config_dict, file_config)

        # Step 3: Apply environment variable overrides
        env_overrides = cls._apply_env_overrides(config_dict)
        if env_overrides:
            config_dict = cls._merge_configs(config_dict, env_overrides)

        # Step 4: Validate configuration
        if not skip_validation:
            is_valid, validation_errors = ConfigSchema.validate_config(config_dict)
            if not is_valid:
                raise ConfigurationError("Configuration validation failed:", validation_errors)

        return cls._dict_to_config(config_dict)

    @staticmethod
    def _search_config_paths() -> Optional[Path]:
        """Search for a configuration file.

        Search order:
            1. ./rak811.yaml (current directory)
            2. ~/.rak811/config.yaml (user home directory)
        """
        search_paths = [
            Path("./rak811.yaml"),
            Path.home() / ".rak811" / "config.yaml"
        ]

        for path in search_paths:
            if path.exists() and path.is_file():
                return path

        return None

    @staticmethod
    def _load_from_file(path: Path) -> Dict[str, Any]:
        """Load configuration from YAML file.

        Raises:
            ConfigurationError: File unreadable, not YAML, or not a mapping.
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                config_dict = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}")

        if config_dict is None:
            return {}
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping of sections")
        return config_dict

    @staticmethod
    def _apply_env_overrides(current: Dict[str, Any]) -> Dict[str, Any]:
        """Collect environment variable overrides.

        Environment variables use format: RAK811_SECTION_KEY
        Examples:
            RAK811_SERIAL_PORT=/dev/ttyUSB0
            RAK811_SERIAL_BAUD_RATE=9600
            RAK811_DRIVER_DEBUG=true

        Values are converted to the type of the value they replace.
        """
        overrides: Dict[str, Dict[str, Any]] = {}

        for env_name, env_value in os.environ.items():
            if not env_name.startswith(ENV_PREFIX):
                continue

            # Parse: RAK811_SERIAL_BAUD_RATE -> ["serial", "baud_rate"]
            parts = env_name[len(ENV_PREFIX):].lower().split('_', 1)
            if len(parts) != 2:
                continue

            section, key = parts
            existing = current.get(section, {}).get(key) if isinstance(current.get(section), dict) else None
            overrides.setdefault(section, {})[key] = ConfigManager._parse_env_value(env_value, existing)

        return overrides

    @staticmethod
    def _parse_env_value(value: str, existing: Any = None) -> Any:
        """Parse an environment value to the type of ``existing``.

        Unparseable values are returned as strings so schema validation
        reports them.
        """
        lowered = value.strip().lower()

        if isinstance(existing, bool):
            if lowered in ('true', '1', 'yes', 'on'):
                return True
            if lowered in ('false', '0', 'no', 'off'):
                return False
            return value

        if lowered in ('none', 'null', ''):
            return None

        if isinstance(existing, str):
            return value

        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            return value

    @staticmethod
    def _merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge two configuration dictionaries (override takes precedence)."""
        merged = deepcopy(base)

        for section, section_values in override.items():
            if isinstance(section_values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(section_values)
            else:
                merged[section] = section_values

        return merged

    @staticmethod
    def _dict_to_config(config_dict: Dict[str, Any]) -> Config:
        """Convert configuration dictionary to Config object."""
        defaults = get_default_config()

        serial_dict = config_dict.get('serial', {})
        serial = SerialConfig(
            port=serial_dict.get('port', defaults.serial.port),
            baud_rate=serial_dict.get('baud_rate', defaults.serial.baud_rate),
            timeout=serial_dict.get('timeout', defaults.serial.timeout),
            parity=serial_dict.get('parity', defaults.serial.parity),
            stop_bits=serial_dict.get('stop_bits', defaults.serial.stop_bits),
            byte_size=serial_dict.get('byte_size', defaults.serial.byte_size)
        )

        driver_dict = config_dict.get('driver', {})
        driver = DriverConfig(
            debug=driver_dict.get('debug', defaults.driver.debug),
            event_timeout=driver_dict.get('event_timeout', defaults.driver.event_timeout),
            reset_pin=driver_dict.get('reset_pin', defaults.driver.reset_pin),
            reset_low_time=driver_dict.get('reset_low_time', defaults.driver.reset_low_time),
            reset_boot_time=driver_dict.get('reset_boot_time', defaults.driver.reset_boot_time)
        )

        log_dict = config_dict.get('logging', {})
        level = log_dict.get('level', defaults.logging.level)
        logging = LoggingConfig(
            enabled=log_dict.get('enabled', defaults.logging.enabled),
            level=level if isinstance(level, LogLevel) else LogLevel(str(level).upper()),
            log_to_console=log_dict.get('log_to_console', defaults.logging.log_to_console),
            log_to_file=log_dict.get('log_to_file', defaults.logging.log_to_file),
            log_file_path=log_dict.get('log_file_path', defaults.logging.log_file_path),
            max_file_size_mb=log_dict.get('max_file_size_mb', defaults.logging.max_file_size_mb),
            backup_count=log_dict.get('backup_count', defaults.logging.backup_count)
        )

        return Config(serial=serial, driver=driver, logging=logging)
