"""JSON Schema validation for the RAK811 driver configuration.

Provides the schema definition and validation logic with clear error
messages.
"""

import copy
from typing import List, Tuple, Dict, Any

import jsonschema
from jsonschema import Draft7Validator


class ConfigSchema:
    """Configuration schema validator using JSON Schema Draft 7.

    Example:
        >>> is_valid, errors = ConfigSchema.validate_config(config_dict)
        >>> if not is_valid:
        >>>     for error in errors:
        >>>         print(error)
    """

    # Baud rates the module UART accepts
    VALID_BAUD_RATES = [9600, 19200, 38400, 57600, 115200]

    @staticmethod
    def get_schema() -> Dict[str, Any]:
        """Get JSON Schema Draft 7 for configuration validation."""
        return {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "title": "RAK811 Driver Configuration",
            "type": "object",
            "properties": {
                "serial": {
                    "type": "object",
                    "description": "Serial port settings",
                    "properties": {
                        "port": {"type": "string", "minLength": 1},
                        "baud_rate": {
                            "type": "integer",
                            "enum": ConfigSchema.VALID_BAUD_RATES
                        },
                        "timeout": {
                            "type": "number",
                            "description": "Reply timeout in seconds",
                            "exclusiveMinimum": 0,
                            "maximum": 300
                        },
                        "parity": {"type": "string", "enum": ["N", "E", "O", "M", "S"]},
                        "stop_bits": {"type": "number", "enum": [1, 1.5, 2]},
                        "byte_size": {"type": "integer", "enum": [5, 6, 7, 8]}
                    },
                    "additionalProperties": False
                },
                "driver": {
                    "type": "object",
                    "description": "Protocol engine settings",
                    "properties": {
                        "debug": {"type": "boolean"},
                        "event_timeout": {
                            "type": ["number", "null"],
                            "description": "Wait for join/send result lines in seconds",
                            "exclusiveMinimum": 0,
                            "maximum": 600
                        },
                        "reset_pin": {"type": "integer", "minimum": 0, "maximum": 40},
                        "reset_low_time": {"type": "number", "minimum": 0},
                        "reset_boot_time": {"type": "number", "minimum": 0}
                    },
                    "additionalProperties": False
                },
                "logging": {
                    "type": "object",
                    "description": "Communication logging settings",
                    "properties": {
                        "enabled": {"type": "boolean"},
                        "level": {
                            "type": "string",
                            "enum": ["DEBUG", "INFO", "WARNING", "ERROR"]
                        },
                        "log_to_console": {"type": "boolean"},
                        "log_to_file": {"type": "boolean"},
                        "log_file_path": {"type": ["string", "null"]},
                        "max_file_size_mb": {"type": "number", "exclusiveMinimum": 0},
                        "backup_count": {"type": "integer", "minimum": 0}
                    },
                    "additionalProperties": False
                }
            },
            "additionalProperties": False
        }

    @staticmethod
    def validate_config(config: Dict[str, Any], strict: bool = True) -> Tuple[bool, List[str]]:
        """Validate configuration dictionary against schema.

        Args:
            config: Configuration dictionary to validate.
            strict: If True, reject unknown fields.

        Returns:
            Tuple of (is_valid, error_messages).

        Example:
            >>> ConfigSchema.validate_config({"serial": {"baud_rate": 9600}})
            (True, [])
        """
        schema = ConfigSchema.get_schema()
        if not strict:
            schema = ConfigSchema._make_permissive(schema)

        validator = Draft7Validator(schema)
        errors = [ConfigSchema._format_error(error)
                  for error in sorted(validator.iter_errors(config), key=str)]
        errors.extend(ConfigSchema._custom_validation(config))

        return len(errors) == 0, errors

    @staticmethod
    def _make_permissive(schema: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of the schema that allows additional properties."""
        permissive_schema = copy.deepcopy(schema)

        def remove_additional_properties(obj):
            if isinstance(obj, dict):
                obj.pop("additionalProperties", None)
                for value in obj.values():
                    remove_additional_properties(value)

        remove_additional_properties(permissive_schema)
        return permissive_schema

    @staticmethod
    def _format_error(error: jsonschema.exceptions.ValidationError) -> str:
        """Format a validation error with its section and field."""
        path = list(error.absolute_path)
        section = path[0] if path else "root"
        field = path[1] if len(path) > 1 else None

        if error.validator == "additionalProperties":
            return f"Section '{section}': {error.message}"
        if field is None:
            return f"Section '{section}': {error.message}"
        if error.validator == "enum":
            return (f"Section '{section}', field '{field}': Expected one of "
                    f"{error.validator_value}, got {error.instance!r}")
        return f"Section '{section}', field '{field}': {error.message}"

    @staticmethod
    def _custom_validation(config: Dict[str, Any]) -> List[str]:
        """Checks the schema cannot express."""
        errors = []

        logging_section = config.get("logging")
        if isinstance(logging_section, dict):
            path = logging_section.get("log_file_path")
            if isinstance(path, str) and not ConfigSchema.validate_path(path):
                errors.append(
                    f"Section 'logging', field 'log_file_path': Path '{path}' "
                    f"contains invalid characters. Example: log_file_path: './logs/rak811.log'"
                )

        return errors

    @staticmethod
    def validate_path(path: str) -> bool:
        """Validate path format (rejects empty paths and control characters).

        Example:
            >>> ConfigSchema.validate_path("/var/log/rak811.log")
            True
            >>> ConfigSchema.validate_path("")
            False
        """
        if not path or path.strip() == "":
            return False
        return not any(char in path for char in ['\0', '\r', '\n'])
