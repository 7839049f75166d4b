"""Configuration data models for the RAK811 driver.

This module defines immutable configuration dataclasses with defaults that
match the module's factory UART settings. All dataclasses are frozen.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any


class LogLevel(Enum):
    """Logging level."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class SerialConfig:
    """Serial port configuration (8N1 at 115200 baud by default)."""
    port: str = "/dev/ttyAMA0"
    baud_rate: int = 115200
    timeout: float = 1.5  # seconds
    parity: str = "N"
    stop_bits: float = 1
    byte_size: int = 8


@dataclass(frozen=True)
class DriverConfig:
    """Protocol engine configuration."""
    debug: bool = False
    event_timeout: Optional[float] = None  # seconds; None uses serial.timeout
    reset_pin: int = 17
    reset_low_time: float = 0.01
    reset_boot_time: float = 2.0


@dataclass(frozen=True)
class LoggingConfig:
    """Communication logging configuration."""
    enabled: bool = False
    level: LogLevel = LogLevel.INFO
    log_to_console: bool = True
    log_to_file: bool = False
    log_file_path: Optional[str] = None
    max_file_size_mb: float = 10
    backup_count: int = 5


@dataclass(frozen=True)
class Config:
    """Complete configuration object with all sections."""
    serial: SerialConfig = field(default_factory=SerialConfig)
    driver: DriverConfig = field(default_factory=DriverConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a plain dictionary of sections."""
        def convert_value(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, dict):
                return {k: convert_value(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_value(item) for item in obj]
            return obj

        return convert_value(asdict(self))
