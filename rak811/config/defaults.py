"""Default configuration values for zero-config operation.

This module provides defaults for all configuration sections, allowing the
driver to run without a configuration file.
"""

from rak811.config.config_models import (
    Config,
    SerialConfig,
    DriverConfig,
    LoggingConfig,
    LogLevel
)

DEFAULT_LOG_FILE = "~/.rak811/logs/rak811.log"


def get_default_config() -> Config:
    """Get default configuration.

    Default Values:
        - Serial: /dev/ttyAMA0 (Raspberry Pi UART), 115200 baud, 8N1, 1.5s timeout
        - Driver: debug tracing off, event wait uses the serial timeout,
          reset on BCM pin 17
        - Logging: disabled; INFO level to the console when enabled
    """
    return Config(
        serial=SerialConfig(
            port="/dev/ttyAMA0",  # Raspberry Pi primary UART
            baud_rate=115200,  # Module factory setting
            timeout=1.5,
            parity="N",
            stop_bits=1,
            byte_size=8
        ),
        driver=DriverConfig(
            debug=False,
            event_timeout=None,
            reset_pin=17,
            reset_low_time=0.01,
            reset_boot_time=2.0  # Firmware boot time after reset
        ),
        logging=LoggingConfig(
            enabled=False,  # Opt-in
            level=LogLevel.INFO,
            log_to_console=True,
            log_to_file=False,
            log_file_path=None,  # DEFAULT_LOG_FILE when file logging is on
            max_file_size_mb=10,
            backup_count=5
        )
    )
