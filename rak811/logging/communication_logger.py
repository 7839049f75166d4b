"""Communication logger for the RAK811 driver.

This module provides the CommunicationLogger class, the single sink the
driver components report to. It fans entries out to the console (stderr),
an in-memory ring buffer and an optional rotating log file, filtering by
log level.
"""

from collections import deque
from datetime import datetime
from threading import Lock
from typing import Optional, List, Dict, Any, TYPE_CHECKING
import sys

from rak811.config.config_models import LogLevel
from rak811.logging.file_handler import FileHandler
from rak811.logging.log_models import LogEntry

if TYPE_CHECKING:
    from rak811.config.config_models import LoggingConfig


class CommunicationLogger:
    """Central coordinator for communication logging.

    Example:
        >>> logger = CommunicationLogger(log_level=LogLevel.DEBUG, enable_console=True)
        >>> logger.log_command(port="/dev/ttyAMA0", command="at+join=otaa")
        >>> logger.log_event(port="/dev/ttyAMA0", line="at+recv=3,0,0", event_code=3)
        >>> logger.close()
    """

    _LEVEL_PRIORITY = {
        "DEBUG": 0,
        "INFO": 1,
        "WARNING": 2,
        "ERROR": 3
    }

    def __init__(
        self,
        log_level: LogLevel = LogLevel.INFO,
        enable_file: bool = False,
        enable_console: bool = True,
        log_file_path: Optional[str] = None,
        max_file_size_mb: float = 10,
        backup_count: int = 5,
        buffer_size: int = 1000
    ):
        """Initialize CommunicationLogger with output destinations and log level.

        Args:
            log_level: Minimum level that is recorded (default: INFO)
            enable_file: Enable file logging (default: False)
            enable_console: Enable console logging to stderr (default: True)
            log_file_path: Path to log file (required if enable_file=True)
            max_file_size_mb: Maximum file size before rotation (default: 10)
            backup_count: Number of backup files to keep (default: 5)
            buffer_size: Entries kept in memory (default: 1000)

        Raises:
            ValueError: If enable_file=True but log_file_path is None
            OSError: If the log file cannot be opened
        """
        self.log_level = log_level.value if isinstance(log_level, LogLevel) else log_level
        self.enable_file = enable_file
        self.enable_console = enable_console
        self.log_file_path = log_file_path

        self._lock = Lock()
        self._buffer: deque = deque(maxlen=buffer_size)

        self._file_handler: Optional[FileHandler] = None
        if self.enable_file:
            if not log_file_path:
                raise ValueError("log_file_path required when enable_file=True")
            self._file_handler = FileHandler(
                log_file_path=log_file_path,
                max_size_mb=max_file_size_mb,
                backup_count=backup_count
            )

    @classmethod
    def from_config(cls, config: 'LoggingConfig') -> Optional['CommunicationLogger']:
        """Build a logger from the logging section, or None when disabled."""
        from rak811.config.defaults import DEFAULT_LOG_FILE

        if not config.enabled:
            return None
        return cls(
            log_level=config.level,
            enable_file=config.log_to_file,
            enable_console=config.log_to_console,
            log_file_path=config.log_file_path or (DEFAULT_LOG_FILE if config.log_to_file else None),
            max_file_size_mb=config.max_file_size_mb,
            backup_count=config.backup_count
        )

    def log(self, entry: LogEntry, force: bool = False) -> None:
        """Record an entry in every enabled destination.

        Entries below the logger's level are dropped unless ``force`` is set.
        """
        if not force and not self._should_log(entry.level):
            return

        with self._lock:
            self._buffer.append(entry)

            if self._file_handler:
                self._file_handler.write(entry)

            if self.enable_console:
                print(entry.to_string(), file=sys.stderr)

    def _should_log(self, entry_level: str) -> bool:
        entry_priority = self._LEVEL_PRIORITY.get(entry_level, 0)
        current_priority = self._LEVEL_PRIORITY.get(self.log_level, 0)
        return entry_priority >= current_priority

    def log_command(self, port: str, command: str) -> None:
        """Log a command written to the module."""
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="INFO",
            source="CommandDispatcher",
            message="Sending command",
            port=port,
            command=command
        ))

    def log_response(
        self,
        port: str,
        response: str,
        status: str,
        execution_time: float,
        command: Optional[str] = None,
        error: Optional[str] = None
    ) -> None:
        """Log the outcome of a command round trip.

        SUCCESS is logged at INFO, TIMEOUT at WARNING, everything else at ERROR.
        """
        if status == "SUCCESS":
            level = "INFO"
        elif status == "TIMEOUT":
            level = "WARNING"
        else:
            level = "ERROR"

        self.log(LogEntry(
            timestamp=datetime.now(),
            level=level,
            source="CommandDispatcher",
            message="Received response",
            port=port,
            command=command,
            response=response,
            status=status,
            execution_time=execution_time,
            error=error
        ))

    def log_event(self, port: str, line: str, event_code: Optional[int] = None,
                  description: Optional[str] = None) -> None:
        """Log an asynchronous event line received from the module."""
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="INFO",
            source="Rak811",
            message=description or "Asynchronous event",
            port=port,
            response=line,
            event_code=event_code
        ))

    def log_port_event(
        self,
        event: str,
        port: str,
        details: Optional[Dict[str, Any]] = None,
        level: str = "INFO"
    ) -> None:
        """Log a serial port event (open, close, hard reset)."""
        self.log(LogEntry(
            timestamp=datetime.now(),
            level=level,
            source="SerialHandler",
            message=event,
            port=port,
            details=details
        ))

    def log_error(
        self,
        source: str,
        error: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="ERROR",
            source=source,
            message="Error occurred",
            error=error,
            details=details
        ))

    def log_trace(self, source: str, message: str, force: bool = False) -> None:
        """Log a raw traffic trace at DEBUG level.

        Debug-mode tracing passes ``force=True`` so traces are recorded
        whatever the configured level.
        """
        self.log(LogEntry(
            timestamp=datetime.now(),
            level="DEBUG",
            source=source,
            message=message
        ), force=force)

    def set_level(self, level: LogLevel) -> None:
        self.log_level = level.value if isinstance(level, LogLevel) else level

    def get_entries(self, limit: Optional[int] = None) -> List[LogEntry]:
        """Get buffered entries, oldest first (the last ``limit`` if given)."""
        with self._lock:
            entries = list(self._buffer)
            if limit:
                entries = entries[-limit:]
            return entries

    def clear_buffer(self) -> None:
        with self._lock:
            self._buffer.clear()

    def flush(self) -> None:
        if self._file_handler:
            self._file_handler.flush()

    def close(self) -> None:
        """Close the log file, flushing buffered writes."""
        if self._file_handler:
            self._file_handler.close()
            self._file_handler = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
