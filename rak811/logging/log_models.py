"""Log data models for communication logging.

This module defines the immutable log entry used for commands, replies,
asynchronous events, serial port events and debug traces.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any, Optional
import json


@dataclass(frozen=True)
class LogEntry:
    """Immutable log entry for communication logging.

    Attributes:
        timestamp: When the event occurred
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        source: Component name (SerialHandler, CommandDispatcher, etc.)
        message: Human-readable message describing the event
        details: Additional structured data (arbitrary dict)
        port: Serial port name (optional)
        command: AT command sent (optional)
        response: Reply received (optional)
        status: Round-trip status (SUCCESS, ERROR, TIMEOUT, ...) (optional)
        execution_time: Command execution time in seconds (optional)
        event_code: Asynchronous event code (optional)
        error: Error message if applicable (optional)

    Example:
        >>> entry = LogEntry(
        ...     timestamp=datetime(2025, 1, 12, 10, 30, 15, 234000),
        ...     level="INFO",
        ...     source="CommandDispatcher",
        ...     message="Received response",
        ...     command="at+version",
        ...     status="SUCCESS"
        ... )
        >>> entry.to_string()
        '2025-01-12 10:30:15.234 | INFO    | CommandDispatcher | Received response | CMD: at+version | STATUS: SUCCESS'
    """

    timestamp: datetime
    level: str
    source: str
    message: str
    details: Optional[Dict[str, Any]] = None

    port: Optional[str] = None
    command: Optional[str] = None
    response: Optional[str] = None
    status: Optional[str] = None
    execution_time: Optional[float] = None
    event_code: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert log entry to dictionary, timestamp in ISO format."""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    def to_string(self) -> str:
        """Format log entry as "YYYY-MM-DD HH:MM:SS.mmm | LEVEL | SOURCE | MESSAGE"."""
        timestamp_str = self.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        base = f"{timestamp_str} | {self.level:7} | {self.source:15} | {self.message}"

        if self.command:
            base += f" | CMD: {self.command}"
        if self.response:
            base += f" | RSP: {self.response!r}"
        if self.status:
            base += f" | STATUS: {self.status}"
        if self.event_code is not None:
            base += f" | EVENT: {self.event_code}"
        if self.execution_time is not None:
            base += f" | TIME: {self.execution_time:.3f}s"
        if self.error:
            base += f" | ERROR: {self.error}"

        return base

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogEntry':
        """Create LogEntry from dictionary (timestamp may be an ISO string)."""
        timestamp = data['timestamp']
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)

        return cls(
            timestamp=timestamp,
            level=data['level'],
            source=data['source'],
            message=data['message'],
            details=data.get('details'),
            port=data.get('port'),
            command=data.get('command'),
            response=data.get('response'),
            status=data.get('status'),
            execution_time=data.get('execution_time'),
            event_code=data.get('event_code'),
            error=data.get('error')
        )

    @classmethod
    def from_json(cls, json_str: str) -> 'LogEntry':
        return cls.from_dict(json.loads(json_str))
