"""Command execution record.

This module defines the immutable CommandResponse dataclass and ResponseStatus
enum kept in the dispatcher's history, one per issued command.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import time


class ResponseStatus(Enum):
    """Outcome of a dispatched command.

    - SUCCESS: Reply read in the expected shape
    - ERROR: Module answered with an ERROR line
    - TIMEOUT: No reply within the time budget
    - UNEXPECTED: A reply arrived that does not fit the command's phase
    - TRANSPORT: The serial port failed
    """
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"
    TRANSPORT = "transport"


@dataclass(frozen=True)
class CommandResponse:
    """Immutable record of one command round trip.

    Attributes:
        command: Command text sent (e.g., "at+join=otaa")
        reply: Reply text returned to the caller ('' on failure)
        status: Outcome of the round trip
        execution_time: Seconds from write to final read
        error_code: Module error code for ERROR replies
        error_message: Description of the failure (if any)
        event_code: Asynchronous event code for two-phase commands
        timestamp: Unix timestamp when the record was created
    """

    command: str
    reply: str
    status: ResponseStatus
    execution_time: float
    error_code: Optional[int] = None
    error_message: Optional[str] = None
    event_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

    def is_successful(self) -> bool:
        return self.status == ResponseStatus.SUCCESS

    def __str__(self) -> str:
        if self.status == ResponseStatus.SUCCESS:
            return f"[{self.status.value}] {self.command} -> {self.reply!r} ({self.execution_time:.3f}s)"
        elif self.status == ResponseStatus.ERROR:
            error_info = f" ({self.error_code}: {self.error_message})" if self.error_code is not None else ""
            return f"[{self.status.value}] {self.command}{error_info} ({self.execution_time:.3f}s)"
        return f"[{self.status.value}] {self.command}: {self.error_message} ({self.execution_time:.3f}s)"
