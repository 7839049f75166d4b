"""Line reader and classifier for RAK811 replies.

Every line the module emits is exactly one of: an acknowledgement (``OK``
prefix), an error (``ERROR<n>``), an asynchronous event (``at+recv=<code>,...``
with a listed code) or plain data.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, TYPE_CHECKING
import time

from rak811.core.exceptions import ProtocolError, ResponseTimeoutError
from rak811.core.frame_codec import decode_line
from rak811.core.serial_handler import SerialHandler
from rak811.core.status_registry import (
    ERROR_PREFIX,
    EventCode,
    StatusCode,
    error_for_line,
    event_for
)

if TYPE_CHECKING:
    from rak811.logging.communication_logger import CommunicationLogger

ACK_PREFIX = "OK"


class LineKind(Enum):
    """Classification of a single reply line."""
    ACK = "ack"
    ERROR = "error"
    EVENT = "event"
    DATA = "data"


@dataclass(frozen=True)
class ClassifiedLine:
    """A decoded reply line tagged with its kind.

    ``status`` is set only for ERROR lines whose code is listed; ``event`` only
    for EVENT lines.
    """
    kind: LineKind
    text: str
    status: Optional[StatusCode] = None
    event: Optional[EventCode] = None

    def raise_for_error(self) -> None:
        """Raise ProtocolError if this is an ERROR line."""
        if self.kind is LineKind.ERROR:
            raise ProtocolError(self.text, self.status)


def classify_line(line: str) -> ClassifiedLine:
    """Classify a decoded line.

    Example:
        >>> classify_line("ERROR-5").status.code
        -5
        >>> classify_line("at+recv=3,0,0").kind
        <LineKind.EVENT: 'event'>
    """
    if line.startswith(ACK_PREFIX):
        return ClassifiedLine(LineKind.ACK, line)
    if line.startswith(ERROR_PREFIX):
        return ClassifiedLine(LineKind.ERROR, line, status=error_for_line(line))
    event = event_for(line)
    if event is not None:
        return ClassifiedLine(LineKind.EVENT, line, event=event)
    return ClassifiedLine(LineKind.DATA, line)


class ResponseReader:
    """Reads reply lines from the transport within a bounded time budget.

    Example:
        >>> reader = ResponseReader(handler, timeout=1.5)
        >>> reader.read_until_done()
        'OK2.0.3.0'
    """

    def __init__(self,
                 handler: SerialHandler,
                 timeout: float = 1.5,
                 logger: Optional['CommunicationLogger'] = None,
                 debug: bool = False):
        """Initialize reader.

        Args:
            handler: Open SerialHandler to read from
            timeout: Default read budget in seconds
            logger: Optional CommunicationLogger for trace output
            debug: Emit a trace entry for every raw line read
        """
        self.handler = handler
        self.timeout = timeout
        self.logger = logger
        self.debug = debug

    def read_line(self, timeout: Optional[float] = None) -> str:
        """Read one non-empty line.

        Blank lines are skipped; they do not reset the deadline.

        Raises:
            ResponseTimeoutError: No line before the deadline
            TransportError: Lower-level I/O failure
        """
        budget = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + budget

        while True:
            remaining = max(deadline - time.monotonic(), 0.0)
            try:
                raw = self.handler.read_line(timeout=remaining)
            except ResponseTimeoutError:
                raise ResponseTimeoutError(
                    f"No reply within {budget:.2f}s",
                    timeout=budget
                )
            line = decode_line(raw)
            self._trace(f"read: {line!r}")
            if line.strip():
                return line

    def read_classified(self, timeout: Optional[float] = None) -> ClassifiedLine:
        """Read one non-empty line and classify it."""
        return classify_line(self.read_line(timeout))

    def read_until_done(self,
                        expected_lines: int = 1,
                        timeout: Optional[float] = None) -> str:
        """Read ``expected_lines`` lines under a single deadline.

        Some firmware commands emit more lines than the logical reply; pass
        their line count here; every one of them must arrive.

        Returns:
            The lines read, joined with newlines

        Raises:
            ProtocolError: An ERROR line was read
            ResponseTimeoutError: Deadline passed before the lines arrived
            TransportError: Lower-level I/O failure
        """
        if expected_lines < 1:
            raise ValueError("expected_lines must be at least 1")

        budget = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + budget
        lines: List[str] = []

        while len(lines) < expected_lines:
            remaining = max(deadline - time.monotonic(), 0.0)
            try:
                classified = self.read_classified(timeout=remaining)
            except ResponseTimeoutError:
                raise ResponseTimeoutError(
                    f"Received {len(lines)} of {expected_lines} line(s) within {budget:.2f}s",
                    timeout=budget
                )
            classified.raise_for_error()
            lines.append(classified.text)

        return "\n".join(lines)

    def _trace(self, message: str) -> None:
        if self.debug and self.logger:
            self.logger.log_trace(source="ResponseReader", message=message, force=True)
