"""Command dispatch for the RAK811 AT interface.

This module writes encoded commands and correlates them with the reply
shape each command produces, recording every round trip in a history.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional, TYPE_CHECKING
import threading
import time

from rak811.core.command_response import CommandResponse, ResponseStatus
from rak811.core.exceptions import (
    ProtocolError,
    ResponseTimeoutError,
    TransportError,
    UnexpectedResponseError
)
from rak811.core.frame_codec import Command
from rak811.core.response_reader import ClassifiedLine, LineKind, ResponseReader
from rak811.core.serial_handler import SerialHandler

if TYPE_CHECKING:
    from rak811.logging.communication_logger import CommunicationLogger


class ReplyShape(Enum):
    """How the module answers a command."""
    SINGLE_LINE = "single_line"
    ACK_THEN_EVENT = "ack_then_event"


class Outcome:
    """Mutable result slot filled in while a command is tracked."""

    def __init__(self):
        self.reply = ""
        self.event_code: Optional[int] = None


class CommandDispatcher:
    """Sends commands and reads their replies in the expected shape.

    Example:
        >>> dispatcher = CommandDispatcher(handler, timeout=1.5)
        >>> dispatcher.execute(Command("version"))
        'OK2.0.3.0'
        >>> dispatcher.execute(Command("join", "otaa"), ReplyShape.ACK_THEN_EVENT)
        'at+recv=3,0,0'
    """

    def __init__(self,
                 serial_handler: SerialHandler,
                 timeout: float = 1.5,
                 event_timeout: Optional[float] = None,
                 logger: Optional['CommunicationLogger'] = None,
                 debug: bool = False):
        """Initialize dispatcher.

        Args:
            serial_handler: Open SerialHandler for I/O
            timeout: Budget in seconds for synchronous replies
            event_timeout: Budget for the asynchronous event line of
                two-phase commands (default: same as timeout)
            logger: Optional CommunicationLogger
            debug: Trace raw traffic through the logger
        """
        self.serial_handler = serial_handler
        self.timeout = timeout
        self.event_timeout = timeout if event_timeout is None else event_timeout
        self.logger = logger
        self.reader = ResponseReader(serial_handler, timeout=timeout, logger=logger, debug=debug)
        self._history: List[CommandResponse] = []
        self._history_lock = threading.Lock()

    @property
    def debug(self) -> bool:
        return self.reader.debug

    @debug.setter
    def debug(self, enabled: bool) -> None:
        self.reader.debug = enabled

    def execute(self,
                command: Command,
                shape: ReplyShape = ReplyShape.SINGLE_LINE,
                expected_lines: int = 1) -> str:
        """Send a command and read its reply.

        Args:
            command: Command to send
            shape: Expected reply shape
            expected_lines: Lines a SINGLE_LINE command emits (firmware quirk)

        Returns:
            Reply text (the event line for ACK_THEN_EVENT commands)

        Raises:
            TransportError: Write or read failed; nothing is read after a
                failed write
            ProtocolError: Module answered with ERROR<n>
            ResponseTimeoutError: A reply did not arrive in time
            UnexpectedResponseError: ACK_THEN_EVENT reply out of shape
        """
        with self.tracking(command) as outcome:
            self.transmit(command)
            if shape is ReplyShape.SINGLE_LINE:
                outcome.reply = self.reader.read_until_done(expected_lines)
            else:
                self.await_ack(command)
                event = self.await_event(command)
                event.raise_for_error()
                if event.kind is not LineKind.EVENT:
                    raise UnexpectedResponseError(
                        f"Expected an event line after {command}",
                        event.text,
                        phase="awaiting_event"
                    )
                outcome.reply = event.text
                outcome.event_code = event.event.code
        return outcome.reply

    def transmit(self, command: Command) -> None:
        """Write an encoded command to the transport."""
        data = command.to_bytes()
        if self.logger:
            self.logger.log_command(port=self.serial_handler.port, command=str(command))
        self._trace(f"write: {data!r}")
        self.serial_handler.write(data)

    def await_ack(self, command: Command) -> ClassifiedLine:
        """Read the immediate acknowledgement of a two-phase command.

        Raises:
            ProtocolError: Module answered with ERROR<n>
            UnexpectedResponseError: First line is not an acknowledgement
        """
        line = self.reader.read_classified()
        line.raise_for_error()
        if line.kind is not LineKind.ACK:
            raise UnexpectedResponseError(
                f"Expected OK after {command}",
                line.text,
                phase="awaiting_ack"
            )
        return line

    def await_event(self, command: Command) -> ClassifiedLine:
        """Read the asynchronous line that follows an acknowledgement.

        The line is returned unjudged; callers decide what fits.
        """
        try:
            return self.reader.read_classified(timeout=self.event_timeout)
        except ResponseTimeoutError as e:
            raise ResponseTimeoutError(
                f"No event line within {self.event_timeout:.2f}s",
                command=str(command),
                timeout=e.timeout
            )

    @contextmanager
    def tracking(self, command: Command) -> Iterator[Outcome]:
        """Record the round trip run inside the block in the history."""
        outcome = Outcome()
        start_time = time.time()
        try:
            yield outcome
        except ProtocolError as e:
            self._record(command, outcome, start_time, ResponseStatus.ERROR,
                         error_code=e.code, error_message=e.description or str(e))
            raise
        except ResponseTimeoutError as e:
            self._record(command, outcome, start_time, ResponseStatus.TIMEOUT,
                         error_message=str(e))
            raise
        except UnexpectedResponseError as e:
            self._record(command, outcome, start_time, ResponseStatus.UNEXPECTED,
                         error_message=str(e))
            raise
        except TransportError as e:
            self._record(command, outcome, start_time, ResponseStatus.TRANSPORT,
                         error_message=str(e))
            raise
        else:
            self._record(command, outcome, start_time, ResponseStatus.SUCCESS)

    def get_history(self) -> List[CommandResponse]:
        """Get every CommandResponse recorded by this dispatcher."""
        with self._history_lock:
            return self._history.copy()

    def clear_history(self) -> None:
        with self._history_lock:
            self._history.clear()

    def _record(self,
                command: Command,
                outcome: Outcome,
                start_time: float,
                status: ResponseStatus,
                error_code: Optional[int] = None,
                error_message: Optional[str] = None) -> None:
        response = CommandResponse(
            command=str(command),
            reply=outcome.reply,
            status=status,
            execution_time=time.time() - start_time,
            error_code=error_code,
            error_message=error_message,
            event_code=outcome.event_code
        )
        with self._history_lock:
            self._history.append(response)

        if self.logger:
            self.logger.log_response(
                port=self.serial_handler.port,
                response=response.reply,
                status=status.name,
                execution_time=response.execution_time,
                command=response.command,
                error=error_message
            )

    def _trace(self, message: str) -> None:
        if self.debug and self.logger:
            self.logger.log_trace(source="CommandDispatcher", message=message, force=True)

    def __repr__(self) -> str:
        return (f"CommandDispatcher(handler={self.serial_handler.port}, "
                f"timeout={self.timeout}s, "
                f"event_timeout={self.event_timeout}s, "
                f"history={len(self._history)} commands)")
