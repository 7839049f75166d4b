"""Two-phase join and send operations.

Both commands are answered with an immediate ``OK`` followed, later, by an
asynchronous ``at+recv=<code>,...`` line. TwoPhaseOperation drives that
exchange once; JoinOperation and SendOperation only decide what each event
code means. Operations are single-shot and never retry.
"""

from abc import ABC, abstractmethod
from enum import Enum
import re
from typing import Optional, Union

from rak811.core.command_dispatcher import CommandDispatcher
from rak811.core.exceptions import (
    Rak811Error,
    ResponseTimeoutError,
    UnexpectedResponseError
)
from rak811.core.frame_codec import Command
from rak811.core.response_reader import ClassifiedLine, LineKind
from rak811.core.status_registry import (
    EventCode,
    STATUS_JOINED_FAILED,
    STATUS_JOINED_SUCCESS,
    STATUS_RX2_TIMEOUT,
    STATUS_TX_CONFIRMED,
    STATUS_TX_TIMEOUT,
    STATUS_TX_UNCONFIRMED
)

JOIN_MODES = ("otaa", "abp")
HEX_PAYLOAD = re.compile(r"(?:[0-9A-Fa-f]{2})*")


class JoinState(Enum):
    IDLE = "idle"
    REQUESTED = "requested"
    AWAITING_EVENT = "awaiting_event"
    JOINED = "joined"
    JOIN_FAILED = "join_failed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class SendState(Enum):
    IDLE = "idle"
    SENT = "sent"
    AWAITING_ACK = "awaiting_ack"
    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class TwoPhaseOperation(ABC):
    """Shared transmit -> acknowledge -> event exchange.

    Subclasses name their states through the class attributes below and
    implement ``_resolve`` to map the event line to a terminal state.
    """

    IDLE: Enum
    ISSUED: Enum
    AWAITING: Enum
    TIMED_OUT: Enum
    FAILED: Enum
    TERMINAL: tuple = ()

    def __init__(self, command: Command):
        self.command = command
        self.state = self.IDLE
        self.event: Optional[EventCode] = None
        self.line: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state in self.TERMINAL

    def run(self, dispatcher: CommandDispatcher) -> EventCode:
        """Issue the command and wait for its asynchronous result.

        Returns:
            EventCode of the terminal event

        Raises:
            ProtocolError: Module answered the command with ERROR<n>
            ResponseTimeoutError: Event or acknowledgement did not arrive, or
                the module reported a timeout event
            UnexpectedResponseError: A line that does not fit the phase
            TransportError: Serial I/O failed
            RuntimeError: The operation was already run
        """
        if self.state is not self.IDLE:
            raise RuntimeError(f"{type(self).__name__} already run (state: {self.state.value})")

        with dispatcher.tracking(self.command) as outcome:
            try:
                dispatcher.transmit(self.command)
                self.state = self.ISSUED
                dispatcher.await_ack(self.command)
                self.state = self.AWAITING
                line = dispatcher.await_event(self.command)
                self.line = line.text
                line.raise_for_error()
                self.event = self._resolve(line)
            except ResponseTimeoutError:
                self.state = self.TIMED_OUT
                raise
            except Rak811Error:
                if self.state not in self.TERMINAL:
                    self.state = self.FAILED
                raise
            outcome.reply = line.text
            outcome.event_code = self.event.code
        return self.event

    @abstractmethod
    def _resolve(self, line: ClassifiedLine) -> EventCode:
        """Set the terminal state for an event line and return its EventCode.

        Raises:
            ResponseTimeoutError: The event is a module timeout report
            UnexpectedResponseError: The line does not fit this operation
        """
        pass

    def _unexpected(self, line: ClassifiedLine) -> UnexpectedResponseError:
        return UnexpectedResponseError(
            f"Unexpected reply to {self.command}",
            line.text,
            phase=self.AWAITING.value
        )

    def _module_timeout(self, line: ClassifiedLine) -> ResponseTimeoutError:
        return ResponseTimeoutError(
            f"Module reported timeout: {line.event.description}",
            command=str(self.command),
            line=line.text
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(command='{self.command}', state={self.state.value})"


class JoinOperation(TwoPhaseOperation):
    """Network join in OTAA or ABP mode.

    The module accepts no other command until the join result arrives.

    Example:
        >>> join = JoinOperation("otaa")
        >>> join.run(dispatcher).code
        3
        >>> join.state
        <JoinState.JOINED: 'joined'>
    """

    IDLE = JoinState.IDLE
    ISSUED = JoinState.REQUESTED
    AWAITING = JoinState.AWAITING_EVENT
    TIMED_OUT = JoinState.TIMED_OUT
    FAILED = JoinState.FAILED
    TERMINAL = (JoinState.JOINED, JoinState.JOIN_FAILED, JoinState.TIMED_OUT, JoinState.FAILED)

    def __init__(self, mode: str = "otaa"):
        if mode not in JOIN_MODES:
            raise ValueError(f"join mode must be one of {JOIN_MODES}, got {mode!r}")
        super().__init__(Command("join", mode))
        self.mode = mode

    @property
    def joined(self) -> bool:
        return self.state is JoinState.JOINED

    def _resolve(self, line: ClassifiedLine) -> EventCode:
        if line.kind is not LineKind.EVENT:
            raise self._unexpected(line)
        if line.event.code == STATUS_JOINED_SUCCESS:
            self.state = JoinState.JOINED
        elif line.event.code == STATUS_JOINED_FAILED:
            self.state = JoinState.JOIN_FAILED
        elif line.event.code == STATUS_RX2_TIMEOUT:
            self.event = line.event
            raise self._module_timeout(line)
        else:
            raise self._unexpected(line)
        return line.event


def format_payload(payload: Union[bytes, bytearray, str]) -> str:
    """Render an uplink payload as the hex string the module expects."""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload).hex().upper()
    if not HEX_PAYLOAD.fullmatch(payload):
        raise ValueError(f"payload is not a hex string: {payload!r}")
    return payload


class SendOperation(TwoPhaseOperation):
    """Uplink transmission, confirmed or unconfirmed.

    Sends ``at+send=<port>,<confirm-flag>,<hex-payload>``.

    Example:
        >>> send = SendOperation(2, b"\\x7f", confirm=True)
        >>> send.run(dispatcher).code
        1
        >>> send.state
        <SendState.CONFIRMED: 'confirmed'>
    """

    IDLE = SendState.IDLE
    ISSUED = SendState.SENT
    AWAITING = SendState.AWAITING_ACK
    TIMED_OUT = SendState.TIMED_OUT
    FAILED = SendState.FAILED
    TERMINAL = (SendState.CONFIRMED, SendState.UNCONFIRMED, SendState.TIMED_OUT, SendState.FAILED)

    def __init__(self, port: int, payload: Union[bytes, bytearray, str], confirm: bool = False):
        if not 0 <= port <= 255:
            raise ValueError(f"port must be between 0 and 255, got {port}")
        self.port = port
        self.confirm = confirm
        self.payload = format_payload(payload)
        super().__init__(Command("send", f"{port},{int(confirm)},{self.payload}"))

    def _resolve(self, line: ClassifiedLine) -> EventCode:
        if line.kind is not LineKind.EVENT:
            raise self._unexpected(line)
        code = line.event.code
        if code == STATUS_TX_CONFIRMED and self.confirm:
            self.state = SendState.CONFIRMED
        elif code == STATUS_TX_UNCONFIRMED and not self.confirm:
            self.state = SendState.UNCONFIRMED
        elif code == STATUS_TX_TIMEOUT:
            self.event = line.event
            raise self._module_timeout(line)
        else:
            raise self._unexpected(line)
        return line.event
