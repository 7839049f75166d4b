"""Core AT protocol engine.

This package provides the serial transport, framing, reply classification,
command dispatch and the two-phase join/send operations.
"""

from rak811.core.command_response import CommandResponse, ResponseStatus
from rak811.core.exceptions import (
    Rak811Error,
    TransportError,
    SerialPortBusyError,
    ConnectionTimeoutError,
    ResponseTimeoutError,
    ProtocolError,
    UnexpectedResponseError,
    ConfigurationError
)
from rak811.core.frame_codec import Command, encode, decode_line
from rak811.core.status_registry import (
    StatusCode,
    EventCode,
    error_for,
    event_for
)
from rak811.core.serial_handler import SerialHandler
from rak811.core.response_reader import (
    ResponseReader,
    LineKind,
    ClassifiedLine,
    classify_line
)
from rak811.core.command_dispatcher import CommandDispatcher, ReplyShape
from rak811.core.state_machines import (
    JoinOperation,
    JoinState,
    SendOperation,
    SendState
)
from rak811.core.hard_reset import ResetPin, GpioResetPin, hard_reset

__all__ = [
    'CommandResponse',
    'ResponseStatus',
    'Command',
    'encode',
    'decode_line',
    'StatusCode',
    'EventCode',
    'error_for',
    'event_for',
    'SerialHandler',
    'ResponseReader',
    'LineKind',
    'ClassifiedLine',
    'classify_line',
    'CommandDispatcher',
    'ReplyShape',
    'JoinOperation',
    'JoinState',
    'SendOperation',
    'SendState',
    'ResetPin',
    'GpioResetPin',
    'hard_reset',
    'Rak811Error',
    'TransportError',
    'SerialPortBusyError',
    'ConnectionTimeoutError',
    'ResponseTimeoutError',
    'ProtocolError',
    'UnexpectedResponseError',
    'ConfigurationError',
]
