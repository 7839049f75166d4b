"""Custom exception hierarchy for the RAK811 driver.

This module defines every error the protocol engine surfaces to callers:
transport failures, response timeouts, module-reported ERROR codes and
replies that do not fit the current phase of a two-phase operation.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from rak811.core.status_registry import StatusCode


class Rak811Error(Exception):
    """Base exception for all driver errors.

    All custom exceptions inherit from this base class to allow
    catching every driver error with a single except clause.
    """
    pass


class TransportError(Rak811Error):
    """Serial transport error.

    Raised when the underlying byte stream fails to open, write or read
    (anything other than a timeout). Captures the port identifier and the
    original pyserial/OS exception for diagnostics.

    Attributes:
        port: Serial port identifier (e.g., '/dev/ttyAMA0')
        os_error: Original exception from pyserial or OS (if available)
    """

    def __init__(self, message: str, port: str, os_error: Optional[Exception] = None):
        """Initialize TransportError.

        Args:
            message: Human-readable error description
            port: Serial port identifier
            os_error: Original exception from pyserial/OS
        """
        super().__init__(message)
        self.port = port
        self.os_error = os_error

    def __str__(self) -> str:
        """Format error message with port context."""
        base_msg = super().__str__()
        if self.os_error:
            return f"{base_msg} (port: {self.port}, cause: {self.os_error})"
        return f"{base_msg} (port: {self.port})"


class SerialPortBusyError(TransportError):
    """Port is already in use by another process."""
    pass


class ConnectionTimeoutError(TransportError):
    """Opening the serial port timed out."""
    pass


class ResponseTimeoutError(Rak811Error, TimeoutError):
    """No terminating line arrived within the configured budget.

    Kept distinct from ProtocolError because it may mean the module is
    wedged; the documented recovery is a hard reset.

    Attributes:
        command: Command text that was waiting for a reply (if known)
        timeout: Time budget in seconds that elapsed
        line: Module line that reported the timeout, when the module itself
            signalled it (join/TX timeout events)
    """

    def __init__(self,
                 message: str,
                 command: Optional[str] = None,
                 timeout: Optional[float] = None,
                 line: Optional[str] = None):
        super().__init__(message)
        self.command = command
        self.timeout = timeout
        self.line = line

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.command:
            return f"{base_msg} (command: {self.command})"
        return base_msg


class ProtocolError(Rak811Error):
    """The module reported an ``ERROR<n>`` line.

    Attributes:
        line: Raw error line as received (e.g. 'ERROR-5')
        status: Decoded StatusCode, or None when the code is not listed
    """

    def __init__(self, line: str, status: Optional['StatusCode'] = None):
        """Initialize ProtocolError.

        Args:
            line: Raw error line
            status: StatusCode decoded by the status registry
        """
        if status is not None and status.description:
            message = f"module error {status.code}: {status.description}"
        elif status is not None:
            message = f"module error {status.code}"
        else:
            message = f"unrecognized module error: {line}"
        super().__init__(message)
        self.line = line
        self.status = status

    @property
    def code(self) -> Optional[int]:
        """Numeric module error code, parsed from the line if not listed."""
        if self.status is not None:
            return self.status.code
        try:
            return int(self.line[len("ERROR"):].strip())
        except ValueError:
            return None

    @property
    def description(self) -> str:
        """Human-readable description of the module error."""
        return self.status.description if self.status is not None else ""


class UnexpectedResponseError(Rak811Error):
    """A valid line arrived that does not fit the current operation phase.

    Attributes:
        line: Offending raw line
        phase: Name of the phase that was waiting (e.g. 'awaiting_event')
    """

    def __init__(self, message: str, line: str, phase: Optional[str] = None):
        super().__init__(message)
        self.line = line
        self.phase = phase

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.phase:
            return f"{base_msg} (line: {self.line!r}, phase: {self.phase})"
        return f"{base_msg} (line: {self.line!r})"


class ConfigurationError(Rak811Error):
    """Configuration fails schema or semantic validation.

    Attributes:
        errors: List of validation error messages
    """

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []

    def __str__(self) -> str:
        base_msg = super().__str__()
        if not self.errors:
            return base_msg
        error_list = '\n  - '.join(self.errors)
        return f"{base_msg}\n  - {error_list}"
