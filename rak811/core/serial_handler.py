"""Serial port I/O handler for the RAK811 AT interface.

This module wraps pyserial with deadline-bound line reads and translates
pyserial failures into the driver's TransportError hierarchy.
"""

from typing import Optional, TYPE_CHECKING
import threading
import time

import serial

from rak811.core.exceptions import (
    TransportError,
    SerialPortBusyError,
    ConnectionTimeoutError,
    ResponseTimeoutError
)

# Avoid circular import for type hints
if TYPE_CHECKING:
    from rak811.logging.communication_logger import CommunicationLogger


DEFAULT_PORT = "/dev/ttyAMA0"
DEFAULT_BAUD_RATE = 115200
DEFAULT_TIMEOUT = 1.5


class SerialHandler:
    """Owns the serial port and performs raw, deadline-bound I/O.

    Reads return whole lines: each pyserial read is bounded by the time left
    before the caller's deadline, and a fragment is kept until the rest of
    the line arrives or the deadline passes.

    Example:
        >>> handler = SerialHandler('/dev/ttyAMA0')
        >>> handler.open()
        >>> handler.write(b'at+version\\r\\n')
        >>> handler.read_line(timeout=1.5)
        b'OK2.0.3.0\\r\\n'
        >>> handler.close()
    """

    def __init__(self,
                 port: str = DEFAULT_PORT,
                 baud_rate: int = DEFAULT_BAUD_RATE,
                 timeout: float = DEFAULT_TIMEOUT,
                 parity: str = serial.PARITY_NONE,
                 stop_bits: float = serial.STOPBITS_ONE,
                 byte_size: int = serial.EIGHTBITS,
                 logger: Optional['CommunicationLogger'] = None):
        """Initialize handler with port configuration.

        Args:
            port: Serial port device path
            baud_rate: Baud rate (default 115200)
            timeout: Default read budget in seconds (default 1.5)
            parity: Parity, one of pyserial's PARITY_* values (default none)
            stop_bits: Stop bits (default 1)
            byte_size: Data bits (default 8)
            logger: Optional CommunicationLogger for port events
        """
        self.port = port
        self.baud_rate = baud_rate
        self.timeout = timeout
        self.parity = parity
        self.stop_bits = stop_bits
        self.byte_size = byte_size
        self.logger = logger
        self._serial: Optional[serial.Serial] = None
        self._lock = threading.Lock()
        self._pending = b""
        self._open_time: Optional[float] = None

    def open(self) -> None:
        """Open serial port and configure settings.

        Raises:
            TransportError: Port doesn't exist or permission denied
            SerialPortBusyError: Port already in use
            ConnectionTimeoutError: Open timeout exceeded
        """
        with self._lock:
            if self._serial is not None and self._serial.is_open:
                return

            try:
                self._serial = serial.Serial(
                    port=self.port,
                    baudrate=self.baud_rate,
                    timeout=self.timeout,
                    parity=self.parity,
                    stopbits=self.stop_bits,
                    bytesize=self.byte_size
                )
                self._open_time = time.time()
                self._pending = b""

                if self.logger:
                    self.logger.log_port_event(
                        event="Port opened",
                        port=self.port,
                        details={
                            "baud_rate": self.baud_rate,
                            "timeout": self.timeout,
                            "parity": self.parity,
                            "stop_bits": self.stop_bits,
                            "byte_size": self.byte_size
                        }
                    )

            except serial.SerialException as e:
                error_msg = str(e).lower()

                if self.logger:
                    self.logger.log_error(
                        source="SerialHandler",
                        error=f"Failed to open port: {e}",
                        details={"port": self.port, "error_type": type(e).__name__}
                    )

                if 'permission denied' in error_msg or 'access denied' in error_msg:
                    raise TransportError(
                        f"Permission denied accessing port {self.port}",
                        self.port,
                        e
                    )
                elif 'busy' in error_msg or 'in use' in error_msg:
                    raise SerialPortBusyError(
                        f"Port {self.port} is already in use",
                        self.port,
                        e
                    )
                elif 'timeout' in error_msg:
                    raise ConnectionTimeoutError(
                        f"Timeout opening port {self.port}",
                        self.port,
                        e
                    )
                else:
                    raise TransportError(
                        f"Failed to open port {self.port}: {e}",
                        self.port,
                        e
                    )
            except (OSError, ValueError) as e:
                if self.logger:
                    self.logger.log_error(
                        source="SerialHandler",
                        error=f"Unexpected error opening port: {e}",
                        details={"port": self.port, "error_type": type(e).__name__}
                    )

                raise TransportError(
                    f"Unexpected error opening port {self.port}: {e}",
                    self.port,
                    e
                )

    def close(self) -> None:
        """Close serial port and release resources.

        Safe to call multiple times.

        Raises:
            TransportError: The port failed to close
        """
        with self._lock:
            if self._serial is None or not self._serial.is_open:
                return
            try:
                self._serial.close()
            except serial.SerialException as e:
                if self.logger:
                    self.logger.log_error(
                        source="SerialHandler",
                        error=f"Error closing port: {e}",
                        details={"port": self.port}
                    )
                raise TransportError(
                    f"Failed to close port {self.port}: {e}",
                    self.port,
                    e
                )
            finally:
                session_duration = None
                if self._open_time:
                    session_duration = time.time() - self._open_time
                self._open_time = None
                self._pending = b""

            if self.logger:
                self.logger.log_port_event(
                    event="Port closed",
                    port=self.port,
                    details={
                        "session_duration_seconds": session_duration
                    } if session_duration else None
                )

    def write(self, data: bytes) -> int:
        """Write raw bytes to the serial port.

        Args:
            data: Encoded command bytes, terminator included

        Returns:
            Number of bytes written

        Raises:
            TransportError: Port not open or write failed
        """
        with self._lock:
            port = self._require_open("write to")
            try:
                bytes_written = port.write(data)
                port.flush()
                return bytes_written
            except serial.SerialException as e:
                raise TransportError(
                    f"Failed to write to port {self.port}: {e}",
                    self.port,
                    e
                )

    def read_line(self, timeout: Optional[float] = None) -> bytes:
        """Read one terminated line, waiting at most ``timeout`` seconds.

        Args:
            timeout: Read budget in seconds (default: handler timeout)

        Returns:
            Raw line bytes including the terminator

        Raises:
            ResponseTimeoutError: No complete line before the deadline
            TransportError: Port not open or read failed
        """
        timeout = self.timeout if timeout is None else timeout
        with self._lock:
            port = self._require_open("read from")
            start_time = time.monotonic()
            deadline = start_time + timeout

            try:
                while True:
                    # pyserial blocks for port.timeout; never past the deadline
                    port.timeout = max(deadline - time.monotonic(), 0.0)
                    chunk = port.readline()
                    if chunk:
                        self._pending += chunk
                        if self._pending.endswith(b"\n"):
                            line, self._pending = self._pending, b""
                            return line

                    elapsed = time.monotonic() - start_time
                    if elapsed >= timeout:
                        self._pending = b""
                        raise ResponseTimeoutError(
                            f"Read timeout after {elapsed:.2f}s waiting for a reply line",
                            timeout=timeout
                        )
                    if not chunk:
                        time.sleep(0.01)  # Small delay to prevent busy-wait

            except serial.SerialException as e:
                self._pending = b""
                raise TransportError(
                    f"Failed to read from port {self.port}: {e}",
                    self.port,
                    e
                )
            finally:
                self._restore_timeout(port)

    def _restore_timeout(self, port: serial.Serial) -> None:
        try:
            port.timeout = self.timeout
        except serial.SerialException as e:
            if self.logger:
                self.logger.log_error(
                    source="SerialHandler",
                    error=f"Failed to restore read timeout: {e}",
                    details={"port": self.port}
                )

    def read_available(self) -> bytes:
        """Drain and return whatever bytes are buffered on the port.

        Raises:
            TransportError: Port not open or read failed
        """
        with self._lock:
            port = self._require_open("read from")
            try:
                data = self._pending + port.read(port.in_waiting)
                self._pending = b""
                return data
            except serial.SerialException as e:
                raise TransportError(
                    f"Failed to read from port {self.port}: {e}",
                    self.port,
                    e
                )

    def is_connected(self) -> bool:
        """Check if port is currently open."""
        with self._lock:
            return self._serial is not None and self._serial.is_open

    def _require_open(self, action: str) -> serial.Serial:
        """Return the open port. Caller must hold self._lock."""
        if self._serial is None or not self._serial.is_open:
            raise TransportError(
                f"Cannot {action} closed port",
                self.port,
                None
            )
        return self._serial

    def __enter__(self):
        """Context manager entry: open port."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit: close port."""
        self.close()
        return False

    def __repr__(self) -> str:
        status = "open" if self.is_connected() else "closed"
        return f"SerialHandler(port='{self.port}', baud={self.baud_rate}, status={status})"
