"""Unit tests for SerialHandler with mocked pyserial.

Tests the SerialHandler class using a mocked serial.Serial to avoid
hardware dependencies.
"""

import pytest
from unittest.mock import Mock, MagicMock, patch
import time
import serial

from rak811.core.response_reader import ResponseReader
from rak811.core.serial_handler import SerialHandler
from rak811.core.exceptions import (
    TransportError,
    SerialPortBusyError,
    ConnectionTimeoutError,
    ResponseTimeoutError
)


def open_handler(mock_serial_class, timeout=0.05, **kwargs):
    mock_serial = MagicMock()
    mock_serial.is_open = True
    mock_serial_class.return_value = mock_serial
    handler = SerialHandler("/dev/ttyAMA0", timeout=timeout, **kwargs)
    handler.open()
    return handler, mock_serial


class TestSerialHandlerInit:
    """Test SerialHandler initialization."""

    def test_init_defaults(self):
        """Defaults match the module's factory UART settings."""
        handler = SerialHandler()

        assert handler.port == "/dev/ttyAMA0"
        assert handler.baud_rate == 115200
        assert handler.timeout == 1.5
        assert handler.parity == serial.PARITY_NONE
        assert handler.stop_bits == serial.STOPBITS_ONE
        assert handler.byte_size == serial.EIGHTBITS
        assert handler.logger is None
        assert not handler.is_connected()

    def test_init_custom_params(self):
        handler = SerialHandler(port="/dev/ttyUSB0", baud_rate=9600, timeout=5.0)

        assert handler.port == "/dev/ttyUSB0"
        assert handler.baud_rate == 9600
        assert handler.timeout == 5.0


class TestSerialHandlerOpen:
    """Test SerialHandler.open() method."""

    @patch('serial.Serial')
    def test_open_success(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)

        mock_serial_class.assert_called_once_with(
            port="/dev/ttyAMA0",
            baudrate=115200,
            timeout=0.05,
            parity="N",
            stopbits=1,
            bytesize=8
        )
        assert handler.is_connected()

    @patch('serial.Serial')
    def test_open_already_open(self, mock_serial_class):
        handler, _ = open_handler(mock_serial_class)
        mock_serial_class.reset_mock()

        handler.open()

        mock_serial_class.assert_not_called()

    @patch('serial.Serial')
    def test_open_permission_denied(self, mock_serial_class):
        mock_serial_class.side_effect = serial.SerialException("Permission denied")

        handler = SerialHandler("/dev/ttyAMA0")

        with pytest.raises(TransportError) as exc_info:
            handler.open()

        assert "Permission denied" in str(exc_info.value)
        assert exc_info.value.port == "/dev/ttyAMA0"

    @patch('serial.Serial')
    def test_open_port_busy(self, mock_serial_class):
        mock_serial_class.side_effect = serial.SerialException("Port is busy")

        with pytest.raises(SerialPortBusyError) as exc_info:
            SerialHandler("/dev/ttyAMA0").open()

        assert "already in use" in str(exc_info.value)

    @patch('serial.Serial')
    def test_open_timeout(self, mock_serial_class):
        mock_serial_class.side_effect = serial.SerialException("Timeout")

        with pytest.raises(ConnectionTimeoutError):
            SerialHandler("/dev/ttyAMA0").open()

    @patch('serial.Serial')
    def test_open_generic_error_keeps_cause(self, mock_serial_class):
        mock_serial_class.side_effect = serial.SerialException("Unknown error")

        with pytest.raises(TransportError) as exc_info:
            SerialHandler("/dev/ttyAMA0").open()

        assert "Failed to open port" in str(exc_info.value)
        assert isinstance(exc_info.value.os_error, serial.SerialException)

    @patch('serial.Serial')
    def test_open_invalid_setting(self, mock_serial_class):
        mock_serial_class.side_effect = ValueError("Invalid baud rate")

        with pytest.raises(TransportError) as exc_info:
            SerialHandler("/dev/ttyAMA0").open()

        assert "Unexpected error" in str(exc_info.value)

    @patch('serial.Serial')
    def test_open_logs_events(self, mock_serial_class):
        mock_logger = Mock()
        open_handler(mock_serial_class, logger=mock_logger)

        mock_logger.log_port_event.assert_called_once()
        call_args = mock_logger.log_port_event.call_args
        assert call_args[1]["event"] == "Port opened"
        assert call_args[1]["details"]["baud_rate"] == 115200

    @patch('serial.Serial')
    def test_open_failure_logs_error(self, mock_serial_class):
        mock_serial_class.side_effect = serial.SerialException("Test error")
        mock_logger = Mock()

        with pytest.raises(TransportError):
            SerialHandler("/dev/ttyAMA0", logger=mock_logger).open()

        mock_logger.log_error.assert_called_once()


class TestSerialHandlerClose:
    """Test SerialHandler.close() method."""

    @patch('serial.Serial')
    def test_close_success(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)

        handler.close()

        mock_serial.close.assert_called_once()

    def test_close_not_open(self):
        SerialHandler("/dev/ttyAMA0").close()

    @patch('serial.Serial')
    def test_close_multiple_times(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)

        handler.close()
        mock_serial.is_open = False
        handler.close()

        mock_serial.close.assert_called_once()

    @patch('serial.Serial')
    def test_close_error_raises_transport_error(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)
        mock_serial.close.side_effect = serial.SerialException("Close error")

        with pytest.raises(TransportError):
            handler.close()

    @patch('serial.Serial')
    def test_close_logs_session_duration(self, mock_serial_class):
        mock_logger = Mock()
        handler, _ = open_handler(mock_serial_class, logger=mock_logger)

        time.sleep(0.01)
        handler.close()

        log_calls = [call for call in mock_logger.log_port_event.call_args_list
                     if call[1].get("event") == "Port closed"]
        assert len(log_calls) == 1
        assert "session_duration_seconds" in log_calls[0][1]["details"]


class TestSerialHandlerWrite:
    """Test SerialHandler.write() method."""

    @patch('serial.Serial')
    def test_write_raw_bytes(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)
        mock_serial.write.return_value = 12

        assert handler.write(b"at+version\r\n") == 12

        mock_serial.write.assert_called_once_with(b"at+version\r\n")
        mock_serial.flush.assert_called_once()

    def test_write_not_open(self):
        with pytest.raises(TransportError) as exc_info:
            SerialHandler("/dev/ttyAMA0").write(b"at+version\r\n")

        assert "closed port" in str(exc_info.value)

    @patch('serial.Serial')
    def test_write_serial_exception(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)
        mock_serial.write.side_effect = serial.SerialException("Write error")

        with pytest.raises(TransportError) as exc_info:
            handler.write(b"at+version\r\n")

        assert "Failed to write" in str(exc_info.value)


class TestSerialHandlerReadLine:
    """Test SerialHandler.read_line() method."""

    @patch('serial.Serial')
    def test_read_complete_line(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)
        mock_serial.readline.return_value = b"OK\r\n"

        assert handler.read_line() == b"OK\r\n"

    @patch('serial.Serial')
    def test_read_reassembles_fragments(self, mock_serial_class):
        """A line split by pyserial's read timeout is joined back together."""
        handler, mock_serial = open_handler(mock_serial_class, timeout=1.0)
        mock_serial.readline.side_effect = [b"at+recv=", b"", b"3,0,0\r\n"]

        assert handler.read_line() == b"at+recv=3,0,0\r\n"

    @patch('serial.Serial')
    def test_read_timeout(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)
        mock_serial.readline.return_value = b""

        with pytest.raises(ResponseTimeoutError) as exc_info:
            handler.read_line(timeout=0.05)

        assert exc_info.value.timeout == 0.05

    @patch('serial.Serial')
    def test_timeout_discards_fragment(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)
        mock_serial.readline.side_effect = [b"OK", b"", b"", b"", b"", b"", b"", b"", b"", b""] + [b""] * 50

        with pytest.raises(ResponseTimeoutError):
            handler.read_line(timeout=0.02)

        mock_serial.readline.side_effect = None
        mock_serial.readline.return_value = b"ERROR-1\r\n"
        assert handler.read_line() == b"ERROR-1\r\n"

    def test_read_not_open(self):
        with pytest.raises(TransportError):
            SerialHandler("/dev/ttyAMA0").read_line()

    @patch('serial.Serial')
    def test_read_serial_exception(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)
        mock_serial.readline.side_effect = serial.SerialException("Device disconnected")

        with pytest.raises(TransportError) as exc_info:
            handler.read_line()

        assert "Failed to read" in str(exc_info.value)


class BlockingSerial:
    """Port that blocks in readline() for its timeout when silent, as pyserial does."""

    def __init__(self, timeout, replies=()):
        self.timeout = timeout
        self.replies = list(replies)
        self.is_open = True
        self.read_timeouts = []

    def readline(self):
        self.read_timeouts.append(self.timeout)
        if self.replies:
            return self.replies.pop(0)
        time.sleep(self.timeout)
        return b""

    def close(self):
        self.is_open = False


class TestSerialHandlerDeadline:
    """Reads never block past the caller's deadline."""

    @pytest.fixture
    def blocking_port(self):
        port = BlockingSerial(timeout=1.5)
        with patch('serial.Serial', return_value=port):
            yield port

    def test_short_budget_on_silent_port(self, blocking_port):
        handler = SerialHandler("/dev/ttyAMA0", timeout=1.5)
        handler.open()

        start = time.monotonic()
        with pytest.raises(ResponseTimeoutError):
            handler.read_line(timeout=0.1)
        elapsed = time.monotonic() - start

        assert elapsed < 0.5
        assert all(read_timeout <= 0.1 for read_timeout in blocking_port.read_timeouts)

    def test_configured_timeout_restored(self, blocking_port):
        handler = SerialHandler("/dev/ttyAMA0", timeout=1.5)
        handler.open()

        with pytest.raises(ResponseTimeoutError):
            handler.read_line(timeout=0.05)

        assert blocking_port.timeout == 1.5

    def test_line_within_budget(self, blocking_port):
        blocking_port.replies = [b"OK\r\n"]
        handler = SerialHandler("/dev/ttyAMA0", timeout=1.5)
        handler.open()

        assert handler.read_line(timeout=0.2) == b"OK\r\n"
        assert blocking_port.timeout == 1.5

    def test_reader_budget_shorter_than_serial_timeout(self, blocking_port):
        handler = SerialHandler("/dev/ttyAMA0", timeout=1.5)
        handler.open()
        reader = ResponseReader(handler)

        start = time.monotonic()
        with pytest.raises(ResponseTimeoutError):
            reader.read_line(timeout=0.1)

        assert time.monotonic() - start < 0.5


class TestSerialHandlerBuffers:
    """Test read_available()."""

    @patch('serial.Serial')
    def test_read_available(self, mock_serial_class):
        handler, mock_serial = open_handler(mock_serial_class)
        mock_serial.in_waiting = 9
        mock_serial.read.return_value = b"Welcome\r\n"

        assert handler.read_available() == b"Welcome\r\n"
        mock_serial.read.assert_called_once_with(9)


class TestContextManager:
    """Test context manager protocol."""

    @patch('serial.Serial')
    def test_opens_and_closes(self, mock_serial_class):
        mock_serial = MagicMock()
        mock_serial.is_open = True
        mock_serial_class.return_value = mock_serial

        with SerialHandler("/dev/ttyAMA0") as handler:
            assert handler.is_connected()

        mock_serial.close.assert_called_once()

    def test_repr(self):
        assert repr(SerialHandler("/dev/ttyAMA0")) == \
            "SerialHandler(port='/dev/ttyAMA0', baud=115200, status=closed)"
