"""Shared fixtures: a scripted stand-in for serial.Serial."""

from collections import deque
from unittest.mock import patch

import pytest

from rak811.core.serial_handler import SerialHandler


class FakeSerial:
    """Scripted serial port.

    Each readline() call pops the next scripted item: bytes are returned as
    read, None simulates one empty read (pyserial's own timeout) and an
    exception instance is raised. Once the script is exhausted the port is
    silent.
    """

    def __init__(self, replies=None, banner=b""):
        self.replies = deque(replies or [])
        self.banner = banner
        self.written = []
        self.readline_calls = 0
        self.write_error = None
        self.is_open = True
        self.timeout = None

    def queue(self, *replies):
        self.replies.extend(replies)

    def write(self, data):
        if self.write_error is not None:
            raise self.write_error
        self.written.append(data)
        return len(data)

    def flush(self):
        pass

    def readline(self):
        self.readline_calls += 1
        if not self.replies:
            return b""
        item = self.replies.popleft()
        if isinstance(item, Exception):
            raise item
        return item or b""

    @property
    def in_waiting(self):
        return len(self.banner)

    def read(self, size=1):
        data, self.banner = self.banner[:size], self.banner[size:]
        return data

    def close(self):
        self.is_open = False


@pytest.fixture
def fake_serial():
    """A FakeSerial patched in as serial.Serial."""
    port = FakeSerial()
    with patch('serial.Serial', return_value=port):
        yield port


@pytest.fixture
def handler(fake_serial):
    """An open SerialHandler over the fake port with a short timeout."""
    serial_handler = SerialHandler("/dev/ttyAMA0", timeout=0.05)
    serial_handler.open()
    yield serial_handler
    serial_handler.close()
