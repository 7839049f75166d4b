"""Unit tests for the join and send two-phase operations."""

import pytest
import serial

from rak811.core.command_dispatcher import CommandDispatcher
from rak811.core.command_response import ResponseStatus
from rak811.core.exceptions import (
    ProtocolError,
    ResponseTimeoutError,
    TransportError,
    UnexpectedResponseError
)
from rak811.core.state_machines import (
    JoinOperation,
    JoinState,
    SendOperation,
    SendState,
    TwoPhaseOperation,
    format_payload
)


@pytest.fixture
def dispatcher(handler):
    return CommandDispatcher(handler, timeout=0.05)


class TestJoinOperation:
    """Test JoinOperation transitions."""

    def test_initial_state(self):
        join = JoinOperation("otaa")

        assert join.state is JoinState.IDLE
        assert not join.done
        assert str(join.command) == "at+join=otaa"

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            JoinOperation("lorawan")

    def test_joined(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=3,0,0\r\n")
        join = JoinOperation("otaa")

        event = join.run(dispatcher)

        assert event.code == 3
        assert join.state is JoinState.JOINED
        assert join.joined
        assert join.done
        assert join.line == "at+recv=3,0,0"
        assert fake_serial.written == [b"at+join=otaa\r\n"]

    def test_abp(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=3,0,0\r\n")

        JoinOperation("abp").run(dispatcher)

        assert fake_serial.written == [b"at+join=abp\r\n"]

    def test_join_failed_event_is_returned(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=4,0,0\r\n")
        join = JoinOperation("otaa")

        event = join.run(dispatcher)

        assert event.code == 4
        assert join.state is JoinState.JOIN_FAILED
        assert not join.joined

    def test_module_timeout_event(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=6,0,0\r\n")
        join = JoinOperation("otaa")

        with pytest.raises(ResponseTimeoutError) as exc_info:
            join.run(dispatcher)

        assert join.state is JoinState.TIMED_OUT
        assert join.event.code == 6
        assert exc_info.value.line == "at+recv=6,0,0"
        assert exc_info.value.command == "at+join=otaa"

    def test_silence_after_ack_is_timeout(self, dispatcher, fake_serial):
        """Silence after OK is a timeout, never an unexpected reply."""
        fake_serial.queue(b"OK\r\n")
        join = JoinOperation("otaa")

        with pytest.raises(ResponseTimeoutError):
            join.run(dispatcher)

        assert join.state is JoinState.TIMED_OUT

    def test_silence_before_ack_is_timeout(self, dispatcher, fake_serial):
        join = JoinOperation("otaa")

        with pytest.raises(ResponseTimeoutError):
            join.run(dispatcher)

        assert join.state is JoinState.TIMED_OUT

    def test_error_instead_of_ack(self, dispatcher, fake_serial):
        fake_serial.queue(b"ERROR-4\r\n", b"at+recv=3,0,0\r\n")
        join = JoinOperation("otaa")

        with pytest.raises(ProtocolError) as exc_info:
            join.run(dispatcher)

        assert exc_info.value.code == -4
        assert exc_info.value.description == "can't join network using OTAA"
        assert join.state is JoinState.FAILED
        assert fake_serial.readline_calls == 1

    def test_unrelated_event(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=2,0,0\r\n")
        join = JoinOperation("otaa")

        with pytest.raises(UnexpectedResponseError) as exc_info:
            join.run(dispatcher)

        assert join.state is JoinState.FAILED
        assert exc_info.value.line == "at+recv=2,0,0"
        assert exc_info.value.phase == "awaiting_event"

    def test_data_line_after_ack(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"Welcome to RAK811\r\n")
        join = JoinOperation("otaa")

        with pytest.raises(UnexpectedResponseError):
            join.run(dispatcher)

        assert join.state is JoinState.FAILED

    def test_transport_failure(self, dispatcher, fake_serial):
        fake_serial.write_error = serial.SerialException("gone")
        join = JoinOperation("otaa")

        with pytest.raises(TransportError):
            join.run(dispatcher)

        assert join.state is JoinState.FAILED

    def test_single_shot(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=3,0,0\r\n")
        join = JoinOperation("otaa")
        join.run(dispatcher)

        with pytest.raises(RuntimeError):
            join.run(dispatcher)

    def test_recorded_in_history(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=3,0,0\r\n")

        JoinOperation("otaa").run(dispatcher)

        record = dispatcher.get_history()[-1]
        assert record.command == "at+join=otaa"
        assert record.reply == "at+recv=3,0,0"
        assert record.event_code == 3
        assert record.status is ResponseStatus.SUCCESS


class TestFormatPayload:
    """Test format_payload()."""

    def test_bytes_to_upper_hex(self):
        assert format_payload(b"\x00\x7f\xab") == "007FAB"

    def test_bytearray(self):
        assert format_payload(bytearray(b"\x01")) == "01"

    def test_hex_string_passthrough(self):
        assert format_payload("deadBEEF") == "deadBEEF"

    def test_empty(self):
        assert format_payload(b"") == ""
        assert format_payload("") == ""

    @pytest.mark.parametrize("payload", ["abc", "zz", "0x01", "12 34"])
    def test_invalid_hex(self, payload):
        with pytest.raises(ValueError):
            format_payload(payload)


class TestSendOperation:
    """Test SendOperation transitions."""

    def test_wire_format(self):
        send = SendOperation(1, b"\x00\x00\x7f", confirm=True)

        assert str(send.command) == "at+send=1,1,00007F"
        assert send.state is SendState.IDLE

    @pytest.mark.parametrize("port", [-1, 256])
    def test_port_out_of_range(self, port):
        with pytest.raises(ValueError):
            SendOperation(port, b"")

    def test_port_bounds(self):
        SendOperation(0, b"")
        SendOperation(255, b"")

    def test_confirmed(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=1,0,0\r\n")
        send = SendOperation(1, b"\x7f", confirm=True)

        event = send.run(dispatcher)

        assert event.code == 1
        assert send.state is SendState.CONFIRMED
        assert fake_serial.written == [b"at+send=1,1,7F\r\n"]

    def test_unconfirmed(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=2,0,0\r\n")
        send = SendOperation(1, "DEADBEEF")

        event = send.run(dispatcher)

        assert event.code == 2
        assert send.state is SendState.UNCONFIRMED
        assert fake_serial.written == [b"at+send=1,0,DEADBEEF\r\n"]

    def test_ack_event_for_unconfirmed_send_is_unexpected(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=1,0,0\r\n")
        send = SendOperation(1, b"\x01")

        with pytest.raises(UnexpectedResponseError):
            send.run(dispatcher)

        assert send.state is SendState.FAILED

    def test_unconfirmed_event_for_confirmed_send_is_unexpected(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=2,0,0\r\n")
        send = SendOperation(1, b"\x01", confirm=True)

        with pytest.raises(UnexpectedResponseError) as exc_info:
            send.run(dispatcher)

        assert exc_info.value.phase == "awaiting_ack"

    def test_tx_timeout_event(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"at+recv=5,0,0\r\n")
        send = SendOperation(1, b"\x01", confirm=True)

        with pytest.raises(ResponseTimeoutError) as exc_info:
            send.run(dispatcher)

        assert send.state is SendState.TIMED_OUT
        assert send.event.code == 5
        assert exc_info.value.line == "at+recv=5,0,0"

    def test_silence_after_ack(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n")
        send = SendOperation(1, b"\x01")

        with pytest.raises(ResponseTimeoutError):
            send.run(dispatcher)

        assert send.state is SendState.TIMED_OUT

    def test_not_joined_error(self, dispatcher, fake_serial):
        """An ERROR answer ends the operation without reading further."""
        fake_serial.queue(b"ERROR-5\r\n", b"at+recv=2,0,0\r\n")
        send = SendOperation(1, b"\x01")

        with pytest.raises(ProtocolError) as exc_info:
            send.run(dispatcher)

        assert exc_info.value.code == -5
        assert exc_info.value.description == "can't send packet, failed to join network"
        assert send.state is SendState.FAILED
        assert fake_serial.readline_calls == 1
        assert list(fake_serial.replies) == [b"at+recv=2,0,0\r\n"]

    def test_error_after_ack(self, dispatcher, fake_serial):
        fake_serial.queue(b"OK\r\n", b"ERROR-6\r\n")
        send = SendOperation(1, b"\x01")

        with pytest.raises(ProtocolError) as exc_info:
            send.run(dispatcher)

        assert exc_info.value.description == "can't send packet, busy channel"
        assert send.state is SendState.FAILED

    def test_recorded_as_error(self, dispatcher, fake_serial):
        fake_serial.queue(b"ERROR-5\r\n")

        with pytest.raises(ProtocolError):
            SendOperation(1, b"\x01").run(dispatcher)

        record = dispatcher.get_history()[-1]
        assert record.status is ResponseStatus.ERROR
        assert record.error_code == -5


class TestTwoPhaseOperation:
    """Test the shared base."""

    def test_base_is_abstract(self):
        with pytest.raises(TypeError):
            TwoPhaseOperation(JoinOperation("otaa").command)
