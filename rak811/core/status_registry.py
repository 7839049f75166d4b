"""Status registry for module error codes and asynchronous event codes.

Error codes are negative integers carried by ``ERROR<n>`` lines. Event codes
are non-negative integers carried by ``at+recv=<code>,<p1>,<p2>`` lines.
Lookups never raise: an unknown code yields None.
"""

from dataclasses import dataclass
from typing import Dict, Optional

ERROR_PREFIX = "ERROR"
EVENT_PREFIX = "at+recv="

# Module error codes
CODE_ARG_ERR = -1
CODE_ARG_NOT_FIND = -2
CODE_JOIN_ABP_ERR = -3
CODE_JOIN_OTAA_ERR = -4
CODE_NOT_JOIN = -5
CODE_MAC_BUSY_ERR = -6
CODE_TX_ERR = -7
CODE_INTER_ERR = -8
CODE_WR_CFG_ERR = -11
CODE_RD_CFG_ERR = -12
CODE_TX_LEN_LIMIT_ERR = -13
CODE_UNKNOWN_ERR = -20

# Asynchronous event codes
STATUS_RECV_DATA = 0
STATUS_TX_CONFIRMED = 1
STATUS_TX_UNCONFIRMED = 2
STATUS_JOINED_SUCCESS = 3
STATUS_JOINED_FAILED = 4
STATUS_TX_TIMEOUT = 5
STATUS_RX2_TIMEOUT = 6
STATUS_DOWNLINK_REPEATED = 7
STATUS_WAKE_UP = 8
STATUS_P2P_COMPLETE = 9
STATUS_UNKNOWN = 100


@dataclass(frozen=True)
class StatusCode:
    """Module error code with its description."""
    code: int
    description: str


@dataclass(frozen=True)
class EventCode:
    """Asynchronous event code with its description."""
    code: int
    description: str


def _table(cls, entries):
    return {code: cls(code, desc) for code, desc in entries}


STATUS_CODES: Dict[int, StatusCode] = _table(StatusCode, [
    (CODE_ARG_ERR, "invalid argument"),
    (CODE_ARG_NOT_FIND, "argument is not available"),
    (CODE_JOIN_ABP_ERR, "can't join network using ABP"),
    (CODE_JOIN_OTAA_ERR, "can't join network using OTAA"),
    (CODE_NOT_JOIN, "can't send packet, failed to join network"),
    (CODE_MAC_BUSY_ERR, "can't send packet, busy channel"),
    (CODE_TX_ERR, "can't send packet, transmission error"),
    (CODE_INTER_ERR, ""),
    (CODE_WR_CFG_ERR, "configuration write error"),
    (CODE_RD_CFG_ERR, "configuration read error"),
    (CODE_TX_LEN_LIMIT_ERR, "transmission length limit error"),
    (CODE_UNKNOWN_ERR, "unknown error"),
])

EVENT_CODES: Dict[int, EventCode] = _table(EventCode, [
    (STATUS_RECV_DATA, "received data from server or P2P"),
    (STATUS_TX_CONFIRMED, "transmission succeeded and received ACK from server"),
    (STATUS_TX_UNCONFIRMED, "transmission succeeded"),
    (STATUS_JOINED_SUCCESS, "join network procedure was successful"),
    (STATUS_JOINED_FAILED, "join network procedure failed"),
    (STATUS_TX_TIMEOUT, "transmission timeout"),
    (STATUS_RX2_TIMEOUT, "join network procedure timeout, no response from the gateway"),
    (STATUS_DOWNLINK_REPEATED, "downlink repeated"),
    (STATUS_WAKE_UP, "module is awake"),
    (STATUS_P2P_COMPLETE, "lora P2P continues transmission has completed"),
    (STATUS_UNKNOWN, "unknown status"),
])


def error_for(code: int) -> Optional[StatusCode]:
    """Look up a negative module error code."""
    return STATUS_CODES.get(code)


def error_for_line(line: str) -> Optional[StatusCode]:
    """Decode an ``ERROR<n>`` line (e.g. 'ERROR-4') into a StatusCode."""
    if not line.startswith(ERROR_PREFIX):
        return None
    try:
        code = int(line[len(ERROR_PREFIX):].strip())
    except ValueError:
        return None
    return error_for(code)


def event_for_code(code: int) -> Optional[EventCode]:
    """Look up a non-negative event code."""
    return EVENT_CODES.get(code)


def event_for(line: str) -> Optional[EventCode]:
    """Decode an ``at+recv=<code>,<p1>,<p2>`` line into an EventCode.

    Example:
        >>> event_for("at+recv=3,0,0").code
        3
        >>> event_for("OK") is None
        True
    """
    if not line.startswith(EVENT_PREFIX):
        return None
    token = line[len(EVENT_PREFIX):].split(",")[0].strip()
    # int() would accept '+3' or ' 3'; the wire format is plain digits
    if not token.isdigit():
        return None
    return event_for_code(int(token))
