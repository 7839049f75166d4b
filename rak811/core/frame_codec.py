"""Wire framing for RAK811 AT commands and replies.

Outgoing commands are ASCII ``at+<name>[=<args>]`` terminated by CR/LF.
Incoming replies are CR/LF (or bare LF) terminated ASCII lines.
"""

from dataclasses import dataclass
from typing import List, Optional, Union

COMMAND_PREFIX = "at+"
CRLF = "\r\n"


def encode(name: str, args: Optional[str] = None) -> bytes:
    """Render a command to wire bytes.

    No escaping is performed; ``args`` must not contain CR or LF.

    Example:
        >>> encode("join", "otaa")
        b'at+join=otaa\\r\\n'
    """
    text = f"{COMMAND_PREFIX}{name}"
    if args is not None:
        text += f"={args}"
    return (text + CRLF).encode("ascii")


def decode_line(raw: Union[bytes, str]) -> str:
    """Strip one trailing CR/LF (or bare LF) from a raw line.

    Idempotent when the line carries no terminator.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("ascii", errors="replace")
    if raw.endswith(CRLF):
        return raw[:-2]
    if raw.endswith("\n"):
        return raw[:-1]
    return raw


def split_lines(data: Union[bytes, str]) -> List[str]:
    """Split a buffer holding several replies into decoded, non-empty lines."""
    if isinstance(data, bytes):
        data = data.decode("ascii", errors="replace")
    return [line.rstrip("\r") for line in data.split("\n") if line.strip()]


@dataclass(frozen=True)
class Command:
    """Immutable AT command.

    Attributes:
        name: Command name without the ``at+`` prefix (e.g. 'join')
        args: Optional argument string rendered after '='
    """
    name: str
    args: Optional[str] = None

    def to_bytes(self) -> bytes:
        return encode(self.name, self.args)

    def __str__(self) -> str:
        return decode_line(self.to_bytes())
