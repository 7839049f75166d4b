"""RAK811 - AT command driver for the RAK811 LoRaWAN module.

This package provides:
- A serial AT protocol engine with typed errors and bounded reads
- Two-phase network join and uplink operations
- Layered YAML/environment configuration
- Communication logging
"""

# Core protocol engine
from rak811.core import (
    Command,
    SerialHandler,
    CommandDispatcher,
    ReplyShape,
    JoinOperation,
    JoinState,
    SendOperation,
    SendState,
    StatusCode,
    EventCode,
    error_for,
    event_for,
    Rak811Error,
    TransportError,
    ResponseTimeoutError,
    ProtocolError,
    UnexpectedResponseError,
    ConfigurationError,
)

# Configuration and logging
from rak811.config import Config, ConfigManager, get_default_config
from rak811.logging import CommunicationLogger

from rak811.driver import Rak811

__version__ = "0.1.0"

__all__ = [
    # Driver
    "Rak811",
    # Core
    "Command",
    "SerialHandler",
    "CommandDispatcher",
    "ReplyShape",
    "JoinOperation",
    "JoinState",
    "SendOperation",
    "SendState",
    "StatusCode",
    "EventCode",
    "error_for",
    "event_for",
    # Configuration and logging
    "Config",
    "ConfigManager",
    "get_default_config",
    "CommunicationLogger",
    # Exceptions
    "Rak811Error",
    "TransportError",
    "ResponseTimeoutError",
    "ProtocolError",
    "UnexpectedResponseError",
    "ConfigurationError",
]
