"""Communication logging module.

Records commands, replies, asynchronous events and serial port events
exchanged with the module, for debugging and field troubleshooting.
"""

from rak811.logging.log_models import LogEntry
from rak811.logging.file_handler import FileHandler
from rak811.logging.communication_logger import CommunicationLogger

__all__ = ['LogEntry', 'FileHandler', 'CommunicationLogger']
