"""Log file writer with size-based rotation.

Entries are appended one per line; when the file reaches its size limit it
is renamed to ``<name>.1`` (older backups shift up) and a fresh file opened.
"""

from pathlib import Path
from threading import Lock
from typing import Optional, TextIO
import os
import sys

from rak811.logging.log_models import LogEntry


class FileHandler:
    """Thread-safe file handler with automatic log rotation.

    Example:
        >>> handler = FileHandler("~/.rak811/logs/rak811.log", max_size_mb=10, backup_count=5)
        >>> handler.write(log_entry)
        >>> handler.close()
    """

    def __init__(self, log_file_path: str, max_size_mb: float = 10, backup_count: int = 5):
        """Create the log directory if needed and open the file for appending.

        Args:
            log_file_path: Path to log file (supports ~ expansion)
            max_size_mb: Maximum file size in MB before rotation
            backup_count: Number of rotated backups to keep

        Raises:
            OSError: Log directory cannot be created or file cannot be opened
        """
        self.log_file_path = Path(log_file_path).expanduser().resolve()
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self.backup_count = backup_count
        self._lock = Lock()
        self._file_handle: Optional[TextIO] = None
        self._is_closed = False

        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        self._open_file()

    def _open_file(self) -> None:
        self._file_handle = open(self.log_file_path, mode='a', encoding='utf-8')

    def write(self, entry: LogEntry) -> bool:
        """Append an entry, rotating first if the file is full.

        Returns:
            True if the entry was written
        """
        if self._is_closed or self._file_handle is None:
            return False

        with self._lock:
            try:
                self._rotate_if_needed()
                self._file_handle.write(entry.to_string() + '\n')
                self._file_handle.flush()
                return True
            except OSError as e:
                # A failing log file must not take the driver down with it
                print(f"ERROR: Failed to write log entry: {e}", file=sys.stderr)
                return False

    def _rotate_if_needed(self) -> None:
        """Rotate when the file exceeds the size limit. Caller holds self._lock."""
        if os.path.getsize(self.log_file_path) < self.max_size_bytes:
            return

        self._file_handle.close()

        if self.backup_count > 0:
            # .log.4 -> .log.5, .log.3 -> .log.4, ...
            for i in range(self.backup_count - 1, 0, -1):
                src = Path(f"{self.log_file_path}.{i}")
                dst = Path(f"{self.log_file_path}.{i + 1}")
                if src.exists():
                    src.replace(dst)
            self.log_file_path.replace(Path(f"{self.log_file_path}.1"))
        else:
            self.log_file_path.unlink()

        self._open_file()

    def flush(self) -> None:
        """Force buffered writes to disk."""
        if self._file_handle is None or self._is_closed:
            return

        with self._lock:
            self._file_handle.flush()
            os.fsync(self._file_handle.fileno())

    def close(self) -> None:
        """Flush and close the file. Idempotent."""
        if self._is_closed:
            return

        with self._lock:
            try:
                if self._file_handle and not self._file_handle.closed:
                    self._file_handle.flush()
                    self._file_handle.close()
            finally:
                self._file_handle = None
                self._is_closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
