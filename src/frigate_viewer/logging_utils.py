"""Error buffer, URL masking, and logging setup for the viewer."""

import logging
import threading
import time
from urllib.parse import urlsplit, urlunsplit

from frigate_viewer.constants import ERROR_BUFFER_MAX_SIZE

logger = logging.getLogger('frigate-viewer')


class ErrorBuffer:
    """Thread-safe rotating buffer of recent ERROR/WARNING log records."""

    def __init__(self, max_size: int = ERROR_BUFFER_MAX_SIZE):
        self._entries: list[dict] = []
        self._max_size = max_size
        self._lock = threading.Lock()

    def append(self, timestamp: str, level: str, message: str) -> None:
        with self._lock:
            self._entries.append({
                "ts": timestamp,
                "level": level,
                "message": message[:500] if message else "",
            })
            del self._entries[:-self._max_size]

    def get_all(self) -> list[dict]:
        """Newest first."""
        with self._lock:
            return list(reversed(self._entries))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class ErrorBufferHandler(logging.Handler):
    """Logging handler that writes WARNING and above to an ErrorBuffer."""

    def __init__(self, buffer: ErrorBuffer):
        super().__init__(level=logging.WARNING)
        self._buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            ts = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(record.created))
            self._buffer.append(ts, record.levelname, record.getMessage())
        except Exception:
            self.handleError(record)


error_buffer = ErrorBuffer(max_size=ERROR_BUFFER_MAX_SIZE)


def mask_url(url: str | None) -> str:
    """URL with any user:password@ replaced by ***@ (for logs and error text)."""
    if not url:
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if parts.username is None and parts.password is None:
        return url
    host = parts.hostname or ""
    if parts.port is not None:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, parts.query, parts.fragment))


def setup_logging(log_level: str):
    """Configure logging with the specified level."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.getLogger().setLevel(level)
    logger.setLevel(level)

    # Error buffer for /api/status (avoid a duplicate if called twice)
    if not any(isinstance(h, ErrorBufferHandler) for h in logger.handlers):
        logger.addHandler(ErrorBufferHandler(error_buffer))

    # Per-request werkzeug logging floods the log with /api/unread polls
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    logger.info(f"Log level set to {log_level.upper()}")
