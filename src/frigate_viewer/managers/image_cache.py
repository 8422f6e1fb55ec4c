"""In-memory cache of notification images keyed by ce_id.

Later phases of the same event reuse the image an earlier phase loaded instead
of fetching it again. Two bounds apply: entries older than the TTL (72 hours)
are evicted on read, and total decoded size is capped with LRU eviction.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass

from frigate_viewer.constants import (
    CE_ID_PREFIX,
    DEFAULT_IMAGE_CACHE_MAX_BYTES,
    IMAGE_CACHE_TTL_SECONDS,
)
from frigate_viewer.models import NotificationImage

logger = logging.getLogger("frigate-viewer")


@dataclass(slots=True)
class _Entry:
    image: NotificationImage
    cached_at: float
    size: int


class NotificationImageCache:
    """Thread-safe LRU + TTL cache of NotificationImage by ce_id.

    Accessed from concurrent push-handling tasks; every operation holds the
    single lock.
    """

    def __init__(
        self,
        max_bytes: int = DEFAULT_IMAGE_CACHE_MAX_BYTES,
        ttl_seconds: float = IMAGE_CACHE_TTL_SECONDS,
    ) -> None:
        self._max_bytes = max_bytes
        self._ttl = ttl_seconds
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._total_bytes = 0
        self._lock = threading.Lock()

    def get(self, ce_id: str) -> NotificationImage | None:
        """Return the cached image, or None if missing or expired (expired is evicted)."""
        with self._lock:
            entry = self._entries.get(ce_id)
            if entry is None:
                return None
            if time.time() - entry.cached_at > self._ttl:
                self._remove(ce_id)
                logger.debug("Notification image for %s expired", ce_id)
                return None
            self._entries.move_to_end(ce_id)
            return entry.image

    def put(self, ce_id: str, image: NotificationImage) -> None:
        """Store image for ce_id stamped with the current time (overwrites)."""
        size = image.byte_size
        with self._lock:
            self._remove(ce_id)
            if size > self._max_bytes:
                logger.debug(
                    "Notification image for %s (%d bytes) exceeds cache budget, not cached",
                    ce_id,
                    size,
                )
                return
            self._entries[ce_id] = _Entry(image=image, cached_at=time.time(), size=size)
            self._total_bytes += size
            while self._total_bytes > self._max_bytes and self._entries:
                oldest = next(iter(self._entries))
                self._remove(oldest)

    def evict(self, ce_id: str) -> None:
        """Remove the image for ce_id (e.g. event deleted). Idempotent."""
        with self._lock:
            self._remove(ce_id)

    def evict_by_event_path(self, event_path: str) -> None:
        """Remove the image for an API event path such as "events/1772256011_69405f11".

        The cache is keyed by ce_id, so the folder name gets the ce_ prefix back.
        """
        folder = (event_path or "").rsplit("/", 1)[-1]
        if not folder.strip():
            return
        with self._lock:
            self._remove(f"{CE_ID_PREFIX}{folder}")

    def stats(self) -> dict:
        with self._lock:
            return {
                "entries": len(self._entries),
                "total_bytes": self._total_bytes,
                "max_bytes": self._max_bytes,
            }

    def _remove(self, ce_id: str) -> None:
        entry = self._entries.pop(ce_id, None)
        if entry is not None:
            self._total_bytes -= entry.size
