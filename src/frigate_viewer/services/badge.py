"""Unread badge emission.

Posts (or cancels) the single silent badge alert in the reserved slot from the
reconciler's effective count. Holds no count of its own; the reconciler is the
only source of truth, and the emitter listens to it so every change (poll,
mark reviewed, delete, watchdog prune) reaches the badge.
"""

import logging
import threading
from collections.abc import Callable

from frigate_viewer.alerts.base import AlertSink
from frigate_viewer.constants import BADGE_SLOT_ID, CHANNEL_BADGE
from frigate_viewer.managers.unread import UnreadSnapshot, UnreadStateReconciler
from frigate_viewer.models import Alert
from frigate_viewer.services.api_client import BufferApiClient, BufferApiError

logger = logging.getLogger("frigate-viewer")


def badge_text(count: int) -> str:
    return "1 event" if count == 1 else f"{count} events"


class BadgeEmitter:
    """Applies the effective unread count to the device badge."""

    def __init__(
        self,
        sink: AlertSink,
        reconciler: UnreadStateReconciler,
        base_url_provider: Callable[[], str | None],
        api_factory: Callable[[str], BufferApiClient],
    ) -> None:
        self._sink = sink
        self._reconciler = reconciler
        self._base_url_provider = base_url_provider
        self._api_factory = api_factory
        self._emit_lock = threading.Lock()
        reconciler.add_listener(self.on_state_changed)

    def apply(self, count: int) -> None:
        """Cancel the badge for count <= 0, otherwise post it with count."""
        if count <= 0:
            self._sink.cancel(BADGE_SLOT_ID)
            return
        self._sink.post(BADGE_SLOT_ID, Alert(
            title="Unreviewed events",
            body=badge_text(count),
            channel=CHANNEL_BADGE,
            number=count,
            silent=True,
            auto_cancel=False,
        ))

    def refresh(self) -> None:
        """Re-apply the reconciler's current effective count.

        Emissions are serialized and each one reads the count under the lock,
        so the last alert posted always carries the latest count even when
        listener calls from racing mutations finish out of order.
        """
        with self._emit_lock:
            self.apply(self._reconciler.effective_count())

    def on_state_changed(self, snapshot: UnreadSnapshot) -> None:
        """Reconciler listener. The snapshot may already be stale; the current count is used."""
        self.refresh()

    def update_from_server(self) -> bool:
        """Fetch the server unread count, record it, and apply the badge.

        Recording a changed count reaches the badge through on_state_changed.
        Returns False (and leaves the badge as is) when no base URL is set or
        the poll fails; the next poll retries.
        """
        base_url = self._base_url_provider()
        if not base_url:
            return False
        try:
            count = self._api_factory(base_url).get_unread_count()
        except BufferApiError as e:
            logger.warning("Unread count poll failed: %s", e)
            return False
        self._reconciler.record_fetched_count(count)
        return True
