"""User actions on events: mark reviewed, keep, delete.

Used by the events list/detail API and by alert action buttons. Each action
calls the server, then updates local state on success: the unread overlay,
the notification image cache, and the event's alert slot. Results are
returned as ActionResult; no exception escapes.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from frigate_viewer.alerts.base import AlertSink
from frigate_viewer.constants import CE_ID_PREFIX, CONSOLIDATED_CAMERA
from frigate_viewer.event_matching import find_first, strip_ce_prefix
from frigate_viewer.managers.image_cache import NotificationImageCache
from frigate_viewer.managers.unread import UnreadStateReconciler
from frigate_viewer.models import Alert, slot_id
from frigate_viewer.services.api_client import BufferApiClient, BufferApiError
from frigate_viewer.services.events_feed import EventsFeed

logger = logging.getLogger("frigate-viewer")


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    message: str


def slot_for_event_path(event_path: str) -> int:
    """Alert slot of the event at an API path (consolidated folders get ce_ back)."""
    camera, _, folder = event_path.strip("/").rpartition("/")
    if camera == CONSOLIDATED_CAMERA and not folder.startswith(CE_ID_PREFIX):
        return slot_id(CE_ID_PREFIX + folder)
    return slot_id(folder)


class EventActions:
    """Mark reviewed / keep / delete with local state kept in step."""

    def __init__(
        self,
        reconciler: UnreadStateReconciler,
        image_cache: NotificationImageCache,
        sink: AlertSink,
        base_url_provider: Callable[[], str | None],
        api_factory: Callable[[str], BufferApiClient],
        feed: EventsFeed | None = None,
    ) -> None:
        self._reconciler = reconciler
        self._cache = image_cache
        self._sink = sink
        self._base_url_provider = base_url_provider
        self._api_factory = api_factory
        self._feed = feed

    def _call(self, what: str, fn: Callable[[BufferApiClient], None]) -> ActionResult | None:
        """Run fn against the API. Returns an error ActionResult, or None on success."""
        base_url = self._base_url_provider()
        if not base_url:
            return ActionResult(False, "Not configured")
        try:
            fn(self._api_factory(base_url))
        except BufferApiError as e:
            logger.warning("%s failed: %s", what, e)
            return ActionResult(False, f"Failed to {what.lower()}")
        return None

    def mark_reviewed(self, event_id: str, event_path: str, slot: int | None = None) -> ActionResult:
        """Hide the event locally right away, then POST viewed/{path}.

        A failed call takes the id back out of the overlay unless it was
        already resolved before this call.
        """
        was_resolved = event_id in self._reconciler.locally_resolved_ids()
        self._reconciler.record_resolved(event_id)
        if slot is not None:
            self._sink.cancel(slot)
        error = self._call("Mark reviewed", lambda c: c.mark_viewed(event_path))
        if error is not None:
            if not was_resolved:
                self._reconciler.record_unresolved(event_id)
            return error
        logger.info("Marked %s reviewed", event_path)
        return ActionResult(True, "Marked reviewed")

    def keep(self, event_id: str, event_path: str, slot: int | None = None) -> ActionResult:
        """POST keep/{path}; from an alert, the slot is replaced with a "Saved" alert."""
        error = self._call("Save", lambda c: c.keep_event(event_path))
        if error is not None:
            return error
        if slot is not None:
            self._sink.post(slot, Alert(title="Saved", body="Event kept.", ce_id=event_id))
        logger.info("Kept %s", event_path)
        return ActionResult(True, "Saved")

    def delete(self, event_id: str, event_path: str) -> ActionResult:
        """POST delete/{path}; on success drop the id from the overlay, cache, and alerts."""
        error = self._call("Delete", lambda c: c.delete_event(event_path))
        if error is not None:
            return error
        self._reconciler.record_unresolved(event_id)
        self._cache.evict_by_event_path(event_path)
        self._sink.cancel(slot_for_event_path(event_path))
        logger.info("Deleted %s", event_path)
        return ActionResult(True, "Deleted")

    def handle_alert_action(self, action_key: str, ce_id: str) -> ActionResult:
        """Alert button pressed ("mark_reviewed" or "keep") for the event ce_id."""
        if not ce_id or not ce_id.strip():
            return ActionResult(False, "Invalid notification action")
        event_id, event_path = self._resolve_ids(ce_id)
        slot = slot_id(ce_id)
        match action_key:
            case "mark_reviewed":
                return self.mark_reviewed(event_id, event_path, slot=slot)
            case "keep":
                return self.keep(event_id, event_path, slot=slot)
            case _:
                logger.debug("Ignoring alert action %r for %s", action_key, ce_id)
                return ActionResult(False, f"Unsupported action: {action_key}")

    def _resolve_ids(self, ce_id: str) -> tuple[str, str]:
        """(event_id, event_path) for ce_id: from the loaded feed, else the consolidated folder form."""
        if self._feed is not None:
            event = find_first(self._feed.server_events(), ce_id)
            if event is not None:
                return event.event_id, event.event_path
        folder = strip_ce_prefix(ce_id)
        return folder, f"{CONSOLIDATED_CAMERA}/{folder}"
