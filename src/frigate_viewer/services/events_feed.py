"""Events feed: filtered event list with the local unread overlay applied.

Loads GET /events for the current filter mode, keeps the previous list on
screen while loading or after a failure, and after every load runs the
watchdog: a full listing (filter=all) used to prune locally resolved ids that
no longer exist on the server so the overlay stays bounded.
"""

import logging
import threading
from collections.abc import Callable

from frigate_viewer.managers.unread import UnreadStateReconciler
from frigate_viewer.models import Event, EventsFilterMode
from frigate_viewer.services.api_client import BufferApiClient, BufferApiError

logger = logging.getLogger("frigate-viewer")

# Reloads in one refresh when the filter mode keeps changing mid-fetch.
MAX_MODE_SWITCH_RELOADS = 3


class EventsFeed:
    """Current event list for the UI layer, filtered by mode and local resolutions."""

    def __init__(
        self,
        reconciler: UnreadStateReconciler,
        base_url_provider: Callable[[], str | None],
        api_factory: Callable[[str], BufferApiClient],
        filter_mode: EventsFilterMode = EventsFilterMode.UNREVIEWED,
    ) -> None:
        self._reconciler = reconciler
        self._base_url_provider = base_url_provider
        self._api_factory = api_factory
        self._filter_mode = filter_mode
        self._events: list[Event] = []
        self._error: str | None = None
        self._lock = threading.Lock()
        self._load_lock = threading.Lock()

    @property
    def filter_mode(self) -> EventsFilterMode:
        return self._filter_mode

    @property
    def error(self) -> str | None:
        return self._error

    def server_events(self) -> list[Event]:
        """Last list returned by the server for the current filter mode."""
        with self._lock:
            return list(self._events)

    def displayed_events(self) -> list[Event]:
        """Server list minus locally resolved ids (unreviewed mode only)."""
        return self._reconciler.display_list(self.server_events(), self._filter_mode)

    def set_filter_mode(self, mode: EventsFilterMode) -> bool:
        """Switch filter mode and refetch. No-op if the mode is unchanged."""
        if mode is self._filter_mode:
            return False
        with self._lock:
            self._filter_mode = mode
            self._events = []
        self.refresh(wait=True)
        return True

    def refresh(self, wait: bool = False) -> bool:
        """Refetch the current filter's list, then run the watchdog.

        A load that finishes after the filter mode changed is dropped and the
        new mode is fetched in the same pass. Returns False if a load is
        already running (unless wait is set), no base URL is set, or the
        fetch failed (the previous list is kept).
        """
        if not self._load_lock.acquire(blocking=wait):
            logger.debug("Events load already running, skipping refresh")
            return False
        try:
            base_url = self._base_url_provider()
            if not base_url:
                self._error = "No server URL"
                return False
            ok = self._load_current_mode(base_url)
            self.run_watchdog(base_url)
            return ok
        finally:
            self._load_lock.release()

    def _load_current_mode(self, base_url: str) -> bool:
        for _ in range(MAX_MODE_SWITCH_RELOADS + 1):
            mode = self._filter_mode
            try:
                events = self._api_factory(base_url).get_events(mode)
            except BufferApiError as e:
                self._error = str(e) or "Failed to load events"
                logger.warning("Failed to load %s events: %s", mode.value, e)
                return False
            with self._lock:
                if mode is self._filter_mode:
                    self._events = events
                    self._error = None
                    logger.debug("Loaded %d %s events", len(events), mode.value)
                    return True
            logger.debug("Filter changed while loading %s events, reloading", mode.value)
        self._error = "Filter changed during load"
        return False

    def run_watchdog(self, base_url: str | None = None) -> bool:
        """Prune locally resolved ids to those still on the server (filter=all)."""
        base_url = base_url or self._base_url_provider()
        if not base_url:
            return False
        try:
            all_events = self._api_factory(base_url).get_events(EventsFilterMode.ALL)
        except BufferApiError as e:
            logger.debug("Unread watchdog skipped, listing failed: %s", e)
            return False
        self._reconciler.prune_to(e.event_id for e in all_events)
        return True
