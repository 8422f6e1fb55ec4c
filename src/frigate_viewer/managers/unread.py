"""Single source of truth for unread-event state shared by the badge and the events list.

Holds the last unread count fetched from the server and the set of event ids
the user has resolved (marked reviewed) locally since. The badge uses
effective_count(); the events list uses the resolved set to hide events the
server has not caught up on yet.

The server owns the count; the client owns which ids were resolved since the
last poll. Storing a count delta instead would double-count whenever a poll
already reflects a resolution the user just made.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from frigate_viewer.models import Event, EventsFilterMode

logger = logging.getLogger("frigate-viewer")


@dataclass(frozen=True)
class UnreadSnapshot:
    """Immutable view of reconciler state; replaced wholesale on each mutation."""
    last_fetched_unread_count: int = 0
    locally_resolved_ids: frozenset[str] = frozenset()

    @property
    def effective_count(self) -> int:
        return max(0, self.last_fetched_unread_count - len(self.locally_resolved_ids))


UnreadListener = Callable[[UnreadSnapshot], None]


class UnreadStateReconciler:
    """Thread-safe overlay of local resolutions on the server unread count.

    Mutations are serialized under one lock and publish a new UnreadSnapshot;
    reads take the current snapshot without locking (possibly stale, never torn).
    Created once per process by the orchestrator and injected into consumers.
    """

    def __init__(self) -> None:
        self._state = UnreadSnapshot()
        self._lock = threading.Lock()
        self._listeners: list[UnreadListener] = []

    def add_listener(self, listener: UnreadListener) -> None:
        """Register a callback invoked with the new snapshot after each change."""
        with self._lock:
            self._listeners.append(listener)

    def snapshot(self) -> UnreadSnapshot:
        return self._state

    def effective_count(self) -> int:
        """max(0, last fetched count - number of locally resolved ids)."""
        return self._state.effective_count

    def locally_resolved_ids(self) -> frozenset[str]:
        return self._state.locally_resolved_ids

    def record_fetched_count(self, count: int) -> None:
        """Called after each successful GET /api/events/unread_count."""
        count = max(0, int(count))
        self._update(lambda s: UnreadSnapshot(count, s.locally_resolved_ids))
        logger.debug("Recorded server unread count %d", count)

    def record_resolved(self, event_id: str) -> None:
        """User marked event_id reviewed (list, detail, or alert action)."""
        if not event_id:
            return
        self._update(
            lambda s: UnreadSnapshot(
                s.last_fetched_unread_count, s.locally_resolved_ids | {event_id}
            )
        )

    def record_unresolved(self, event_id: str) -> None:
        """User deleted event_id: it is gone, not read, so stop subtracting it."""
        if not event_id:
            return
        self._update(
            lambda s: UnreadSnapshot(
                s.last_fetched_unread_count, s.locally_resolved_ids - {event_id}
            )
        )

    def prune_to(self, existing_ids: Iterable[str]) -> None:
        """Keep only resolved ids that still exist on the server (watchdog pass)."""
        existing = frozenset(existing_ids)
        self._update(
            lambda s: UnreadSnapshot(
                s.last_fetched_unread_count, s.locally_resolved_ids & existing
            )
        )

    def display_list(
        self, server_events: Iterable[Event], filter_mode: EventsFilterMode
    ) -> list[Event]:
        """Events to show: unreviewed lists drop locally resolved ids immediately."""
        events = list(server_events)
        if filter_mode is not EventsFilterMode.UNREVIEWED:
            return events
        resolved = self._state.locally_resolved_ids
        return [e for e in events if e.event_id not in resolved]

    def _update(self, transform: Callable[[UnreadSnapshot], UnreadSnapshot]) -> None:
        with self._lock:
            before = self._state
            after = transform(before)
            if after == before:
                return
            self._state = after
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(after)
            except Exception as e:
                logger.exception("Unread state listener %r failed: %s", listener, e)
