"""Push dispatcher: classify inbound payloads and drive the per-event alert slot.

Each consolidated event owns one alert slot (slot_id(ce_id)). Phases move the
slot forward NEW -> SNAPSHOT_READY -> CLIP_READY; DISCARDED or a clear flag
cancels it. Phases may arrive out of order; the last post to a slot wins.

Every phase handler resolves an image through a fallback chain (cache, public
image URL, event list lookup with one retry, payload paths) and then posts
exactly one alert. Image and network failures only cost the image: the alert
is posted text-only and nothing propagates to the caller.
"""

import logging
import time
from collections.abc import Callable
from concurrent.futures import Future

from frigate_viewer.alerts.base import AlertSink
from frigate_viewer.constants import (
    DEFAULT_API_RETRY_DELAY_SECONDS,
    DEFAULT_API_SETTLE_DELAY_SECONDS,
)
from frigate_viewer.event_matching import find_first
from frigate_viewer.managers.image_cache import NotificationImageCache
from frigate_viewer.media_paths import (
    is_absolute_http_url,
    normalize_push_media_path,
    thumbnail_path_candidates,
)
from frigate_viewer.models import (
    Alert,
    AlertAction,
    EventNotification,
    EventsFilterMode,
    NotificationImage,
    NotificationPhase,
    classify,
    slot_id,
)
from frigate_viewer.services.api_client import BufferApiClient, BufferApiError
from frigate_viewer.services.image_loader import NotificationImageLoader
from frigate_viewer.services.tasks import SupervisedTaskGroup

logger = logging.getLogger("frigate-viewer")

CLIP_READY_ACTIONS = (
    AlertAction("play", "Play"),
    AlertAction("mark_reviewed", "Mark Reviewed"),
    AlertAction("keep", "Keep"),
)


class PushDispatcher:
    """Routes classified push messages to phase handlers that post to one slot per event."""

    def __init__(
        self,
        sink: AlertSink,
        image_cache: NotificationImageCache,
        image_loader: NotificationImageLoader,
        base_url_provider: Callable[[], str | None],
        api_factory: Callable[[str], BufferApiClient],
        tasks: SupervisedTaskGroup | None = None,
        settle_delay: float = DEFAULT_API_SETTLE_DELAY_SECONDS,
        retry_delay: float = DEFAULT_API_RETRY_DELAY_SECONDS,
    ) -> None:
        self._sink = sink
        self._cache = image_cache
        self._loader = image_loader
        self._base_url_provider = base_url_provider
        self._api_factory = api_factory
        self._tasks = tasks
        self._settle_delay = settle_delay
        self._retry_delay = retry_delay

    def submit(self, payload: dict) -> Future | None:
        """Handle payload on the task group (or inline when there is none)."""
        if self._tasks is None:
            self.handle_message(payload)
            return None
        return self._tasks.spawn("push", self.handle_message, payload)

    def handle_message(self, payload: dict | None) -> EventNotification | None:
        """Entry point for one inbound push payload. Never raises."""
        if not payload:
            logger.warning("Push message has no data payload, ignoring")
            return None
        if not self._base_url_provider():
            logger.warning(
                "Skipping push message: no server base URL configured "
                "(set server.base_url to receive event alerts)"
            )
            return None
        try:
            notification = classify(payload)
            logger.debug("Classified push: ce_id=%s, phase=%s", notification.ce_id, notification.phase.name)
            self.dispatch(notification)
            return notification
        except Exception as e:
            logger.exception("Push message handling failed: %s", e)
            return None

    def dispatch(self, notification: EventNotification) -> None:
        """Clear the event's slot or route to the phase handler."""
        slot = slot_id(notification.ce_id)
        if notification.clear_notification or notification.phase is NotificationPhase.DISCARDED:
            self._sink.cancel(slot)
            logger.info("Cleared alert for %s (phase=%s)", notification.ce_id, notification.phase.name)
            return

        base_url = self._base_url_provider()
        if not base_url:
            logger.warning("Skipping %s: no server base URL configured", notification.ce_id)
            return

        match notification.phase:
            case NotificationPhase.NEW:
                self._handle_new(notification, slot, base_url)
            case NotificationPhase.SNAPSHOT_READY:
                self._handle_snapshot_ready(notification, slot, base_url)
            case NotificationPhase.CLIP_READY:
                self._handle_clip_ready(notification, slot, base_url)
            case NotificationPhase.DISCARDED:
                pass  # cancelled above
            case NotificationPhase.UNKNOWN:
                logger.warning(
                    "Push phase UNKNOWN for ce_id=%s; server should send "
                    "phase NEW|SNAPSHOT_READY|CLIP_READY|DISCARDED",
                    notification.ce_id,
                )
            case _:
                raise ValueError(f"Unhandled notification phase: {notification.phase!r}")

    def _handle_new(self, n: EventNotification, slot: int, base_url: str) -> None:
        """NEW: "Motion Detected" with the live frame as large icon only."""
        image = self._resolve_image(n, base_url, n.live_frame_proxy)
        self._sink.post(slot, Alert(
            title="Motion Detected",
            body=f"Camera: {n.camera}" if n.camera else "Security alert",
            ce_id=n.ce_id,
            image=image,
        ))

    def _handle_snapshot_ready(self, n: EventNotification, slot: int, base_url: str) -> None:
        """SNAPSHOT_READY: same slot, cropped snapshot as big picture."""
        image = self._resolve_image(n, base_url, n.hosted_snapshot)
        self._sink.post(slot, Alert(
            title=f"Snapshot: {n.camera}" if n.camera else "Snapshot ready",
            body="Cropped snapshot available",
            ce_id=n.ce_id,
            image=image,
            big_picture=image is not None,
        ))

    def _handle_clip_ready(self, n: EventNotification, slot: int, base_url: str) -> None:
        """CLIP_READY: AI title/description with Play, Mark Reviewed, and Keep actions."""
        image = self._resolve_image(n, base_url, n.notification_gif)
        self._sink.post(slot, Alert(
            title=n.title or "Event ready",
            body=n.description or "Tap to view",
            ce_id=n.ce_id,
            image=image,
            big_picture=image is not None,
            actions=CLIP_READY_ACTIONS,
            hosted_clip=n.hosted_clip,
        ))

    def _resolve_image(
        self, n: EventNotification, base_url: str, phase_path: str | None
    ) -> NotificationImage | None:
        """Walk the image fallback chain; cache any image loaded."""
        cached = self._cache.get(n.ce_id)
        if cached is not None:
            return cached
        try:
            client = self._api_factory(base_url)
            image = None
            if is_absolute_http_url(n.image_url):
                image = self._loader.load_url(client, n.image_url)
            if image is None:
                # Give a VPN time to become the default route after the push woke us.
                time.sleep(self._settle_delay)
                image = self._load_from_event_list(client, base_url, n.ce_id)
                if image is None:
                    time.sleep(self._retry_delay)
                    image = self._load_from_event_list(client, base_url, n.ce_id)
            if image is None:
                image = self._loader.load_first(
                    client,
                    base_url,
                    [phase_path, normalize_push_media_path(n.cropped_image_url)],
                )
        except Exception as e:
            logger.warning("Notification image resolution failed for %s: %s", n.ce_id, e)
            return None
        if image is None:
            logger.warning("Notification image: no image (API + fallback failed) for ce_id=%s", n.ce_id)
            return None
        self._cache.put(n.ce_id, image)
        return image

    def _load_from_event_list(
        self, client: BufferApiClient, base_url: str, ce_id: str
    ) -> NotificationImage | None:
        """Find the event in GET /events?filter=all and load its thumbnail."""
        try:
            events = client.get_events(EventsFilterMode.ALL)
        except BufferApiError as e:
            logger.warning("Notification image from API failed: %s", e)
            return None
        event = find_first(events, ce_id)
        if event is None:
            logger.warning("Notification image: event not found for ce_id=%s", ce_id)
            return None
        candidates = thumbnail_path_candidates(event)
        if not candidates:
            logger.warning("Notification image: no snapshot/clip path for ce_id=%s", ce_id)
            return None
        image = self._loader.load_first(client, base_url, candidates)
        if image is not None:
            logger.debug("Notification image loaded from API for ce_id=%s", ce_id)
        return image
