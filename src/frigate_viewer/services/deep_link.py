"""Deep-link / alert-tap resolution of a ce_id to a full event record."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from frigate_viewer.event_matching import find_first
from frigate_viewer.models import Event, EventsFilterMode
from frigate_viewer.services.api_client import BufferApiClient, BufferApiError

logger = logging.getLogger("frigate-viewer")


class DeepLinkStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class DeepLinkResult:
    status: DeepLinkStatus
    ce_id: str
    event: Event | None = None


class DeepLinkResolver:
    """Looks ce_id up in GET /events?filter=all (the list is eventually consistent)."""

    def __init__(
        self,
        base_url_provider: Callable[[], str | None],
        api_factory: Callable[[str], BufferApiClient],
    ) -> None:
        self._base_url_provider = base_url_provider
        self._api_factory = api_factory

    def resolve(self, ce_id: str) -> DeepLinkResult:
        base_url = self._base_url_provider()
        if not base_url:
            return DeepLinkResult(DeepLinkStatus.NOT_CONFIGURED, ce_id)
        try:
            events = self._api_factory(base_url).get_events(EventsFilterMode.ALL)
        except BufferApiError as e:
            logger.warning("Deep link lookup for %s failed: %s", ce_id, e)
            return DeepLinkResult(DeepLinkStatus.NOT_FOUND, ce_id)
        event = find_first(events, ce_id)
        if event is None:
            logger.info("Deep link: event not found for ce_id=%s", ce_id)
            return DeepLinkResult(DeepLinkStatus.NOT_FOUND, ce_id)
        return DeepLinkResult(DeepLinkStatus.FOUND, ce_id, event)
