"""
Match an event from GET /events to a terse id from a deep link or push payload.

The server returns consolidated events with event_id/subdir equal to the folder
name (no ce_ prefix), while push payloads and deep links carry the prefixed
ce_id (e.g. ce_1772252671_bf1c91a6). Both forms are tried.
"""

from collections.abc import Iterable

from frigate_viewer.constants import CE_ID_PREFIX, CONSOLIDATED_CAMERA
from frigate_viewer.models import Event


def strip_ce_prefix(ce_id: str) -> str:
    """Return ce_id without the consolidated-event prefix (folder name form)."""
    return ce_id[len(CE_ID_PREFIX):] if ce_id.startswith(CE_ID_PREFIX) else ce_id


def matches(event: Event, candidate_id: str) -> bool:
    """True if event corresponds to candidate_id (prefixed or folder form)."""
    if not candidate_id or not candidate_id.strip():
        return False
    folder_name = strip_ce_prefix(candidate_id)
    consolidated = event.camera == CONSOLIDATED_CAMERA
    return (
        event.event_id == candidate_id
        or (consolidated and event.subdir == candidate_id)
        or event.event_id == folder_name
        or (consolidated and event.subdir == folder_name)
    )


def find_first(events: Iterable[Event], candidate_id: str) -> Event | None:
    """First event in list order that matches candidate_id, or None.

    No ambiguity resolution: if stripped ids collide across cameras, list
    order decides.
    """
    for event in events:
        if matches(event, candidate_id):
            return event
    return None
