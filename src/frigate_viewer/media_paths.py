"""Media URL and path helpers for event snapshots, clips, and push image paths."""

from frigate_viewer.constants import CE_ID_PREFIX, CONSOLIDATED_CAMERA
from frigate_viewer.models import Event


def is_absolute_http_url(value: str | None) -> bool:
    return bool(value) and value.strip().startswith(("http://", "https://"))


def build_media_url(base_url: str | None, path: str | None) -> str | None:
    """
    Full media URL from the server base URL and an API path.

    Absolute http(s) paths are returned as-is. Otherwise exactly one slash
    joins base and path. Returns None if path is blank (or only slashes) or
    base_url is missing.
    """
    if not path or not path.strip():
        return None
    trimmed = path.strip()
    if is_absolute_http_url(trimmed):
        return trimmed
    if not base_url or not base_url.strip():
        return None
    relative = trimmed.lstrip("/")
    if not relative:
        return None
    return f"{base_url.strip().rstrip('/')}/{relative}"


def normalize_push_media_path(path: str | None) -> str | None:
    """
    Rewrite an absolute server path for a consolidated event so it matches the
    /files/events/... route, e.g. /app/storage/events/123_ab/snap.jpg ->
    /files/events/123_ab/snap.jpg. Other paths are returned unchanged.
    """
    if not path or not path.strip():
        return None
    idx = path.find("events/")
    if idx >= 0 and not path.startswith("/files/events/"):
        return "/files/" + path[idx:]
    return path


def _primary_thumbnail_path(event: Event) -> str | None:
    if event.hosted_snapshot and event.hosted_snapshot.strip():
        return event.hosted_snapshot
    if event.hosted_clip and event.hosted_clip.strip():
        return event.hosted_clip
    for clip in event.hosted_clips:
        if clip.url.strip():
            return clip.url
    return None


def _fallback_path(path: str, event: Event) -> str | None:
    segments = [s for s in path.strip().strip("/").split("/") if s]
    if len(segments) < 3 or segments[0] != "files":
        return None
    if event.camera == CONSOLIDATED_CAMERA:
        # files/events/{segment}/...: some deployments keep the ce_ prefix on disk
        if segments[1] != CONSOLIDATED_CAMERA or segments[2].startswith(CE_ID_PREFIX):
            return None
        segments[2] = CE_ID_PREFIX + segments[2]
    else:
        # files/{camera}/{segment}/...: folder may be named by subdir or event_id
        if segments[1] != event.camera or event.subdir == event.event_id:
            return None
        if segments[2] == event.subdir:
            segments[2] = event.event_id
        elif segments[2] == event.event_id:
            segments[2] = event.subdir
        else:
            return None
    return "/" + "/".join(segments)


def thumbnail_path_candidates(event: Event) -> list[str]:
    """Candidate thumbnail paths for an event (snapshot, else clip), primary first."""
    primary = _primary_thumbnail_path(event)
    if primary is None:
        return []
    fallback = _fallback_path(primary, event)
    if fallback is None or fallback == primary:
        return [primary]
    return [primary, fallback]
