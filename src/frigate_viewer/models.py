"""Push payload, event, and alert models plus helper functions."""

import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from frigate_viewer.constants import (
    BADGE_SLOT_ID,
    CHANNEL_SECURITY_ALERTS,
    CONSOLIDATED_CAMERA,
)


class NotificationPhase(Enum):
    """Lifecycle phase of a consolidated event as sent in a push payload."""
    NEW = auto()             # Motion detected; live frame available
    SNAPSHOT_READY = auto()  # Cropped snapshot available
    CLIP_READY = auto()      # Clip and AI title/description available
    DISCARDED = auto()       # Event dropped by the server; clear the alert
    UNKNOWN = auto()         # Unrecognized phase string; logged, no alert


_KNOWN_PHASES = {
    p.name: p for p in NotificationPhase if p is not NotificationPhase.UNKNOWN
}


def parse_phase(value: str | None) -> NotificationPhase:
    """Case-insensitive phase lookup; anything unrecognized is UNKNOWN."""
    if not value:
        return NotificationPhase.UNKNOWN
    return _KNOWN_PHASES.get(str(value).strip().upper(), NotificationPhase.UNKNOWN)


def _text(payload: dict, key: str) -> str | None:
    """Payload value as a stripped string, or None when missing or blank."""
    value = payload.get(key)
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def _int_or_zero(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class EventNotification:
    """Typed view of one inbound push payload.

    ce_id is never blank: a payload without one gets a random UUID so the
    message can still occupy an alert slot.
    """
    ce_id: str
    phase: NotificationPhase
    clear_notification: bool = False
    threat_level: int = 0
    camera: str | None = None
    live_frame_proxy: str | None = None
    hosted_snapshot: str | None = None
    notification_gif: str | None = None
    cropped_image_url: str | None = None
    image_url: str | None = None
    title: str | None = None
    description: str | None = None
    hosted_clip: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "EventNotification":
        """Parse a flat string-keyed payload. Never raises on bad values."""
        ce_id = _text(payload, "ce_id") or str(uuid.uuid4())
        clear = str(payload.get("clear_notification") or "").strip().lower() == "true"
        return cls(
            ce_id=ce_id,
            phase=parse_phase(payload.get("phase")),
            clear_notification=clear,
            threat_level=_int_or_zero(payload.get("threat_level")),
            camera=_text(payload, "camera"),
            live_frame_proxy=_text(payload, "live_frame_proxy"),
            hosted_snapshot=_text(payload, "hosted_snapshot"),
            notification_gif=_text(payload, "notification_gif") or _text(payload, "notification.gif"),
            cropped_image_url=_text(payload, "cropped_image_url"),
            image_url=_text(payload, "image_url"),
            title=_text(payload, "title"),
            description=_text(payload, "description"),
            hosted_clip=_text(payload, "hosted_clip"),
        )


def classify(payload: dict) -> EventNotification:
    """Build an EventNotification from an inbound push payload."""
    return EventNotification.from_payload(payload or {})


def slot_id(ce_id: str) -> int:
    """Deterministic, non-negative, non-zero alert slot for an event id.

    Same 31-multiplier hash as a JVM String hashCode (UTF-16 code units,
    32-bit wrap), masked to 31 bits. Zero is reserved for the badge alert.
    """
    h = 0
    units = ce_id.encode("utf-16-be")
    for i in range(0, len(units), 2):
        h = (31 * h + ((units[i] << 8) | units[i + 1])) & 0xFFFFFFFF
    h &= 0x7FFFFFFF
    return h if h != BADGE_SLOT_ID else 1


class EventsFilterMode(Enum):
    """Server-side event list filter; value is the `filter` query parameter."""
    UNREVIEWED = "unreviewed"
    REVIEWED = "reviewed"
    ALL = "all"


@dataclass(frozen=True)
class HostedClip:
    camera: str
    url: str


@dataclass(frozen=True)
class Event:
    """Event record returned by GET /events (server-owned, read-only)."""
    event_id: str
    camera: str
    subdir: str
    timestamp: str = ""
    title: str | None = None
    description: str | None = None
    threat_level: int = 0
    viewed: bool = False
    hosted_snapshot: str | None = None
    hosted_clip: str | None = None
    hosted_clips: tuple[HostedClip, ...] = ()
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def consolidated(self) -> bool:
        return self.camera == CONSOLIDATED_CAMERA

    @property
    def event_path(self) -> str:
        """API path used by viewed/keep/delete, e.g. "events/1700000000_abcd"."""
        return f"{self.camera}/{self.subdir}"

    @classmethod
    def from_dict(cls, data: dict) -> "Event":
        clips = []
        for clip in data.get("hosted_clips") or []:
            if isinstance(clip, dict) and clip.get("url"):
                clips.append(HostedClip(camera=str(clip.get("camera") or ""), url=str(clip["url"])))
        return cls(
            event_id=str(data.get("event_id") or ""),
            camera=str(data.get("camera") or ""),
            subdir=str(data.get("subdir") or ""),
            timestamp=str(data.get("timestamp") or ""),
            title=data.get("title"),
            description=data.get("description"),
            threat_level=_int_or_zero(data.get("threat_level")),
            viewed=bool(data.get("viewed", False)),
            hosted_snapshot=data.get("hosted_snapshot"),
            hosted_clip=data.get("hosted_clip"),
            hosted_clips=tuple(clips),
            raw=dict(data),
        )

    def to_dict(self) -> dict:
        """Server shape, with parsed fields taking precedence over raw."""
        data = dict(self.raw)
        data.update({
            "event_id": self.event_id,
            "camera": self.camera,
            "subdir": self.subdir,
            "timestamp": self.timestamp,
            "title": self.title,
            "description": self.description,
            "threat_level": self.threat_level,
            "viewed": self.viewed,
            "hosted_snapshot": self.hosted_snapshot,
            "hosted_clip": self.hosted_clip,
            "hosted_clips": [{"camera": c.camera, "url": c.url} for c in self.hosted_clips],
        })
        return data


@dataclass(frozen=True)
class NotificationImage:
    """Decoded, notification-sized image and the URL it was loaded from."""
    pixels: Any  # BGR numpy array (cv2/opencv)
    source_url: str | None = None

    @property
    def byte_size(self) -> int:
        return int(getattr(self.pixels, "nbytes", 0))


@dataclass(frozen=True)
class AlertAction:
    key: str    # e.g. "play", "mark_reviewed", "keep"
    label: str


@dataclass(frozen=True)
class Alert:
    """Platform-neutral alert content posted to a slot by an AlertSink."""
    title: str
    body: str
    ce_id: str | None = None
    image: NotificationImage | None = None
    big_picture: bool = False
    channel: str = CHANNEL_SECURITY_ALERTS
    actions: tuple[AlertAction, ...] = ()
    hosted_clip: str | None = None
    number: int | None = None
    silent: bool = False
    auto_cancel: bool = True
