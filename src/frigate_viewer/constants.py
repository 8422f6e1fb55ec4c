"""
Shared constants for push handling, alert slots, caching, and HTTP.

Centralizes the consolidated-event id prefix, reserved slot ids, cache bounds,
and network delays so callers do not duplicate definitions or magic numbers.
"""

# Prefix the push/deep-link system adds to consolidated event ids. The server's
# consolidated folder name (event subdir) omits it.
CE_ID_PREFIX: str = "ce_"

# Camera value the server uses for consolidated multi-camera events.
CONSOLIDATED_CAMERA: str = "events"

# Alert channels. Security alerts carry per-event slots; badge holds the single
# silent unread-count alert.
CHANNEL_SECURITY_ALERTS: str = "security_alerts"
CHANNEL_BADGE: str = "badge"

# Reserved slot for the unread badge alert. slot_id() never returns this value.
BADGE_SLOT_ID: int = 0

# Cached notification images are treated as absent after this many seconds.
IMAGE_CACHE_TTL_SECONDS: int = 72 * 60 * 60

# Default memory budget for decoded notification images (bytes).
DEFAULT_IMAGE_CACHE_MAX_BYTES: int = 32 * 1024 * 1024

# Notification large-icon bound (pixels); larger images are scaled down to fit.
DEFAULT_NOTIFICATION_IMAGE_MAX_PX: int = 256

# Delay before the first event-list image lookup after a push wakes the client
# (lets a VPN become the default route), and before the single retry.
DEFAULT_API_SETTLE_DELAY_SECONDS: float = 2.0
DEFAULT_API_RETRY_DELAY_SECONDS: float = 1.5

# Buffer API request timeout (seconds).
DEFAULT_REQUEST_TIMEOUT_SECONDS: int = 15

# Chunk size for streamed image downloads.
HTTP_STREAM_CHUNK_SIZE: int = 8192

# Upper bound on a single downloaded notification image (bytes).
MAX_IMAGE_DOWNLOAD_BYTES: int = 16 * 1024 * 1024

# Upper bound on a clip downloaded to read its first frame (bytes).
MAX_CLIP_DOWNLOAD_BYTES: int = 64 * 1024 * 1024

# Worker threads for push handling and other fire-and-forget tasks.
DEFAULT_MAX_WORKERS: int = 4

# Error buffer for /api/status: max number of recent ERROR/WARNING log entries.
ERROR_BUFFER_MAX_SIZE: int = 10

# MQTT topics: inbound push payloads and outbound alert publications.
DEFAULT_PUSH_TOPIC: str = "frigate_viewer/push"
DEFAULT_ALERT_TOPIC: str = "frigate_viewer/alerts"
DEFAULT_ACTION_TOPIC: str = "frigate_viewer/actions"

# Scheduler intervals (seconds).
DEFAULT_UNREAD_POLL_SECONDS: int = 300
DEFAULT_FEED_REFRESH_SECONDS: int = 600
