"""Manager modules for process-wide client state: image cache and unread overlay."""

from frigate_viewer.managers.image_cache import NotificationImageCache
from frigate_viewer.managers.unread import UnreadSnapshot, UnreadStateReconciler

__all__ = [
    "NotificationImageCache",
    "UnreadSnapshot",
    "UnreadStateReconciler",
]
