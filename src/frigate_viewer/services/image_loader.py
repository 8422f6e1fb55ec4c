"""
Notification image loading: fetch, decode, and scale to the alert icon bound.

Still images are downloaded through the buffer API client and decoded with
OpenCV. Clips (mp4 and similar) are downloaded the same way, so the session
timeout and a byte cap apply, into a temp file that cv2.VideoCapture reads the
first frame from. Every failure returns None so the caller can move on to
the next source in its fallback chain.
"""

import logging
import os
import tempfile
from collections.abc import Iterable
from urllib.parse import urlparse

import cv2
import numpy as np

from frigate_viewer.constants import DEFAULT_NOTIFICATION_IMAGE_MAX_PX, MAX_CLIP_DOWNLOAD_BYTES
from frigate_viewer.media_paths import build_media_url
from frigate_viewer.models import NotificationImage
from frigate_viewer.services.api_client import BufferApiClient, BufferApiError

logger = logging.getLogger("frigate-viewer")

_VIDEO_SUFFIXES = (".mp4", ".m4v", ".mov", ".mkv", ".webm")


def scale_to_fit(pixels: np.ndarray, max_w: int, max_h: int) -> np.ndarray:
    """Downscale pixels to fit within max_w x max_h, preserving aspect. Never upscales."""
    h, w = pixels.shape[:2]
    if w <= max_w and h <= max_h:
        return pixels
    scale = min(max_w / w, max_h / h, 1.0)
    new_w = max(1, int(w * scale))
    new_h = max(1, int(h * scale))
    return cv2.resize(pixels, (new_w, new_h), interpolation=cv2.INTER_AREA)


def decode_image(data: bytes) -> np.ndarray | None:
    """Decode encoded image bytes (JPEG/PNG/...) to a BGR array, or None."""
    if not data:
        return None
    buf = np.frombuffer(data, dtype=np.uint8)
    try:
        pixels = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    except cv2.error as e:
        logger.debug("Image decode failed: %s", e)
        return None
    if pixels is None or pixels.size == 0:
        return None
    return pixels


def _is_video_url(url: str) -> bool:
    return urlparse(url).path.lower().endswith(_VIDEO_SUFFIXES)


class NotificationImageLoader:
    """Loads notification-sized images from media URLs."""

    def __init__(self, max_px: int = DEFAULT_NOTIFICATION_IMAGE_MAX_PX) -> None:
        self.max_px = max(1, int(max_px))

    def _first_video_frame(self, client: BufferApiClient, url: str) -> np.ndarray | None:
        data = client.fetch_bytes(url, max_bytes=MAX_CLIP_DOWNLOAD_BYTES)
        suffix = os.path.splitext(urlparse(url).path)[1] or ".mp4"
        fd, temp_path = tempfile.mkstemp(suffix=suffix, prefix="viewer_clip_")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            cap = cv2.VideoCapture(temp_path)
            try:
                if not cap.isOpened():
                    return None
                ok, frame = cap.read()
                return frame if ok and frame is not None else None
            finally:
                cap.release()
        finally:
            try:
                os.remove(temp_path)
            except OSError as e:
                logger.debug("Clip temp cleanup failed for %s: %s", temp_path, e)

    def load_url(self, client: BufferApiClient, url: str | None) -> NotificationImage | None:
        """Load and scale the image at an absolute URL. Returns None on any failure."""
        if not url:
            return None
        try:
            if _is_video_url(url):
                pixels = self._first_video_frame(client, url)
            else:
                pixels = decode_image(client.fetch_bytes(url))
        except BufferApiError as e:
            logger.debug("Notification image fetch failed for %s: %s", url, e)
            return None
        except cv2.error as e:
            logger.debug("Notification image decode failed for %s: %s", url, e)
            return None
        except OSError as e:
            logger.debug("Notification clip could not be staged for %s: %s", url, e)
            return None
        if pixels is None:
            logger.debug("Notification image could not be decoded: %s", url)
            return None
        return NotificationImage(
            pixels=scale_to_fit(pixels, self.max_px, self.max_px),
            source_url=url,
        )

    def load_first(
        self,
        client: BufferApiClient,
        base_url: str,
        paths: Iterable[str | None],
    ) -> NotificationImage | None:
        """Try each API path (relative to base_url, or absolute) until one loads."""
        for path in paths:
            url = build_media_url(base_url, path)
            if not url:
                continue
            image = self.load_url(client, url)
            if image is not None:
                return image
        return None
