"""
Buffer API client - HTTP access to the Frigate Event Buffer server.

Thin wrapper over a requests.Session: event listings, unread count, per-event
actions (viewed/keep/delete), device registration, camera snoozes, server
stats/status, the camera list, and the daily review report. All failures
surface as BufferApiError so callers catch one exception type.
"""

import logging
from urllib.parse import quote

import requests

from frigate_viewer.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    HTTP_STREAM_CHUNK_SIZE,
    MAX_IMAGE_DOWNLOAD_BYTES,
)
from frigate_viewer.logging_utils import mask_url
from frigate_viewer.models import Event, EventsFilterMode

logger = logging.getLogger("frigate-viewer")


class BufferApiError(Exception):
    """Request to the buffer server failed (transport, HTTP status, or body)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        server_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


def _server_error(response: requests.Response | None) -> str | None:
    """The "error" field of a JSON error body, if the server sent one."""
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict) or not isinstance(body.get("error"), str):
        return None
    return body["error"].strip() or None


def normalize_base_url(base_url: str | None) -> str | None:
    """Trimmed base URL ending in exactly one '/', or None if blank."""
    if not base_url or not base_url.strip():
        return None
    return base_url.strip().rstrip("/") + "/"


class BufferApiClient:
    """Client for one buffer base URL (e.g. "http://192.168.1.50:5055/")."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        normalized = normalize_base_url(base_url)
        if normalized is None:
            raise ValueError("base_url is required")
        self.base_url = normalized
        self.timeout = timeout
        self._session = session or requests.Session()

    def _url(self, path: str) -> str:
        return self.base_url + path.lstrip("/")

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self._url(path)
        try:
            resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            return resp
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise BufferApiError(
                f"{method} {path} failed: HTTP {status}", status, _server_error(e.response)
            ) from e
        except requests.RequestException as e:
            raise BufferApiError(f"{method} {path} failed: {type(e).__name__}") from e

    def _json(self, method: str, path: str, **kwargs):
        resp = self._request(method, path, **kwargs)
        try:
            return resp.json()
        except ValueError as e:
            raise BufferApiError(f"{method} {path} returned invalid JSON", resp.status_code) from e

    def _json_object(self, method: str, path: str, **kwargs) -> dict:
        data = self._json(method, path, **kwargs)
        if not isinstance(data, dict):
            raise BufferApiError(f"{method} {path} returned unexpected body")
        return data

    def get_events(self, filter_mode: EventsFilterMode | str | None = None) -> list[Event]:
        """GET /events?filter=...; returns parsed events in server order."""
        params = {}
        if filter_mode is not None:
            params["filter"] = (
                filter_mode.value if isinstance(filter_mode, EventsFilterMode) else str(filter_mode)
            )
        data = self._json("GET", "events", params=params)
        if not isinstance(data, dict):
            raise BufferApiError("GET events returned unexpected body")
        return [Event.from_dict(e) for e in data.get("events") or [] if isinstance(e, dict)]

    def get_cameras(self) -> dict:
        """GET /cameras: {"cameras": [names], "default": name or None}."""
        data = self._json_object("GET", "cameras")
        cameras = data.get("cameras") or []
        return {
            "cameras": [str(c) for c in cameras if c],
            "default": data.get("default"),
        }

    def get_stats(self) -> dict:
        """GET /stats: event counts, storage, recent errors, last cleanup."""
        return self._json_object("GET", "stats")

    def get_status(self) -> dict:
        """GET /status: server uptime, MQTT state, active events, metrics."""
        return self._json_object("GET", "status")

    def get_current_daily_review(self) -> str:
        """Markdown summary of today's report. The server answers 404 when there is none yet."""
        return str(self._json_object("GET", "api/daily-review/current").get("summary") or "")

    def generate_daily_review(self) -> dict:
        """POST /api/daily-review/generate: {"success": bool, "date": str or None}."""
        data = self._json_object("POST", "api/daily-review/generate", json={})
        return {"success": bool(data.get("success", False)), "date": data.get("date")}

    def get_unread_count(self) -> int:
        data = self._json("GET", "api/events/unread_count")
        try:
            return int(data.get("unread_count", 0))
        except (AttributeError, TypeError, ValueError) as e:
            raise BufferApiError("unread_count missing or not an integer") from e

    def mark_viewed(self, event_path: str) -> None:
        self._request("POST", f"viewed/{event_path}")

    def keep_event(self, event_path: str) -> None:
        self._request("POST", f"keep/{event_path}")

    def delete_event(self, event_path: str) -> None:
        self._request("POST", f"delete/{event_path}")

    def register_device(self, token: str) -> dict:
        """POST /api/mobile/register with the push token."""
        return self._json("POST", "api/mobile/register", json={"token": token})

    def get_snoozes(self) -> dict[str, dict]:
        """Active snoozes: camera name -> {expiration_time, snooze_notifications, snooze_ai}."""
        data = self._json("GET", "api/snooze")
        return data if isinstance(data, dict) else {}

    def set_snooze(
        self,
        camera: str,
        duration_minutes: int,
        snooze_notifications: bool = True,
        snooze_ai: bool = True,
    ) -> dict:
        body = {
            "duration_minutes": duration_minutes,
            "snooze_notifications": snooze_notifications,
            "snooze_ai": snooze_ai,
        }
        return self._json("POST", f"api/snooze/{quote(camera, safe='')}", json=body)

    def clear_snooze(self, camera: str) -> dict:
        return self._json("DELETE", f"api/snooze/{quote(camera, safe='')}")

    def fetch_bytes(self, url: str, max_bytes: int = MAX_IMAGE_DOWNLOAD_BYTES) -> bytes:
        """Download an absolute media URL (streamed, capped at max_bytes)."""
        try:
            with self._session.get(url, timeout=self.timeout, stream=True) as resp:
                resp.raise_for_status()
                chunks = []
                total = 0
                for chunk in resp.iter_content(chunk_size=HTTP_STREAM_CHUNK_SIZE):
                    total += len(chunk)
                    if total > max_bytes:
                        raise BufferApiError(f"Media at {mask_url(url)} exceeds {max_bytes} bytes")
                    chunks.append(chunk)
                return b"".join(chunks)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise BufferApiError(f"GET {mask_url(url)} failed: HTTP {status}", status) from e
        except requests.RequestException as e:
            raise BufferApiError(f"GET {mask_url(url)} failed: {type(e).__name__}") from e
