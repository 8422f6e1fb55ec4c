"""
Viewer Orchestrator - main coordinator for the Frigate Event Viewer.

Builds every component once (the unread reconciler and image cache are shared
by everything that needs them), wires MQTT push intake to the dispatcher, runs
the scheduler thread for the unread poll and feed refresh, and serves the
local Flask API.
"""

import logging
import threading
import time

import schedule

from frigate_viewer.alerts import HomeAssistantAlertSink
from frigate_viewer.logging_utils import mask_url
from frigate_viewer.managers import NotificationImageCache, UnreadStateReconciler
from frigate_viewer.services.actions import EventActions
from frigate_viewer.services.api_client import BufferApiClient, BufferApiError
from frigate_viewer.services.badge import BadgeEmitter
from frigate_viewer.services.deep_link import DeepLinkResolver
from frigate_viewer.services.events_feed import EventsFeed
from frigate_viewer.services.image_loader import NotificationImageLoader
from frigate_viewer.services.mqtt_client import MqttClientWrapper
from frigate_viewer.services.push_dispatcher import PushDispatcher
from frigate_viewer.services.push_receiver import PushReceiver
from frigate_viewer.services.tasks import SupervisedTaskGroup

logger = logging.getLogger("frigate-viewer")


class ViewerOrchestrator:
    """Main orchestrator coordinating all components."""

    def __init__(self, config: dict):
        self.config = config
        self._shutdown = False
        self._start_time = time.time()
        self._clients: dict[str, BufferApiClient] = {}
        self._clients_lock = threading.Lock()

        self.reconciler = UnreadStateReconciler()
        self.image_cache = NotificationImageCache(max_bytes=config["IMAGE_CACHE_MAX_BYTES"])
        self.image_loader = NotificationImageLoader(max_px=config["IMAGE_MAX_PX"])
        self.tasks = SupervisedTaskGroup(max_workers=config["MAX_WORKERS"], name="viewer-push")

        self.mqtt_wrapper = MqttClientWrapper(
            broker=config.get("MQTT_BROKER") or "",
            port=config["MQTT_PORT"],
            client_id=config["MQTT_CLIENT_ID"],
            username=config.get("MQTT_USER"),
            password=config.get("MQTT_PASSWORD"),
        )
        self.alert_sink = HomeAssistantAlertSink(
            self.mqtt_wrapper.client, topic=config["MQTT_ALERT_TOPIC"]
        )

        self.dispatcher = PushDispatcher(
            self.alert_sink,
            self.image_cache,
            self.image_loader,
            self.base_url,
            self.api_client,
            tasks=self.tasks,
            settle_delay=config["API_SETTLE_DELAY"],
            retry_delay=config["API_RETRY_DELAY"],
        )
        self.badge = BadgeEmitter(self.alert_sink, self.reconciler, self.base_url, self.api_client)
        self.feed = EventsFeed(self.reconciler, self.base_url, self.api_client)
        self.actions = EventActions(
            self.reconciler,
            self.image_cache,
            self.alert_sink,
            self.base_url,
            self.api_client,
            feed=self.feed,
        )
        self.deep_links = DeepLinkResolver(self.base_url, self.api_client)

        self.push_receiver = PushReceiver(
            self.dispatcher,
            self.actions,
            push_topic=config["MQTT_PUSH_TOPIC"],
            action_topic=config.get("MQTT_ACTION_TOPIC"),
            tasks=self.tasks,
        )
        self.mqtt_wrapper.set_message_callback(self.push_receiver.on_message)
        self.mqtt_wrapper.subscribe(config["MQTT_PUSH_TOPIC"])
        if config.get("MQTT_ACTION_TOPIC"):
            self.mqtt_wrapper.subscribe(config["MQTT_ACTION_TOPIC"])

        # Flask app (lazy import to avoid circular deps)
        from frigate_viewer.web.server import create_app

        self.flask_app = create_app(self)

        self._scheduler_thread = None

    def base_url(self) -> str | None:
        """Configured buffer base URL (normalized, trailing '/'), or None."""
        return self.config.get("BUFFER_URL")

    def api_client(self, base_url: str) -> BufferApiClient:
        """One client (and HTTP session) per base URL."""
        with self._clients_lock:
            client = self._clients.get(base_url)
            if client is None:
                client = BufferApiClient(base_url, timeout=self.config["REQUEST_TIMEOUT"])
                self._clients[base_url] = client
            return client

    def register_push_token(self) -> bool:
        """POST the configured push token to api/mobile/register."""
        token = self.config.get("PUSH_TOKEN")
        base_url = self.base_url()
        if not token or not base_url:
            return False
        try:
            self.api_client(base_url).register_device(token)
        except BufferApiError as e:
            logger.warning("Device registration failed: %s", e)
            return False
        logger.info("Registered push token with %s", mask_url(base_url))
        return True

    def _poll_unread(self):
        self.badge.update_from_server()

    def _refresh_feed(self):
        self.feed.refresh()

    def _run_scheduler(self):
        """Background thread for scheduled tasks."""
        poll_seconds = self.config["UNREAD_POLL_SECONDS"]
        refresh_seconds = self.config["FEED_REFRESH_SECONDS"]
        schedule.every(poll_seconds).seconds.do(self._poll_unread)
        schedule.every(refresh_seconds).seconds.do(self._refresh_feed)
        logger.info(f"Scheduled unread poll every {poll_seconds}s, feed refresh every {refresh_seconds}s")

        # First pass right away so the badge is correct at startup
        schedule.run_all()
        while not self._shutdown:
            schedule.run_pending()
            time.sleep(1)
        schedule.clear()

    def status(self) -> dict:
        """Snapshot for /api/status."""
        snapshot = self.reconciler.snapshot()
        return {
            "online": True,
            "configured": self.base_url() is not None,
            "mqtt_connected": self.mqtt_wrapper.connected,
            "uptime_seconds": time.time() - self._start_time,
            "unread": {
                "effective_count": snapshot.effective_count,
                "last_fetched_unread_count": snapshot.last_fetched_unread_count,
                "locally_resolved_count": len(snapshot.locally_resolved_ids),
            },
            "image_cache": self.image_cache.stats(),
            "tasks": {"pending": self.tasks.pending, "failures": self.tasks.failures},
            "push_messages_received": self.push_receiver.received,
            "feed_error": self.feed.error,
        }

    def start(self, run_web: bool = True):
        """Start all components. Blocks in the Flask server when run_web is set."""
        logger.info("=" * 60)
        logger.info("Starting Frigate Event Viewer")
        logger.info("=" * 60)
        logger.info(f"Buffer URL: {mask_url(self.base_url()) or '(not configured)'}")
        logger.info(f"MQTT Broker: {self.config.get('MQTT_BROKER') or '(not configured)'}:{self.config['MQTT_PORT']}")
        logger.info(f"Push topic: {self.config['MQTT_PUSH_TOPIC']}, alert topic: {self.config['MQTT_ALERT_TOPIC']}")
        logger.info(f"Log Level: {self.config.get('LOG_LEVEL', 'INFO')}")
        logger.info("=" * 60)

        if self.config.get("MQTT_BROKER"):
            self.mqtt_wrapper.start()
        else:
            logger.warning("MQTT broker not configured; push intake and alerts disabled")

        self.tasks.spawn("register push token", self.register_push_token)

        self._scheduler_thread = threading.Thread(
            target=self._run_scheduler, daemon=True, name="viewer-scheduler"
        )
        self._scheduler_thread.start()

        if run_web:
            logger.info(f"Starting Flask on port {self.config['FLASK_PORT']}...")
            self.flask_app.run(
                host="0.0.0.0", port=self.config["FLASK_PORT"], threaded=True
            )

    def stop(self):
        """Graceful shutdown."""
        logger.info("Shutting down orchestrator...")
        self._shutdown = True
        if self.config.get("MQTT_BROKER"):
            self.mqtt_wrapper.stop()
        self.tasks.shutdown(wait=False)
