"""MQTT connection for the viewer: push/action subscriptions and the alert publisher."""

import logging
import ssl
import threading
from collections.abc import Callable
from typing import Any

import paho.mqtt.client as mqtt

logger = logging.getLogger("frigate-viewer")

MessageCallback = Callable[[mqtt.Client, Any, mqtt.MQTTMessage], None]


class MqttClientWrapper:
    """Owns one paho client (callback API v2).

    Topics registered with subscribe() are (re)subscribed on every connect, so
    they survive broker restarts. Messages go to a single callback; routing by
    topic is the receiver's job.
    """

    def __init__(
        self,
        broker: str,
        port: int = 1883,
        client_id: str = "frigate-viewer",
        username: str | None = None,
        password: str | None = None,
        on_message: MessageCallback | None = None,
    ) -> None:
        self.broker = broker
        self.port = port
        self._subscriptions: dict[str, int] = {}
        self._sub_lock = threading.Lock()
        self._on_message_callback = on_message
        self.connected = False

        self._client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username:
            self._client.username_pw_set(username, password)
        if port == 8883:
            logger.info("MQTT port 8883: enabling TLS")
            self._client.tls_set(cert_reqs=ssl.CERT_REQUIRED, tls_version=ssl.PROTOCOL_TLSv1_2)
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message
        self._client.reconnect_delay_set(min_delay=1, max_delay=120)

    @property
    def client(self) -> mqtt.Client:
        """Underlying paho client, used by the alert sink to publish."""
        return self._client

    @property
    def topics(self) -> list[str]:
        with self._sub_lock:
            return list(self._subscriptions)

    def set_message_callback(self, callback: MessageCallback) -> None:
        self._on_message_callback = callback

    def subscribe(self, topic: str, qos: int = 1) -> None:
        """Register topic; subscribes now when already connected."""
        if not topic:
            return
        with self._sub_lock:
            self._subscriptions[topic] = qos
        if self.connected:
            self._client.subscribe(topic, qos)

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connect to %s:%s refused: %s", self.broker, self.port, reason_code)
            return
        self.connected = True
        logger.info("Connected to MQTT broker %s:%s", self.broker, self.port)
        with self._sub_lock:
            subscriptions = list(self._subscriptions.items())
        for topic, qos in subscriptions:
            client.subscribe(topic, qos)
            logger.info("Subscribed to: %s", topic)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        self.connected = False
        if reason_code.is_failure:
            logger.warning("MQTT connection lost (%s), reconnecting...", reason_code)
        else:
            logger.info("MQTT disconnected")

    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        callback = self._on_message_callback
        if callback is None:
            logger.debug("No handler for MQTT message on %s", msg.topic)
            return
        callback(client, userdata, msg)

    def start(self) -> None:
        """Connect in the background and start paho's network thread."""
        try:
            self._client.connect_async(self.broker, self.port, keepalive=60)
            self._client.loop_start()
        except (OSError, ValueError) as e:
            logger.error("Failed to start MQTT client: %s", e)

    def stop(self) -> None:
        self._client.loop_stop()
        self._client.disconnect()
