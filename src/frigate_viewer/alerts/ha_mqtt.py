"""Home Assistant MQTT alert sink.

Publishes alert payloads to an MQTT topic for a Home Assistant automation that
forwards them to the companion app notify service. The slot id becomes the
notification tag, so a later phase for the same event replaces the earlier
alert instead of stacking, and cancel maps to HA's "clear_notification".
"""

import json
import logging

import paho.mqtt.client as mqtt

from frigate_viewer.alerts.base import AlertSink
from frigate_viewer.constants import DEFAULT_ALERT_TOPIC
from frigate_viewer.models import Alert

logger = logging.getLogger("frigate-viewer")


def slot_tag(slot: int) -> str:
    return f"frigate_viewer_{slot}"


class HomeAssistantAlertSink(AlertSink):
    """Sends alerts to Home Assistant via MQTT (default frigate_viewer/alerts)."""

    def __init__(self, mqtt_client: mqtt.Client, topic: str = DEFAULT_ALERT_TOPIC) -> None:
        self.mqtt_client = mqtt_client
        self.topic = topic

    def _publish(self, payload: dict, what: str) -> bool:
        try:
            result = self.mqtt_client.publish(self.topic, json.dumps(payload), retain=False)
            if result.rc == mqtt.MQTT_ERR_SUCCESS:
                logger.debug("Alert payload: %s", json.dumps(payload, indent=2))
                return True
            logger.warning("Failed to publish %s: rc=%s", what, result.rc)
            return False
        except Exception as e:
            logger.error("Error publishing %s: %s", what, e)
            return False

    def post(self, slot: int, alert: Alert) -> bool:
        payload = self._build_payload(slot, alert)
        ok = self._publish(payload, f"alert for slot {slot}")
        if ok:
            logger.info("Published alert %r to slot %s", alert.title, slot)
        return ok

    def cancel(self, slot: int) -> bool:
        payload = {"message": "clear_notification", "tag": slot_tag(slot)}
        ok = self._publish(payload, f"clear for slot {slot}")
        if ok:
            logger.info("Cleared alert slot %s", slot)
        return ok

    def _build_payload(self, slot: int, alert: Alert) -> dict:
        """Build the HA notify-shaped payload dict."""
        data: dict = {
            "tag": slot_tag(slot),
            "channel": alert.channel,
        }
        if alert.image is not None and alert.image.source_url:
            data["image"] = alert.image.source_url
            data["big_picture"] = alert.big_picture
        if alert.actions:
            data["actions"] = [
                {"action": f"{a.key}:{alert.ce_id or ''}", "title": a.label}
                for a in alert.actions
            ]
        if alert.hosted_clip:
            data["clip"] = alert.hosted_clip
        if alert.number is not None:
            data["notification_icon_number"] = alert.number
        if alert.silent:
            data["importance"] = "min"
            data["visibility"] = "secret"
        if not alert.auto_cancel:
            data["sticky"] = "true"

        payload = {
            "slot": slot,
            "ce_id": alert.ce_id,
            "title": alert.title,
            "message": alert.body,
            "data": data,
        }
        return payload
