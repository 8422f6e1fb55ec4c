"""Tests for HomeAssistantAlertSink payloads."""

import json
import unittest
from unittest.mock import MagicMock

import numpy as np
import paho.mqtt.client as mqtt

from frigate_viewer.alerts.ha_mqtt import HomeAssistantAlertSink, slot_tag
from frigate_viewer.constants import CHANNEL_BADGE
from frigate_viewer.models import Alert, AlertAction, NotificationImage


class TestHomeAssistantAlertSink(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.client.publish.return_value = MagicMock(rc=mqtt.MQTT_ERR_SUCCESS)
        self.sink = HomeAssistantAlertSink(self.client, topic="viewer/alerts")

    def _published(self):
        topic, body = self.client.publish.call_args.args[:2]
        self.assertEqual(topic, "viewer/alerts")
        return json.loads(body)

    def test_post_with_image_and_actions(self):
        alert = Alert(
            title="T",
            body="Tap to view",
            ce_id="ce_1",
            image=NotificationImage(np.zeros((2, 2, 3), dtype=np.uint8), source_url="http://b/files/x.jpg"),
            big_picture=True,
            actions=(AlertAction("keep", "Keep"),),
            hosted_clip="/files/events/1/clip.mp4",
        )
        self.assertTrue(self.sink.post(77, alert))
        payload = self._published()
        self.assertEqual(payload["title"], "T")
        self.assertEqual(payload["message"], "Tap to view")
        self.assertEqual(payload["data"]["tag"], slot_tag(77))
        self.assertEqual(payload["data"]["image"], "http://b/files/x.jpg")
        self.assertTrue(payload["data"]["big_picture"])
        self.assertEqual(payload["data"]["actions"], [{"action": "keep:ce_1", "title": "Keep"}])
        self.assertEqual(payload["data"]["clip"], "/files/events/1/clip.mp4")

    def test_badge_payload_is_silent_and_sticky(self):
        self.sink.post(0, Alert("Unreviewed events", "2 events", channel=CHANNEL_BADGE,
                                number=2, silent=True, auto_cancel=False))
        data = self._published()["data"]
        self.assertEqual(data["channel"], CHANNEL_BADGE)
        self.assertEqual(data["notification_icon_number"], 2)
        self.assertEqual(data["importance"], "min")
        self.assertEqual(data["sticky"], "true")

    def test_cancel_sends_clear_notification(self):
        self.assertTrue(self.sink.cancel(5))
        self.assertEqual(self._published(), {"message": "clear_notification", "tag": slot_tag(5)})

    def test_publish_failure_returns_false(self):
        self.client.publish.return_value = MagicMock(rc=mqtt.MQTT_ERR_NO_CONN)
        self.assertFalse(self.sink.cancel(5))
        self.client.publish.side_effect = OSError("socket closed")
        self.assertFalse(self.sink.post(5, Alert("a", "b")))


if __name__ == "__main__":
    unittest.main()
