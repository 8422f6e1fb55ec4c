"""Tests for ViewerOrchestrator wiring (no network, MQTT client patched)."""

import unittest
from unittest.mock import MagicMock, patch

from frigate_viewer.config import _defaults
from frigate_viewer.orchestrator import ViewerOrchestrator
from frigate_viewer.services.api_client import BufferApiError


class TestViewerOrchestrator(unittest.TestCase):

    def setUp(self):
        patcher = patch("frigate_viewer.services.mqtt_client.mqtt.Client")
        self.MockClient = patcher.start()
        self.addCleanup(patcher.stop)
        self.config = _defaults()
        self.config.update({"BUFFER_URL": "http://buffer:5055/", "MQTT_BROKER": "mqtt.local", "PUSH_TOKEN": "tok"})
        self.orchestrator = ViewerOrchestrator(self.config)
        self.addCleanup(self.orchestrator.tasks.shutdown)

    def test_shared_components(self):
        o = self.orchestrator
        self.assertIs(o.dispatcher._cache, o.image_cache)
        self.assertIs(o.actions._reconciler, o.reconciler)
        self.assertIs(o.feed._reconciler, o.reconciler)
        self.assertEqual(
            sorted(o.mqtt_wrapper.topics),
            sorted([self.config["MQTT_PUSH_TOPIC"], self.config["MQTT_ACTION_TOPIC"]]),
        )

    def test_api_client_cached_per_base_url(self):
        a = self.orchestrator.api_client("http://buffer:5055/")
        self.assertIs(self.orchestrator.api_client("http://buffer:5055/"), a)
        self.assertIsNot(self.orchestrator.api_client("http://other/"), a)

    def test_register_push_token(self):
        client = MagicMock()
        with patch.object(self.orchestrator, "api_client", return_value=client):
            self.assertTrue(self.orchestrator.register_push_token())
            client.register_device.assert_called_once_with("tok")
            client.register_device.side_effect = BufferApiError("HTTP 500", 500)
            self.assertFalse(self.orchestrator.register_push_token())

    def test_register_push_token_without_token(self):
        self.config["PUSH_TOKEN"] = None
        self.assertFalse(self.orchestrator.register_push_token())

    def test_status(self):
        self.orchestrator.reconciler.record_fetched_count(3)
        status = self.orchestrator.status()
        self.assertTrue(status["configured"])
        self.assertEqual(status["unread"]["effective_count"], 3)
        self.assertIn("entries", status["image_cache"])

    def test_badge_follows_reconciler(self):
        sink = MagicMock()
        self.orchestrator.badge._sink = sink
        self.orchestrator.reconciler.record_fetched_count(2)
        self.assertEqual(sink.post.call_args.args[1].number, 2)


if __name__ == "__main__":
    unittest.main()
