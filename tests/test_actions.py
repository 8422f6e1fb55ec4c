"""Tests for EventActions: mark reviewed / keep / delete and alert buttons."""

import unittest
from unittest.mock import MagicMock

import numpy as np

from frigate_viewer.managers.image_cache import NotificationImageCache
from frigate_viewer.managers.unread import UnreadStateReconciler
from frigate_viewer.models import Event, NotificationImage, slot_id
from frigate_viewer.services.actions import EventActions, slot_for_event_path
from frigate_viewer.services.api_client import BufferApiError


class ActionsTestCase(unittest.TestCase):

    def setUp(self):
        self.reconciler = UnreadStateReconciler()
        self.reconciler.record_fetched_count(5)
        self.cache = NotificationImageCache()
        self.sink = MagicMock()
        self.client = MagicMock()
        self.base_url = "http://buffer/"
        self.feed = MagicMock()
        self.feed.server_events.return_value = []
        self.actions = EventActions(
            self.reconciler,
            self.cache,
            self.sink,
            lambda: self.base_url,
            lambda base: self.client,
            feed=self.feed,
        )


class TestMarkReviewed(ActionsTestCase):

    def test_success_resolves_locally(self):
        result = self.actions.mark_reviewed("123_ab", "events/123_ab")
        self.assertTrue(result.ok)
        self.client.mark_viewed.assert_called_once_with("events/123_ab")
        self.assertIn("123_ab", self.reconciler.locally_resolved_ids())
        self.assertEqual(self.reconciler.effective_count(), 4)

    def test_failure_rolls_back(self):
        self.client.mark_viewed.side_effect = BufferApiError("HTTP 500", 500)
        result = self.actions.mark_reviewed("123_ab", "events/123_ab")
        self.assertFalse(result.ok)
        self.assertEqual(result.message, "Failed to mark reviewed")
        self.assertNotIn("123_ab", self.reconciler.locally_resolved_ids())

    def test_failure_keeps_earlier_resolution(self):
        self.reconciler.record_resolved("123_ab")
        self.client.mark_viewed.side_effect = BufferApiError("HTTP 500", 500)
        self.actions.mark_reviewed("123_ab", "events/123_ab")
        self.assertIn("123_ab", self.reconciler.locally_resolved_ids())

    def test_slot_cancelled(self):
        self.actions.mark_reviewed("123_ab", "events/123_ab", slot=42)
        self.sink.cancel.assert_called_once_with(42)

    def test_not_configured(self):
        self.base_url = None
        result = self.actions.mark_reviewed("123_ab", "events/123_ab")
        self.assertFalse(result.ok)
        self.assertEqual(result.message, "Not configured")
        self.assertNotIn("123_ab", self.reconciler.locally_resolved_ids())


class TestKeep(ActionsTestCase):

    def test_keep_from_alert_posts_saved(self):
        result = self.actions.keep("123_ab", "events/123_ab", slot=42)
        self.assertTrue(result.ok)
        self.client.keep_event.assert_called_once_with("events/123_ab")
        slot, alert = self.sink.post.call_args.args
        self.assertEqual(slot, 42)
        self.assertEqual((alert.title, alert.body), ("Saved", "Event kept."))

    def test_keep_failure_posts_nothing(self):
        self.client.keep_event.side_effect = BufferApiError("HTTP 409", 409)
        self.assertFalse(self.actions.keep("123_ab", "events/123_ab", slot=42).ok)
        self.sink.post.assert_not_called()


class TestDelete(ActionsTestCase):

    def test_delete_cleans_local_state(self):
        self.reconciler.record_resolved("123_ab")
        self.cache.put("ce_123_ab", NotificationImage(pixels=np.zeros((2, 2, 3), dtype=np.uint8)))

        result = self.actions.delete("123_ab", "events/123_ab")

        self.assertTrue(result.ok)
        self.client.delete_event.assert_called_once_with("events/123_ab")
        self.assertNotIn("123_ab", self.reconciler.locally_resolved_ids())
        self.assertIsNone(self.cache.get("ce_123_ab"))
        self.sink.cancel.assert_called_once_with(slot_id("ce_123_ab"))

    def test_delete_failure_changes_nothing(self):
        self.reconciler.record_resolved("123_ab")
        self.client.delete_event.side_effect = BufferApiError("down")
        self.assertFalse(self.actions.delete("123_ab", "events/123_ab").ok)
        self.assertIn("123_ab", self.reconciler.locally_resolved_ids())
        self.sink.cancel.assert_not_called()

    def test_slot_for_event_path(self):
        self.assertEqual(slot_for_event_path("events/123_ab"), slot_id("ce_123_ab"))
        self.assertEqual(slot_for_event_path("front/1700_front"), slot_id("1700_front"))


class TestAlertActions(ActionsTestCase):

    def test_mark_reviewed_button_uses_folder_form(self):
        result = self.actions.handle_alert_action("mark_reviewed", "ce_123_ab")
        self.assertTrue(result.ok)
        self.client.mark_viewed.assert_called_once_with("events/123_ab")
        self.sink.cancel.assert_called_once_with(slot_id("ce_123_ab"))
        self.assertIn("123_ab", self.reconciler.locally_resolved_ids())

    def test_button_resolves_through_loaded_feed(self):
        self.feed.server_events.return_value = [
            Event(event_id="1700.5-abc", camera="front", subdir="1700_front"),
        ]
        self.actions.handle_alert_action("keep", "1700.5-abc")
        self.client.keep_event.assert_called_once_with("front/1700_front")

    def test_unsupported_and_invalid(self):
        self.assertFalse(self.actions.handle_alert_action("play", "ce_1").ok)
        self.assertFalse(self.actions.handle_alert_action("keep", " ").ok)
        self.client.keep_event.assert_not_called()
        self.client.mark_viewed.assert_not_called()


if __name__ == "__main__":
    unittest.main()
