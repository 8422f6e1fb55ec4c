"""Tests for PushDispatcher: phase routing, slot replacement, clear, and the image fallback chain."""

import unittest
from unittest.mock import MagicMock

import numpy as np

from frigate_viewer.managers.image_cache import NotificationImageCache
from frigate_viewer.models import Event, EventsFilterMode, NotificationImage, slot_id
from frigate_viewer.services.api_client import BufferApiError
from frigate_viewer.services.push_dispatcher import CLIP_READY_ACTIONS, PushDispatcher

BASE = "http://buffer:5055/"


def _image(url="http://buffer:5055/files/x.jpg"):
    return NotificationImage(pixels=np.zeros((4, 4, 3), dtype=np.uint8), source_url=url)


class DispatcherTestCase(unittest.TestCase):

    def setUp(self):
        self.sink = MagicMock()
        self.cache = NotificationImageCache()
        self.loader = MagicMock()
        self.loader.load_url.return_value = None
        self.loader.load_first.return_value = None
        self.client = MagicMock()
        self.client.get_events.return_value = []
        self.base_url = BASE
        self.dispatcher = PushDispatcher(
            self.sink,
            self.cache,
            self.loader,
            lambda: self.base_url,
            lambda base: self.client,
            settle_delay=0,
            retry_delay=0,
        )

    def posted(self):
        """List of (slot, alert) posted to the sink."""
        return [c.args for c in self.sink.post.call_args_list]


class TestPhaseRouting(DispatcherTestCase):

    def test_new_then_clip_ready_updates_same_slot(self):
        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "NEW", "camera": "front"})
        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "CLIP_READY", "title": "T"})

        posts = self.posted()
        self.assertEqual(len(posts), 2)
        self.assertEqual(posts[0][0], slot_id("ce_1"))
        self.assertEqual(posts[1][0], slot_id("ce_1"))
        self.assertEqual(posts[0][1].title, "Motion Detected")
        self.assertEqual(posts[0][1].body, "Camera: front")
        self.assertEqual(posts[1][1].title, "T")
        self.assertEqual(posts[1][1].actions, CLIP_READY_ACTIONS)

    def test_new_without_camera(self):
        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "NEW"})
        self.assertEqual(self.posted()[0][1].body, "Security alert")

    def test_snapshot_ready_text(self):
        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "SNAPSHOT_READY", "camera": "yard"})
        alert = self.posted()[0][1]
        self.assertEqual(alert.title, "Snapshot: yard")
        self.assertEqual(alert.body, "Cropped snapshot available")
        self.assertFalse(alert.big_picture)

    def test_clip_ready_defaults(self):
        self.dispatcher.handle_message({
            "ce_id": "ce_1", "phase": "CLIP_READY", "hosted_clip": "/files/events/1/clip.mp4",
        })
        alert = self.posted()[0][1]
        self.assertEqual(alert.title, "Event ready")
        self.assertEqual(alert.body, "Tap to view")
        self.assertEqual(alert.hosted_clip, "/files/events/1/clip.mp4")
        self.assertEqual([a.key for a in alert.actions], ["play", "mark_reviewed", "keep"])

    def test_clear_flag_cancels_without_posting(self):
        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "CLIP_READY", "clear_notification": "true"})
        self.sink.cancel.assert_called_once_with(slot_id("ce_1"))
        self.sink.post.assert_not_called()

    def test_discarded_cancels(self):
        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "DISCARDED"})
        self.sink.cancel.assert_called_once_with(slot_id("ce_1"))
        self.sink.post.assert_not_called()

    def test_unknown_phase_posts_nothing(self):
        n = self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "WHATEVER"})
        self.assertIsNotNone(n)
        self.sink.post.assert_not_called()
        self.sink.cancel.assert_not_called()

    def test_empty_payload_ignored(self):
        self.assertIsNone(self.dispatcher.handle_message({}))
        self.assertIsNone(self.dispatcher.handle_message(None))
        self.sink.post.assert_not_called()

    def test_no_base_url_skips(self):
        self.base_url = None
        self.assertIsNone(self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "NEW"}))
        self.sink.post.assert_not_called()
        self.sink.cancel.assert_not_called()

    def test_sink_failure_does_not_raise(self):
        self.sink.post.side_effect = RuntimeError("broker gone")
        self.assertIsNone(self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "NEW"}))

    def test_submit_uses_task_group(self):
        tasks = MagicMock()
        self.dispatcher._tasks = tasks
        self.dispatcher.submit({"ce_id": "ce_1", "phase": "NEW"})
        tasks.spawn.assert_called_once()
        self.assertEqual(tasks.spawn.call_args.args[1], self.dispatcher.handle_message)


class TestImageFallbackChain(DispatcherTestCase):

    def test_public_image_url_used_and_cached(self):
        img = _image("https://cdn/snap.jpg")
        self.loader.load_url.return_value = img
        self.dispatcher.handle_message({
            "ce_id": "ce_1", "phase": "SNAPSHOT_READY", "image_url": "https://cdn/snap.jpg",
        })
        alert = self.posted()[0][1]
        self.assertIs(alert.image, img)
        self.assertTrue(alert.big_picture)
        self.client.get_events.assert_not_called()

        # later phase reuses the cached image
        self.loader.load_url.reset_mock()
        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "CLIP_READY"})
        self.assertIs(self.posted()[1][1].image, img)
        self.loader.load_url.assert_not_called()

    def test_event_list_lookup(self):
        event = Event(event_id="1", camera="events", subdir="1", hosted_snapshot="/files/events/1/snapshot.jpg")
        self.client.get_events.return_value = [event]
        img = _image()
        self.loader.load_first.return_value = img

        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "NEW"})

        self.client.get_events.assert_called_once_with(EventsFilterMode.ALL)
        paths = self.loader.load_first.call_args.args[2]
        self.assertEqual(paths[0], "/files/events/1/snapshot.jpg")
        self.assertIs(self.posted()[0][1].image, img)

    def test_lookup_retried_once_then_payload_paths(self):
        self.client.get_events.side_effect = BufferApiError("down")
        img = _image()
        self.loader.load_first.return_value = img

        self.dispatcher.handle_message({
            "ce_id": "ce_1", "phase": "SNAPSHOT_READY",
            "hosted_snapshot": "/files/events/1/snapshot.jpg",
            "cropped_image_url": "/app/storage/events/1/crop.jpg",
        })

        self.assertEqual(self.client.get_events.call_count, 2)
        self.loader.load_first.assert_called_once_with(
            self.client, BASE, ["/files/events/1/snapshot.jpg", "/files/events/1/crop.jpg"],
        )
        self.assertIs(self.posted()[0][1].image, img)

    def test_all_sources_fail_posts_text_only(self):
        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "NEW", "live_frame_proxy": "/api/live.jpg"})
        alert = self.posted()[0][1]
        self.assertIsNone(alert.image)
        self.assertEqual(self.cache.stats()["entries"], 0)

    def test_loader_exception_posts_text_only(self):
        self.loader.load_first.side_effect = RuntimeError("decoder crashed")
        self.dispatcher.handle_message({"ce_id": "ce_1", "phase": "NEW"})
        self.assertIsNone(self.posted()[0][1].image)


if __name__ == "__main__":
    unittest.main()
