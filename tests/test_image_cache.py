"""Tests for NotificationImageCache: TTL expiry, size-bounded LRU, eviction by path."""

import unittest
from unittest.mock import patch

import numpy as np

from frigate_viewer.managers.image_cache import NotificationImageCache
from frigate_viewer.models import NotificationImage

HOUR = 3600


def _image(side=10):
    return NotificationImage(pixels=np.zeros((side, side, 3), dtype=np.uint8))


class TestImageCacheTtl(unittest.TestCase):

    @patch("frigate_viewer.managers.image_cache.time.time")
    def test_entry_expires_after_72_hours(self, mock_time):
        cache = NotificationImageCache()
        mock_time.return_value = 1_000_000.0
        img = _image()
        cache.put("ce_1", img)

        mock_time.return_value = 1_000_000.0 + 71 * HOUR
        self.assertIs(cache.get("ce_1"), img)

        mock_time.return_value = 1_000_000.0 + 73 * HOUR
        self.assertIsNone(cache.get("ce_1"))
        self.assertEqual(cache.stats()["entries"], 0)

    @patch("frigate_viewer.managers.image_cache.time.time")
    def test_put_overwrites_and_restamps(self, mock_time):
        cache = NotificationImageCache()
        mock_time.return_value = 0.0
        cache.put("ce_1", _image())
        mock_time.return_value = 70 * HOUR
        newer = _image(4)
        cache.put("ce_1", newer)
        mock_time.return_value = 100 * HOUR
        self.assertIs(cache.get("ce_1"), newer)


class TestImageCacheSizeBound(unittest.TestCase):

    def test_lru_evicts_least_recently_used(self):
        # each image is 10*10*3 = 300 bytes
        cache = NotificationImageCache(max_bytes=700)
        cache.put("ce_a", _image())
        cache.put("ce_b", _image())
        cache.get("ce_a")
        cache.put("ce_c", _image())
        self.assertIsNotNone(cache.get("ce_a"))
        self.assertIsNone(cache.get("ce_b"))
        self.assertIsNotNone(cache.get("ce_c"))
        self.assertLessEqual(cache.stats()["total_bytes"], 700)

    def test_oversize_image_not_cached(self):
        cache = NotificationImageCache(max_bytes=100)
        cache.put("ce_big", _image())
        self.assertIsNone(cache.get("ce_big"))
        self.assertEqual(cache.stats()["total_bytes"], 0)


class TestImageCacheEviction(unittest.TestCase):

    def test_evict(self):
        cache = NotificationImageCache()
        cache.put("ce_1", _image())
        cache.evict("ce_1")
        cache.evict("ce_1")
        self.assertIsNone(cache.get("ce_1"))

    def test_evict_by_event_path_re_adds_prefix(self):
        cache = NotificationImageCache()
        cache.put("ce_1772256011_69405f11", _image())
        cache.evict_by_event_path("events/1772256011_69405f11")
        self.assertIsNone(cache.get("ce_1772256011_69405f11"))

    def test_evict_by_blank_path_is_noop(self):
        cache = NotificationImageCache()
        cache.put("ce_1", _image())
        cache.evict_by_event_path("")
        cache.evict_by_event_path("events/")
        self.assertIsNotNone(cache.get("ce_1"))


if __name__ == "__main__":
    unittest.main()
