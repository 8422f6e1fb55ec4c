"""Tests for load_config: schema validation, defaults, and env overrides."""

import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from frigate_viewer.config import CONFIG_SCHEMA, load_config


class ConfigTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.addCleanup(lambda: shutil.rmtree(self.tmp, ignore_errors=True))
        self.path = os.path.join(self.tmp, "config.yaml")
        env = patch.dict(os.environ, {}, clear=False)
        env.start()
        self.addCleanup(env.stop)
        for key in ("BUFFER_URL", "MQTT_BROKER", "MQTT_PORT", "MQTT_USER", "MQTT_PASSWORD",
                    "LOG_LEVEL", "FLASK_PORT", "PUSH_TOKEN"):
            os.environ.pop(key, None)

    def _write(self, text):
        with open(self.path, "w") as f:
            f.write(text)


class TestLoadConfig(ConfigTestCase):

    def test_defaults_without_file(self):
        config = load_config([os.path.join(self.tmp, "missing.yaml")])
        self.assertIsNone(config["BUFFER_URL"])
        self.assertEqual(config["MQTT_PORT"], 1883)
        self.assertEqual(config["MQTT_PUSH_TOPIC"], "frigate_viewer/push")
        self.assertEqual(config["API_SETTLE_DELAY"], 2.0)
        self.assertEqual(config["API_RETRY_DELAY"], 1.5)

    def test_yaml_values(self):
        self._write(
            "server:\n"
            "  base_url: http://buffer:5055\n"
            "mqtt:\n"
            "  broker: mqtt.local\n"
            "  push_topic: home/push\n"
            "notifications:\n"
            "  image_cache_max_mb: 8\n"
            "  api_settle_delay_seconds: 0.5\n"
            "settings:\n"
            "  log_level: DEBUG\n"
            "  unread_poll_seconds: 60\n"
        )
        config = load_config([self.path])
        self.assertEqual(config["BUFFER_URL"], "http://buffer:5055/")
        self.assertEqual(config["MQTT_BROKER"], "mqtt.local")
        self.assertEqual(config["MQTT_PUSH_TOPIC"], "home/push")
        self.assertEqual(config["IMAGE_CACHE_MAX_BYTES"], 8 * 1024 * 1024)
        self.assertEqual(config["API_SETTLE_DELAY"], 0.5)
        self.assertEqual(config["LOG_LEVEL"], "DEBUG")
        self.assertEqual(config["UNREAD_POLL_SECONDS"], 60)

    def test_env_overrides_yaml(self):
        self._write("server:\n  base_url: http://a:1\nmqtt:\n  port: 1883\n")
        os.environ["BUFFER_URL"] = "http://b:2///"
        os.environ["MQTT_PORT"] = "8883"
        os.environ["PUSH_TOKEN"] = "tok"
        config = load_config([self.path])
        self.assertEqual(config["BUFFER_URL"], "http://b:2/")
        self.assertEqual(config["MQTT_PORT"], 8883)
        self.assertEqual(config["PUSH_TOKEN"], "tok")

    def test_blank_base_url_is_none(self):
        self._write("server:\n  base_url: '  '\n")
        self.assertIsNone(load_config([self.path])["BUFFER_URL"])

    def test_invalid_config_exits(self):
        self._write("settings:\n  log_level: LOUD\n")
        with self.assertRaises(SystemExit) as ctx:
            load_config([self.path])
        self.assertEqual(ctx.exception.code, 1)


class TestConfigSchema(unittest.TestCase):

    def test_unknown_sections_allowed(self):
        CONFIG_SCHEMA({"server": {"base_url": "http://x"}, "ui": {"theme": "dark"}})

    def test_range_enforced(self):
        from voluptuous import Invalid
        with self.assertRaises(Invalid):
            CONFIG_SCHEMA({"notifications": {"max_workers": 0}})


if __name__ == "__main__":
    unittest.main()
