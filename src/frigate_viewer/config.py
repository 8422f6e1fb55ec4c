"""Configuration loading and validation."""

import os
import logging
import sys

import yaml
from voluptuous import Schema, Optional, Any, All, Range, ALLOW_EXTRA, Invalid

from frigate_viewer.constants import (
    DEFAULT_ACTION_TOPIC,
    DEFAULT_ALERT_TOPIC,
    DEFAULT_API_RETRY_DELAY_SECONDS,
    DEFAULT_API_SETTLE_DELAY_SECONDS,
    DEFAULT_FEED_REFRESH_SECONDS,
    DEFAULT_IMAGE_CACHE_MAX_BYTES,
    DEFAULT_MAX_WORKERS,
    DEFAULT_NOTIFICATION_IMAGE_MAX_PX,
    DEFAULT_PUSH_TOPIC,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_UNREAD_POLL_SECONDS,
)
from frigate_viewer.services.api_client import normalize_base_url

logger = logging.getLogger('frigate-viewer')

_Number = Any(int, float)

# Configuration Schema
CONFIG_SCHEMA = Schema({
    # Event buffer server this viewer talks to.
    Optional('server'): {
        Optional('base_url'): Any(str, None),                     # Buffer base URL (e.g. http://buffer:5055/); unset = alerts and polls are skipped.
        Optional('request_timeout_seconds'): All(_Number, Range(min=1)),  # Per-request HTTP timeout.
    },
    # MQTT broker: push payloads come in on push_topic, alerts go out on alert_topic.
    Optional('mqtt'): {
        Optional('broker'): str,           # Broker hostname or IP.
        Optional('port'): int,             # Broker port (default 1883; 8883 enables TLS).
        Optional('user'): str,             # Optional MQTT username.
        Optional('password'): str,         # Optional MQTT password.
        Optional('push_topic'): str,       # Inbound event push payloads (JSON object).
        Optional('alert_topic'): str,      # Outbound alert posts/cancels for Home Assistant.
        Optional('action_topic'): str,     # Inbound alert button presses.
        Optional('client_id'): str,        # MQTT client id.
    },
    # Alert images and push handling.
    Optional('notifications'): {
        Optional('image_max_px'): All(int, Range(min=16)),              # Longest side of alert images.
        Optional('api_settle_delay_seconds'): All(_Number, Range(min=0)),  # Wait before the first event list lookup.
        Optional('api_retry_delay_seconds'): All(_Number, Range(min=0)),   # Wait before the single lookup retry.
        Optional('image_cache_max_mb'): All(_Number, Range(min=1)),        # Memory budget of the alert image cache.
        Optional('max_workers'): All(int, Range(min=1)),                  # Threads handling pushes and alert actions.
    },
    # Application behavior.
    Optional('settings'): {
        Optional('log_level'): Any('DEBUG', 'INFO', 'WARNING', 'ERROR'),  # Logging verbosity.
        Optional('unread_poll_seconds'): All(int, Range(min=10)),         # Server unread count poll interval.
        Optional('feed_refresh_seconds'): All(int, Range(min=10)),        # Events list refresh + watchdog interval.
        Optional('flask_port'): int,                                      # Port of the local API.
        Optional('push_token'): str,                                      # Device token registered with the buffer on start.
    },
}, extra=ALLOW_EXTRA)

CONFIG_PATHS = ['/config/config.yaml', '/app/config.yaml', './config.yaml']


def _defaults() -> dict:
    return {
        'BUFFER_URL': None,
        'REQUEST_TIMEOUT': DEFAULT_REQUEST_TIMEOUT_SECONDS,

        'MQTT_BROKER': None,
        'MQTT_PORT': 1883,
        'MQTT_USER': None,
        'MQTT_PASSWORD': None,
        'MQTT_PUSH_TOPIC': DEFAULT_PUSH_TOPIC,
        'MQTT_ALERT_TOPIC': DEFAULT_ALERT_TOPIC,
        'MQTT_ACTION_TOPIC': DEFAULT_ACTION_TOPIC,
        'MQTT_CLIENT_ID': 'frigate-viewer',

        'IMAGE_MAX_PX': DEFAULT_NOTIFICATION_IMAGE_MAX_PX,
        'API_SETTLE_DELAY': DEFAULT_API_SETTLE_DELAY_SECONDS,
        'API_RETRY_DELAY': DEFAULT_API_RETRY_DELAY_SECONDS,
        'IMAGE_CACHE_MAX_BYTES': DEFAULT_IMAGE_CACHE_MAX_BYTES,
        'MAX_WORKERS': DEFAULT_MAX_WORKERS,

        'LOG_LEVEL': 'INFO',
        'UNREAD_POLL_SECONDS': DEFAULT_UNREAD_POLL_SECONDS,
        'FEED_REFRESH_SECONDS': DEFAULT_FEED_REFRESH_SECONDS,
        'FLASK_PORT': 5056,
        'PUSH_TOKEN': None,
    }


def _apply_yaml(config: dict, yaml_config: dict) -> None:
    server = yaml_config.get('server') or {}
    config['BUFFER_URL'] = server.get('base_url', config['BUFFER_URL'])
    config['REQUEST_TIMEOUT'] = server.get('request_timeout_seconds', config['REQUEST_TIMEOUT'])

    mqtt = yaml_config.get('mqtt') or {}
    config['MQTT_BROKER'] = mqtt.get('broker', config['MQTT_BROKER'])
    config['MQTT_PORT'] = mqtt.get('port', config['MQTT_PORT'])
    config['MQTT_USER'] = mqtt.get('user', config['MQTT_USER'])
    config['MQTT_PASSWORD'] = mqtt.get('password', config['MQTT_PASSWORD'])
    config['MQTT_PUSH_TOPIC'] = mqtt.get('push_topic') or config['MQTT_PUSH_TOPIC']
    config['MQTT_ALERT_TOPIC'] = mqtt.get('alert_topic') or config['MQTT_ALERT_TOPIC']
    config['MQTT_ACTION_TOPIC'] = mqtt.get('action_topic') or config['MQTT_ACTION_TOPIC']
    config['MQTT_CLIENT_ID'] = mqtt.get('client_id') or config['MQTT_CLIENT_ID']

    notifications = yaml_config.get('notifications') or {}
    config['IMAGE_MAX_PX'] = notifications.get('image_max_px', config['IMAGE_MAX_PX'])
    config['API_SETTLE_DELAY'] = float(notifications.get('api_settle_delay_seconds', config['API_SETTLE_DELAY']))
    config['API_RETRY_DELAY'] = float(notifications.get('api_retry_delay_seconds', config['API_RETRY_DELAY']))
    if 'image_cache_max_mb' in notifications:
        config['IMAGE_CACHE_MAX_BYTES'] = int(notifications['image_cache_max_mb'] * 1024 * 1024)
    config['MAX_WORKERS'] = notifications.get('max_workers', config['MAX_WORKERS'])

    settings = yaml_config.get('settings') or {}
    config['LOG_LEVEL'] = settings.get('log_level', config['LOG_LEVEL'])
    config['UNREAD_POLL_SECONDS'] = settings.get('unread_poll_seconds', config['UNREAD_POLL_SECONDS'])
    config['FEED_REFRESH_SECONDS'] = settings.get('feed_refresh_seconds', config['FEED_REFRESH_SECONDS'])
    config['FLASK_PORT'] = settings.get('flask_port', config['FLASK_PORT'])
    config['PUSH_TOKEN'] = settings.get('push_token') or config['PUSH_TOKEN']


def load_config(paths: list[str] | None = None) -> dict:
    """Load configuration from config.yaml merged with environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. config.yaml (first existing file in paths)
    3. Default values

    A missing server base URL is allowed: the viewer still starts, and push
    handling and polls skip until one is configured. An invalid config.yaml
    exits the process with status 1.
    """
    config = _defaults()

    for path in paths or CONFIG_PATHS:
        if not os.path.exists(path):
            continue
        logger.info(f"Loading config from {path}")
        try:
            with open(path, 'r') as f:
                yaml_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading config from {path}: {e}")
            continue
        try:
            yaml_config = CONFIG_SCHEMA(yaml_config)
        except Invalid as e:
            logger.error(f"Invalid configuration in {path}: {e}")
            sys.exit(1)
        _apply_yaml(config, yaml_config)
        break
    else:
        logger.info("No config.yaml found, using defaults")

    # Environment variables override everything (for secrets/deployment)
    config['BUFFER_URL'] = os.getenv('BUFFER_URL') or config['BUFFER_URL']
    config['MQTT_BROKER'] = os.getenv('MQTT_BROKER') or config['MQTT_BROKER']
    config['MQTT_PORT'] = int(os.getenv('MQTT_PORT', str(config['MQTT_PORT'])))
    config['MQTT_USER'] = os.getenv('MQTT_USER') or config['MQTT_USER']
    config['MQTT_PASSWORD'] = os.getenv('MQTT_PASSWORD') or config['MQTT_PASSWORD']
    config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', config['LOG_LEVEL'])
    config['FLASK_PORT'] = int(os.getenv('FLASK_PORT', str(config['FLASK_PORT'])))
    config['PUSH_TOKEN'] = os.getenv('PUSH_TOKEN') or config['PUSH_TOKEN']

    config['BUFFER_URL'] = normalize_base_url(config['BUFFER_URL'])
    if not config['BUFFER_URL']:
        logger.warning("No server base URL configured (server.base_url or BUFFER_URL); alerts will be skipped")
    if not config['MQTT_BROKER']:
        logger.warning("No MQTT broker configured (mqtt.broker or MQTT_BROKER); push intake disabled")

    return config
