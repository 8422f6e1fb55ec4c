"""Service modules."""

from frigate_viewer.services.api_client import BufferApiClient, BufferApiError
from frigate_viewer.services.mqtt_client import MqttClientWrapper
from frigate_viewer.services.push_dispatcher import PushDispatcher

__all__ = [
    "BufferApiClient",
    "BufferApiError",
    "MqttClientWrapper",
    "PushDispatcher",
]
