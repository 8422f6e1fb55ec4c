"""Alert sinks: the platform post/cancel API used by push dispatch and the badge."""

from frigate_viewer.alerts.base import AlertSink
from frigate_viewer.alerts.ha_mqtt import HomeAssistantAlertSink

__all__ = ["AlertSink", "HomeAssistantAlertSink"]
