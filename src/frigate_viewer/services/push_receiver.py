"""
MQTT message routing: push payloads to the dispatcher, alert button presses to
event actions.

Runs on paho's network thread, so it only decodes and hands work off; anything
that touches the network happens on the task group.
"""

import json
import logging
from typing import Any

from frigate_viewer.services.actions import EventActions
from frigate_viewer.services.push_dispatcher import PushDispatcher
from frigate_viewer.services.tasks import SupervisedTaskGroup

logger = logging.getLogger("frigate-viewer")


def flatten_payload(data: dict[str, Any]) -> dict[str, str]:
    """String-keyed, string-valued copy of a JSON object (None values dropped)."""
    flat: dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, bool):
            flat[str(key)] = "true" if value else "false"
        elif isinstance(value, (dict, list)):
            flat[str(key)] = json.dumps(value)
        else:
            flat[str(key)] = str(value)
    return flat


def parse_action(data: dict[str, Any]) -> tuple[str, str] | None:
    """(action_key, ce_id) from {"action": "key:ce_id"} or {"action": "key", "ce_id": ...}."""
    action = str(data.get("action") or "").strip()
    ce_id = str(data.get("ce_id") or "").strip()
    if not ce_id and ":" in action:
        action, _, ce_id = action.partition(":")
    if not action:
        return None
    return action.strip(), ce_id.strip()


class PushReceiver:
    """on_message callback for MqttClientWrapper."""

    def __init__(
        self,
        dispatcher: PushDispatcher,
        actions: EventActions,
        push_topic: str,
        action_topic: str | None = None,
        tasks: SupervisedTaskGroup | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._actions = actions
        self.push_topic = push_topic
        self.action_topic = action_topic
        self._tasks = tasks
        self.received = 0

    def on_message(self, client: Any, userdata: Any, msg: Any) -> None:
        """Route one MQTT message by topic."""
        logger.debug("MQTT message received: %s (%s bytes)", msg.topic, len(msg.payload))
        try:
            data = json.loads(msg.payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Invalid JSON in %s: %s", msg.topic, e)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object payload on %s", msg.topic)
            return

        self.received += 1
        if msg.topic == self.push_topic:
            self._dispatcher.submit(flatten_payload(data))
        elif self.action_topic and msg.topic == self.action_topic:
            self._on_action(data)
        else:
            logger.debug("Unrouted MQTT topic %s", msg.topic)

    def _on_action(self, data: dict[str, Any]) -> None:
        parsed = parse_action(data)
        if parsed is None:
            logger.warning("Alert action message without an action: %s", data)
            return
        action_key, ce_id = parsed
        if self._tasks is None:
            self._run_action(action_key, ce_id)
        else:
            self._tasks.spawn(f"action {action_key}", self._run_action, action_key, ce_id)

    def _run_action(self, action_key: str, ce_id: str) -> None:
        result = self._actions.handle_alert_action(action_key, ce_id)
        if result.ok:
            logger.info("Alert action %s for %s: %s", action_key, ce_id, result.message)
        else:
            logger.warning("Alert action %s for %s failed: %s", action_key, ce_id, result.message)
