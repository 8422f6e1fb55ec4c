"""
Base interface for alert sinks: the platform side of alert emission.

A sink posts or replaces the alert in a numbered slot and cancels slots. The
dispatcher and badge emitter only talk to this interface, so the transport
(Home Assistant over MQTT, a desktop notifier, a test double) stays swappable.
"""

from abc import ABC, abstractmethod

from frigate_viewer.models import Alert


class AlertSink(ABC):
    """Abstract post-or-replace / cancel alert API keyed by slot id."""

    @abstractmethod
    def post(self, slot: int, alert: Alert) -> bool:
        """Show alert in slot, replacing whatever the slot currently shows.

        Returns:
            True if the transport accepted the alert.
        """
        ...

    @abstractmethod
    def cancel(self, slot: int) -> bool:
        """Remove the alert in slot. Cancelling an empty slot is a no-op.

        Returns:
            True if the transport accepted the request.
        """
        ...
