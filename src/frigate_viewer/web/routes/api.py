"""API blueprint: unread state, events feed and actions, deep links, push intake,
snoozes, server pass-throughs (cameras, stats, status, daily review), local status."""

import logging

from flask import Blueprint, jsonify, request

from frigate_viewer.logging_utils import error_buffer
from frigate_viewer.models import EventsFilterMode, classify
from frigate_viewer.services.api_client import BufferApiError
from frigate_viewer.services.deep_link import DeepLinkStatus
from frigate_viewer.services.push_receiver import flatten_payload

logger = logging.getLogger("frigate-viewer")

_EVENT_ACTIONS = ("viewed", "keep", "delete")

# Server statuses passed through as-is; any other failure is a bad gateway.
_PASS_THROUGH_STATUSES = (404, 503)


def _parse_filter(value: str | None) -> EventsFilterMode | None:
    if not value:
        return None
    try:
        return EventsFilterMode(value.strip().lower())
    except ValueError:
        return None


def create_bp(orchestrator):
    """Create API blueprint with routes closed over orchestrator."""
    bp = Blueprint("api", __name__)
    reconciler = orchestrator.reconciler
    feed = orchestrator.feed
    actions = orchestrator.actions

    def _not_configured():
        return jsonify({"status": "error", "message": "Server base URL not configured"}), 503

    def _server_call(label, call):
        """Run call(client) against the configured server; JSON result or error response."""
        base_url = orchestrator.base_url()
        if not base_url:
            return _not_configured()
        try:
            return jsonify(call(orchestrator.api_client(base_url)))
        except BufferApiError as e:
            logger.warning("%s failed: %s", label, e)
            code = e.status_code if e.status_code in _PASS_THROUGH_STATUSES else 502
            return jsonify({"status": "error", "message": e.server_message or str(e)}), code

    @bp.route("/api/unread")
    def unread():
        snapshot = reconciler.snapshot()
        return jsonify({
            "effective_count": snapshot.effective_count,
            "last_fetched_unread_count": snapshot.last_fetched_unread_count,
            "locally_resolved_count": len(snapshot.locally_resolved_ids),
        })

    @bp.route("/api/events")
    def list_events():
        raw = request.args.get("filter")
        mode = _parse_filter(raw)
        if raw and mode is None:
            return jsonify({"status": "error", "message": f"Unknown filter: {raw}"}), 400
        if mode is not None:
            feed.set_filter_mode(mode)
        events = feed.displayed_events()
        return jsonify({
            "filter": feed.filter_mode.value,
            "events": [e.to_dict() for e in events],
            "total_count": len(events),
            "error": feed.error,
        })

    @bp.route("/api/events/refresh", methods=["POST"])
    def refresh_events():
        loaded = feed.refresh()
        return jsonify({
            "status": "success" if loaded else "error",
            "message": feed.error,
            "total_count": len(feed.displayed_events()),
        }), 200 if loaded else 502

    @bp.route("/api/events/<path:event_path>/<action>", methods=["POST"])
    def event_action(event_path, action):
        if action not in _EVENT_ACTIONS:
            return jsonify({"status": "error", "message": f"Unknown action: {action}"}), 404
        event_path = event_path.strip("/")
        if "/" not in event_path:
            return jsonify({"status": "error", "message": "Expected <camera>/<subdir>"}), 400
        body = request.get_json(silent=True) or {}
        event_id = str(body.get("event_id") or event_path.rsplit("/", 1)[-1])
        if not orchestrator.base_url():
            return _not_configured()
        if action == "viewed":
            result = actions.mark_reviewed(event_id, event_path)
        elif action == "keep":
            result = actions.keep(event_id, event_path)
        else:
            result = actions.delete(event_id, event_path)
        code = 200 if result.ok else 502
        return jsonify({"status": "success" if result.ok else "error", "message": result.message}), code

    @bp.route("/api/deep-link/<ce_id>")
    def deep_link(ce_id):
        result = orchestrator.deep_links.resolve(ce_id)
        if result.status is DeepLinkStatus.NOT_CONFIGURED:
            return _not_configured()
        if result.status is DeepLinkStatus.NOT_FOUND:
            return jsonify({"status": "error", "message": "Event not found", "ce_id": ce_id}), 404
        return jsonify({"status": "success", "ce_id": ce_id, "event": result.event.to_dict()})

    @bp.route("/api/push", methods=["POST"])
    def push():
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data:
            return jsonify({"status": "error", "message": "Expected a JSON object"}), 400
        payload = flatten_payload(data)
        notification = classify(payload)
        # Submit the id the caller is told about, including a synthesized one
        payload["ce_id"] = notification.ce_id
        orchestrator.dispatcher.submit(payload)
        return jsonify({
            "status": "accepted",
            "ce_id": notification.ce_id,
            "phase": notification.phase.name,
        }), 202

    @bp.route("/api/snooze")
    def list_snoozes():
        return _server_call("Snooze list", lambda c: c.get_snoozes())

    @bp.route("/api/snooze/<camera>", methods=["POST"])
    def set_snooze(camera):
        if not orchestrator.base_url():
            return _not_configured()
        body = request.get_json(silent=True) or {}
        try:
            duration = int(body.get("duration_minutes", 0))
        except (TypeError, ValueError):
            duration = 0
        if duration <= 0:
            return jsonify({"status": "error", "message": "duration_minutes must be a positive integer"}), 400
        return _server_call(f"Snooze for {camera}", lambda c: c.set_snooze(
            camera,
            duration,
            snooze_notifications=bool(body.get("snooze_notifications", True)),
            snooze_ai=bool(body.get("snooze_ai", True)),
        ))

    @bp.route("/api/snooze/<camera>", methods=["DELETE"])
    def clear_snooze(camera):
        return _server_call(f"Clearing snooze for {camera}", lambda c: c.clear_snooze(camera))

    @bp.route("/api/cameras")
    def cameras():
        return _server_call("Camera list", lambda c: c.get_cameras())

    @bp.route("/api/server/stats")
    def server_stats():
        return _server_call("Server stats", lambda c: c.get_stats())

    @bp.route("/api/server/status")
    def server_status():
        return _server_call("Server status", lambda c: c.get_status())

    @bp.route("/api/daily-review")
    def daily_review():
        return _server_call("Daily review", lambda c: {"summary": c.get_current_daily_review()})

    @bp.route("/api/daily-review/generate", methods=["POST"])
    def generate_daily_review():
        def generate_then_fetch(client):
            result = client.generate_daily_review()
            result["summary"] = None
            if result["success"]:
                try:
                    result["summary"] = client.get_current_daily_review()
                except BufferApiError as e:
                    logger.info("Report generated but not readable yet: %s", e)
            return result

        return _server_call("Daily review generation", generate_then_fetch)

    @bp.route("/api/status")
    def status():
        data = orchestrator.status()
        data["recent_errors"] = error_buffer.get_all()[:5]
        return jsonify(data)

    return bp
