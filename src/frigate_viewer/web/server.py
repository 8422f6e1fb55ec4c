"""Flask app for the local viewer API."""

import logging

from flask import Flask, jsonify

from frigate_viewer.web.routes import create_api_bp

logger = logging.getLogger("frigate-viewer")


def create_app(orchestrator):
    """Create the Flask app; blueprints close over orchestrator."""
    app = Flask(__name__)
    app.register_blueprint(create_api_bp(orchestrator))

    @app.errorhandler(404)
    def _not_found(e):
        return jsonify({"status": "error", "message": "Not found"}), 404

    @app.errorhandler(500)
    def _server_error(e):
        logger.error("Unhandled error in request: %s", e)
        return jsonify({"status": "error", "message": "Internal error"}), 500

    return app
