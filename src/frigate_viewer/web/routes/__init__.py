"""Flask blueprints for the viewer API. Each module exposes create_bp(orchestrator)."""

from frigate_viewer.web.routes.api import create_bp as create_api_bp

__all__ = ["create_api_bp"]
