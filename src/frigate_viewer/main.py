#!/usr/bin/env python3
"""
Frigate Event Viewer - bootstrap and entry point.

Run with: frigate-viewer (console script) or python -m frigate_viewer.main
"""

import logging
import signal
import sys
from importlib.metadata import PackageNotFoundError, version

from frigate_viewer.config import load_config
from frigate_viewer.logging_utils import setup_logging
from frigate_viewer.orchestrator import ViewerOrchestrator

# Early logging for config loading (reconfigured after config is loaded)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %I:%M:%S %p",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("frigate-viewer")


def _load_version() -> str:
    try:
        return version("frigate-event-viewer")
    except PackageNotFoundError:
        return "unknown"


def bootstrap() -> tuple[dict, ViewerOrchestrator]:
    """Load config, set up logging, create and return (config, orchestrator).

    Does not start anything.
    """
    config = load_config()
    setup_logging(config.get("LOG_LEVEL", "INFO"))
    logger.info("VERSION = %s", _load_version())
    orchestrator = ViewerOrchestrator(config)
    return config, orchestrator


def main():
    """Entry point: bootstrap, register signal handlers, run until stopped."""
    _config, orchestrator = bootstrap()

    def _shutdown_handler(signum: int, frame) -> None:
        logger.info("Received signal %s, shutting down...", signum)
        orchestrator.stop()
        raise SystemExit(0)

    signal.signal(signal.SIGTERM, _shutdown_handler)
    signal.signal(signal.SIGINT, _shutdown_handler)

    orchestrator.start()


if __name__ == "__main__":
    main()
