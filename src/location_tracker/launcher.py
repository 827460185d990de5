"""Command-line launcher for the Live Location Tracker server."""

import argparse
import os
import socket
import sys
from typing import List, Optional

import uvicorn

from .config import config_manager
from .utils.logging_config import get_log_directory, get_logger, initialize_logging


def is_port_free(host: str, port: int) -> bool:
    """Check if a port is available."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((host, port))
            return True
    except OSError:
        return False


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="location-tracker-server",
        description="Live Location Tracker - in-memory registry of active trackers",
    )
    parser.add_argument("--host", help="Interface to bind (default from config)")
    parser.add_argument("--port", type=int, help="Port to bind (default from config)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Start the API server with uvicorn."""
    ns = parse_args(argv)
    config = config_manager.load_config()

    if ns.host:
        config.server.host = ns.host
    if ns.port:
        config.server.port = ns.port
    if ns.debug:
        # Picked up again when uvicorn imports the application module
        os.environ["LOCATION_TRACKER_DEBUG"] = "1"
        config.server.debug = True
        config.app.log_level = "DEBUG"

    initialize_logging(debug=config.server.debug)
    logger = get_logger('main')

    issues = config_manager.validate_config()
    if issues:
        for issue in issues:
            logger.error(f"Configuration error: {issue}")
        return 1

    if not is_port_free(config.server.host, config.server.port):
        logger.error(f"Port {config.server.port} on {config.server.host} is already in use")
        return 1

    logger.info(f"Starting server on http://{config.server.host}:{config.server.port}")
    if get_log_directory():
        logger.info(f"Logs are written to {get_log_directory()}")
    try:
        uvicorn.run(
            "location_tracker.main:app",
            host=config.server.host,
            port=config.server.port,
            reload=ns.reload or config.server.auto_reload,
            log_level=config.app.log_level.lower(),
            access_log=config.server.debug,
        )
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
