"""Command-line interface for the location tracker client."""

import argparse
import os
from pathlib import Path
from typing import List, Optional, Union

from .config import DEFAULT_API_URL, AgentConfig, ObserverConfig


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--base-url",
        help=f"Base URL of the location registry (default: $LOCATION_TRACKER_API_URL or {DEFAULT_API_URL})"
    )
    parser.add_argument(
        "--http-timeout",
        type=float,
        default=10.0,
        help="HTTP request timeout in seconds (default: 10.0)"
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Enable development mode (verbose logging)"
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="location-tracker-client",
        description="Live Location Tracker client - report a position or watch active trackers"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    report = subparsers.add_parser("report", help="Report positions under a tracker identifier")
    _add_common_arguments(report)
    report.add_argument(
        "--tracker-id",
        help="Tracker identifier to report under (default: $LOCATION_TRACKER_TRACKER_ID)"
    )
    report.add_argument(
        "--from-file",
        type=Path,
        help="NDJSON file of position fixes to replay"
    )
    report.add_argument(
        "--latitude",
        type=float,
        help="Fixed latitude to report when no file is given"
    )
    report.add_argument(
        "--longitude",
        type=float,
        help="Fixed longitude to report when no file is given"
    )
    report.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between position fixes (default: 1.0)"
    )
    report.add_argument(
        "--position-timeout",
        type=float,
        default=5.0,
        help="Seconds to wait for a position fix (default: 5.0)"
    )

    watch = subparsers.add_parser("watch", help="Poll and print the active trackers")
    _add_common_arguments(watch)
    watch.add_argument(
        "--poll-interval",
        type=float,
        default=3.0,
        help="Seconds between polls (default: 3.0)"
    )
    watch.add_argument(
        "--once",
        action="store_true",
        help="Poll once, print the table and exit"
    )

    return parser.parse_args(argv)


def build_config(ns: argparse.Namespace) -> Union[AgentConfig, ObserverConfig]:
    """Build the agent or observer configuration with environment variable fallbacks."""
    base_url = ns.base_url or os.getenv("LOCATION_TRACKER_API_URL") or DEFAULT_API_URL
    base_url = base_url.rstrip("/")
    dev = ns.dev or os.getenv("LOCATION_TRACKER_DEV", "false").lower() in ("1", "true", "yes")

    if ns.http_timeout <= 0:
        raise ValueError("--http-timeout must be positive")

    if ns.command == "watch":
        if ns.poll_interval <= 0:
            raise ValueError("--poll-interval must be positive")
        return ObserverConfig(
            base_url=base_url,
            dev=dev,
            poll_interval_secs=ns.poll_interval,
            http_timeout_secs=ns.http_timeout,
        )

    tracker_id = ns.tracker_id or os.getenv("LOCATION_TRACKER_TRACKER_ID")
    if not tracker_id:
        raise ValueError("--tracker-id is required or set LOCATION_TRACKER_TRACKER_ID")

    from_file = ns.from_file
    if from_file is None and os.getenv("LOCATION_TRACKER_FROM_FILE"):
        from_file = Path(os.getenv("LOCATION_TRACKER_FROM_FILE"))

    if from_file is not None:
        if not from_file.exists():
            raise ValueError(f"File not found: {from_file}")
        if not from_file.is_file():
            raise ValueError(f"Not a regular file: {from_file}")
    elif ns.latitude is None or ns.longitude is None:
        raise ValueError("Either --from-file or both --latitude and --longitude are required")

    if ns.interval <= 0:
        raise ValueError("--interval must be positive")

    return AgentConfig(
        base_url=base_url,
        tracker_id=tracker_id,
        dev=dev,
        from_file=from_file,
        fix_interval_secs=ns.interval,
        position_timeout_secs=ns.position_timeout,
        http_timeout_secs=ns.http_timeout,
        latitude=ns.latitude,
        longitude=ns.longitude,
    )
