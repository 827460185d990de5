"""Main entrypoint for the location tracker client."""

import logging
import signal
import sys
import threading
from contextlib import contextmanager

from .agent import ReportingAgent
from .cli import build_config, parse_args
from .config import AgentConfig, ObserverConfig
from .errors import AgentStateError, PositioningError
from .http_client import RegistryClient
from .observer import ObserverLoop, ObserverView, render_table
from .positioning import PositionSource, ReplayPositionSource, StaticPositionSource

logger = logging.getLogger(__name__)


def configure_logging(cfg):
    """Configure logging based on configuration."""
    log_level = logging.DEBUG if cfg.dev else logging.INFO

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Reduce noise from requests library
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    if cfg.dev:
        logger.info("Development mode enabled - verbose logging active")


def build_position_source(cfg: AgentConfig) -> PositionSource:
    """Replay fixes from a file when one is configured, otherwise repeat a fixed position."""
    if cfg.from_file:
        logger.info(f"Replaying position fixes from {cfg.from_file}")
        return ReplayPositionSource.from_ndjson(cfg.from_file, interval_secs=cfg.fix_interval_secs)
    return StaticPositionSource(cfg.latitude, cfg.longitude, interval_secs=cfg.fix_interval_secs)


@contextmanager
def stop_on_sigterm(agent: ReportingAgent):
    """Route SIGTERM to :meth:`ReportingAgent.request_stop` while the block runs."""
    # Signal handlers can only be installed from the main thread
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.getsignal(signal.SIGTERM)
    signal.signal(signal.SIGTERM, lambda signum, frame: agent.request_stop())
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)


def run_agent(cfg: AgentConfig, client: RegistryClient) -> int:
    """Run one tracking session to completion."""
    agent = ReportingAgent(
        client,
        cfg.tracker_id,
        build_position_source(cfg),
        position_timeout_secs=cfg.position_timeout_secs,
        on_status=lambda text: logger.info(f"Status: {text}"),
    )

    try:
        with stop_on_sigterm(agent):
            fixes = agent.run()
    except KeyboardInterrupt:
        agent.stop()
        raise

    logger.info(
        f"Session complete: {fixes} fixes, {agent.reports_sent} reports sent, "
        f"{agent.reports_failed} failed"
    )
    if agent.status_text.startswith("Unable to get location"):
        return 1
    return 0


def run_observer(cfg: ObserverConfig, client: RegistryClient, once: bool = False) -> int:
    """Poll the registry and print the table after every poll."""

    def print_view(view: ObserverView) -> None:
        print(render_table(view))
        print()

    loop = ObserverLoop(client, poll_interval_secs=cfg.poll_interval_secs, on_update=print_view)
    view = loop.run(max_polls=1 if once else None)
    return 1 if once and view.error else 0


def main(argv=None) -> int:
    """
    Main entrypoint for the client.

    Args:
        argv: Command line arguments (for testing)

    Returns:
        Exit code (0 for success)
    """
    try:
        ns = parse_args(argv)
        cfg = build_config(ns)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    configure_logging(cfg)
    logger.info(f"Location tracker client starting ({ns.command})")
    logger.info(f"Base URL: {cfg.base_url}")

    try:
        with RegistryClient(cfg.base_url, timeout_secs=cfg.http_timeout_secs) as client:
            if isinstance(cfg, AgentConfig):
                return run_agent(cfg, client)
            return run_observer(cfg, client, once=ns.once)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130  # Standard exit code for Ctrl+C

    except (AgentStateError, PositioningError) as e:
        logger.error(f"Tracking failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
