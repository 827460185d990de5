"""Observer loop: polls the registry for the set of active trackers."""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .errors import ClientError
from .http_client import RegistryClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObserverView:
    """What a dashboard renders: the latest good snapshot plus poll status."""

    trackers: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    loading: bool = True
    last_success_at: Optional[float] = None
    polls: int = 0
    failures: int = 0


class ObserverLoop:
    """
    Polls ``GET /track-location`` on a fixed cadence.

    Every successful poll replaces the view's trackers wholesale. A failed
    poll keeps the previous trackers, records an error message and lets the
    next poll run on schedule.
    """

    def __init__(
        self,
        client: RegistryClient,
        poll_interval_secs: float = 3.0,
        on_update: Optional[Callable[[ObserverView], None]] = None,
    ):
        self.client = client
        self.poll_interval_secs = poll_interval_secs
        self.on_update = on_update

        self._view = ObserverView()
        self._view_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def view(self) -> ObserverView:
        with self._view_lock:
            return self._view

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> ObserverView:
        """Fetch the active trackers once and update the view."""
        try:
            trackers = self.client.fetch_active()
        except ClientError as e:
            logger.warning(f"Error fetching locations: {e}")
            view = self._update(error=f"Error: {e}", failed=True)
        else:
            logger.debug(f"Fetched {len(trackers)} active trackers")
            view = self._update(trackers=trackers)

        if self.on_update is not None:
            try:
                self.on_update(view)
            except Exception as e:
                logger.error(f"Observer update callback failed: {e}")
        return view

    def _update(
        self,
        trackers: Optional[List[Dict[str, Any]]] = None,
        error: Optional[str] = None,
        failed: bool = False,
    ) -> ObserverView:
        with self._view_lock:
            current = self._view
            if failed:
                self._view = replace(
                    current,
                    error=error,
                    loading=False,
                    polls=current.polls + 1,
                    failures=current.failures + 1,
                )
            else:
                self._view = replace(
                    current,
                    trackers=list(trackers),
                    error=None,
                    loading=False,
                    last_success_at=time.time(),
                    polls=current.polls + 1,
                )
            return self._view

    def run(self, max_polls: Optional[int] = None) -> ObserverView:
        """Poll in the calling thread until stopped or ``max_polls`` is reached."""
        self._stop_event.clear()
        polls = 0
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"Unexpected error during poll: {e}")
            polls += 1
            if max_polls is not None and polls >= max_polls:
                break
            self._stop_event.wait(self.poll_interval_secs)
        return self.view

    def start(self) -> None:
        """Start polling in a background thread; the first poll runs immediately."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="observer-loop", daemon=True)
        self._thread.start()
        logger.info(f"Observer started (interval {self.poll_interval_secs}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop polling and wait for the background thread to exit."""
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout)
            logger.info("Observer stopped")


def _format_timestamp(value: Any) -> str:
    try:
        return datetime.fromtimestamp(int(value) / 1000).strftime("%H:%M:%S")
    except (TypeError, ValueError, OverflowError, OSError):
        return "-"


def _format_coordinate(value: Any) -> str:
    try:
        return f"{float(value):.6f}"
    except (TypeError, ValueError):
        return "-"


def render_table(view: ObserverView) -> str:
    """Render the view as a plain-text table."""
    lines = []
    if view.loading:
        lines.append("Loading locations...")
    if view.error:
        lines.append(view.error)

    if not view.trackers:
        if not view.loading:
            lines.append("No active trackers.")
        return "\n".join(lines)

    headers = ("Tracker", "Latitude", "Longitude", "Last update")
    rows = [
        (
            str(t.get("trackerId", "?")),
            _format_coordinate(t.get("latitude")),
            _format_coordinate(t.get("longitude")),
            _format_timestamp(t.get("lastUpdatedAt")),
        )
        for t in view.trackers
    ]
    widths = [max(len(h), *(len(r[i]) for r in rows)) for i, h in enumerate(headers)]

    def fmt(row) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip()

    lines.append(fmt(headers))
    lines.append("  ".join("-" * w for w in widths))
    lines.extend(fmt(r) for r in rows)
    return "\n".join(lines)
