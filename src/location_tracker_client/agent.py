"""Reporting agent: pushes a device's position to the location registry."""

import logging
import threading
from typing import Callable, Optional

from .errors import AgentStateError, PositioningError
from .http_client import RegistryClient, ReportSendResult
from .positioning import PositionFix, PositionSource

logger = logging.getLogger(__name__)

# Coordinates sent when only the tracking flag matters (start and stop reports)
PLACEHOLDER_LATITUDE = 0.0
PLACEHOLDER_LONGITUDE = 0.0


class ReportingAgent:
    """
    Owns one position subscription and reports every fix to the registry.

    A session starts with a placeholder report flagged as tracking so the
    tracker shows up on dashboards immediately, continues with one report per
    fix, and ends with a best-effort report flagged as not tracking. Report
    failures never end the session; positioning failures do.
    """

    def __init__(
        self,
        client: RegistryClient,
        tracker_id: Optional[str],
        source: PositionSource,
        position_timeout_secs: float = 5.0,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.tracker_id = tracker_id
        self.source = source
        self.position_timeout_secs = position_timeout_secs
        self.on_status = on_status

        self.status_text = "Inactive"
        self.reports_sent = 0
        self.reports_failed = 0
        self.last_fix: Optional[PositionFix] = None

        self._tracking = False
        self._lock = threading.Lock()

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    def _set_status(self, text: str) -> None:
        self.status_text = text
        if self.on_status is not None:
            try:
                self.on_status(text)
            except Exception as e:
                logger.error(f"Status callback failed: {e}")

    def _send(self, latitude: float, longitude: float, is_tracking: bool) -> ReportSendResult:
        try:
            result = self.client.send_report(self.tracker_id, latitude, longitude, is_tracking)
        except Exception as e:
            logger.error(f"Unexpected error sending report for {self.tracker_id}: {e}")
            result = ReportSendResult(
                success=False, status_code=None, response_json=None, message=f"Unexpected error: {e}"
            )

        if result.success:
            self.reports_sent += 1
        else:
            self.reports_failed += 1
            logger.warning(f"Location report for {self.tracker_id} not delivered: {result.message}")
        return result

    def start(self) -> ReportSendResult:
        """Open the position subscription and announce the session."""
        if not self.tracker_id:
            raise AgentStateError("Tracker identifier is not available; tracking is impossible.")

        with self._lock:
            if self._tracking:
                raise AgentStateError(f"Tracker {self.tracker_id} is already tracking")
            try:
                self.source.open()
            except PositioningError as e:
                self._set_status(f"Unable to get location: {e}")
                raise
            self._tracking = True

        logger.info(f"Tracking started for {self.tracker_id}")
        self._set_status("Tracking started")
        return self._send(PLACEHOLDER_LATITUDE, PLACEHOLDER_LONGITUDE, True)

    def report_fix(self, fix: PositionFix) -> ReportSendResult:
        """Report one fix while tracking."""
        if not self._tracking:
            raise AgentStateError("Cannot report a position while not tracking")

        self.last_fix = fix
        self._set_status(f"Your location: {fix.latitude}, {fix.longitude}")
        result = self._send(fix.latitude, fix.longitude, True)
        if not result.success:
            self._set_status(f"Failed to send location: {result.message}")
        return result

    def run(self, max_fixes: Optional[int] = None) -> int:
        """
        Track until the source is exhausted or closed, or a positioning error
        occurs. Always ends the session with :meth:`stop`.

        Returns:
            Number of fixes read from the source
        """
        if not self._tracking:
            self.start()

        fixes = 0
        try:
            while self._tracking and (max_fixes is None or fixes < max_fixes):
                fix = self.source.read_fix(self.position_timeout_secs)
                if fix is None:
                    break
                fixes += 1
                self.report_fix(fix)
        except PositioningError as e:
            logger.error(f"Positioning failed for {self.tracker_id}: {e}")
            self._set_status(
                f"Unable to get location: {e}. Make sure location services are enabled."
            )
        finally:
            self.stop()

        return fixes

    def request_stop(self) -> None:
        """Ask a running :meth:`run` loop to finish; safe from other threads."""
        self.source.close()

    def stop(self) -> Optional[ReportSendResult]:
        """
        Close the subscription and send a best-effort stop report.

        Returns the stop report's result, or None if the agent was not
        tracking. Delivery failures are logged, never raised.
        """
        with self._lock:
            if not self._tracking:
                return None
            self._tracking = False

        try:
            self.source.close()
        except Exception as e:
            logger.warning(f"Error closing position source: {e}")

        # A positioning error message stays visible after the session ends
        if not self.status_text.startswith("Unable to get location"):
            self._set_status("Inactive")

        result = self._send(PLACEHOLDER_LATITUDE, PLACEHOLDER_LONGITUDE, False)
        if result.success:
            logger.info(f"Tracking stopped for {self.tracker_id}")
        else:
            logger.warning(f"Stop report for {self.tracker_id} not delivered: {result.message}")
        return result

    def __enter__(self) -> "ReportingAgent":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
