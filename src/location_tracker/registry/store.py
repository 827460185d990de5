"""Thread-safe in-memory store of the latest position per tracker."""

import math
import numbers
import threading
import time
from typing import Callable, Dict, List, Optional

from ..core.errors import RegistryInternalError, ReportValidationError
from ..utils.logging_config import get_logger, log_exception
from .models import TrackerRecord

logger = get_logger('registry')

DEFAULT_INACTIVITY_TIMEOUT_MS = 180 * 1000
DEFAULT_ABANDONMENT_MULTIPLIER = 5


def wall_clock_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _is_number(value) -> bool:
    # bool is an int subclass but never a coordinate; inf and nan have no JSON form
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


class LocationRegistry:
    """Mapping of tracker id to its latest :class:`TrackerRecord`.

    All reads and writes go through a single lock. Critical sections only do
    dict lookups, inserts and iteration, so request handlers and the eviction
    sweep never wait on each other for long.

    Args:
        inactivity_timeout_ms: Grace period for trackers that reported
            ``is_tracking=False`` before they are evicted.
        abandonment_multiplier: Trackers still flagged as tracking are evicted
            after ``inactivity_timeout_ms * abandonment_multiplier``.
        clock: Callable returning the current time in epoch milliseconds.
    """

    def __init__(
        self,
        inactivity_timeout_ms: int = DEFAULT_INACTIVITY_TIMEOUT_MS,
        abandonment_multiplier: int = DEFAULT_ABANDONMENT_MULTIPLIER,
        clock: Callable[[], int] = wall_clock_ms,
    ):
        if inactivity_timeout_ms <= 0:
            raise ValueError("inactivity_timeout_ms must be positive")
        if abandonment_multiplier < 1:
            raise ValueError("abandonment_multiplier must be at least 1")

        self.inactivity_timeout_ms = inactivity_timeout_ms
        self.abandonment_multiplier = abandonment_multiplier
        self._clock = clock
        self._records: Dict[str, TrackerRecord] = {}
        self._lock = threading.Lock()

    @property
    def abandonment_timeout_ms(self) -> int:
        return self.inactivity_timeout_ms * self.abandonment_multiplier

    def now(self) -> int:
        return self._clock()

    def report(
        self,
        tracker_id: str,
        latitude: float,
        longitude: float,
        is_tracking: bool,
    ) -> TrackerRecord:
        """Insert or replace the record for ``tracker_id``.

        Returns the stored record. Raises :class:`ReportValidationError` when a
        field is missing or of the wrong kind, leaving the registry untouched.
        """
        self._validate(tracker_id, latitude, longitude, is_tracking)

        try:
            record = TrackerRecord(
                tracker_id=tracker_id,
                latitude=float(latitude),
                longitude=float(longitude),
                is_tracking=is_tracking,
                last_updated_at=self.now(),
            )
            with self._lock:
                self._records[tracker_id] = record
        except Exception as e:
            log_exception('registry', e, {"tracker_id": tracker_id})
            raise RegistryInternalError("Failed to store location report", cause=e) from e

        logger.info(
            f"Received update for {tracker_id}: Lat {record.latitude}, "
            f"Lng {record.longitude}, Tracking: {record.is_tracking}"
        )
        return record

    def _validate(self, tracker_id, latitude, longitude, is_tracking) -> None:
        missing = []
        if not tracker_id:
            missing.append("trackerId")
        if latitude is None:
            missing.append("latitude")
        if longitude is None:
            missing.append("longitude")
        if is_tracking is None:
            missing.append("isTracking")
        if missing:
            raise ReportValidationError(
                f"Missing {', '.join(missing)} in request body.", fields=missing
            )

        invalid = []
        if not isinstance(tracker_id, str):
            invalid.append("trackerId")
        if not _is_number(latitude):
            invalid.append("latitude")
        if not _is_number(longitude):
            invalid.append("longitude")
        if not isinstance(is_tracking, bool):
            invalid.append("isTracking")
        if invalid:
            raise ReportValidationError(
                f"Invalid {', '.join(invalid)} in request body.", fields=invalid
            )

    def list_active(self) -> List[TrackerRecord]:
        """Snapshots of every record whose tracker is still tracking."""
        try:
            with self._lock:
                active = [r for r in self._records.values() if r.is_tracking]
        except Exception as e:
            log_exception('registry', e)
            raise RegistryInternalError("Failed to list active trackers", cause=e) from e

        logger.debug(f"Listing active trackers. Found {len(active)} active trackers.")
        return active

    def get(self, tracker_id: str) -> Optional[TrackerRecord]:
        """Snapshot for one tracker, including trackers that stopped."""
        with self._lock:
            return self._records.get(tracker_id)

    def is_expired(self, record: TrackerRecord, now_ms: int) -> bool:
        """Whether the eviction policy removes ``record`` at ``now_ms``."""
        age = record.age_ms(now_ms)
        if record.is_tracking:
            return age > self.abandonment_timeout_ms
        return age > self.inactivity_timeout_ms

    def evict_stale(self, now_ms: Optional[int] = None) -> List[str]:
        """Remove every expired record and return the evicted tracker ids.

        Safe to call repeatedly; ids that are already gone are skipped.
        """
        if now_ms is None:
            now_ms = self.now()

        with self._lock:
            expired = [
                tracker_id
                for tracker_id, record in self._records.items()
                if self.is_expired(record, now_ms)
            ]
            for tracker_id in expired:
                self._records.pop(tracker_id, None)

        for tracker_id in expired:
            logger.info(f"Cleaning up inactive tracker: {tracker_id}")
        return expired

    def stats(self) -> Dict[str, int]:
        with self._lock:
            total = len(self._records)
            active = sum(1 for r in self._records.values() if r.is_tracking)
        return {"total": total, "active": active, "inactive": total - active}

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, tracker_id: str) -> bool:
        with self._lock:
            return tracker_id in self._records
