"""Tracker record model held by the location registry."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class TrackerRecord:
    """Latest known state of one tracker.

    Instances are immutable; the registry replaces a record wholesale on
    every report, so a record handed to a caller is a stable snapshot.
    """

    tracker_id: str
    latitude: float
    longitude: float
    is_tracking: bool
    last_updated_at: int  # server receipt time, epoch milliseconds

    def age_ms(self, now_ms: int) -> int:
        """Milliseconds elapsed since the record was written."""
        return now_ms - self.last_updated_at

    def to_snapshot(self) -> Dict[str, Any]:
        """Wire representation used by the HTTP API."""
        return {
            "trackerId": self.tracker_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "lastUpdatedAt": self.last_updated_at,
            "isTracking": self.is_tracking,
        }
