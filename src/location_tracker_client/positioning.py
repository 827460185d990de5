"""Position sources feeding the reporting agent."""

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional, Union

from .errors import PositioningError, PositionTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionFix:
    """A single position reading from the device."""

    latitude: float
    longitude: float
    accuracy_m: Optional[float] = None
    acquired_at: float = field(default_factory=time.time)


class PositionSource(ABC):
    """A continuous position subscription.

    ``read_fix`` blocks until the next fix is available. It returns ``None``
    once the subscription is closed or exhausted, raises
    :class:`PositionTimeoutError` when no fix arrives within ``timeout``
    seconds and :class:`PositioningError` on any other failure.
    """

    @abstractmethod
    def open(self) -> None:
        """Start the subscription."""

    @abstractmethod
    def read_fix(self, timeout: float) -> Optional[PositionFix]:
        """Wait for the next fix."""

    @abstractmethod
    def close(self) -> None:
        """Cancel the subscription. Must be safe to call more than once."""


ReplayItem = Union[PositionFix, Dict[str, Any]]


def parse_fix(item: Dict[str, Any]) -> PositionFix:
    """Build a fix from a mapping with latitude/longitude (or lat/lng) keys.

    A mapping with an ``error`` key stands for a positioning failure.
    """
    if item.get("error"):
        raise PositioningError(str(item["error"]))

    latitude = item.get("latitude", item.get("lat"))
    longitude = item.get("longitude", item.get("lng", item.get("lon")))
    if latitude is None or longitude is None:
        raise PositioningError(f"Position record without coordinates: {item}")

    try:
        return PositionFix(
            latitude=float(latitude),
            longitude=float(longitude),
            accuracy_m=float(item["accuracy"]) if item.get("accuracy") is not None else None,
        )
    except (TypeError, ValueError) as e:
        raise PositioningError(f"Invalid position record {item}: {e}") from e


def iter_ndjson_fixes(path: Path) -> Iterator[Dict[str, Any]]:
    """Yield position records from an NDJSON file, skipping blanks and comments."""
    with path.open('r', encoding='utf-8') as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                raise PositioningError(f"Line {line_number} of {path}: {e.msg}") from e


class ReplayPositionSource(PositionSource):
    """Replays a fixed sequence of fixes, one every ``interval_secs``.

    Used for simulations and for driving the agent from recorded tracks.
    """

    def __init__(self, fixes: Iterable[ReplayItem], interval_secs: float = 1.0):
        self._fixes = fixes
        self._iterator: Optional[Iterator[ReplayItem]] = None
        self.interval_secs = interval_secs
        self._closed = threading.Event()

    @classmethod
    def from_ndjson(cls, path: Path, interval_secs: float = 1.0) -> "ReplayPositionSource":
        return cls(iter_ndjson_fixes(path), interval_secs=interval_secs)

    def open(self) -> None:
        self._closed.clear()
        self._iterator = iter(self._fixes)

    def read_fix(self, timeout: float) -> Optional[PositionFix]:
        if self._iterator is None:
            raise PositioningError("Position source is not open")

        if self.interval_secs > timeout:
            if self._closed.wait(timeout):
                return None
            raise PositionTimeoutError(timeout)

        if self._closed.wait(self.interval_secs):
            return None

        try:
            item = next(self._iterator)
        except StopIteration:
            return None

        if isinstance(item, PositionFix):
            return item
        return parse_fix(item)

    def close(self) -> None:
        self._closed.set()


class StaticPositionSource(ReplayPositionSource):
    """Reports the same coordinates on every interval until closed."""

    def __init__(self, latitude: float, longitude: float, interval_secs: float = 1.0):
        self.latitude = latitude
        self.longitude = longitude
        super().__init__(self._repeat(), interval_secs=interval_secs)

    def _repeat(self) -> Iterator[PositionFix]:
        while True:
            yield PositionFix(latitude=self.latitude, longitude=self.longitude)
