"""In-memory location registry and its eviction sweep."""

from .models import TrackerRecord
from .store import LocationRegistry
from .sweeper import EvictionSweeper

__all__ = ["TrackerRecord", "LocationRegistry", "EvictionSweeper"]
