"""Configuration for the reporting agent and the observer loop."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_API_URL = "http://127.0.0.1:8000"


@dataclass
class AgentConfig:
    """Configuration for the reporting agent."""

    base_url: str
    tracker_id: str
    dev: bool = False
    from_file: Optional[Path] = None
    fix_interval_secs: float = 1.0
    position_timeout_secs: float = 5.0
    http_timeout_secs: float = 10.0
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class ObserverConfig:
    """Configuration for the observer loop."""

    base_url: str
    dev: bool = False
    poll_interval_secs: float = 3.0
    http_timeout_secs: float = 10.0
