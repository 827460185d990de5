"""Pytest configuration and shared fixtures."""

import os

# Console-only logging for tests; must be set before the package is imported
os.environ.setdefault("LOCATION_TRACKER_LOG_TO_FILE", "0")

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from location_tracker.config import AppConfig, LocationTrackerConfig, RegistryConfig, ServerConfig
from location_tracker.main import create_app
from location_tracker.registry.store import LocationRegistry

# 2023-11-14T22:13:20Z
START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now_ms: int = START_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> int:
        self.now_ms += int(seconds * 1000)
        return self.now_ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> LocationRegistry:
    """Registry with default timeouts driven by the fake clock."""
    return LocationRegistry(clock=clock)


@pytest.fixture
def test_config() -> LocationTrackerConfig:
    return LocationTrackerConfig(
        app=AppConfig(log_to_file=False),
        server=ServerConfig(),
        registry=RegistryConfig(),
    )


@pytest.fixture
def app(test_config: LocationTrackerConfig, registry: LocationRegistry):
    return create_app(config=test_config, registry=registry)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Test client without lifespan; the sweep is driven by hand in tests."""
    yield TestClient(app)


@pytest.fixture
def make_report():
    """Build a report body with sensible defaults."""

    def _make(tracker_id: str = "tracker-1", latitude=51.5074, longitude=-0.1278, is_tracking=True, **extra):
        body = {
            "trackerId": tracker_id,
            "latitude": latitude,
            "longitude": longitude,
            "isTracking": is_tracking,
        }
        body.update(extra)
        return body

    return _make
