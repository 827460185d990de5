"""End-to-end tests: reporting agent and observer talking to the real API.

The HTTP client is given the FastAPI TestClient as its session, so every
request goes through routing, middleware and the registry in-process.
"""

import pytest
from fastapi.testclient import TestClient

from location_tracker_client.agent import ReportingAgent
from location_tracker_client.http_client import RegistryClient
from location_tracker_client.observer import ObserverLoop, render_table
from location_tracker_client.positioning import PositionFix, ReplayPositionSource


@pytest.fixture
def registry_client(client: TestClient):
    return RegistryClient("http://testserver", session=client)


@pytest.mark.integration
class TestTrackingSession:

    def test_session_is_visible_to_observer(self, registry_client, registry):
        agent = ReportingAgent(registry_client, "alice", ReplayPositionSource([], interval_secs=0))
        observer = ObserverLoop(registry_client)

        agent.start()
        view = observer.poll_once()
        assert [t["trackerId"] for t in view.trackers] == ["alice"]
        assert (view.trackers[0]["latitude"], view.trackers[0]["longitude"]) == (0.0, 0.0)

        agent.report_fix(PositionFix(51.5074, -0.1278))
        view = observer.poll_once()
        assert view.trackers[0]["latitude"] == 51.5074
        assert "alice" in render_table(view)

        agent.stop()
        view = observer.poll_once()
        assert view.trackers == []
        assert view.error is None
        assert registry.get("alice").is_tracking is False

    def test_stopped_tracker_is_purged_after_inactivity_timeout(self, registry_client, registry, clock):
        agent = ReportingAgent(
            registry_client,
            "alice",
            ReplayPositionSource([PositionFix(1.0, 2.0), PositionFix(3.0, 4.0)], interval_secs=0),
        )

        assert agent.run() == 2
        assert agent.reports_sent == 4
        assert agent.reports_failed == 0

        clock.advance(179)
        registry.evict_stale()
        assert "alice" in registry

        clock.advance(2)
        registry.evict_stale()
        assert "alice" not in registry

    def test_abandoned_tracker_is_purged(self, registry_client, registry, clock):
        agent = ReportingAgent(registry_client, "alice", ReplayPositionSource([], interval_secs=0))
        observer = ObserverLoop(registry_client)
        agent.start()

        clock.advance(901)
        registry.evict_stale()

        assert observer.poll_once().trackers == []

    def test_several_trackers(self, registry_client):
        for tracker_id in ("alice", "bob", "carol"):
            assert registry_client.send_report(tracker_id, 1.0, 2.0, True).success
        registry_client.send_report("bob", 0.0, 0.0, False)

        trackers = registry_client.fetch_active()

        assert sorted(t["trackerId"] for t in trackers) == ["alice", "carol"]

    def test_rejected_report_is_surfaced(self, registry_client):
        result = registry_client.send_report("", 1.0, 2.0, True)

        assert not result.success
        assert result.status_code == 400
        assert result.message == "Error 400: Missing trackerId in request body."
