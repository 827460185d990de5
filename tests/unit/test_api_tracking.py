"""Unit tests for the /track-location endpoints."""

import pytest
from fastapi.testclient import TestClient

from location_tracker.core.errors import RegistryInternalError
from location_tracker.main import create_app
from location_tracker.registry.store import LocationRegistry


@pytest.mark.unit
class TestReportLocation:
    """POST /track-location."""

    def test_report_is_accepted(self, client: TestClient, make_report, clock):
        response = client.post("/track-location", json=make_report("alice", 51.5, -0.12))

        assert response.status_code == 200
        assert response.json() == {
            "message": "Location received successfully",
            "data": {
                "trackerId": "alice",
                "latitude": 51.5,
                "longitude": -0.12,
                "lastUpdatedAt": clock.now_ms,
                "isTracking": True,
            },
        }

    def test_report_updates_registry(self, client: TestClient, make_report, registry):
        client.post("/track-location", json=make_report("alice", 1.0, 2.0))
        client.post("/track-location", json=make_report("alice", 3.0, 4.0))

        assert len(registry) == 1
        assert registry.get("alice").latitude == 3.0

    def test_user_id_is_accepted_as_tracker_id(self, client: TestClient, registry):
        response = client.post(
            "/track-location",
            json={"userId": "legacy", "latitude": 1.0, "longitude": 2.0, "isTracking": True},
        )

        assert response.status_code == 200
        assert response.json()["data"]["trackerId"] == "legacy"
        assert "legacy" in registry

    def test_unknown_fields_are_ignored(self, client: TestClient, make_report):
        response = client.post("/track-location", json=make_report(accuracy=12.5, battery=0.8))

        assert response.status_code == 200
        assert "accuracy" not in response.json()["data"]

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"trackerId": None}, "Missing trackerId in request body."),
            ({"trackerId": ""}, "Missing trackerId in request body."),
            ({"latitude": None}, "Missing latitude in request body."),
            ({"isTracking": None}, "Missing isTracking in request body."),
            ({"latitude": "north"}, "Invalid latitude in request body."),
            ({"longitude": "12.5"}, "Invalid longitude in request body."),
            ({"latitude": True}, "Invalid latitude in request body."),
            ({"isTracking": "yes"}, "Invalid isTracking in request body."),
        ],
    )
    def test_bad_field_is_rejected(self, client: TestClient, make_report, registry, overrides, message):
        body = make_report()
        body.update(overrides)

        response = client.post("/track-location", json=body)

        assert response.status_code == 400
        assert response.json() == {"message": message}
        assert len(registry) == 0

    def test_absent_fields_are_all_named(self, client: TestClient):
        response = client.post("/track-location", json={})

        assert response.status_code == 400
        assert response.json() == {
            "message": "Missing trackerId, latitude, longitude, isTracking in request body."
        }

    def test_invalid_json_is_rejected(self, client: TestClient):
        response = client.post(
            "/track-location",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Request body must be valid JSON."}

    @pytest.mark.parametrize(
        "raw, message",
        [
            (b'{"trackerId": "x", "latitude": 1e400, "longitude": 2.0, "isTracking": true}',
             "Invalid latitude in request body."),
            (b'{"trackerId": "x", "latitude": NaN, "longitude": 2.0, "isTracking": true}',
             "Invalid latitude in request body."),
            (b'{"trackerId": "x", "latitude": 1.0, "longitude": -Infinity, "isTracking": true}',
             "Invalid longitude in request body."),
        ],
    )
    def test_non_finite_coordinates_are_rejected(self, client: TestClient, registry, raw, message):
        response = client.post("/track-location", content=raw, headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"message": message}
        assert len(registry) == 0
        assert client.get("/track-location").json() == []

    def test_empty_body_is_rejected(self, client: TestClient):
        response = client.post("/track-location", content=b"", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"message": "Request body must be valid JSON."}

    def test_non_object_body_is_rejected(self, client: TestClient):
        response = client.post("/track-location", json=[1, 2, 3])

        assert response.status_code == 400
        assert response.json() == {"message": "Request body must be a JSON object."}

    def test_oversized_body_is_rejected(self, client: TestClient, registry):
        response = client.post(
            "/track-location",
            content=b'{"trackerId": "' + b"x" * 20_000 + b'"}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 413
        assert "exceeds limit" in response.json()["message"]
        assert len(registry) == 0


@pytest.mark.unit
class TestListActive:
    """GET /track-location."""

    def test_empty_registry(self, client: TestClient):
        response = client.get("/track-location")

        assert response.status_code == 200
        assert response.json() == []

    def test_only_tracking_trackers_are_listed(self, client: TestClient, make_report):
        client.post("/track-location", json=make_report("alice"))
        client.post("/track-location", json=make_report("bob", is_tracking=False))

        response = client.get("/track-location")

        assert response.status_code == 200
        assert [t["trackerId"] for t in response.json()] == ["alice"]
        assert set(response.json()[0]) == {"trackerId", "latitude", "longitude", "lastUpdatedAt", "isTracking"}

    def test_evicted_trackers_disappear(self, client: TestClient, make_report, registry, clock):
        client.post("/track-location", json=make_report("alice"))
        clock.advance(901)
        registry.evict_stale()

        assert client.get("/track-location").json() == []


@pytest.mark.unit
class TestUnsupportedMethods:

    @pytest.mark.parametrize("path", ["/track-location", "/api/track-location"])
    @pytest.mark.parametrize("method", ["PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "PROPFIND"])
    def test_method_not_allowed(self, client: TestClient, method, path):
        response = client.request(method, path)

        assert response.status_code == 405
        assert response.headers["allow"] == "GET, POST"
        assert response.json() == {
            "message": f"Method {method} not allowed. Use GET to list active trackers or POST to report a location."
        }

    def test_head_is_not_allowed(self, client: TestClient):
        response = client.head("/track-location")

        assert response.status_code == 405
        assert response.headers["allow"] == "GET, POST"

    def test_other_paths_keep_default_errors(self, client: TestClient):
        not_allowed = client.post("/health")
        not_found = client.get("/no-such-path")

        assert not_allowed.status_code == 405
        assert not_allowed.json() == {"detail": "Method Not Allowed"}
        assert not_found.status_code == 404


@pytest.mark.unit
class TestApiPrefix:

    def test_api_prefixed_path_behaves_the_same(self, client: TestClient, make_report):
        post = client.post("/api/track-location", json=make_report("alice"))
        listing = client.get("/api/track-location")

        assert post.status_code == 200
        assert [t["trackerId"] for t in listing.json()] == ["alice"]

    def test_api_prefixed_path_is_hidden_from_schema(self, app):
        paths = app.openapi()["paths"]

        assert "/track-location" in paths
        assert "/api/track-location" not in paths


class FailingRegistry(LocationRegistry):
    """Registry whose reads and writes blow up."""

    def report(self, tracker_id, latitude, longitude, is_tracking):
        raise RegistryInternalError("Failed to store location report", cause=OSError("disk full"))

    def list_active(self):
        raise KeyError("index corrupted")


@pytest.mark.unit
class TestInternalErrors:

    @pytest.fixture
    def failing_client(self, test_config):
        return TestClient(create_app(config=test_config, registry=FailingRegistry()))

    def test_report_failure_returns_500(self, failing_client: TestClient, make_report):
        response = failing_client.post("/track-location", json=make_report())

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to store location report", "error": "disk full"}

    def test_unexpected_failure_returns_500(self, failing_client: TestClient):
        response = failing_client.get("/track-location")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Internal server error."
        assert "index corrupted" in body["error"]

    def test_validation_still_runs_before_registry(self, failing_client: TestClient, make_report):
        response = failing_client.post("/track-location", json=make_report(latitude=None))

        assert response.status_code == 400
