"""
Tests for the Review Matcher API endpoints.

These tests use FastAPI's TestClient with the matcher wired to the in-memory
store, so no running server or Supabase connection is needed.
"""

import random
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from backend.app import app
from backend.dependencies import get_matcher, get_queue_assigner
from matcher.assignment_matcher import AssignmentMatcher
from matcher.queue_assigner import QueueAssigner

REQUEST_PATH = "/functions/v1/request-review-assignment"
ASSIGN_PATH = "/functions/v1/assign-reviews"


@pytest.fixture
def notifier():
    mock = Mock()
    mock.send_event.return_value = True
    return mock


@pytest.fixture
def client(store, notifier, clock):
    """Create FastAPI test client with the in-memory store."""
    app.dependency_overrides[get_matcher] = lambda: AssignmentMatcher(store, notifier=notifier, clock=clock)
    app.dependency_overrides[get_queue_assigner] = lambda: QueueAssigner(
        store, notifier=notifier, rng=random.Random(3), clock=clock
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def assert_cors(response):
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


class TestRequestReviewAssignment:
    """Tests for POST /functions/v1/request-review-assignment."""

    def test_success(self, client, store, notifier):
        store.add_user("rev")
        store.add_extension("ext-1", "owner-a", "2025-01-01T00:00:00+00:00", name="Tab Tamer")

        response = client.post(REQUEST_PATH, json={"user_id": "rev"})

        assert response.status_code == 200
        assert_cors(response)
        data = response.json()
        assert data["success"] is True
        assert data["message"] == (
            'Assignment created successfully! You have been assigned to review "Tab Tamer".'
        )
        assert data["assignment"]["extension_name"] == "Tab Tamer"
        assert data["assignment"]["assignment_number"] == 1
        assert data["assignment"]["due_date"] == "2025-03-03T12:00:00+00:00"
        assert data["assignment"]["id"] in store.assignments

        # Background task runs after the response under TestClient
        notifier.send_event.assert_called_once()
        assert notifier.send_event.call_args.args[1] == "review_assigned"

    def test_notification_failure_keeps_success(self, client, store, notifier):
        store.add_user("rev")
        store.add_extension("ext-1", "owner-a", "2025-01-01T00:00:00+00:00")
        notifier.send_event.return_value = False

        response = client.post(REQUEST_PATH, json={"user_id": "rev"})

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_missing_user_id(self, client):
        response = client.post(REQUEST_PATH, json={})

        assert response.status_code == 400
        assert_cors(response)
        assert response.json() == {"success": False, "error": "User ID is required"}

    def test_blank_user_id(self, client):
        response = client.post(REQUEST_PATH, json={"user_id": ""})

        assert response.status_code == 400
        assert response.json()["error"] == "User ID is required"

    def test_invalid_json(self, client):
        response = client.post(
            REQUEST_PATH,
            content="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON in request body"

    def test_unknown_user(self, client):
        response = client.post(REQUEST_PATH, json={"user_id": "ghost"})

        assert response.status_code == 404
        assert_cors(response)
        assert response.json() == {"success": False, "error": "User not found"}

    def test_unqualified_user(self, client, store):
        store.add_user("rev", qualified=False)

        response = client.post(REQUEST_PATH, json={"user_id": "rev"})

        assert response.status_code == 400
        assert "qualification" in response.json()["error"]

    def test_active_assignment_conflict(self, client, store):
        store.add_user("rev")
        store.add_assignment("rev", assignment_number=1)
        store.add_extension("ext-1", "owner-a", "2025-01-01T00:00:00+00:00")

        response = client.post(REQUEST_PATH, json={"user_id": "rev"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert len(store.batches) == 0

    def test_no_extensions(self, client, store):
        store.add_user("rev")

        response = client.post(REQUEST_PATH, json={"user_id": "rev"})

        assert response.status_code == 404

    def test_store_failure_rolls_back(self, client, store, notifier):
        store.add_user("rev")
        store.add_extension("ext-1", "owner-a", "2025-01-01T00:00:00+00:00")
        store.fail_on.add("claim_extension")

        response = client.post(REQUEST_PATH, json={"user_id": "rev"})

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Failed to update extension status"
        assert "simulated" in data["details"]
        assert store.batches == {}
        assert store.assignments == {}
        notifier.send_event.assert_not_called()

    def test_unexpected_error(self, client, store):
        store.get_user = Mock(return_value={"id": "rev"})  # no email column

        response = client.post(REQUEST_PATH, json={"user_id": "rev"})

        assert response.status_code == 500
        assert response.json()["error"] == (
            "Internal server error occurred while processing assignment request"
        )

    def test_preflight(self, client):
        response = client.options(REQUEST_PATH)

        assert response.status_code == 200
        assert response.text == "ok"
        assert_cors(response)

    def test_browser_preflight_with_extra_headers(self, client):
        """A browser preflight asking for headers beyond the usual four still succeeds."""
        response = client.options(
            REQUEST_PATH,
            headers={
                "Origin": "https://reviews.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": (
                    "authorization, x-client-info, apikey, content-type, x-supabase-api-version"
                ),
            },
        )

        assert response.status_code == 200
        assert_cors(response)
        assert "x-supabase-api-version" in response.headers["access-control-allow-headers"].lower()

    def test_post_from_browser_origin(self, client, store):
        store.add_user("rev")
        store.add_extension("ext-1", "owner-a", "2025-01-01T00:00:00+00:00")

        response = client.post(
            REQUEST_PATH,
            json={"user_id": "rev"},
            headers={"Origin": "https://reviews.example.com"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


class TestAssignReviews:
    """Tests for POST /functions/v1/assign-reviews."""

    def test_empty_queue(self, client):
        response = client.post(ASSIGN_PATH)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["assignments_created"] == 0

    def test_bulk_pass(self, client, store):
        store.add_user("owner-a")
        store.add_user("rev-1")
        store.add_extension("ext-a", "owner-a", "2025-01-01T00:00:00+00:00")

        response = client.post(ASSIGN_PATH, json={"max_assignments": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["assignments_created"] == 1
        assert data["free_assignments"] == 1
        assert data["extensions_processed"] == 1
        assert_cors(response)

    def test_malformed_json_uses_defaults(self, client, store):
        """An unparseable body runs the pass with max_assignments=10."""
        store.add_user("owner-a")
        store.add_user("rev-1")
        store.add_extension("ext-a", "owner-a", "2025-01-01T00:00:00+00:00")

        response = client.post(
            ASSIGN_PATH,
            content="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json()["assignments_created"] == 1

    def test_bulk_preflight(self, client):
        response = client.options(
            ASSIGN_PATH,
            headers={
                "Origin": "https://reviews.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type, x-custom-trace",
            },
        )

        assert response.status_code == 200
        assert_cors(response)

    def test_invalid_max_assignments(self, client):
        response = client.post(ASSIGN_PATH, json={"max_assignments": 0})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"

    def test_queue_read_failure(self, client, store):
        store.fail_on.add("get_queued_extensions")

        response = client.post(ASSIGN_PATH)

        assert response.status_code == 500
        assert response.json()["success"] is False


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
