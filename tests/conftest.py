"""Shared pytest fixtures and configuration."""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def test_env(monkeypatch):
    """
    Set valid test environment variables.

    This fixture sets up valid test environment variables so config
    can be loaded during tests without requiring real credentials.
    """
    monkeypatch.setenv("SUPABASE_URL", "https://test-project.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "test_service_role_key_1234567890")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("MAX_ACTIVE_ASSIGNMENTS", raising=False)
    monkeypatch.delenv("REVIEW_WINDOW_HOURS", raising=False)

    return {
        "supabase_url": "https://test-project.supabase.co",
        "supabase_key": "test_service_role_key_1234567890",
        "log_level": "DEBUG",
    }


@pytest.fixture
def invalid_env(monkeypatch):
    """
    Set up invalid/missing environment variables for testing validation.
    """
    monkeypatch.setenv("SUPABASE_URL", "")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "")
    monkeypatch.setenv("SUPABASE_KEY", "")


class FakeStore:
    """
    In-memory stand-in for SupabaseClient.

    Rows are plain dicts shaped like the Supabase tables. Queued extensions
    come back in insertion order (not FIFO) so tests can check the matcher
    orders them itself. Put a method name in `fail_on` to make it raise.
    """

    def __init__(self):
        self.users = {}
        self.extensions = {}
        self.batches = {}
        self.assignments = {}
        self.relationships = []
        self.fail_on = set()
        self.lose_claims = set()
        self.calls = []
        self._next_id = 0

    def _new_id(self, prefix):
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    def _record(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise RuntimeError(f"simulated {name} failure")

    # Seeding helpers

    def add_user(self, user_id, qualified=True, subscription_status=None, email=None, name=None):
        self.users[user_id] = {
            "id": user_id,
            "email": email or f"{user_id}@example.com",
            "name": name or user_id.title(),
            "has_completed_qualification": qualified,
            "subscription_status": subscription_status,
        }

    def add_extension(self, ext_id, owner_id, submitted_at, status="queued", name=None):
        self.extensions[ext_id] = {
            "id": ext_id,
            "owner_id": owner_id,
            "name": name or f"Extension {ext_id}",
            "status": status,
            "submitted_to_queue_at": submitted_at,
        }

    def add_assignment(self, reviewer_id, assignment_number, status="assigned", extension_id="ext-old"):
        assignment_id = self._new_id("existing")
        self.assignments[assignment_id] = {
            "id": assignment_id,
            "batch_id": "batch-old",
            "extension_id": extension_id,
            "reviewer_id": reviewer_id,
            "assignment_number": assignment_number,
            "status": status,
        }

    def add_relationship(self, reviewer_id, owner_id):
        self.relationships.append({"reviewer_id": reviewer_id, "reviewed_owner_id": owner_id})

    # SupabaseClient interface

    def get_user(self, user_id):
        self._record("get_user")
        return self.users.get(user_id)

    def get_qualified_reviewers(self, exclude_user_id=None):
        self._record("get_qualified_reviewers")
        return [
            u for u in self.users.values()
            if u["has_completed_qualification"] and u["id"] != exclude_user_id
        ]

    def get_active_assignment_ids(self, reviewer_id):
        self._record("get_active_assignment_ids")
        return [
            a["id"] for a in self.assignments.values()
            if a["reviewer_id"] == reviewer_id and a["status"] == "assigned"
        ]

    def get_active_assignment_counts(self):
        self._record("get_active_assignment_counts")
        counts = {}
        for a in self.assignments.values():
            if a["status"] == "assigned":
                counts[a["reviewer_id"]] = counts.get(a["reviewer_id"], 0) + 1
        return counts

    def next_assignment_number(self):
        self._record("next_assignment_number")
        numbers = [a["assignment_number"] for a in self.assignments.values()]
        return max(numbers, default=0) + 1

    def create_batch(self, reviewer_id, assignment_type="single"):
        self._record("create_batch")
        batch_id = self._new_id("batch")
        self.batches[batch_id] = {
            "id": batch_id,
            "reviewer_id": reviewer_id,
            "assignment_type": assignment_type,
            "status": "active",
        }
        return self.batches[batch_id]

    def create_assignment(self, batch_id, extension_id, reviewer_id, assignment_number, due_at):
        self._record("create_assignment")
        assignment_id = self._new_id("assignment")
        self.assignments[assignment_id] = {
            "id": assignment_id,
            "batch_id": batch_id,
            "extension_id": extension_id,
            "reviewer_id": reviewer_id,
            "assignment_number": assignment_number,
            "due_at": due_at,
            "status": "assigned",
        }
        return self.assignments[assignment_id]

    def delete_assignment(self, assignment_id):
        self._record("delete_assignment")
        self.assignments.pop(assignment_id, None)

    def delete_batch(self, batch_id):
        self._record("delete_batch")
        self.batches.pop(batch_id, None)

    def get_queued_extensions(self, exclude_owner_id=None, limit=None, with_owner=False):
        self._record("get_queued_extensions")
        rows = []
        for ext in self.extensions.values():
            if ext["status"] != "queued" or ext["owner_id"] == exclude_owner_id:
                continue
            row = dict(ext)
            if with_owner:
                row["owner"] = self.users.get(ext["owner_id"])
            rows.append(row)
        return rows[:limit] if limit else rows

    def claim_extension(self, extension_id):
        self._record("claim_extension")
        ext = self.extensions.get(extension_id)
        if extension_id in self.lose_claims:
            ext["status"] = "assigned"
            return False
        if ext is None or ext["status"] != "queued":
            return False
        ext["status"] = "assigned"
        return True

    def get_reviewed_owner_ids(self, reviewer_id):
        self._record("get_reviewed_owner_ids")
        return [r["reviewed_owner_id"] for r in self.relationships if r["reviewer_id"] == reviewer_id]

    def get_reviewer_ids_for_owner(self, owner_id):
        self._record("get_reviewer_ids_for_owner")
        return [r["reviewer_id"] for r in self.relationships if r["reviewed_owner_id"] == owner_id]


@pytest.fixture
def store():
    """Empty in-memory store."""
    return FakeStore()


FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Clock pinned to FIXED_NOW."""
    return lambda: FIXED_NOW
