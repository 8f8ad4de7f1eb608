"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import MagicMock
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_MESSAGE_CONTENT", "false")

from src.services import supabase_client
from tests.utils.factories import create_profile_data, create_request_data
from tests.utils.fake_supabase import FakeSupabase


@pytest.fixture
def mock_supabase_client(monkeypatch):
    """MagicMock client installed as the Supabase singleton.

    Query builder calls chain back to the same mock, so tests only need to
    set ``client.table.return_value...execute.return_value``.
    """
    client = MagicMock()
    monkeypatch.setattr(supabase_client, "_client", client)
    return client


@pytest.fixture
def fake_db(monkeypatch):
    """In-memory Supabase installed as the singleton."""
    fake = FakeSupabase()
    monkeypatch.setattr(supabase_client, "_client", fake)
    return fake


@pytest.fixture
def alice(fake_db):
    """Profile row for a member who posts requests."""
    return fake_db.add("profiles", create_profile_data(username="alice_posts"))


@pytest.fixture
def bob(fake_db):
    """Profile row for a member who applies to requests."""
    return fake_db.add("profiles", create_profile_data(username="bob_helps"))


@pytest.fixture
def carol(fake_db):
    """A third member, never part of alice and bob's deals."""
    return fake_db.add("profiles", create_profile_data(username="carol_watches"))


@pytest.fixture
def auth_headers(fake_db, alice, bob):
    """Authorization headers accepted by the fake auth service, keyed by member."""
    fake_db.auth.tokens["alice-token"] = alice["id"]
    fake_db.auth.tokens["bob-token"] = bob["id"]
    return {
        "alice": {"Authorization": "Bearer alice-token"},
        "bob": {"Authorization": "Bearer bob-token"},
    }


@pytest.fixture
def open_request(fake_db, alice):
    """An open skill-for-skill request owned by alice."""
    return fake_db.add("requests", create_request_data(alice["id"]))


@pytest.fixture
def prerequisite_request(fake_db, alice):
    return fake_db.add("requests", create_request_data(
        alice["id"],
        has_prerequisite=True,
        prerequisite_description="Send over the brand guidelines and logo files first",
    ))


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
