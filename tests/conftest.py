"""
Test fixtures for Toolshelf tests.
"""

import copy
import os
import tempfile

import pytest
from click.testing import CliRunner

from toolshelf.config import DEFAULT_CONFIG
from toolshelf.database import Database
from toolshelf.models import Role, SubmissionPayload


@pytest.fixture
def runner():
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing.

    Uses check_same_thread=False to allow use with FastAPI TestClient
    which runs in a different thread.
    """
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        db_path = f.name

    db = Database(db_path, check_same_thread=False)
    db.init_schema()

    yield db

    # Cleanup
    db.close()
    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest.fixture
def temp_db_path():
    """Return a path to a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        db_path = f.name

    yield db_path

    # Cleanup
    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest.fixture
def mock_config(monkeypatch, temp_db_path):
    """Mock the config loading to use temp database."""
    def mock_load_config():
        config = copy.deepcopy(DEFAULT_CONFIG)
        config["database"]["path"] = temp_db_path
        return config

    monkeypatch.setattr("toolshelf.cli.load_config", mock_load_config)
    monkeypatch.setattr("toolshelf.config.load_config", mock_load_config)

    return temp_db_path


@pytest.fixture
def make_profile(temp_db):
    """Factory for profiles with a given role."""
    def _make(nickname: str, role: Role = Role.USER, email: str = None) -> int:
        return temp_db.create_profile(
            nickname, email or f"{nickname}@example.com", None, Role(role).value
        )
    return _make


@pytest.fixture
def alice(make_profile):
    """A plain user."""
    return make_profile("alice")


@pytest.fixture
def rita(make_profile):
    """A reviewer."""
    return make_profile("rita", Role.REVIEWER)


@pytest.fixture
def adam(make_profile):
    """An admin."""
    return make_profile("adam", Role.ADMIN)


@pytest.fixture
def writing_category(temp_db):
    return temp_db.get_category_by_slug("writing")


@pytest.fixture
def make_payload(writing_category):
    """Factory for a valid submission payload in the writing category."""
    def _make(**overrides) -> SubmissionPayload:
        fields = {
            "tool_name": "Alpha",
            "tool_description": "Writes things for you",
            "tool_website_url": "https://alpha.example.com",
            "category_id": writing_category["id"],
        }
        fields.update(overrides)
        return SubmissionPayload(**fields)
    return _make


@pytest.fixture
def client(temp_db, tmp_path, monkeypatch):
    """FastAPI test client backed by the temp database."""
    from fastapi.testclient import TestClient
    from web.api.main import app
    from web.api import deps

    # Startup migrations run against a throwaway file, requests use temp_db
    monkeypatch.setenv("TOOLSHELF_DB_PATH", str(tmp_path / "app.db"))

    def override_get_db():
        return temp_db

    app.dependency_overrides[deps.get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(temp_db):
    """Bearer headers for a profile ID."""
    from web.api.auth import create_access_token

    def _headers(profile_id: int) -> dict:
        token = create_access_token(temp_db.get_profile(profile_id))
        return {"Authorization": f"Bearer {token}"}
    return _headers
