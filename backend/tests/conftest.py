"""
Shared test fixtures and configuration for versionflow backend tests.
"""
import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "true"

from tests.utils.in_memory_store import InMemoryStore, build_manager  # noqa: E402


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock settings for testing."""
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("POSTGRES_PASSWORD", "testpassword")
    monkeypatch.setenv("POSTGRES_USER", "testuser")
    monkeypatch.setenv("POSTGRES_DB", "testdb")


@pytest.fixture
def mock_db_session():
    """Create a mock async database session bound to the PostgreSQL dialect."""
    from sqlalchemy.dialects import postgresql

    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.get_bind = MagicMock(return_value=MagicMock(dialect=postgresql.dialect()))
    return session


@pytest.fixture
def mock_request():
    """Create a mock FastAPI request object."""
    request = MagicMock()
    request.headers = {}
    request.url = MagicMock()
    request.url.path = "/api/v1/test"
    request.method = "POST"
    return request


@pytest.fixture
def store():
    """Empty in-memory store implementing every storage port."""
    return InMemoryStore()


@pytest.fixture
def multi_branch_store(store):
    """Repository `repo-1` (project PROJ) using the multi-branch strategy."""
    store.add_repository(
        "repo-1",
        project_id="project-1",
        issue_prefix="PROJ",
        github_repo_id=4242,
        versioning_strategy="MULTI_BRANCH",
        development_branch="dev",
        issue_type_mapping={"BUG": "PATCH", "STORY": "MINOR"},
    )
    return store


@pytest.fixture
def single_branch_store(store):
    """Repository `repo-1` (project PROJ) using the single-branch strategy."""
    store.add_repository(
        "repo-1",
        project_id="project-1",
        issue_prefix="PROJ",
        github_repo_id=4242,
        versioning_strategy="SINGLE_BRANCH",
    )
    return store


@pytest.fixture
def manager_factory():
    return build_manager
