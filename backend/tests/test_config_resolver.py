"""
Tests for versionflow/services/versioning/config_resolver.py - per-repository policy.
"""
import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from versionflow.core.cache import InMemoryCache
from versionflow.services.versioning.config_resolver import (
    PolicyDefaults,
    RepositoryConfigResolver,
    merge_repository_config,
)
from versionflow.services.versioning.exceptions import ConfigNotFound
from versionflow.services.versioning.types import RepositorySettings, VersioningStrategy


@pytest.fixture
def defaults():
    return PolicyDefaults(
        development_branch="dev",
        branch_environment_map={"main": "production", "dev": "development"},
        issue_type_mapping={"BUG": "PATCH", "STORY": "MINOR", "EPIC": "MAJOR"},
    )


@pytest.fixture
def repositories():
    store = MagicMock()
    store.get_repository = AsyncMock(return_value=RepositorySettings(
        id="repo-1",
        project_id="project-1",
        issue_prefix="PROJ",
        versioning_strategy="MULTI_BRANCH",
    ))
    return store


class TestMergeRepositoryConfig:
    """Test stored overrides merged over defaults."""

    def test_unset_fields_use_defaults(self, defaults):
        config = merge_repository_config(RepositorySettings(id="repo-1", project_id="project-1"), defaults)

        assert config.versioning_strategy is VersioningStrategy.SINGLE_BRANCH
        assert config.development_branch == "dev"
        assert config.branch_environment_map == defaults.branch_environment_map
        assert config.issue_type_mapping == defaults.issue_type_mapping

    def test_stored_values_override_per_key(self, defaults):
        stored = RepositorySettings(
            id="repo-1",
            project_id="project-1",
            issue_prefix="APP",
            versioning_strategy="MULTI_BRANCH",
            development_branch="develop",
            branch_environment_map={"release": "staging"},
            issue_type_mapping={"BUG": "minor"},
        )

        config = merge_repository_config(stored, defaults)

        assert config.issue_prefix == "APP"
        assert config.versioning_strategy is VersioningStrategy.MULTI_BRANCH
        assert config.development_branch == "develop"
        assert config.branch_environment_map == {
            "main": "production",
            "dev": "development",
            "release": "staging",
        }
        assert config.issue_type_mapping["BUG"] == "MINOR"
        assert config.issue_type_mapping["EPIC"] == "MAJOR"

    def test_defaults_are_not_mutated(self, defaults):
        stored = RepositorySettings(id="repo-1", project_id="project-1", branch_environment_map={"x": "staging"})

        merge_repository_config(stored, defaults)

        assert "x" not in defaults.branch_environment_map


class TestPolicyDefaults:

    def test_from_settings(self):
        defaults = PolicyDefaults.from_settings()

        assert defaults.development_branch == "dev"
        assert defaults.branch_environment_map["uat"] == "staging"
        assert defaults.issue_type_mapping["BREAKING_CHANGE"] == "MAJOR"


class TestRepositoryConfigResolver:
    """Test lookup, caching and invalidation."""

    @pytest.mark.asyncio
    async def test_unknown_repository(self, defaults):
        store = MagicMock()
        store.get_repository = AsyncMock(return_value=None)

        with pytest.raises(ConfigNotFound) as exc_info:
            await RepositoryConfigResolver(store, defaults).resolve("missing")

        assert exc_info.value.repository_id == "missing"

    @pytest.mark.asyncio
    async def test_resolves_without_cache(self, repositories, defaults):
        config = await RepositoryConfigResolver(repositories, defaults).resolve("repo-1")

        assert config.repository_id == "repo-1"
        assert config.project_id == "project-1"
        assert config.issue_prefix == "PROJ"

    @pytest.mark.asyncio
    async def test_second_resolve_is_served_from_cache(self, repositories, defaults):
        resolver = RepositoryConfigResolver(repositories, defaults, cache=InMemoryCache(), cache_ttl=60)

        first = await resolver.resolve("repo-1")
        second = await resolver.resolve("repo-1")

        assert first == second
        repositories.get_repository.assert_awaited_once_with("repo-1")

    @pytest.mark.asyncio
    async def test_corrupt_cache_entry_is_reloaded(self, repositories, defaults):
        cache = InMemoryCache()
        await cache.set("repo-config:repo-1", json.dumps({"repository_id": "repo-1"}))
        resolver = RepositoryConfigResolver(repositories, defaults, cache=cache)

        config = await resolver.resolve("repo-1")

        assert config.versioning_strategy is VersioningStrategy.MULTI_BRANCH
        repositories.get_repository.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cache_miss_falls_back_to_store(self, repositories, defaults):
        """A cache backend that cannot connect behaves like an empty cache."""
        cache = MagicMock()
        cache.get = AsyncMock(return_value=None)
        cache.set = AsyncMock(return_value=False)

        config = await RepositoryConfigResolver(repositories, defaults, cache=cache).resolve("repo-1")

        assert config.repository_id == "repo-1"
        cache.set.assert_awaited_once()
