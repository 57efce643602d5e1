"""
Per-repository versioning policy: stored overrides merged over defaults.
"""

import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from versionflow.core.cache import CacheBackend
from versionflow.core.config import Settings, settings
from versionflow.services.versioning.exceptions import ConfigNotFound
from versionflow.services.versioning.ports import RepositoryStore
from versionflow.services.versioning.types import RepositoryConfig, RepositorySettings, VersioningStrategy

logger = logging.getLogger("versionflow.versioning.config")

CACHE_PREFIX = "repo-config"


@dataclass
class PolicyDefaults:
    development_branch: str
    branch_environment_map: Dict[str, str]
    issue_type_mapping: Dict[str, str]

    @classmethod
    def from_settings(cls, app_settings: Settings = settings) -> "PolicyDefaults":
        return cls(
            development_branch=app_settings.VERSIONING_DEFAULT_DEVELOPMENT_BRANCH,
            branch_environment_map=dict(app_settings.VERSIONING_DEFAULT_BRANCH_ENVIRONMENT_MAP),
            issue_type_mapping={
                issue_type: bump.upper()
                for issue_type, bump in app_settings.VERSIONING_DEFAULT_ISSUE_TYPE_MAPPING.items()
            },
        )


def merge_repository_config(stored: RepositorySettings, defaults: PolicyDefaults) -> RepositoryConfig:
    """Stored values win key by key; missing ones come from ``defaults``."""
    strategy = VersioningStrategy(stored.versioning_strategy or VersioningStrategy.SINGLE_BRANCH.value)
    return RepositoryConfig(
        repository_id=stored.id,
        project_id=stored.project_id,
        issue_prefix=stored.issue_prefix,
        versioning_strategy=strategy,
        # MULTI_BRANCH always needs a development branch, so the default never goes missing
        development_branch=stored.development_branch or defaults.development_branch,
        branch_environment_map={
            **defaults.branch_environment_map,
            **(stored.branch_environment_map or {}),
        },
        issue_type_mapping={
            **defaults.issue_type_mapping,
            **{k: str(v).upper() for k, v in (stored.issue_type_mapping or {}).items()},
        },
    )


class RepositoryConfigResolver:
    def __init__(
        self,
        repositories: RepositoryStore,
        defaults: Optional[PolicyDefaults] = None,
        cache: Optional[CacheBackend] = None,
        cache_ttl: int = settings.REPOSITORY_CONFIG_CACHE_TTL,
    ):
        self.repositories = repositories
        self.defaults = defaults or PolicyDefaults.from_settings()
        self.cache = cache
        self.cache_ttl = cache_ttl

    @staticmethod
    def _cache_key(repository_id: str) -> str:
        return f"{CACHE_PREFIX}:{repository_id}"

    async def resolve(self, repository_id: str) -> RepositoryConfig:
        """
        Raises:
            ConfigNotFound: If the repository does not exist
        """
        cached = await self._get_cached(repository_id)
        if cached is not None:
            return cached

        stored = await self.repositories.get_repository(repository_id)
        if stored is None:
            raise ConfigNotFound(repository_id)

        config = merge_repository_config(stored, self.defaults)
        await self._set_cached(config)
        return config

    async def _get_cached(self, repository_id: str) -> Optional[RepositoryConfig]:
        if self.cache is None:
            return None
        raw = await self.cache.get(self._cache_key(repository_id))
        if raw is None:
            return None
        try:
            return RepositoryConfig.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError):
            logger.warning(f"Invalid cached repository config for {repository_id}, reloading")
            await self.cache.delete(self._cache_key(repository_id))
            return None

    async def _set_cached(self, config: RepositoryConfig) -> None:
        if self.cache is None:
            return
        await self.cache.set(self._cache_key(config.repository_id), json.dumps(config.to_dict()), self.cache_ttl)
