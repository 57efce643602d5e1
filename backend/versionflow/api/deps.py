from typing import AsyncGenerator, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from versionflow.db.session import AsyncSessionLocal
from versionflow.core.cache import CacheBackend, get_cache
from versionflow.services.versioning import RepositoryConfigResolver, VersionManager
from versionflow.services.versioning.sql_store import (
    SqlCommitStore,
    SqlIssueStore,
    SqlPullRequestStore,
    SqlRepositoryStore,
    SqlVersionStore,
)


async def get_db() -> AsyncGenerator:
    async with AsyncSessionLocal() as session:
        yield session


def build_version_manager(db: AsyncSession, cache: Optional[CacheBackend] = None) -> VersionManager:
    """Wire the versioning engine to SQL stores sharing one session."""
    return VersionManager(
        config_resolver=RepositoryConfigResolver(SqlRepositoryStore(db), cache=cache),
        issues=SqlIssueStore(db),
        versions=SqlVersionStore(db),
        pull_requests=SqlPullRequestStore(db),
        commits=SqlCommitStore(db),
    )


async def get_version_manager(db: AsyncSession = Depends(get_db)) -> VersionManager:
    cache = await get_cache()
    return build_version_manager(db, cache)


def get_repository_store(db: AsyncSession = Depends(get_db)) -> SqlRepositoryStore:
    return SqlRepositoryStore(db)
