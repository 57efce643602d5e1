from typing import Mapping

from versionflow.services.versioning.types import (
    VERSIONED_ENVIRONMENTS,
    Environment,
    RepositoryConfig,
    VersioningStrategy,
)


def environment_for_branch(branch: str, branch_environment_map: Mapping[str, str]) -> str:
    """Deployment environment of ``branch``; unlisted branches are development."""
    return branch_environment_map.get(branch) or Environment.DEVELOPMENT.value


def environment_for_merge(branch: str, config: RepositoryConfig) -> str:
    """
    Environment a merge into ``branch`` is versioned in.

    Under MULTI_BRANCH the repository's development branch is always the
    accumulation point, whatever the branch map says about it.
    """
    if (
        config.versioning_strategy is VersioningStrategy.MULTI_BRANCH
        and branch == config.development_branch
    ):
        return Environment.DEVELOPMENT.value
    return environment_for_branch(branch, config.branch_environment_map)


def is_tracked_branch(branch: str, config: RepositoryConfig) -> bool:
    """
    Whether pushes to ``branch`` produce versions for this repository: the
    development branch, or a mapped branch whose environment is versioned.
    """
    if branch == config.development_branch:
        return True
    if branch not in config.branch_environment_map:
        return False
    return environment_for_merge(branch, config) in VERSIONED_ENVIRONMENTS
