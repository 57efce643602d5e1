"""
Storage ports the versioning engine depends on.

The engine never touches a session directly; ``sql_store`` provides the
SQLAlchemy implementations and the tests use in-memory ones.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

from versionflow.services.versioning.semver import SemVer
from versionflow.services.versioning.types import (
    GitHubReleaseData,
    IssueRecord,
    PullRequestRecord,
    ReleaseRecord,
    RepositorySettings,
    VersionCalculation,
    VersionIssueRecord,
    VersionRecord,
)


class RepositoryStore(Protocol):
    async def get_repository(self, repository_id: str) -> Optional[RepositorySettings]: ...

    async def find_by_github_id(self, github_repo_id: int) -> Optional[RepositorySettings]: ...


class IssueStore(Protocol):
    async def find_issues_by_ids(self, issue_ids: Sequence[str]) -> List[IssueRecord]: ...

    async def find_issue_by_key(self, project_id: str, issue_key: str) -> Optional[IssueRecord]: ...


class CommitStore(Protocol):
    async def latest_commit_sha(self, repository_id: str) -> Optional[str]: ...


class PullRequestStore(Protocol):
    async def find_pull_request(self, repository_id: str, pr_number: int) -> Optional[PullRequestRecord]: ...


class VersionStore(Protocol):
    async def upsert_version(self, repository_id: str, calculation: VersionCalculation) -> VersionRecord: ...

    async def link_issue(
        self,
        version_id: str,
        issue_id: str,
        ai_title: Optional[str] = None,
        ai_summary: Optional[str] = None,
    ) -> None: ...

    async def current_version(self, repository_id: str, environment: str) -> str: ...

    async def latest_version(
        self, repository_id: str, environment: Optional[str] = None
    ) -> Optional[VersionRecord]: ...

    async def find_version(self, repository_id: str, version: str) -> Optional[VersionRecord]: ...

    async def create_promoted_version(
        self, source: VersionRecord, branch: str, released_at: datetime
    ) -> VersionRecord: ...

    async def create_released_version(
        self,
        repository_id: str,
        parsed: SemVer,
        release_type: str,
        environment: str,
        branch: Optional[str],
        released_at: datetime,
    ) -> VersionRecord: ...

    async def prune_issue_links(self, version_id: str, keep_issue_ids: Sequence[str]) -> None: ...

    async def list_version_issues(self, version_id: str) -> List[VersionIssueRecord]: ...

    async def update_issue_enrichment(
        self, version_id: str, issue_id: str, ai_title: str, ai_summary: str
    ) -> None: ...

    async def update_version_enrichment(self, version_id: str, ai_changelog: str, ai_summary: str) -> None: ...

    async def upsert_release(
        self, repository_id: str, version_id: str, release: GitHubReleaseData
    ) -> ReleaseRecord: ...

    async def upsert_version_file(
        self, repository_id: str, environment: str, version_id: str, content: Dict[str, Any]
    ) -> None: ...

    async def get_version_file(self, repository_id: str, environment: str) -> Optional[Dict[str, Any]]: ...
