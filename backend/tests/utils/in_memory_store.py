"""
In-memory implementations of the versioning storage ports.

Honors the same uniqueness keys as the SQL schema so idempotency can be
asserted without a database:

- versions        (repository_id, environment, version)
- version_issues  (version_id, issue_id)
- releases        (repository_id, tag_name)
- version_files   (repository_id, environment)
"""

import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from versionflow.services.versioning.semver import SemVer, parse_semver
from versionflow.services.versioning.types import (
    BASELINE_VERSION,
    INACTIVE_STATUSES,
    CommitInfo,
    GitHubReleaseData,
    IssueRecord,
    PullRequestRecord,
    ReleaseRecord,
    RepositorySettings,
    VersionCalculation,
    VersionIssueRecord,
    VersionRecord,
)


class InMemoryStore:
    """Implements every storage port the version manager needs."""

    def __init__(self):
        self.repositories: Dict[str, RepositorySettings] = {}
        self.github_ids: Dict[int, str] = {}
        self.issues: Dict[str, IssueRecord] = {}
        self.issue_projects: Dict[str, str] = {}
        self.commits: Dict[str, List[Tuple[datetime, str]]] = {}
        self.pull_requests: Dict[Tuple[str, int], PullRequestRecord] = {}
        self.versions: Dict[str, VersionRecord] = {}
        self.version_issues: Dict[Tuple[str, str], VersionIssueRecord] = {}
        self.releases: Dict[Tuple[str, str], ReleaseRecord] = {}
        self.version_files: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._clock = datetime(2026, 1, 1, 12, 0, 0)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_repository(
        self,
        repository_id: str = "repo-1",
        project_id: str = "project-1",
        issue_prefix: Optional[str] = "PROJ",
        github_repo_id: Optional[int] = None,
        **policy,
    ) -> RepositorySettings:
        repository = RepositorySettings(
            id=repository_id,
            project_id=project_id,
            issue_prefix=issue_prefix,
            **policy,
        )
        self.repositories[repository_id] = repository
        if github_repo_id is not None:
            self.github_ids[github_repo_id] = repository_id
        return repository

    def add_issue(
        self,
        issue_key: str,
        type: str,
        title: str = "",
        project_id: str = "project-1",
        description: Optional[str] = None,
    ) -> IssueRecord:
        issue = IssueRecord(
            id=f"issue-{issue_key.lower()}",
            type=type,
            issue_key=issue_key,
            title=title or f"Issue {issue_key}",
            description=description,
        )
        self.issues[issue.id] = issue
        self.issue_projects[issue.id] = project_id
        return issue

    def add_commit(self, repository_id: str, sha: str) -> None:
        self.commits.setdefault(repository_id, []).append((self._tick(), sha))

    def add_pull_request(
        self,
        repository_id: str,
        number: int,
        issue_id: Optional[str] = None,
        commits: Optional[List[CommitInfo]] = None,
    ) -> PullRequestRecord:
        pull_request = PullRequestRecord(
            id=f"pr-{repository_id}-{number}",
            number=number,
            issue_id=issue_id,
            commits=list(commits or []),
        )
        self.pull_requests[(repository_id, number)] = pull_request
        return pull_request

    def add_version(
        self,
        repository_id: str,
        version: str,
        environment: str = "development",
        status: str = "PENDING",
        release_type: str = "PATCH",
        issue_ids: Sequence[str] = (),
    ) -> VersionRecord:
        parsed = parse_semver(version)
        record = VersionRecord(
            id=str(uuid.uuid4()),
            repository_id=repository_id,
            version=version,
            major=parsed.major,
            minor=parsed.minor,
            patch=parsed.patch,
            prerelease=parsed.prerelease,
            build_metadata=parsed.build_metadata,
            release_type=release_type,
            status=status,
            environment=environment,
            is_production=environment == "production",
            created_at=self._tick(),
        )
        self.versions[record.id] = record
        for issue_id in issue_ids:
            self.version_issues[(record.id, issue_id)] = VersionIssueRecord(record.id, issue_id)
        return record

    # ------------------------------------------------------------------
    # Queries used by assertions
    # ------------------------------------------------------------------

    def versions_for(self, repository_id: str, environment: Optional[str] = None) -> List[VersionRecord]:
        return [
            v for v in self.versions.values()
            if v.repository_id == repository_id and (environment is None or v.environment == environment)
        ]

    def linked_issue_ids(self, version_id: str) -> List[str]:
        return [issue_id for (vid, issue_id) in self.version_issues if vid == version_id]

    # ------------------------------------------------------------------
    # RepositoryStore
    # ------------------------------------------------------------------

    async def get_repository(self, repository_id: str) -> Optional[RepositorySettings]:
        return self.repositories.get(repository_id)

    async def find_by_github_id(self, github_repo_id: int) -> Optional[RepositorySettings]:
        repository_id = self.github_ids.get(github_repo_id)
        return self.repositories.get(repository_id) if repository_id else None

    # ------------------------------------------------------------------
    # IssueStore / CommitStore / PullRequestStore
    # ------------------------------------------------------------------

    async def find_issues_by_ids(self, issue_ids: Sequence[str]) -> List[IssueRecord]:
        return [self.issues[i] for i in issue_ids if i in self.issues]

    async def find_issue_by_key(self, project_id: str, issue_key: str) -> Optional[IssueRecord]:
        for issue in self.issues.values():
            if issue.issue_key == issue_key and self.issue_projects[issue.id] == project_id:
                return issue
        return None

    async def latest_commit_sha(self, repository_id: str) -> Optional[str]:
        commits = self.commits.get(repository_id)
        if not commits:
            return None
        return max(commits)[1]

    async def find_pull_request(self, repository_id: str, pr_number: int) -> Optional[PullRequestRecord]:
        return self.pull_requests.get((repository_id, pr_number))

    # ------------------------------------------------------------------
    # VersionStore
    # ------------------------------------------------------------------

    def _find(self, repository_id: str, environment: str, version: str) -> Optional[VersionRecord]:
        for record in self.versions.values():
            if (record.repository_id, record.environment, record.version) == (repository_id, environment, version):
                return record
        return None

    def _insert_or_touch(self, record: VersionRecord) -> VersionRecord:
        existing = self._find(record.repository_id, record.environment, record.version)
        if existing is not None:
            existing.updated_at = self._tick()
            return replace(existing)
        record.created_at = self._tick()
        self.versions[record.id] = record
        return replace(record)

    async def upsert_version(self, repository_id: str, calculation: VersionCalculation) -> VersionRecord:
        return self._insert_or_touch(VersionRecord(
            id=str(uuid.uuid4()),
            repository_id=repository_id,
            version=calculation.version,
            major=calculation.major,
            minor=calculation.minor,
            patch=calculation.patch,
            release_type=calculation.release_type.value,
            status="PENDING",
            environment=calculation.environment,
            branch=calculation.branch,
            is_production=calculation.environment == "production",
        ))

    async def link_issue(
        self,
        version_id: str,
        issue_id: str,
        ai_title: Optional[str] = None,
        ai_summary: Optional[str] = None,
    ) -> None:
        key = (version_id, issue_id)
        if key not in self.version_issues:
            self.version_issues[key] = VersionIssueRecord(version_id, issue_id, ai_title, ai_summary)

    def _ranked(self, repository_id: str, environment: Optional[str]) -> List[VersionRecord]:
        candidates = [
            v for v in self.versions_for(repository_id, environment)
            if v.status not in INACTIVE_STATUSES
        ]
        return sorted(candidates, key=lambda v: (v.major, v.minor, v.patch, v.created_at), reverse=True)

    async def current_version(self, repository_id: str, environment: str) -> str:
        ranked = self._ranked(repository_id, environment)
        return ranked[0].version if ranked else BASELINE_VERSION

    async def latest_version(
        self, repository_id: str, environment: Optional[str] = None
    ) -> Optional[VersionRecord]:
        ranked = self._ranked(repository_id, environment)
        return replace(ranked[0]) if ranked else None

    async def find_version(self, repository_id: str, version: str) -> Optional[VersionRecord]:
        matches = sorted(
            (v for v in self.versions_for(repository_id) if v.version == version),
            key=lambda v: v.created_at,
        )
        return replace(matches[0]) if matches else None

    async def create_promoted_version(
        self, source: VersionRecord, branch: str, released_at: datetime
    ) -> VersionRecord:
        existing = self._find(source.repository_id, "production", source.version)
        if existing is not None and existing.parent_version_id is None:
            existing.parent_version_id = source.id
            existing.status = "READY"
            existing.branch = branch
            existing.released_at = released_at
        return self._insert_or_touch(VersionRecord(
            id=str(uuid.uuid4()),
            repository_id=source.repository_id,
            version=source.version,
            major=source.major,
            minor=source.minor,
            patch=source.patch,
            prerelease=source.prerelease,
            build_metadata=source.build_metadata,
            release_type=source.release_type,
            status="READY",
            environment="production",
            branch=branch,
            is_production=True,
            parent_version_id=source.id,
            released_at=released_at,
        ))

    async def create_released_version(
        self,
        repository_id: str,
        parsed: SemVer,
        release_type: str,
        environment: str,
        branch: Optional[str],
        released_at: datetime,
    ) -> VersionRecord:
        return self._insert_or_touch(VersionRecord(
            id=str(uuid.uuid4()),
            repository_id=repository_id,
            version=str(parsed),
            major=parsed.major,
            minor=parsed.minor,
            patch=parsed.patch,
            prerelease=parsed.prerelease,
            build_metadata=parsed.build_metadata,
            release_type=release_type,
            status="RELEASED",
            environment=environment,
            branch=branch,
            is_production=environment == "production",
            released_at=released_at,
        ))

    async def prune_issue_links(self, version_id: str, keep_issue_ids: Sequence[str]) -> None:
        for key in [k for k in self.version_issues if k[0] == version_id and k[1] not in keep_issue_ids]:
            del self.version_issues[key]

    async def list_version_issues(self, version_id: str) -> List[VersionIssueRecord]:
        return [replace(link) for (vid, _), link in self.version_issues.items() if vid == version_id]

    async def update_issue_enrichment(
        self, version_id: str, issue_id: str, ai_title: str, ai_summary: str
    ) -> None:
        link = self.version_issues.get((version_id, issue_id))
        if link is not None:
            link.ai_title = ai_title
            link.ai_summary = ai_summary

    async def update_version_enrichment(self, version_id: str, ai_changelog: str, ai_summary: str) -> None:
        record = self.versions[version_id]
        record.ai_changelog = ai_changelog
        record.ai_summary = ai_summary

    async def upsert_release(
        self, repository_id: str, version_id: str, release: GitHubReleaseData
    ) -> ReleaseRecord:
        key = (repository_id, release.tag_name)
        existing = self.releases.get(key)
        record = ReleaseRecord(
            id=existing.id if existing else str(uuid.uuid4()),
            repository_id=repository_id,
            version_id=version_id,
            tag_name=release.tag_name,
            github_release_id=release.github_release_id,
            name=release.name,
            description=release.description,
            is_draft=release.is_draft,
            is_prerelease=release.is_prerelease,
            published_at=release.published_at,
            github_url=release.github_url,
        )
        self.releases[key] = record
        return replace(record)

    async def upsert_version_file(
        self, repository_id: str, environment: str, version_id: str, content: Dict[str, Any]
    ) -> None:
        self.version_files[(repository_id, environment)] = {"version_id": version_id, "content": dict(content)}

    async def get_version_file(self, repository_id: str, environment: str) -> Optional[Dict[str, Any]]:
        stored = self.version_files.get((repository_id, environment))
        return dict(stored["content"]) if stored else None


def build_manager(store: InMemoryStore, **kwargs):
    """VersionManager wired entirely to an in-memory store."""
    from versionflow.services.versioning import PolicyDefaults, RepositoryConfigResolver, VersionManager

    resolver = RepositoryConfigResolver(store, defaults=PolicyDefaults.from_settings(), cache=None)
    return VersionManager(
        config_resolver=resolver,
        issues=store,
        versions=store,
        pull_requests=store,
        commits=store,
        **kwargs,
    )
