"""
SQLAlchemy implementations of the versioning storage ports.

Every mutation is a single ``INSERT ... ON CONFLICT`` (or ``UPDATE``)
statement using the dialect's native upsert, committed immediately, so a
created version is durable before any enrichment step runs. A failed
mutation is rolled back before the error propagates, leaving the session
usable for the next step.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from versionflow.models.tracker import Commit, Issue, Project, PullRequest, Repository
from versionflow.models.version import Release, Version, VersionFile, VersionIssue
from versionflow.services.versioning.semver import SemVer
from versionflow.services.versioning.types import (
    BASELINE_VERSION,
    INACTIVE_STATUSES,
    CommitInfo,
    Environment,
    GitHubReleaseData,
    IssueRecord,
    PullRequestRecord,
    ReleaseRecord,
    RepositorySettings,
    VersionCalculation,
    VersionIssueRecord,
    VersionRecord,
    VersionStatus,
)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _new_id() -> str:
    return str(uuid.uuid4())


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    try:
        return _UPSERT_DIALECTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Atomic upserts are not supported on dialect '{dialect}'") from None


def _repository_settings(repository: Repository, issue_prefix: Optional[str]) -> RepositorySettings:
    return RepositorySettings(
        id=repository.id,
        project_id=repository.project_id,
        issue_prefix=issue_prefix,
        versioning_strategy=repository.versioning_strategy,
        development_branch=repository.development_branch,
        branch_environment_map=repository.branch_environment_map,
        issue_type_mapping=repository.issue_type_mapping,
    )


def _issue_record(issue: Issue) -> IssueRecord:
    return IssueRecord(
        id=issue.id,
        type=issue.type,
        issue_key=issue.issue_key,
        title=issue.title,
        description=issue.description,
    )


def _version_record(row: Version) -> VersionRecord:
    return VersionRecord(
        id=row.id,
        repository_id=row.repository_id,
        version=row.version,
        major=row.major,
        minor=row.minor,
        patch=row.patch,
        release_type=row.release_type,
        status=row.status,
        environment=row.environment,
        branch=row.branch,
        is_production=bool(row.is_production),
        parent_version_id=row.parent_version_id,
        prerelease=row.prerelease,
        build_metadata=row.build_metadata,
        ai_changelog=row.ai_changelog,
        ai_summary=row.ai_summary,
        released_at=row.released_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _release_record(row: Release) -> ReleaseRecord:
    return ReleaseRecord(
        id=row.id,
        repository_id=row.repository_id,
        version_id=row.version_id,
        tag_name=row.tag_name,
        github_release_id=row.github_release_id,
        name=row.name,
        description=row.description,
        is_draft=bool(row.is_draft),
        is_prerelease=bool(row.is_prerelease),
        published_at=row.published_at,
        github_url=row.github_url,
    )


def _highest_first(query):
    """Order versions by (major, minor, patch) descending, newest first on ties."""
    return query.order_by(
        Version.major.desc(),
        Version.minor.desc(),
        Version.patch.desc(),
        Version.created_at.desc(),
    )


class SqlRepositoryStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _first(self, *criteria) -> Optional[RepositorySettings]:
        query = (
            select(Repository, Project.issue_prefix)
            .join(Project, Repository.project_id == Project.id)
            .where(*criteria)
            .limit(1)
        )
        result = await self.db.execute(query)
        row = result.first()
        if row is None:
            return None
        repository, issue_prefix = row
        return _repository_settings(repository, issue_prefix)

    async def get_repository(self, repository_id: str) -> Optional[RepositorySettings]:
        return await self._first(Repository.id == repository_id)

    async def find_by_github_id(self, github_repo_id: int) -> Optional[RepositorySettings]:
        return await self._first(Repository.github_repo_id == github_repo_id)


class SqlIssueStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_issues_by_ids(self, issue_ids: Sequence[str]) -> List[IssueRecord]:
        if not issue_ids:
            return []
        result = await self.db.execute(select(Issue).where(Issue.id.in_(list(issue_ids))))
        by_id = {issue.id: issue for issue in result.scalars().all()}
        # Keep the caller's order (commit order)
        return [_issue_record(by_id[issue_id]) for issue_id in issue_ids if issue_id in by_id]

    async def find_issue_by_key(self, project_id: str, issue_key: str) -> Optional[IssueRecord]:
        result = await self.db.execute(
            select(Issue).where(Issue.project_id == project_id, Issue.issue_key == issue_key).limit(1)
        )
        issue = result.scalar_one_or_none()
        return _issue_record(issue) if issue else None


class SqlCommitStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def latest_commit_sha(self, repository_id: str) -> Optional[str]:
        result = await self.db.execute(
            select(Commit.sha)
            .where(Commit.repository_id == repository_id)
            .order_by(Commit.commit_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


class SqlPullRequestStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_pull_request(self, repository_id: str, pr_number: int) -> Optional[PullRequestRecord]:
        result = await self.db.execute(
            select(PullRequest).where(
                PullRequest.repository_id == repository_id,
                PullRequest.github_pr_id == pr_number,
            )
        )
        pull_request = result.scalar_one_or_none()
        if pull_request is None:
            return None

        commits = sorted(pull_request.commits, key=lambda c: c.commit_date)
        return PullRequestRecord(
            id=pull_request.id,
            number=pull_request.github_pr_id,
            issue_id=pull_request.issue_id,
            commits=[CommitInfo(sha=c.sha, message=c.message, author_name=c.author_name) for c in commits],
        )


class SqlVersionStore:
    """
    Version rows, issue links, releases and exported version files.

    Uniqueness keys:
        versions        (repository_id, environment, version)
        version_issues  (version_id, issue_id)
        releases        (repository_id, tag_name)
        version_files   (repository_id, environment)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _upsert_returning(self, stmt, model):
        try:
            result = await self.db.execute(
                stmt.returning(model),
                execution_options={"populate_existing": True},
            )
            row = result.scalar_one()
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return row

    async def _execute(self, stmt) -> None:
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def upsert_version(self, repository_id: str, calculation: VersionCalculation) -> VersionRecord:
        insert = _insert_for(self.db)
        stmt = insert(Version).values(
            id=_new_id(),
            repository_id=repository_id,
            version=calculation.version,
            major=calculation.major,
            minor=calculation.minor,
            patch=calculation.patch,
            release_type=calculation.release_type.value,
            status=VersionStatus.PENDING.value,
            environment=calculation.environment,
            branch=calculation.branch,
            is_production=calculation.environment == Environment.PRODUCTION.value,
        )
        # Redelivery: refresh bookkeeping only, never status or numbers
        stmt = stmt.on_conflict_do_update(
            index_elements=["repository_id", "environment", "version"],
            set_={"updated_at": func.now()},
        )
        row = await self._upsert_returning(stmt, Version)
        return _version_record(row)

    async def link_issue(
        self,
        version_id: str,
        issue_id: str,
        ai_title: Optional[str] = None,
        ai_summary: Optional[str] = None,
    ) -> None:
        insert = _insert_for(self.db)
        stmt = insert(VersionIssue).values(
            id=_new_id(),
            version_id=version_id,
            issue_id=issue_id,
            ai_title=ai_title,
            ai_summary=ai_summary,
        ).on_conflict_do_nothing(index_elements=["version_id", "issue_id"])
        await self._execute(stmt)

    async def current_version(self, repository_id: str, environment: str) -> str:
        query = _highest_first(
            select(Version.version).where(
                Version.repository_id == repository_id,
                Version.environment == environment,
                Version.status.notin_(INACTIVE_STATUSES),
            )
        ).limit(1)
        result = await self.db.execute(query)
        return result.scalar_one_or_none() or BASELINE_VERSION

    async def latest_version(
        self, repository_id: str, environment: Optional[str] = None
    ) -> Optional[VersionRecord]:
        query = select(Version).where(
            Version.repository_id == repository_id,
            Version.status.notin_(INACTIVE_STATUSES),
        )
        if environment is not None:
            query = query.where(Version.environment == environment)
        result = await self.db.execute(_highest_first(query).limit(1))
        row = result.scalar_one_or_none()
        return _version_record(row) if row else None

    async def find_version(self, repository_id: str, version: str) -> Optional[VersionRecord]:
        result = await self.db.execute(
            select(Version)
            .where(Version.repository_id == repository_id, Version.version == version)
            .order_by(Version.created_at.asc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return _version_record(row) if row else None

    async def create_promoted_version(
        self, source: VersionRecord, branch: str, released_at: datetime
    ) -> VersionRecord:
        insert = _insert_for(self.db)
        stmt = insert(Version).values(
            id=_new_id(),
            repository_id=source.repository_id,
            version=source.version,
            major=source.major,
            minor=source.minor,
            patch=source.patch,
            prerelease=source.prerelease,
            build_metadata=source.build_metadata,
            release_type=source.release_type,
            status=VersionStatus.READY.value,
            environment=Environment.PRODUCTION.value,
            branch=branch,
            is_production=True,
            parent_version_id=source.id,
            released_at=released_at,
        )
        # A directly calculated production row with the same version has no
        # parent yet: adopt it as the promotion. Numbers are never touched.
        orphan = Version.parent_version_id.is_(None)
        stmt = stmt.on_conflict_do_update(
            index_elements=["repository_id", "environment", "version"],
            set_={
                "parent_version_id": func.coalesce(Version.parent_version_id, stmt.excluded.parent_version_id),
                "status": case((orphan, stmt.excluded.status), else_=Version.status),
                "branch": case((orphan, stmt.excluded.branch), else_=Version.branch),
                "released_at": case((orphan, stmt.excluded.released_at), else_=Version.released_at),
                "updated_at": func.now(),
            },
        )
        row = await self._upsert_returning(stmt, Version)
        return _version_record(row)

    async def prune_issue_links(self, version_id: str, keep_issue_ids: Sequence[str]) -> None:
        stmt = delete(VersionIssue).where(VersionIssue.version_id == version_id)
        if keep_issue_ids:
            stmt = stmt.where(VersionIssue.issue_id.notin_(list(keep_issue_ids)))
        await self._execute(stmt)

    async def create_released_version(
        self,
        repository_id: str,
        parsed: SemVer,
        release_type: str,
        environment: str,
        branch: Optional[str],
        released_at: datetime,
    ) -> VersionRecord:
        insert = _insert_for(self.db)
        stmt = insert(Version).values(
            id=_new_id(),
            repository_id=repository_id,
            version=str(parsed),
            major=parsed.major,
            minor=parsed.minor,
            patch=parsed.patch,
            prerelease=parsed.prerelease,
            build_metadata=parsed.build_metadata,
            release_type=release_type,
            status=VersionStatus.RELEASED.value,
            environment=environment,
            branch=branch,
            is_production=environment == Environment.PRODUCTION.value,
            released_at=released_at,
        ).on_conflict_do_update(
            index_elements=["repository_id", "environment", "version"],
            set_={"updated_at": func.now()},
        )
        row = await self._upsert_returning(stmt, Version)
        return _version_record(row)

    async def list_version_issues(self, version_id: str) -> List[VersionIssueRecord]:
        result = await self.db.execute(
            select(VersionIssue)
            .where(VersionIssue.version_id == version_id)
            .order_by(VersionIssue.created_at.asc())
        )
        return [
            VersionIssueRecord(
                version_id=link.version_id,
                issue_id=link.issue_id,
                ai_title=link.ai_title,
                ai_summary=link.ai_summary,
            )
            for link in result.scalars().all()
        ]

    async def update_issue_enrichment(
        self, version_id: str, issue_id: str, ai_title: str, ai_summary: str
    ) -> None:
        await self._execute(
            update(VersionIssue)
            .where(VersionIssue.version_id == version_id, VersionIssue.issue_id == issue_id)
            .values(ai_title=ai_title, ai_summary=ai_summary)
        )

    async def update_version_enrichment(self, version_id: str, ai_changelog: str, ai_summary: str) -> None:
        await self._execute(
            update(Version)
            .where(Version.id == version_id)
            .values(ai_changelog=ai_changelog, ai_summary=ai_summary)
        )

    async def upsert_release(
        self, repository_id: str, version_id: str, release: GitHubReleaseData
    ) -> ReleaseRecord:
        insert = _insert_for(self.db)
        stmt = insert(Release).values(
            id=_new_id(),
            repository_id=repository_id,
            version_id=version_id,
            github_release_id=release.github_release_id,
            tag_name=release.tag_name,
            name=release.name,
            description=release.description,
            is_draft=release.is_draft,
            is_prerelease=release.is_prerelease,
            published_at=release.published_at,
            github_url=release.github_url,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["repository_id", "tag_name"],
            set_={
                "version_id": stmt.excluded.version_id,
                "github_release_id": stmt.excluded.github_release_id,
                "name": stmt.excluded.name,
                "description": stmt.excluded.description,
                "is_draft": stmt.excluded.is_draft,
                "is_prerelease": stmt.excluded.is_prerelease,
                "published_at": stmt.excluded.published_at,
                "github_url": stmt.excluded.github_url,
                "updated_at": func.now(),
            },
        )
        row = await self._upsert_returning(stmt, Release)
        return _release_record(row)

    async def upsert_version_file(
        self, repository_id: str, environment: str, version_id: str, content: Dict[str, Any]
    ) -> None:
        insert = _insert_for(self.db)
        stmt = insert(VersionFile).values(
            id=_new_id(),
            repository_id=repository_id,
            environment=environment,
            version_id=version_id,
            content=content,
            deployed_at=func.now(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["repository_id", "environment"],
            set_={
                "version_id": stmt.excluded.version_id,
                "content": stmt.excluded.content,
                "deployed_at": func.now(),
            },
        )
        await self._execute(stmt)

    async def get_version_file(self, repository_id: str, environment: str) -> Optional[Dict[str, Any]]:
        result = await self.db.execute(
            select(VersionFile.content).where(
                VersionFile.repository_id == repository_id,
                VersionFile.environment == environment,
            )
        )
        return result.scalar_one_or_none()
