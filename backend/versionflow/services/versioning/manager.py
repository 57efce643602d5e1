"""
Version manager: entry point for merge and release events.

Routing per merge:

* MULTI_BRANCH + production target: promote the current development
  version; without one, compute a production version from production's own
  history (or fail in strict promotion mode).
* MULTI_BRANCH + development target (the repository's development
  branch always counts as one): accumulate (lower components are
  never reset).
* everything else: standard semantic version increment.

Version rows and issue links are committed before the best-effort steps
(changelog enrichment, version file export) run.
"""

from typing import Any, Dict, List, Optional, Sequence

from versionflow.core.config import settings
from versionflow.core.logging_config import get_logger
from versionflow.services.versioning.bump import determine_version_bump
from versionflow.services.versioning.calculator import calculate_next_version
from versionflow.services.versioning.changelog import (
    ChangelogEnricher,
    ChangelogGenerator,
    TemplateChangelogGenerator,
)
from versionflow.services.versioning.config_resolver import RepositoryConfigResolver
from versionflow.services.versioning.environments import environment_for_merge, is_tracked_branch
from versionflow.services.versioning.issue_extractor import IssueReferenceExtractor
from versionflow.services.versioning.ports import CommitStore, IssueStore, PullRequestStore, VersionStore
from versionflow.services.versioning.promotion import PromotionEngine
from versionflow.services.versioning.release_importer import ReleaseImporter
from versionflow.services.versioning.types import (
    VERSIONED_ENVIRONMENTS,
    CommitInfo,
    Environment,
    GitHubReleaseData,
    IssueRecord,
    MergeInfo,
    ReleaseImportResult,
    ReleaseType,
    RepositoryConfig,
    VersionCalculation,
    VersioningStrategy,
    VersionRecord,
)
from versionflow.services.versioning.version_file import VersionFileExporter

logger = get_logger("versionflow.versioning")


class VersionManager:
    def __init__(
        self,
        config_resolver: RepositoryConfigResolver,
        issues: IssueStore,
        versions: VersionStore,
        pull_requests: PullRequestStore,
        commits: CommitStore,
        changelog_generator: Optional[ChangelogGenerator] = None,
        strict_promotion: Optional[bool] = None,
    ):
        if strict_promotion is None:
            strict_promotion = settings.VERSIONING_STRICT_PROMOTION

        self.config_resolver = config_resolver
        self.issues = issues
        self.versions = versions
        self.pull_requests = pull_requests
        self.extractor = IssueReferenceExtractor(issues)
        self.promotion = PromotionEngine(versions, strict=strict_promotion)
        self.releases = ReleaseImporter(versions)
        self.changelog = ChangelogEnricher(versions, changelog_generator or TemplateChangelogGenerator())
        self.version_files = VersionFileExporter(versions, issues, commits)

    async def handle_branch_merge(
        self, repository_id: str, target_branch: str, commits: Sequence[CommitInfo]
    ) -> Optional[VersionRecord]:
        """
        Compute (or promote) the version produced by merging ``commits`` into
        ``target_branch``.

        Returns None when no commit references a tracked issue.

        Raises:
            ConfigNotFound: Unknown repository
            VersionCalculationFailure: The stored current version is corrupt
            PromotionSourceNotFound: Strict promotion with nothing to promote
        """
        log = logger.bind(repository_id=repository_id, branch=target_branch)
        config = await self.config_resolver.resolve(repository_id)

        issue_ids = await self.extractor.extract_issue_ids(config, commits)
        issues = await self.issues.find_issues_by_ids(issue_ids) if issue_ids else []
        if not issues:
            log.info(f"No issues referenced in {len(commits)} commits, skipping version calculation")
            return None

        environment = environment_for_merge(target_branch, config)
        return await self._version_for_merge(config, issues, environment, target_branch)

    async def handle_pull_request_merge(
        self, repository_id: str, pr_number: int, merge: MergeInfo
    ) -> Optional[VersionRecord]:
        """
        Version a merged pull request using its linked issue and the issues
        referenced by its commits. Returns None for unknown pull requests,
        non-versioned target environments, or when no issue is involved.
        """
        log = logger.bind(repository_id=repository_id, pr_number=pr_number, branch=merge.base_branch)
        config = await self.config_resolver.resolve(repository_id)

        pull_request = await self.pull_requests.find_pull_request(repository_id, pr_number)
        if pull_request is None:
            log.warning("Merged pull request is not tracked, skipping version calculation")
            return None

        environment = environment_for_merge(merge.base_branch, config)
        if environment not in VERSIONED_ENVIRONMENTS:
            log.info(f"Merges into {environment} are not versioned")
            return None

        issue_ids = list(dict.fromkeys(
            ([pull_request.issue_id] if pull_request.issue_id else [])
            + await self.extractor.extract_issue_ids(config, pull_request.commits)
        ))
        issues = await self.issues.find_issues_by_ids(issue_ids) if issue_ids else []
        if not issues:
            log.info("Pull request references no issues, skipping version calculation")
            return None

        return await self._version_for_merge(config, issues, environment, merge.base_branch)

    async def tracks_branch(self, repository_id: str, branch: str) -> bool:
        """Whether pushes to ``branch`` are versioned for this repository."""
        config = await self.config_resolver.resolve(repository_id)
        return is_tracked_branch(branch, config)

    async def handle_github_release(
        self, repository_id: str, release: GitHubReleaseData
    ) -> Optional[ReleaseImportResult]:
        """Record a published release; None when the tag is not a semantic version."""
        await self.config_resolver.resolve(repository_id)
        return await self.releases.import_release(repository_id, release)

    async def current_version(self, repository_id: str, environment: str) -> str:
        await self.config_resolver.resolve(repository_id)
        return await self.versions.current_version(repository_id, environment)

    async def version_file(self, repository_id: str, environment: str) -> Optional[Dict[str, Any]]:
        await self.config_resolver.resolve(repository_id)
        return await self.versions.get_version_file(repository_id, environment)

    async def _version_for_merge(
        self,
        config: RepositoryConfig,
        issues: List[IssueRecord],
        environment: str,
        branch: str,
    ) -> VersionRecord:
        multi_branch = config.versioning_strategy is VersioningStrategy.MULTI_BRANCH

        if multi_branch and environment == Environment.PRODUCTION.value:
            promoted = await self.promotion.promote_latest(config.repository_id, branch)
            if promoted is not None:
                await self.version_files.export(promoted, environment)
                return promoted
            logger.warning(
                "No development version found, calculating production version directly",
                extra={"repository_id": config.repository_id, "branch": branch},
            )

        accumulate = multi_branch and environment == Environment.DEVELOPMENT.value
        return await self._create_version(config, issues, environment, branch, accumulate)

    async def _create_version(
        self,
        config: RepositoryConfig,
        issues: List[IssueRecord],
        environment: str,
        branch: str,
        accumulate: bool,
    ) -> VersionRecord:
        repository_id = config.repository_id
        bump = determine_version_bump(issues, config.issue_type_mapping)
        current = await self.versions.current_version(repository_id, environment)
        next_version = calculate_next_version(current, bump, accumulate=accumulate)

        calculation = VersionCalculation(
            version=next_version.version,
            major=next_version.major,
            minor=next_version.minor,
            patch=next_version.patch,
            release_type=ReleaseType(bump.value),
            issues=[issue.id for issue in issues],
            environment=environment,
            branch=branch,
        )

        version = await self.versions.upsert_version(repository_id, calculation)
        for issue in issues:
            await self.versions.link_issue(version.id, issue.id)

        logger.info(
            f"Version {current} -> {version.version} ({bump.value}, "
            f"{'accumulated' if accumulate else 'standard'}) for {environment}",
            extra={"repository_id": repository_id, "branch": branch, "version_id": version.id},
        )

        await self.changelog.enrich(version, issues)
        await self.version_files.export(version, environment)
        return version
