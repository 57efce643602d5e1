"""
Deployment version file (``version.json``) export.

One record per (repository, environment), rewritten whenever a version is
created or promoted into that environment.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from versionflow.core.logging_config import get_logger
from versionflow.services.versioning.ports import CommitStore, IssueStore, VersionStore
from versionflow.services.versioning.types import IssueRecord, VersionRecord

logger = get_logger("versionflow.versioning.version_file")

FEATURE_ISSUE_TYPES = ("TASK", "STORY", "EPIC")
BUGFIX_ISSUE_TYPES = ("BUG",)


def build_version_file_content(
    version: str,
    environment: str,
    issues: Iterable[IssueRecord],
    commit_sha: Optional[str],
    build_time: Optional[datetime] = None,
) -> Dict[str, Any]:
    issues = list(issues)
    build_time = build_time or datetime.now(timezone.utc)
    return {
        "version": version,
        "buildTime": build_time.isoformat().replace("+00:00", "Z"),
        "environment": environment,
        "features": [i.issue_key for i in issues if i.type in FEATURE_ISSUE_TYPES and i.issue_key],
        "bugfixes": [i.issue_key for i in issues if i.type in BUGFIX_ISSUE_TYPES and i.issue_key],
        "commit": commit_sha or "",
    }


class VersionFileExporter:
    def __init__(self, versions: VersionStore, issues: IssueStore, commits: CommitStore):
        self.versions = versions
        self.issues = issues
        self.commits = commits

    async def export(self, version: VersionRecord, environment: str) -> Optional[Dict[str, Any]]:
        """Write the version file for ``environment``; returns None on failure."""
        try:
            links = await self.versions.list_version_issues(version.id)
            issues = await self.issues.find_issues_by_ids([link.issue_id for link in links])
            commit_sha = await self.commits.latest_commit_sha(version.repository_id)

            content = build_version_file_content(version.version, environment, issues, commit_sha)
            await self.versions.upsert_version_file(version.repository_id, environment, version.id, content)
            return content
        except Exception as e:
            logger.error(
                f"Version file export failed for {version.version} ({environment}): {e}",
                extra={"repository_id": version.repository_id, "version_id": version.id},
                exc_info=True,
            )
            return None
