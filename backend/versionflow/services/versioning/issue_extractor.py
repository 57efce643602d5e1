"""
Issue references in commit messages.

A message references at most one issue: the first ``<PREFIX>-<number>``
match, case-insensitive, normalised to upper case. Commits without a
reference, or whose key is unknown to the tracker, are skipped.
"""

import re
from typing import Dict, Iterable, List, Optional

from versionflow.core.logging_config import get_logger
from versionflow.services.versioning.ports import IssueStore
from versionflow.services.versioning.types import CommitInfo, RepositoryConfig

logger = get_logger("versionflow.versioning.issues")


def issue_key_pattern(issue_prefix: str) -> "re.Pattern[str]":
    return re.compile(rf"{re.escape(issue_prefix)}-(\d+)", re.IGNORECASE)


def extract_issue_key(message: str, issue_prefix: str) -> Optional[str]:
    """``"fix proj-12 and PROJ-13"`` -> ``"PROJ-12"``."""
    if not message or not issue_prefix:
        return None
    match = issue_key_pattern(issue_prefix).search(message)
    if not match:
        return None
    return match.group(0).upper()


class IssueReferenceExtractor:
    def __init__(self, issues: IssueStore):
        self.issues = issues

    async def extract_issue_ids(self, config: RepositoryConfig, commits: Iterable[CommitInfo]) -> List[str]:
        """Resolved issue ids across ``commits``, deduplicated, in first-seen order."""
        if not config.issue_prefix:
            logger.warning(
                "Project has no issue prefix, commit references cannot be resolved",
                extra={"repository_id": config.repository_id},
            )
            return []

        resolved: Dict[str, Optional[str]] = {}
        issue_ids: List[str] = []
        for commit in commits:
            key = extract_issue_key(commit.message, config.issue_prefix)
            if key is None:
                continue
            if key not in resolved:
                issue = await self.issues.find_issue_by_key(config.project_id, key)
                resolved[key] = issue.id if issue else None
                if issue is None:
                    logger.debug(f"Commit {commit.sha[:8]} references unknown issue {key}")
            issue_id = resolved[key]
            if issue_id and issue_id not in issue_ids:
                issue_ids.append(issue_id)

        return issue_ids
