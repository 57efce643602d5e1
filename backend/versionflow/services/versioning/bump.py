"""
Issue type -> bump severity.
"""

import logging
from typing import Iterable, Mapping, Sequence

from versionflow.services.versioning.types import BumpLevel, IssueRecord

logger = logging.getLogger("versionflow.versioning.bump")

BUMP_SEVERITY = {
    BumpLevel.PATCH: 0,
    BumpLevel.MINOR: 1,
    BumpLevel.MAJOR: 2,
}


def bump_for_issue_type(issue_type: str, issue_type_mapping: Mapping[str, str]) -> BumpLevel:
    """Unmapped (or unknown) types count as PATCH."""
    mapped = issue_type_mapping.get(issue_type)
    if not mapped:
        return BumpLevel.PATCH
    try:
        return BumpLevel(str(mapped).upper())
    except ValueError:
        logger.warning(f"Ignoring unknown bump level {mapped!r} for issue type {issue_type}")
        return BumpLevel.PATCH


def determine_version_bump(
    issues: Sequence[IssueRecord],
    issue_type_mapping: Mapping[str, str],
) -> BumpLevel:
    """
    Highest severity across ``issues`` (MAJOR > MINOR > PATCH).

    Callers skip version calculation entirely when no issue is referenced,
    so an empty sequence is rejected instead of defaulting to PATCH.
    """
    if not issues:
        raise ValueError("determine_version_bump requires at least one issue")

    highest = BumpLevel.PATCH
    for issue in issues:
        bump = bump_for_issue_type(issue.type, issue_type_mapping)
        if bump is BumpLevel.MAJOR:
            highest = bump
            break
        if BUMP_SEVERITY[bump] > BUMP_SEVERITY[highest]:
            highest = bump

    logger.info(
        f"Version bump determined: {highest.value} for {len(issues)} issues "
        f"({', '.join(_describe(issues, issue_type_mapping))})"
    )
    return highest


def _describe(issues: Iterable[IssueRecord], issue_type_mapping: Mapping[str, str]) -> Iterable[str]:
    for issue in issues:
        yield f"{issue.type}:{bump_for_issue_type(issue.type, issue_type_mapping).value}"
