"""
Changelog enrichment for computed versions.

Runs after the version row is committed. A generator failure is logged
and dropped: the version itself is never rolled back for it.
"""

from typing import Dict, List, Protocol, Sequence

from versionflow.core.logging_config import get_logger
from versionflow.services.versioning.ports import VersionStore
from versionflow.services.versioning.types import IssueRecord, VersionRecord

logger = get_logger("versionflow.versioning.changelog")

FEATURE_TYPES = ("TASK", "STORY", "EPIC", "FEATURE", "ENHANCEMENT")
BUGFIX_TYPES = ("BUG", "HOTFIX")

_SECTIONS = (
    ("Features", FEATURE_TYPES),
    ("Bug fixes", BUGFIX_TYPES),
)


class ChangelogGenerator(Protocol):
    async def issue_title(self, issue: IssueRecord) -> str: ...

    async def issue_summary(self, issue: IssueRecord) -> str: ...

    async def version_changelog(self, version: VersionRecord, issues: Sequence[IssueRecord]) -> str: ...

    async def version_summary(self, version: VersionRecord, issues: Sequence[IssueRecord]) -> str: ...


def _first_sentence(text: str, limit: int = 200) -> str:
    text = " ".join(text.split())
    for stop in (". ", "\n"):
        if stop in text:
            text = text.split(stop, 1)[0] + "."
            break
    if len(text) > limit:
        text = text[: limit - 3].rstrip() + "..."
    return text


class TemplateChangelogGenerator:
    """Deterministic, template based text built from issue titles and types."""

    async def issue_title(self, issue: IssueRecord) -> str:
        title = " ".join((issue.title or "").split())
        if not title:
            return issue.issue_key or issue.id
        return title[0].upper() + title[1:]

    async def issue_summary(self, issue: IssueRecord) -> str:
        if issue.description and issue.description.strip():
            return _first_sentence(issue.description)
        return f"{issue.type.title()}: {await self.issue_title(issue)}"

    async def version_changelog(self, version: VersionRecord, issues: Sequence[IssueRecord]) -> str:
        grouped: Dict[str, List[IssueRecord]] = {name: [] for name, _ in _SECTIONS}
        other: List[IssueRecord] = []
        for issue in issues:
            for name, types in _SECTIONS:
                if issue.type in types:
                    grouped[name].append(issue)
                    break
            else:
                other.append(issue)
        grouped["Other"] = other

        lines = [f"## {version.version}", ""]
        for name, section in grouped.items():
            if not section:
                continue
            lines.append(f"### {name}")
            for issue in section:
                prefix = f"**{issue.issue_key}** " if issue.issue_key else ""
                lines.append(f"- {prefix}{await self.issue_title(issue)}")
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"

    async def version_summary(self, version: VersionRecord, issues: Sequence[IssueRecord]) -> str:
        features = sum(1 for issue in issues if issue.type in FEATURE_TYPES)
        fixes = sum(1 for issue in issues if issue.type in BUGFIX_TYPES)
        other = len(issues) - features - fixes
        parts = []
        if features:
            parts.append(f"{features} feature{'s' if features != 1 else ''}")
        if fixes:
            parts.append(f"{fixes} bug fix{'es' if fixes != 1 else ''}")
        if other:
            parts.append(f"{other} other change{'s' if other != 1 else ''}")
        if not parts:
            return f"Version {version.version} ({version.environment})."
        return f"Version {version.version} ({version.environment}) with " + ", ".join(parts) + "."


class ChangelogEnricher:
    def __init__(self, versions: VersionStore, generator: ChangelogGenerator):
        self.versions = versions
        self.generator = generator

    async def enrich(self, version: VersionRecord, issues: Sequence[IssueRecord]) -> bool:
        """
        Fill per-issue titles/summaries and the version changelog.

        Returns False when the generator or the store failed; never raises.
        """
        try:
            for issue in issues:
                title = await self.generator.issue_title(issue)
                summary = await self.generator.issue_summary(issue)
                await self.versions.update_issue_enrichment(version.id, issue.id, title, summary)

            changelog = await self.generator.version_changelog(version, issues)
            summary = await self.generator.version_summary(version, issues)
            await self.versions.update_version_enrichment(version.id, changelog, summary)
            return True
        except Exception as e:
            logger.error(
                f"Changelog generation failed for version {version.version}: {e}",
                extra={"repository_id": version.repository_id, "version_id": version.id},
                exc_info=True,
            )
            return False
