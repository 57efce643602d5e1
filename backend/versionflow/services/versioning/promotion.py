"""
Promotion of a development version into production.

Promotion copies the version identity forward; it never recomputes
major/minor/patch. The promoted row points back at its source through
``parent_version_id`` and carries exactly the source's issue links.
"""

from datetime import datetime, timezone
from typing import Optional

from versionflow.core.logging_config import get_logger
from versionflow.services.versioning.exceptions import PromotionConflict, PromotionSourceNotFound
from versionflow.services.versioning.ports import VersionStore
from versionflow.services.versioning.types import Environment, VersionRecord

logger = get_logger("versionflow.versioning.promotion")


class PromotionEngine:
    def __init__(self, versions: VersionStore, strict: bool = False):
        self.versions = versions
        self.strict = strict

    async def promote_latest(self, repository_id: str, branch: str) -> Optional[VersionRecord]:
        """
        Promote the current development version of ``repository_id``.

        Returns None when there is nothing to promote and the engine is not
        strict; the caller then computes a production version directly.

        Raises:
            PromotionSourceNotFound: In strict mode, when no development version exists
            PromotionConflict: The production row already belongs to another source
        """
        source = await self.versions.latest_version(repository_id, Environment.DEVELOPMENT.value)
        if source is None:
            if self.strict:
                raise PromotionSourceNotFound(repository_id)
            logger.info(
                "No development version to promote",
                extra={"repository_id": repository_id, "branch": branch},
            )
            return None

        promoted = await self.versions.create_promoted_version(
            source, branch=branch, released_at=datetime.now(timezone.utc)
        )
        if promoted.parent_version_id != source.id:
            raise PromotionConflict(promoted.version, promoted.parent_version_id, source.id)

        links = await self.versions.list_version_issues(source.id)
        # An adopted production row may carry links from its own calculation
        await self.versions.prune_issue_links(promoted.id, [link.issue_id for link in links])
        for link in links:
            await self.versions.link_issue(promoted.id, link.issue_id, link.ai_title, link.ai_summary)

        logger.info(
            f"Promoted version {promoted.version} to production ({len(links)} issues)",
            extra={
                "repository_id": repository_id,
                "version_id": promoted.id,
                "parent_version_id": source.id,
            },
        )
        return promoted
