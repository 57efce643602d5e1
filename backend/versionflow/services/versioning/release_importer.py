"""
Import of externally published releases (tags) into the version store.

The version number comes from the tag, it is not computed. A tag that is
not a semantic version aborts the import for that release only.
"""

from datetime import datetime, timezone
from typing import Optional

from versionflow.core.logging_config import get_logger
from versionflow.services.versioning.exceptions import InvalidVersionFormat
from versionflow.services.versioning.ports import VersionStore
from versionflow.services.versioning.semver import SemVer, parse_tag
from versionflow.services.versioning.types import (
    Environment,
    GitHubReleaseData,
    ReleaseImportResult,
    ReleaseType,
    VersionRecord,
)

logger = get_logger("versionflow.versioning.releases")


def derive_release_type(parsed: SemVer, previous: Optional[VersionRecord]) -> ReleaseType:
    """Classify an imported version against the highest known version."""
    if parsed.is_prerelease:
        return ReleaseType.PRERELEASE
    if previous is None:
        return ReleaseType.MINOR
    if parsed.major != previous.major:
        return ReleaseType.MAJOR
    if parsed.minor != previous.minor:
        return ReleaseType.MINOR
    return ReleaseType.PATCH


class ReleaseImporter:
    def __init__(self, versions: VersionStore):
        self.versions = versions

    async def import_release(
        self, repository_id: str, release: GitHubReleaseData
    ) -> Optional[ReleaseImportResult]:
        try:
            parsed = parse_tag(release.tag_name)
        except InvalidVersionFormat as e:
            logger.warning(
                f"Skipping release {release.tag_name!r}: {e}",
                extra={"repository_id": repository_id},
            )
            return None

        version_string = str(parsed)
        version = await self.versions.find_version(repository_id, version_string)
        if version is None:
            previous = await self.versions.latest_version(repository_id)
            environment = Environment.STAGING if release.is_prerelease else Environment.PRODUCTION
            version = await self.versions.create_released_version(
                repository_id,
                parsed,
                release_type=derive_release_type(parsed, previous).value,
                environment=environment.value,
                branch=None,
                released_at=release.published_at or datetime.now(timezone.utc),
            )
            logger.info(
                f"Created version {version.version} from release {release.tag_name}",
                extra={"repository_id": repository_id, "environment": environment.value},
            )

        record = await self.versions.upsert_release(repository_id, version.id, release)
        return ReleaseImportResult(version=version, release=record)
