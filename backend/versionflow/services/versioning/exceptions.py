"""
Exception classes for the versioning engine.

A merge that references no tracked issue is not an error: the handlers
return ``None`` for it.
"""

from typing import Optional


class VersioningError(Exception):
    """Base exception for all versioning-related errors."""

    pass


class ConfigNotFound(VersioningError):
    """Raised when the repository (and therefore its policy) does not exist."""

    def __init__(self, repository_id: str):
        self.repository_id = repository_id
        super().__init__(f"Repository not found: {repository_id}")


class InvalidVersionFormat(VersioningError):
    """Raised when a string cannot be parsed as a semantic version."""

    def __init__(self, version_string: str, expected_format: str = "MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]"):
        self.version_string = version_string
        self.expected_format = expected_format
        super().__init__(
            f"Invalid version format: '{version_string}'. "
            f"Expected format: {expected_format}"
        )


class VersionCalculationFailure(VersioningError):
    """Raised when the next version cannot be derived from the stored one."""

    def __init__(self, current_version: str, release_type: str, reason: Optional[str] = None):
        self.current_version = current_version
        self.release_type = release_type
        message = f"Failed to calculate {release_type} bump from version {current_version!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PromotionSourceNotFound(VersioningError):
    """Raised in strict promotion mode when no development version can be promoted."""

    def __init__(self, repository_id: str):
        self.repository_id = repository_id
        super().__init__(
            f"No development version available to promote for repository {repository_id}"
        )


class PromotionConflict(VersioningError):
    """Raised when the production row for a version was promoted from a different source."""

    def __init__(self, version: str, existing_parent_id: str, source_id: str):
        self.version = version
        self.existing_parent_id = existing_parent_id
        self.source_id = source_id
        super().__init__(
            f"Production version {version} was already promoted from {existing_parent_id}, "
            f"refusing to promote {source_id}"
        )
