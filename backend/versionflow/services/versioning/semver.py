"""
Semantic version parsing.

Strict SemVer 2.0.0: ``MAJOR.MINOR.PATCH`` with optional ``-PRERELEASE``
and ``+BUILD`` parts. Release tags may carry a leading ``v``.
"""

import re
from dataclasses import dataclass
from typing import Optional

from versionflow.services.versioning.exceptions import InvalidVersionFormat

SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


@dataclass(frozen=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build_metadata: Optional[str] = None

    @property
    def core(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    def __str__(self) -> str:
        text = self.core
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build_metadata:
            text += f"+{self.build_metadata}"
        return text


def parse_semver(version_string: str) -> SemVer:
    """
    Parse a version string into a SemVer.

    Raises:
        InvalidVersionFormat: If the string is not a valid semantic version
    """
    if not isinstance(version_string, str):
        raise InvalidVersionFormat(repr(version_string))

    match = SEMVER_RE.match(version_string.strip())
    if not match:
        raise InvalidVersionFormat(version_string)

    major, minor, patch, prerelease, build = match.groups()
    return SemVer(
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        prerelease=prerelease,
        build_metadata=build,
    )


def strip_tag_prefix(tag_name: str) -> str:
    """``v1.4.0`` -> ``1.4.0``; other tags are returned trimmed."""
    tag = tag_name.strip()
    return tag[1:] if tag.startswith("v") else tag


def parse_tag(tag_name: str) -> SemVer:
    """Parse a release tag such as ``v2.3.1-rc.1``."""
    return parse_semver(strip_tag_prefix(tag_name))
