"""
Next-version arithmetic.

Two policies:

* standard increments (staging, single-branch repositories, production
  without a promotion source): MAJOR resets minor and patch, MINOR resets
  patch, PATCH increments patch.
* development accumulation (multi-branch repositories, development
  environment): a bump increments its own component and leaves the lower
  ones untouched, so 0.2.1 -> 0.2.2 (PATCH) -> 0.2.3 (PATCH) -> 0.3.3 (MINOR).

Everything here is pure; the current version is passed in by the caller.
"""

from typing import NamedTuple

from versionflow.services.versioning.exceptions import InvalidVersionFormat, VersionCalculationFailure
from versionflow.services.versioning.semver import SemVer, parse_semver
from versionflow.services.versioning.types import BumpLevel


class CalculatedVersion(NamedTuple):
    version: str
    major: int
    minor: int
    patch: int


def _parse_current(current_version: str, bump: BumpLevel) -> SemVer:
    try:
        return parse_semver(current_version)
    except InvalidVersionFormat as exc:
        raise VersionCalculationFailure(current_version, BumpLevel(bump).value, str(exc)) from exc


def _result(major: int, minor: int, patch: int) -> CalculatedVersion:
    return CalculatedVersion(f"{major}.{minor}.{patch}", major, minor, patch)


def increment_version(current_version: str, bump: BumpLevel) -> CalculatedVersion:
    """
    Standard semantic version increment.

    A prerelease current version is finalised rather than skipped, the way
    ``1.3.0-rc.1`` + MINOR gives ``1.3.0``.

    Raises:
        VersionCalculationFailure: If the current version string is corrupt
    """
    current = _parse_current(current_version, bump)
    major, minor, patch = current.major, current.minor, current.patch
    bump = BumpLevel(bump)

    if bump is BumpLevel.MAJOR:
        if not (current.is_prerelease and minor == 0 and patch == 0):
            major += 1
        minor, patch = 0, 0
    elif bump is BumpLevel.MINOR:
        if not (current.is_prerelease and patch == 0):
            minor += 1
        patch = 0
    else:
        if not current.is_prerelease:
            patch += 1

    return _result(major, minor, patch)


def accumulate_version(current_version: str, bump: BumpLevel) -> CalculatedVersion:
    """
    Development accumulation: never reset lower components.

    Raises:
        VersionCalculationFailure: If the current version string is corrupt
    """
    current = _parse_current(current_version, bump)
    major, minor, patch = current.major, current.minor, current.patch
    bump = BumpLevel(bump)

    if bump is BumpLevel.MAJOR:
        major += 1
    elif bump is BumpLevel.MINOR:
        minor += 1
    else:
        patch += 1

    return _result(major, minor, patch)


def calculate_next_version(current_version: str, bump: BumpLevel, accumulate: bool = False) -> CalculatedVersion:
    """Dispatch to the accumulation or the standard policy."""
    if accumulate:
        return accumulate_version(current_version, bump)
    return increment_version(current_version, bump)
