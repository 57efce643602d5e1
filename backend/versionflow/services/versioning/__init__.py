# Versioning Services Package
# Semantic version calculation, promotion and release import

from versionflow.services.versioning.exceptions import (
    ConfigNotFound,
    InvalidVersionFormat,
    PromotionConflict,
    PromotionSourceNotFound,
    VersionCalculationFailure,
    VersioningError,
)
from versionflow.services.versioning.manager import VersionManager
from versionflow.services.versioning.config_resolver import PolicyDefaults, RepositoryConfigResolver

__all__ = [
    "ConfigNotFound",
    "InvalidVersionFormat",
    "PolicyDefaults",
    "PromotionConflict",
    "PromotionSourceNotFound",
    "RepositoryConfigResolver",
    "VersionCalculationFailure",
    "VersionManager",
    "VersioningError",
]
