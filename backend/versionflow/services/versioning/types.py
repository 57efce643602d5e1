"""
Value types shared by the versioning engine and its storage ports.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class VersioningStrategy(str, Enum):
    SINGLE_BRANCH = "SINGLE_BRANCH"
    MULTI_BRANCH = "MULTI_BRANCH"


class BumpLevel(str, Enum):
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    PATCH = "PATCH"


class ReleaseType(str, Enum):
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    PATCH = "PATCH"
    PRERELEASE = "PRERELEASE"


class VersionStatus(str, Enum):
    PENDING = "PENDING"
    READY = "READY"
    RELEASED = "RELEASED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Environment(str, Enum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"
    STAGING = "staging"
    SANDBOX = "sandbox"


# Versions in these states never count as "current"
INACTIVE_STATUSES = (VersionStatus.FAILED.value, VersionStatus.CANCELLED.value)

# Environments for which pull request merges produce versions
VERSIONED_ENVIRONMENTS = (
    Environment.DEVELOPMENT.value,
    Environment.STAGING.value,
    Environment.PRODUCTION.value,
)

BASELINE_VERSION = "0.0.0"


@dataclass
class RepositorySettings:
    """Stored repository row; ``None`` policy fields fall back to defaults."""
    id: str
    project_id: str
    issue_prefix: Optional[str] = None
    versioning_strategy: Optional[str] = None
    development_branch: Optional[str] = None
    branch_environment_map: Optional[Dict[str, str]] = None
    issue_type_mapping: Optional[Dict[str, str]] = None


@dataclass
class RepositoryConfig:
    """Fully resolved versioning policy for one repository."""
    repository_id: str
    project_id: str
    issue_prefix: Optional[str]
    versioning_strategy: VersioningStrategy
    development_branch: str
    branch_environment_map: Dict[str, str]
    issue_type_mapping: Dict[str, str]

    def to_dict(self) -> dict:
        data = asdict(self)
        data["versioning_strategy"] = self.versioning_strategy.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RepositoryConfig":
        return cls(
            repository_id=data["repository_id"],
            project_id=data["project_id"],
            issue_prefix=data.get("issue_prefix"),
            versioning_strategy=VersioningStrategy(data["versioning_strategy"]),
            development_branch=data["development_branch"],
            branch_environment_map=dict(data["branch_environment_map"]),
            issue_type_mapping=dict(data["issue_type_mapping"]),
        )


@dataclass
class IssueRecord:
    id: str
    type: str
    issue_key: Optional[str] = None
    title: str = ""
    description: Optional[str] = None


@dataclass
class CommitInfo:
    sha: str
    message: str
    author_name: Optional[str] = None


@dataclass
class MergeInfo:
    base_branch: str
    head_branch: str
    merged_at: Optional[datetime] = None
    merged_by: Optional[str] = None


@dataclass
class PullRequestRecord:
    id: str
    number: int
    issue_id: Optional[str] = None
    commits: List[CommitInfo] = field(default_factory=list)


@dataclass
class GitHubReleaseData:
    github_release_id: str
    tag_name: str
    name: Optional[str] = None
    description: Optional[str] = None
    is_draft: bool = False
    is_prerelease: bool = False
    published_at: Optional[datetime] = None
    github_url: Optional[str] = None


@dataclass
class VersionCalculation:
    """Result of computing a new version, before it is persisted."""
    version: str
    major: int
    minor: int
    patch: int
    release_type: ReleaseType
    issues: List[str]
    environment: str
    branch: str


@dataclass
class VersionRecord:
    id: str
    repository_id: str
    version: str
    major: int
    minor: int
    patch: int
    release_type: str
    status: str
    environment: str
    branch: Optional[str] = None
    is_production: bool = False
    parent_version_id: Optional[str] = None
    prerelease: Optional[str] = None
    build_metadata: Optional[str] = None
    ai_changelog: Optional[str] = None
    ai_summary: Optional[str] = None
    released_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class VersionIssueRecord:
    version_id: str
    issue_id: str
    ai_title: Optional[str] = None
    ai_summary: Optional[str] = None


@dataclass
class ReleaseRecord:
    id: str
    repository_id: str
    version_id: Optional[str]
    tag_name: str
    github_release_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    is_draft: bool = False
    is_prerelease: bool = False
    published_at: Optional[datetime] = None
    github_url: Optional[str] = None


@dataclass
class ReleaseImportResult:
    version: VersionRecord
    release: ReleaseRecord
