"""
Version records computed, promoted or imported by the versioning engine.

Uniqueness constraints double as the concurrency control: repeated webhook
deliveries hit ON CONFLICT clauses instead of creating duplicate rows.
"""

import uuid

from sqlalchemy import (
    Column, String, Integer, DateTime, Text, Boolean, JSON, ForeignKey, Index, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from versionflow.db.base_class import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Version(Base):
    __tablename__ = "versions"  # type: ignore[assignment]
    __table_args__ = (
        # A promoted production row shares its version string with its
        # development parent, so the environment is part of the key.
        UniqueConstraint("repository_id", "environment", "version", name="uq_versions_repository_env_version"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    repository_id = Column(String, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    version = Column(String(100), nullable=False)
    major = Column(Integer, nullable=False)
    minor = Column(Integer, nullable=False)
    patch = Column(Integer, nullable=False)
    prerelease = Column(String(100), nullable=True)
    build_metadata = Column(String(100), nullable=True)
    release_type = Column(String(20), nullable=False)  # MAJOR, MINOR, PATCH, PRERELEASE
    status = Column(String(20), nullable=False, default="PENDING")  # PENDING, READY, RELEASED, FAILED, CANCELLED
    environment = Column(String(20), nullable=False, default="development")
    branch = Column(String, nullable=True)
    is_production = Column(Boolean, nullable=False, default=False)
    parent_version_id = Column(String, ForeignKey("versions.id", ondelete="SET NULL"), nullable=True)

    # Filled by the changelog generator after the row is committed
    ai_changelog = Column(Text, nullable=True)
    ai_summary = Column(Text, nullable=True)

    released_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    issues = relationship("VersionIssue", back_populates="version", cascade="all, delete-orphan")


Index("idx_versions_repository_environment", Version.repository_id, Version.environment)


class VersionIssue(Base):
    __tablename__ = "version_issues"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("version_id", "issue_id", name="uq_version_issues_version_issue"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    version_id = Column(String, ForeignKey("versions.id", ondelete="CASCADE"), nullable=False)
    issue_id = Column(String, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False)
    ai_title = Column(String, nullable=True)
    ai_summary = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    version = relationship("Version", back_populates="issues")


class Release(Base):
    __tablename__ = "releases"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("repository_id", "tag_name", name="uq_releases_repository_tag"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    repository_id = Column(String, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    version_id = Column(String, ForeignKey("versions.id", ondelete="SET NULL"), nullable=True)
    github_release_id = Column(String, nullable=True)
    tag_name = Column(String, nullable=False)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    is_draft = Column(Boolean, nullable=False, default=False)
    is_prerelease = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    github_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class VersionFile(Base):
    """
    Exported version.json content, one row per (repository, environment).
    """
    __tablename__ = "version_files"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("repository_id", "environment", name="uq_version_files_repository_env"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    repository_id = Column(String, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    environment = Column(String(20), nullable=False)
    version_id = Column(String, ForeignKey("versions.id", ondelete="CASCADE"), nullable=False)
    content = Column(JSON, nullable=False)
    deployed_at = Column(DateTime(timezone=True), server_default=func.now())
