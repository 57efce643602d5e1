"""
Issue-tracker entities read by the versioning engine.

These tables are owned by the issue tracking side of the product; the
versioning engine only reads them (repository policy, issue types, latest
commit, pull request links).
"""

import uuid

from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, ForeignKey, Index, UniqueConstraint, func
from sqlalchemy.orm import relationship

from versionflow.db.base_class import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Project(Base):
    __tablename__ = "projects"  # type: ignore[assignment]

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    issue_prefix = Column(String(20), nullable=True)  # e.g. PROJ -> PROJ-123
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    repositories = relationship("Repository", back_populates="project")


class Repository(Base):
    __tablename__ = "repositories"  # type: ignore[assignment]

    id = Column(String, primary_key=True, default=_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String, nullable=False)  # owner/name
    github_repo_id = Column(Integer, nullable=True, unique=True, index=True)

    # Versioning policy overrides (NULL => defaults from settings)
    versioning_strategy = Column(String(20), nullable=False, default="SINGLE_BRANCH")  # SINGLE_BRANCH, MULTI_BRANCH
    development_branch = Column(String, nullable=True)
    branch_environment_map = Column(JSON, nullable=True)
    issue_type_mapping = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    project = relationship("Project", back_populates="repositories")


class Issue(Base):
    __tablename__ = "issues"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("project_id", "issue_key", name="uq_issues_project_key"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    issue_key = Column(String(50), nullable=True)
    type = Column(String(30), nullable=False, default="TASK")  # BUG, TASK, STORY, EPIC, ...
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Commit(Base):
    __tablename__ = "commits"  # type: ignore[assignment]

    id = Column(String, primary_key=True, default=_uuid)
    repository_id = Column(String, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    pull_request_id = Column(String, ForeignKey("pull_requests.id", ondelete="SET NULL"), nullable=True)
    sha = Column(String(40), nullable=False)
    message = Column(Text, nullable=False)
    author_name = Column(String, nullable=True)
    commit_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


Index("idx_commits_repository_date", Commit.repository_id, Commit.commit_date)


class PullRequest(Base):
    __tablename__ = "pull_requests"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("repository_id", "github_pr_id", name="uq_pull_requests_repository_number"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    repository_id = Column(String, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    github_pr_id = Column(Integer, nullable=False)
    issue_id = Column(String, ForeignKey("issues.id", ondelete="SET NULL"), nullable=True)
    title = Column(String, nullable=True)
    base_branch = Column(String, nullable=True)
    head_branch = Column(String, nullable=True)
    state = Column(String(20), nullable=False, default="OPEN")  # DRAFT, OPEN, MERGED, CLOSED
    merged_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    commits = relationship("Commit", lazy="selectin")
