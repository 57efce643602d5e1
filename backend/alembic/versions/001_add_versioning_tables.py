"""add versioning tables

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Tracker entities (read by the versioning engine)
    op.create_table(
        'projects',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('issue_prefix', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'repositories',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('project_id', sa.String(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('github_repo_id', sa.Integer(), nullable=True),
        sa.Column('versioning_strategy', sa.String(length=20), nullable=False, server_default='SINGLE_BRANCH'),
        sa.Column('development_branch', sa.String(), nullable=True),
        sa.Column('branch_environment_map', sa.JSON(), nullable=True),
        sa.Column('issue_type_mapping', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_repositories_project_id', 'repositories', ['project_id'], unique=False)
    op.create_index('ix_repositories_github_repo_id', 'repositories', ['github_repo_id'], unique=True)

    op.create_table(
        'issues',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('project_id', sa.String(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('issue_key', sa.String(length=50), nullable=True),
        sa.Column('type', sa.String(length=30), nullable=False, server_default='TASK'),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('project_id', 'issue_key', name='uq_issues_project_key'),
    )
    op.create_index('ix_issues_project_id', 'issues', ['project_id'], unique=False)

    op.create_table(
        'pull_requests',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('repository_id', sa.String(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('github_pr_id', sa.Integer(), nullable=False),
        sa.Column('issue_id', sa.String(), sa.ForeignKey('issues.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('base_branch', sa.String(), nullable=True),
        sa.Column('head_branch', sa.String(), nullable=True),
        sa.Column('state', sa.String(length=20), nullable=False, server_default='OPEN'),
        sa.Column('merged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('repository_id', 'github_pr_id', name='uq_pull_requests_repository_number'),
    )

    op.create_table(
        'commits',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('repository_id', sa.String(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('pull_request_id', sa.String(), sa.ForeignKey('pull_requests.id', ondelete='SET NULL'), nullable=True),
        sa.Column('sha', sa.String(length=40), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('author_name', sa.String(), nullable=True),
        sa.Column('commit_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_commits_repository_date', 'commits', ['repository_id', 'commit_date'], unique=False)

    # Versioning entities
    op.create_table(
        'versions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('repository_id', sa.String(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('version', sa.String(length=100), nullable=False),
        sa.Column('major', sa.Integer(), nullable=False),
        sa.Column('minor', sa.Integer(), nullable=False),
        sa.Column('patch', sa.Integer(), nullable=False),
        sa.Column('prerelease', sa.String(length=100), nullable=True),
        sa.Column('build_metadata', sa.String(length=100), nullable=True),
        sa.Column('release_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('environment', sa.String(length=20), nullable=False, server_default='development'),
        sa.Column('branch', sa.String(), nullable=True),
        sa.Column('is_production', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('parent_version_id', sa.String(), sa.ForeignKey('versions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('ai_changelog', sa.Text(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('repository_id', 'environment', 'version', name='uq_versions_repository_env_version'),
    )
    op.create_index('idx_versions_repository_environment', 'versions', ['repository_id', 'environment'], unique=False)

    op.create_table(
        'version_issues',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('version_id', sa.String(), sa.ForeignKey('versions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('issue_id', sa.String(), sa.ForeignKey('issues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ai_title', sa.String(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('version_id', 'issue_id', name='uq_version_issues_version_issue'),
    )

    op.create_table(
        'releases',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('repository_id', sa.String(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('version_id', sa.String(), sa.ForeignKey('versions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('github_release_id', sa.String(), nullable=True),
        sa.Column('tag_name', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_draft', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_prerelease', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('github_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('repository_id', 'tag_name', name='uq_releases_repository_tag'),
    )

    op.create_table(
        'version_files',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('repository_id', sa.String(), sa.ForeignKey('repositories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('environment', sa.String(length=20), nullable=False),
        sa.Column('version_id', sa.String(), sa.ForeignKey('versions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.JSON(), nullable=False),
        sa.Column('deployed_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('repository_id', 'environment', name='uq_version_files_repository_env'),
    )


def downgrade() -> None:
    op.drop_table('version_files')
    op.drop_table('releases')
    op.drop_table('version_issues')
    op.drop_index('idx_versions_repository_environment', table_name='versions')
    op.drop_table('versions')
    op.drop_index('idx_commits_repository_date', table_name='commits')
    op.drop_table('commits')
    op.drop_table('pull_requests')
    op.drop_index('ix_issues_project_id', table_name='issues')
    op.drop_table('issues')
    op.drop_index('ix_repositories_github_repo_id', table_name='repositories')
    op.drop_index('ix_repositories_project_id', table_name='repositories')
    op.drop_table('repositories')
    op.drop_table('projects')
