from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class GitHubAccount(BaseModel):
    login: Optional[str] = None


class GitHubRepository(BaseModel):
    """Repository block present on every webhook payload"""
    id: int
    full_name: Optional[str] = None


class GitHubCommitAuthor(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


class GitHubCommit(BaseModel):
    id: str = Field(..., description="Commit SHA")
    message: str = ""
    author: Optional[GitHubCommitAuthor] = None


class PushEvent(BaseModel):
    """Payload of the `push` event"""
    ref: str = Field(..., description="Full ref, e.g. refs/heads/main")
    after: Optional[str] = None
    repository: GitHubRepository
    commits: List[GitHubCommit] = Field(default_factory=list)

    @property
    def branch(self) -> Optional[str]:
        prefix = "refs/heads/"
        if self.ref.startswith(prefix):
            return self.ref[len(prefix):]
        return None


class GitHubBranchRef(BaseModel):
    ref: str


class GitHubPullRequest(BaseModel):
    number: int
    merged: bool = False
    merged_at: Optional[datetime] = None
    merged_by: Optional[GitHubAccount] = None
    base: GitHubBranchRef
    head: GitHubBranchRef


class PullRequestEvent(BaseModel):
    """Payload of the `pull_request` event"""
    action: str
    number: Optional[int] = None
    pull_request: GitHubPullRequest
    repository: GitHubRepository


class GitHubRelease(BaseModel):
    id: int
    tag_name: str
    name: Optional[str] = None
    body: Optional[str] = None
    draft: bool = False
    prerelease: bool = False
    published_at: Optional[datetime] = None
    html_url: Optional[str] = None


class ReleaseEvent(BaseModel):
    """Payload of the `release` event"""
    action: str
    release: GitHubRelease
    repository: GitHubRepository
