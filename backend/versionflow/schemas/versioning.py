from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime


class VersionResponse(BaseModel):
    """A computed, promoted or imported version"""
    id: str
    repository_id: str
    version: str
    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build_metadata: Optional[str] = None
    release_type: str
    status: str
    environment: str
    branch: Optional[str] = None
    is_production: bool = False
    parent_version_id: Optional[str] = None
    ai_summary: Optional[str] = None
    released_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReleaseResponse(BaseModel):
    id: str
    version_id: Optional[str] = None
    tag_name: str
    name: Optional[str] = None
    is_prerelease: bool = False
    published_at: Optional[datetime] = None
    github_url: Optional[str] = None

    class Config:
        from_attributes = True


class WebhookResponse(BaseModel):
    """Acknowledgement returned to GitHub for every delivery"""
    event: str
    processed: bool = Field(..., description="False when the delivery was acknowledged but ignored")
    detail: Optional[str] = None
    version: Optional[VersionResponse] = None
    release: Optional[ReleaseResponse] = None


class CurrentVersionResponse(BaseModel):
    repository_id: str
    environment: str
    version: str = Field(..., description="0.0.0 when the environment has no version yet")


class VersionFileResponse(BaseModel):
    repository_id: str
    environment: str
    content: Dict[str, Any]
