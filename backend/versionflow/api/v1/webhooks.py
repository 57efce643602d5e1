import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Header, HTTPException, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from versionflow.api.deps import get_db, get_repository_store, get_version_manager
from versionflow.schemas.github import PullRequestEvent, PushEvent, ReleaseEvent
from versionflow.schemas.versioning import ReleaseResponse, VersionResponse, WebhookResponse
from versionflow.services.versioning import VersionManager
from versionflow.services.versioning.sql_store import SqlRepositoryStore
from versionflow.services.versioning.types import CommitInfo, GitHubReleaseData, MergeInfo, RepositorySettings

router = APIRouter()
logger = logging.getLogger("versionflow.webhooks")

_EVENT_MODELS = {
    "push": PushEvent,
    "pull_request": PullRequestEvent,
    "release": ReleaseEvent,
}


def _parse(model: type[BaseModel], payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=jsonable_encoder(exc.errors(include_url=False)),
        )


def _ignored(event: str, detail: str) -> WebhookResponse:
    return WebhookResponse(event=event, processed=False, detail=detail)


async def _handle_push(event: PushEvent, repository: RepositorySettings, manager: VersionManager) -> WebhookResponse:
    branch = event.branch
    if branch is None or not await manager.tracks_branch(repository.id, branch):
        return _ignored("push", f"Ref {event.ref} does not trigger versioning")

    commits = [
        CommitInfo(sha=c.id, message=c.message, author_name=c.author.name if c.author else None)
        for c in event.commits
    ]
    version = await manager.handle_branch_merge(repository.id, branch, commits)
    if version is None:
        return _ignored("push", "No tracked issues referenced")
    return WebhookResponse(event="push", processed=True, version=VersionResponse.model_validate(version))


async def _handle_pull_request(
    event: PullRequestEvent, repository: RepositorySettings, manager: VersionManager
) -> WebhookResponse:
    pull_request = event.pull_request
    if event.action != "closed" or not pull_request.merged:
        return _ignored("pull_request", f"Action '{event.action}' does not trigger versioning")

    merge = MergeInfo(
        base_branch=pull_request.base.ref,
        head_branch=pull_request.head.ref,
        merged_at=pull_request.merged_at,
        merged_by=pull_request.merged_by.login if pull_request.merged_by else None,
    )
    version = await manager.handle_pull_request_merge(repository.id, pull_request.number, merge)
    if version is None:
        return _ignored("pull_request", "Pull request produced no version")
    return WebhookResponse(event="pull_request", processed=True, version=VersionResponse.model_validate(version))


async def _handle_release(event: ReleaseEvent, repository: RepositorySettings, manager: VersionManager) -> WebhookResponse:
    release = event.release
    if event.action != "published" or release.draft:
        return _ignored("release", f"Action '{event.action}' does not trigger versioning")

    result = await manager.handle_github_release(
        repository.id,
        GitHubReleaseData(
            github_release_id=str(release.id),
            tag_name=release.tag_name,
            name=release.name,
            description=release.body,
            is_draft=release.draft,
            is_prerelease=release.prerelease,
            published_at=release.published_at,
            github_url=release.html_url,
        ),
    )
    if result is None:
        return _ignored("release", f"Tag {release.tag_name} is not a semantic version")
    return WebhookResponse(
        event="release",
        processed=True,
        version=VersionResponse.model_validate(result.version),
        release=ReleaseResponse.model_validate(result.release),
    )


_HANDLERS = {
    "push": _handle_push,
    "pull_request": _handle_pull_request,
    "release": _handle_release,
}


@router.post("/github", response_model=WebhookResponse)
async def github_webhook(
    payload: Dict[str, Any] = Body(...),
    x_github_event: str = Header(...),
    db: AsyncSession = Depends(get_db),
    repositories: SqlRepositoryStore = Depends(get_repository_store),
    manager: VersionManager = Depends(get_version_manager),
):
    """
    Receive a GitHub webhook delivery.

    Deliveries are acknowledged even when ignored so GitHub does not retry
    them; only storage failures surface as errors (and are redelivered).
    """
    event_name = x_github_event
    if event_name == "ping":
        return WebhookResponse(event="ping", processed=True, detail="pong")
    if event_name not in _HANDLERS:
        return _ignored(event_name, "Event type is not handled")

    event = _parse(_EVENT_MODELS[event_name], payload)
    repository = await repositories.find_by_github_id(event.repository.id)
    if repository is None:
        logger.info(f"Ignoring {event_name} for untracked GitHub repository {event.repository.id}")
        return _ignored(event_name, "Repository is not tracked")

    try:
        response = await _HANDLERS[event_name](event, repository, manager)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"Storage failure while handling {event_name} for {repository.id}: {exc}")
        raise

    logger.info(
        f"Handled {event_name} for repository {repository.id}: processed={response.processed}"
    )
    return response
