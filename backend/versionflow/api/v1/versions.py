from fastapi import APIRouter, Depends, HTTPException, Query, status

from versionflow.api.deps import get_version_manager
from versionflow.schemas.versioning import CurrentVersionResponse, VersionFileResponse
from versionflow.services.versioning import VersionManager
from versionflow.services.versioning.types import Environment

router = APIRouter()


@router.get("/{repository_id}/versions/current", response_model=CurrentVersionResponse)
async def get_current_version(
    repository_id: str,
    environment: Environment = Query(Environment.PRODUCTION),
    manager: VersionManager = Depends(get_version_manager),
):
    """Highest active version of the repository in ``environment``."""
    version = await manager.current_version(repository_id, environment.value)
    return CurrentVersionResponse(repository_id=repository_id, environment=environment.value, version=version)


@router.get("/{repository_id}/version-file/{environment}", response_model=VersionFileResponse)
async def get_version_file(
    repository_id: str,
    environment: Environment,
    manager: VersionManager = Depends(get_version_manager),
):
    content = await manager.version_file(repository_id, environment.value)
    if content is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No version file exported for {environment.value}",
        )
    return VersionFileResponse(repository_id=repository_id, environment=environment.value, content=content)
