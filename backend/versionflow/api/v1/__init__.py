from fastapi import APIRouter

from versionflow.api.v1 import versions, webhooks

api_router = APIRouter()
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
api_router.include_router(versions.router, prefix="/repositories", tags=["versions"])
