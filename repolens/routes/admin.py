"""
Cache administration routes for the repolens FastAPI application
"""

from fastapi import APIRouter, Depends, Path

from repolens.dependencies import get_service
from repolens.models import CacheOperationResponse
from repolens.service import GitHubService

router = APIRouter(prefix="/v1/cache", tags=["Cache"])


@router.post("/users/{username}/warm", response_model=CacheOperationResponse)
async def warm_user_cache(
    username: str = Path(..., description="GitHub username"),
    service: GitHubService = Depends(get_service),
):
    """Pre-populate the summary and repository list entries of a user"""
    return await service.warm_user_cache(username)


@router.delete("/users/{username}", response_model=CacheOperationResponse)
async def invalidate_user_cache(
    username: str = Path(..., description="GitHub username"),
    service: GitHubService = Depends(get_service),
):
    """Drop every cached entry derived from a user"""
    return await service.invalidate_user_cache(username)
