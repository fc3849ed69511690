"""
User routes for the repolens FastAPI application
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from typing import List, Optional

from repolens.dependencies import get_service
from repolens.errors import GitHubError
from repolens.models import ContributionGraph, RepositorySummary, UserSummary
from repolens.service import GitHubService

router = APIRouter(prefix="/v1/users")


@router.get("/{username}/summary", response_model=UserSummary, tags=["Users"])
async def get_user_summary(
    username: str = Path(..., description="GitHub username"),
    limit: Optional[int] = Query(None, ge=1, le=100, description="Number of top repositories"),
    service: GitHubService = Depends(get_service),
):
    """
    Get a user's profile with their most starred repositories

    - **username**: GitHub login (a leading '@' is ignored)
    - **limit**: How many repositories to include (defaults to MAX_REPOSITORIES)
    """
    try:
        return await service.get_user_summary(username, limit)
    except GitHubError:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get user summary: {str(e)}"
        )


@router.get("/{username}/repositories", response_model=List[RepositorySummary], tags=["Users"])
async def list_user_repositories(
    username: str = Path(..., description="GitHub username"),
    sort: str = Query("stars", pattern="^(stars|updated)$", description="Sort by stars or last update"),
    limit: Optional[int] = Query(None, ge=1, le=100, description="Number of repositories"),
    language: Optional[str] = Query(None, description="Only repositories with this primary language"),
    include_last_commit: bool = Query(False, description="Resolve the last commit date of each repository"),
    service: GitHubService = Depends(get_service),
):
    """
    List a user's public repositories

    - **sort**: `stars` (default) or `updated`
    - **include_last_commit**: costs one extra GitHub call per repository on a cold cache
    """
    try:
        return await service.get_user_repositories(
            username,
            sort=sort,
            limit=limit,
            language=language,
            include_last_commit=include_last_commit,
        )
    except GitHubError:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to list repositories: {str(e)}"
        )


@router.get("/{username}/contributions", response_model=ContributionGraph, tags=["Users"])
async def get_contributions(
    username: str = Path(..., description="GitHub username"),
    service: GitHubService = Depends(get_service),
):
    """Get a user's contribution calendar for the last year"""
    try:
        return await service.get_contributions(username)
    except GitHubError:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get contributions: {str(e)}"
        )
