"""
Repository routes for the repolens FastAPI application
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from typing import Optional

from repolens.dependencies import get_service
from repolens.errors import GitHubError
from repolens.models import Readme, RepositorySummary, SearchResult
from repolens.service import GitHubService

router = APIRouter(prefix="/v1")


@router.get("/repositories/random", response_model=RepositorySummary, tags=["Discovery"])
async def get_random_repository(
    min_stars: Optional[int] = Query(None, ge=0, le=1_000_000, description="Minimum stars"),
    max_stars: Optional[int] = Query(None, ge=0, le=1_000_000, description="Maximum stars"),
    language: Optional[str] = Query(None, description="Primary language, aliases like 'js' accepted"),
    country: Optional[str] = Query(None, description="Owner's country, matched against profile location"),
    service: GitHubService = Depends(get_service),
):
    """
    Get a random public repository

    - **min_stars** / **max_stars**: star range, min must not exceed max
    - **language**: e.g. `python`, `js`, `C++`
    - **country**: best-effort match on the owner's self-reported location
    """
    try:
        return await service.get_random_repository(
            min_stars=min_stars,
            max_stars=max_stars,
            language=language,
            country=country,
        )
    except GitHubError:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get random repository: {str(e)}"
        )


@router.get("/repos/{owner}/{repo}", response_model=RepositorySummary, tags=["Repositories"])
async def get_repository(
    owner: str = Path(..., description="Repository owner"),
    repo: str = Path(..., description="Repository name ('.git' suffix is ignored)"),
    service: GitHubService = Depends(get_service),
):
    """Get a repository with its last commit date"""
    try:
        return await service.get_repository(owner, repo)
    except GitHubError:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get repository: {str(e)}"
        )


@router.get("/repos/{owner}/{repo}/readme", response_model=Readme, tags=["Repositories"])
async def get_repository_readme(
    owner: str = Path(..., description="Repository owner"),
    repo: str = Path(..., description="Repository name"),
    service: GitHubService = Depends(get_service),
):
    """Get a repository's README (base64 content as returned by GitHub)"""
    try:
        return await service.get_readme(owner, repo)
    except GitHubError:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to get README: {str(e)}"
        )


@router.get("/search/repositories", response_model=SearchResult, tags=["Search"])
async def search_repositories(
    q: str = Query(..., min_length=1, description="GitHub search query"),
    page: int = Query(1, ge=1, le=100, description="Page number"),
    per_page: int = Query(30, ge=1, le=100, description="Results per page"),
    sort: str = Query("stars", pattern="^(stars|forks|help-wanted-issues|updated)$", description="Sort key"),
    service: GitHubService = Depends(get_service),
):
    """
    Search repositories

    Results are cached per query and page for five minutes.
    """
    try:
        return await service.search_repositories(q, page=page, per_page=per_page, sort=sort)
    except GitHubError:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Search failed: {str(e)}"
        )
