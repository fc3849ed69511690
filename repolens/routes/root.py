"""
Root and health routes for the repolens FastAPI application
"""

from fastapi import APIRouter, Request

from repolens.config import Config

router = APIRouter()


@router.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Welcome to repolens",
        "upstream": "GitHub REST API",
        "version": Config.VERSION,
        "docs": Config.DOCS_URL,
        "endpoints": {
            "summary": "/v1/users/{username}/summary?limit=N",
            "repositories": "/v1/users/{username}/repositories",
            "contributions": "/v1/users/{username}/contributions",
            "repository": "/v1/repos/{owner}/{repo}",
            "readme": "/v1/repos/{owner}/{repo}/readme",
            "random": "/v1/repositories/random?min_stars=&max_stars=&language=&country=",
            "search": "/v1/search/repositories?q=query",
            "metrics": "/metrics",
        }
    }


@router.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint"""
    cache = request.app.state.service.cache
    return {
        "status": "healthy",
        "upstream": request.app.state.settings.GITHUB_API_URL,
        "cache_backend": type(cache.backend).__name__,
        "message": "API is running"
    }
