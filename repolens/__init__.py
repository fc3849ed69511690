"""
repolens FastAPI application package
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from repolens.cache import create_cache_store
from repolens.config import Config, Settings
from repolens.errors import GitHubError
from repolens.github_client import GitHubClient
from repolens.logging import configure_logging, get_logger
from repolens.metrics import create_registry
from repolens.models import ErrorResponse
from repolens.routes.admin import router as admin_router
from repolens.routes.metrics import router as metrics_router
from repolens.routes.repositories import router as repositories_router
from repolens.routes.root import router as root_router
from repolens.routes.users import router as users_router
from repolens.service import GitHubService

logger = get_logger(__name__)


def error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    """Render the JSON error body shared by every failure"""
    status_code = int(status_code)
    try:
        error = HTTPStatus(status_code).phrase
    except ValueError:
        error = "Error"
    body = ErrorResponse(
        status_code=status_code,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
        error=error,
        message=message,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def build_service(settings: Settings) -> GitHubService:
    """Wire client, cache store and orchestrator from one settings object"""
    return GitHubService(
        client=GitHubClient(settings),
        cache=create_cache_store(settings),
        settings=settings,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    client = getattr(app.state.service, "client", None)
    if isinstance(client, GitHubClient):
        client.close()


def create_app(settings: Optional[Settings] = None, service: Optional[GitHubService] = None) -> FastAPI:
    """Create and configure FastAPI application"""

    if service is None:
        settings = settings or Settings()
        service = build_service(settings)
    else:
        settings = settings or service.settings

    configure_logging(settings.LOG_LEVEL)

    # Initialize FastAPI app
    app = FastAPI(
        title=Config.TITLE,
        description=Config.DESCRIPTION,
        version=Config.VERSION,
        docs_url=Config.DOCS_URL,
        redoc_url=Config.REDOC_URL,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service
    app.state.metrics_registry = create_registry(Config.VERSION)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.ALLOW_ORIGINS,
        allow_credentials=Config.ALLOW_CREDENTIALS,
        allow_methods=Config.ALLOW_METHODS,
        allow_headers=Config.ALLOW_HEADERS,
    )

    # Include routers
    app.include_router(root_router)
    app.include_router(users_router)
    app.include_router(repositories_router)
    app.include_router(admin_router)
    app.include_router(metrics_router)

    # Exception handlers
    @app.exception_handler(GitHubError)
    async def github_error_handler(request: Request, exc: GitHubError):
        """Render classified failures with the status of their kind"""
        log = logger.warning if exc.http_status < 500 else logger.error
        log(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.message,
            extra={"kind": exc.kind.value, "context": exc.context, "status": exc.status},
        )
        return error_response(request, exc.http_status, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Invalid path or query parameters are a 400, like any other bad input"""
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'request'}: {err.get('msg')}"
            for err in exc.errors()
        )
        return error_response(request, HTTPStatus.BAD_REQUEST, details or "Invalid request")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Custom HTTP exception handler"""
        return error_response(request, exc.status_code, str(exc.detail))

    return app
