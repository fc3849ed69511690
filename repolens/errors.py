"""
Error taxonomy for the repolens service
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds"""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    FORBIDDEN = "forbidden"
    INVALID_REQUEST = "invalid_request"
    UNAUTHENTICATED = "unauthenticated"
    UNKNOWN = "unknown"
    # Absorbed by the cache store, never surfaced to callers.
    CACHE = "cache"

    @property
    def http_status(self) -> int:
        return int(_HTTP_STATUS[self])

    @property
    def phrase(self) -> str:
        return _HTTP_STATUS[self].phrase


_HTTP_STATUS = {
    ErrorKind.VALIDATION: HTTPStatus.BAD_REQUEST,
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.RATE_LIMITED: HTTPStatus.TOO_MANY_REQUESTS,
    ErrorKind.FORBIDDEN: HTTPStatus.FORBIDDEN,
    ErrorKind.INVALID_REQUEST: HTTPStatus.UNPROCESSABLE_ENTITY,
    ErrorKind.UNAUTHENTICATED: HTTPStatus.UNAUTHORIZED,
    ErrorKind.UNKNOWN: HTTPStatus.INTERNAL_SERVER_ERROR,
    ErrorKind.CACHE: HTTPStatus.INTERNAL_SERVER_ERROR,
}


class GitHubError(Exception):
    """Failure raised by validation, the upstream client or the orchestrator.

    ``kind`` decides the HTTP status; ``context`` names the operation that
    failed (e.g. ``"getUser for alice"``) and ``status`` keeps the raw
    upstream status code, when there was one, for logging.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        context: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.context = context
        self.status = status
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return self.kind.http_status

    def __repr__(self) -> str:
        return (
            f"GitHubError(kind={self.kind.name}, message={self.message!r}, "
            f"context={self.context!r}, status={self.status!r})"
        )


def validation_error(message: str, context: Optional[str] = None) -> GitHubError:
    return GitHubError(ErrorKind.VALIDATION, message, context)
