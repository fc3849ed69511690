"""GitHub REST client used by the repolens service."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from starlette.concurrency import run_in_threadpool
from urllib3.util.retry import Retry

from repolens.config import Settings
from repolens.errors import ErrorKind, GitHubError
from repolens.logging import get_logger

logger = get_logger(__name__)

MAX_PER_PAGE = 100
SEARCH_PER_PAGE = 30
# The pagination helper never asks for more than this many pages.
MAX_LIST_PAGES = 50
COMMIT_BATCH_SIZE = 10
COMMIT_BATCH_DELAY = 0.1

RATE_LIMIT_HEADERS = (
    "x-ratelimit-limit",
    "x-ratelimit-remaining",
    "x-ratelimit-reset",
    "x-ratelimit-resource",
    "retry-after",
)

CONTRIBUTIONS_QUERY = """
query($login: String!) {
  user(login: $login) {
    contributionsCollection {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
        months {
          name
          year
          firstDay
          totalWeeks
        }
      }
    }
  }
}
"""


def create_session() -> requests.Session:
    """Session with connection pooling. Only connection setup is retried."""
    session = requests.Session()
    retry = Retry(
        total=2,
        connect=2,
        read=0,
        status=0,
        backoff_factor=0.2,
        allowed_methods=("GET", "POST"),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(pool_connections=50, pool_maxsize=50, max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _rate_limit_info(headers: Mapping[str, str]) -> Dict[str, str]:
    lowered = {k.lower(): v for k, v in (headers or {}).items()}
    return {h: lowered[h] for h in RATE_LIMIT_HEADERS if h in lowered}


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or ""
    if isinstance(body, dict):
        return str(body.get("message") or "")
    return ""


def classify_status(status: int, headers: Mapping[str, str], message: str) -> ErrorKind:
    """Map an upstream failure to an ``ErrorKind``."""
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 401:
        return ErrorKind.UNAUTHENTICATED
    if status == 422:
        return ErrorKind.INVALID_REQUEST
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status == 403:
        remaining = _rate_limit_info(headers).get("x-ratelimit-remaining")
        text = (message or "").lower()
        if remaining == "0" or "rate limit" in text or "abuse" in text:
            return ErrorKind.RATE_LIMITED
        return ErrorKind.FORBIDDEN
    return ErrorKind.UNKNOWN


_KIND_MESSAGES = {
    ErrorKind.RATE_LIMITED: "GitHub API rate limit exceeded",
    ErrorKind.FORBIDDEN: "Access to the GitHub resource is forbidden",
    ErrorKind.INVALID_REQUEST: "Invalid request to GitHub API",
    ErrorKind.UNAUTHENTICATED: "GitHub API credentials were rejected",
}


class GitHubClient:
    """
    Thin wrapper over the GitHub REST API.

    Every call runs the blocking ``requests`` session in the starlette
    threadpool and either returns the decoded JSON payload or raises a
    classified ``GitHubError``. Nothing is retried at this layer.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.base_url = settings.GITHUB_API_URL.rstrip("/")
        self.timeout = settings.request_timeout_seconds
        self.session = session or create_session()
        self.headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {settings.GITHUB_TOKEN}",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repolens",
        }

    def close(self) -> None:
        self.session.close()

    async def _request(
        self,
        method: str,
        path: str,
        context: str,
        resource: str = "Resource",
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await run_in_threadpool(
                self.session.request,
                method,
                url,
                params=params,
                json=json,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.error("GitHub API timeout in %s: %s", context, e, extra={"context": context})
            raise GitHubError(ErrorKind.UNKNOWN, "GitHub API request timed out", context) from e
        except requests.RequestException as e:
            logger.error("GitHub API network error in %s: %s", context, e, extra={"context": context})
            raise GitHubError(ErrorKind.UNKNOWN, f"GitHub API request failed: {e}", context) from e

        if response.status_code >= 400:
            self._raise_for_response(response, context, resource)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _raise_for_response(self, response: requests.Response, context: str, resource: str) -> None:
        status = response.status_code
        message = _error_message(response)
        rate_limit = _rate_limit_info(response.headers)
        kind = classify_status(status, response.headers, message)

        logger.error(
            "GitHub API error in %s: %s %s",
            context,
            status,
            message or "<no message>",
            extra={"context": context, "status": status, "kind": kind.value, "rate_limit": rate_limit},
        )

        if kind is ErrorKind.NOT_FOUND:
            text = f"{resource} not found"
        elif kind is ErrorKind.UNKNOWN:
            text = message or f"GitHub API error (status {status})"
        else:
            text = _KIND_MESSAGES[kind]
        raise GitHubError(kind, text, context=context, status=status)

    async def get_user(self, username: str) -> Dict[str, Any]:
        return await self._request(
            "GET", f"/users/{username}", f"getUser for {username}", resource=f"User '{username}'"
        )

    async def list_user_repositories(
        self,
        username: str,
        page: int = 1,
        per_page: int = MAX_PER_PAGE,
        sort: str = "updated",
    ) -> List[Dict[str, Any]]:
        params = {"page": page, "per_page": min(max(per_page, 1), MAX_PER_PAGE), "sort": sort}
        data = await self._request(
            "GET",
            f"/users/{username}/repos",
            f"getUserRepositories for {username}",
            resource=f"User '{username}'",
            params=params,
        )
        return data or []

    async def list_all_user_repositories(
        self,
        username: str,
        per_page: int = MAX_PER_PAGE,
        sort: str = "updated",
        max_pages: int = MAX_LIST_PAGES,
    ) -> List[Dict[str, Any]]:
        """Walk the paged repository list until a short or empty page."""
        per_page = min(max(per_page, 1), MAX_PER_PAGE)
        repos: List[Dict[str, Any]] = []
        for page in range(1, max_pages + 1):
            batch = await self.list_user_repositories(username, page=page, per_page=per_page, sort=sort)
            repos.extend(batch)
            if len(batch) < per_page:
                break
        else:
            logger.warning("Stopped listing repositories for %s after %d pages", username, max_pages)
        return repos

    async def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._request(
            "GET",
            f"/repos/{owner}/{repo}",
            f"getRepository for {owner}/{repo}",
            resource=f"Repository '{owner}/{repo}'",
        )

    async def get_readme(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._request(
            "GET",
            f"/repos/{owner}/{repo}/readme",
            f"getRepositoryReadme for {owner}/{repo}",
            resource="README",
        )

    async def search_repositories(
        self,
        query: str,
        page: int = 1,
        per_page: int = SEARCH_PER_PAGE,
        sort: str = "stars",
        order: str = "desc",
    ) -> Dict[str, Any]:
        params = {
            "q": query,
            "page": page,
            "per_page": min(max(per_page, 1), MAX_PER_PAGE),
            "sort": sort,
            "order": order,
        }
        data = await self._request(
            "GET", "/search/repositories", f"searchRepositories with query: {query}", params=params
        )
        return data or {"total_count": 0, "incomplete_results": False, "items": []}

    async def list_commits(self, owner: str, repo: str, per_page: int = 1) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/commits",
            f"getRepositoryCommits for {owner}/{repo}",
            resource=f"Repository '{owner}/{repo}'",
            params={"per_page": min(max(per_page, 1), MAX_PER_PAGE)},
        )
        return data or []

    async def list_languages(self, owner: str, repo: str) -> Dict[str, int]:
        data = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/languages",
            f"getRepositoryLanguages for {owner}/{repo}",
            resource=f"Repository '{owner}/{repo}'",
        )
        return data or {}

    async def get_contribution_calendar(self, username: str) -> Dict[str, Any]:
        context = f"getContributions for {username}"
        data = await self._request(
            "POST",
            "/graphql",
            context,
            json={"query": CONTRIBUTIONS_QUERY, "variables": {"login": username}},
        ) or {}

        errors = data.get("errors") or []
        user = (data.get("data") or {}).get("user")
        if user is None:
            if any(e.get("type") == "NOT_FOUND" for e in errors) or not errors:
                raise GitHubError(ErrorKind.NOT_FOUND, f"User '{username}' not found", context)
            message = "; ".join(str(e.get("message")) for e in errors)
            logger.error("GitHub GraphQL error in %s: %s", context, message, extra={"context": context})
            raise GitHubError(ErrorKind.UNKNOWN, message or "GitHub GraphQL error", context)
        return (user.get("contributionsCollection") or {}).get("contributionCalendar") or {}

    async def latest_commit(self, owner: str, repo: str) -> Optional[Dict[str, Any]]:
        """Most recent commit on the default branch, or ``None`` for an empty repository."""
        commits = await self.list_commits(owner, repo, per_page=1)
        return commits[0] if commits else None

    async def get_latest_commits(
        self,
        pairs: Iterable[Tuple[str, str]],
        batch_size: int = COMMIT_BATCH_SIZE,
        delay: float = COMMIT_BATCH_DELAY,
    ) -> Dict[Tuple[str, str], Optional[Dict[str, Any]]]:
        """Latest commit per ``(owner, repo)``; failed lookups map to ``None``."""
        pairs = list(dict.fromkeys(pairs))
        results: Dict[Tuple[str, str], Optional[Dict[str, Any]]] = {}
        for start in range(0, len(pairs), batch_size):
            if start:
                await asyncio.sleep(delay)
            batch = pairs[start:start + batch_size]
            settled = await asyncio.gather(
                *(self.latest_commit(owner, repo) for owner, repo in batch),
                return_exceptions=True,
            )
            for pair, outcome in zip(batch, settled):
                if isinstance(outcome, BaseException):
                    logger.warning("Latest commit lookup failed for %s/%s: %s", pair[0], pair[1], outcome)
                    results[pair] = None
                else:
                    results[pair] = outcome
        return results
