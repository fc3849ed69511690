"""Orchestration of validation, caching, upstream calls and transformation.

Every read follows the same path: validate the input, look the key up in the
cache, and only on a miss call GitHub, transform and store the result.
Validation failures never reach GitHub; cache failures never reach callers.
"""

from __future__ import annotations

import asyncio
import math
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from repolens import cache_keys, transform
from repolens.cache import CacheStore
from repolens.config import Settings
from repolens.errors import ErrorKind, GitHubError
from repolens.github_client import MAX_PER_PAGE, SEARCH_PER_PAGE, GitHubClient
from repolens.locations import location_matches_country
from repolens.logging import get_logger
from repolens.models import (
    CacheOperationResponse,
    ContributionGraph,
    Readme,
    RepositorySummary,
    SearchResult,
    UserSummary,
)
from repolens.validators import (
    normalize_language,
    validate_country,
    validate_owner,
    validate_page,
    validate_repository_name,
    validate_search_query,
    validate_star_range,
    validate_username,
)

logger = get_logger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

SEARCH_CACHE_TTL_MS = 5 * 60 * 1000
# GitHub search serves at most the first 1000 results of any query.
SEARCH_RESULT_CAP = 1000
# Largest page number reachable at the smallest useful page size of 10.
SEARCH_PAGE_CAP = 100
RANDOM_MAX_ATTEMPTS = 10
# Queries for very popular repositories have few results; stay on early pages.
HIGH_STAR_THRESHOLD = 1000
HIGH_STAR_MAX_PAGES = 10
LOCATION_BATCH_SIZE = 5
REPOSITORY_SORTS = ("stars", "updated")


@dataclass(frozen=True)
class Enrichment(Generic[T]):
    """Outcome of a best-effort enrichment step"""
    value: Optional[T]
    succeeded: bool


async def enrich(step: str, awaitable: Awaitable[T]) -> Enrichment[T]:
    """Await ``awaitable``; any failure yields an unsuccessful ``Enrichment``."""
    try:
        return Enrichment(await awaitable, True)
    except Exception as e:
        logger.warning("Enrichment step %s failed: %s", step, e)
        return Enrichment(None, False)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def reachable_pages(total_count: int, per_page: int = SEARCH_PER_PAGE) -> int:
    """Number of search pages GitHub will actually serve for ``total_count`` hits."""
    return max(1, math.ceil(min(total_count, SEARCH_RESULT_CAP) / per_page))


def build_random_search_query(
    min_stars: Optional[int] = None,
    max_stars: Optional[int] = None,
    language: Optional[str] = None,
) -> str:
    """Search query for random discovery, e.g. ``is:public stars:10..50 language:Go``."""
    parts = ["is:public"]
    if min_stars is not None and max_stars is not None:
        parts.append(f"stars:{min_stars}..{max_stars}")
    elif min_stars is not None:
        parts.append(f"stars:>={min_stars}")
    elif max_stars is not None:
        parts.append(f"stars:<={max_stars}")
    else:
        parts.append("stars:>1")

    if language:
        parts.append(f"language:{language}" if language.isalnum() else f'language:"{language}"')
    return " ".join(parts)


class GitHubService:
    """
    Cache-first orchestrator in front of the GitHub API.

    Holds no per-request state; the cache store is the only thing shared
    between concurrent requests.
    """

    def __init__(
        self,
        client: GitHubClient,
        cache: CacheStore,
        settings: Settings,
        rng: Optional[random.Random] = None,
    ):
        self.client = client
        self.cache = cache
        self.settings = settings
        self.rng = rng or random.Random()

    async def _cached_model(self, key: str, model: Type[M]) -> Optional[M]:
        """Cached entry parsed as ``model``; an unreadable entry is dropped and treated as a miss."""
        cached = await self.cache.get(key)
        if cached is None:
            return None
        try:
            return model.model_validate(cached)
        except ValidationError as e:
            logger.warning(
                "[CACHE] Discarding unreadable entry %s: %s", key, e,
                extra={"kind": ErrorKind.CACHE.value, "key": key},
            )
            await self.cache.delete(key)
            return None

    # ------------------------------------------------------------------ users

    def _effective_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.settings.MAX_REPOSITORIES
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1 or limit > MAX_PER_PAGE:
            raise GitHubError(
                ErrorKind.VALIDATION, f"limit must be between 1 and {MAX_PER_PAGE}", "validateLimit"
            )
        return limit

    def _user_stats_key(self, username: str, limit: int) -> str:
        # The default limit keeps the bare key so invalidation stays simple.
        max_repos = None if limit == self.settings.MAX_REPOSITORIES else limit
        return cache_keys.user_stats_key(username, max_repos)

    async def get_user_summary(self, username: str, limit: Optional[int] = None) -> UserSummary:
        start = time.perf_counter()
        username = validate_username(username)
        effective_limit = self._effective_limit(limit)
        key = self._user_stats_key(username, effective_limit)

        summary = await self._cached_model(key, UserSummary)
        if summary is not None:
            elapsed = _elapsed_ms(start)
            logger.debug("[CACHE] Served %s from cache in %sms", key, elapsed)
            return summary.model_copy(update={"cached": True, "response_time": elapsed})

        user = await self.client.get_user(username)
        repos = await self.client.list_all_user_repositories(username)

        summary = self._build_user_summary(user, repos, effective_limit)
        await self.cache.set(key, summary.model_dump(mode="json"))

        elapsed = _elapsed_ms(start)
        logger.debug("[API] Fetched %s from GitHub in %sms", username, elapsed)
        return summary.model_copy(update={"cached": False, "response_time": elapsed})

    def _build_user_summary(self, user: Dict[str, Any], repos: List[Dict[str, Any]], limit: int) -> UserSummary:
        top = transform.limit_repositories(transform.sort_by_stars(repos), limit)
        return transform.to_user_summary(
            user,
            [transform.to_repository_summary(r) for r in top],
            transform.language_statistics(repos, self.settings.LANGUAGE_STATS_LIMIT),
        )

    async def get_user_repositories(
        self,
        username: str,
        sort: str = "stars",
        limit: Optional[int] = None,
        language: Optional[str] = None,
        include_last_commit: bool = False,
    ) -> List[RepositorySummary]:
        """List a user's public repositories.

        The raw list is cached once per user; sort, filter, limit and commit
        enrichment are applied on every call so a single fetch serves all of
        their combinations.
        """
        username = validate_username(username)
        if sort not in REPOSITORY_SORTS:
            raise GitHubError(
                ErrorKind.VALIDATION, f"sort must be one of {', '.join(REPOSITORY_SORTS)}", "validateSort"
            )
        effective_limit = self._effective_limit(limit)
        language = normalize_language(language)

        repos = await self._get_raw_repositories(username)

        repos = transform.filter_public(repos)
        if language:
            repos = transform.filter_by_language(repos, language)
        ordered = transform.sort_by_stars(repos) if sort == "stars" else transform.sort_by_recency(repos)
        selected = transform.limit_repositories(ordered, effective_limit)

        if not include_last_commit:
            return [transform.to_repository_summary(r) for r in selected]

        commit_dates = await self._last_commit_dates(selected)
        return [
            transform.to_repository_summary(r, last_commit_date=commit_dates.get(i))
            for i, r in enumerate(selected)
        ]

    async def _get_raw_repositories(self, username: str) -> List[Dict[str, Any]]:
        key = cache_keys.user_repositories_key(username)
        cached = await self.cache.get(key)
        if isinstance(cached, list):
            return cached
        repos = await self.client.list_all_user_repositories(username)
        await self.cache.set(key, repos)
        return repos

    async def _last_commit_dates(self, repos: List[Dict[str, Any]]) -> Dict[int, Optional[str]]:
        """Resolve last-commit dates by position, using cached dates where present."""
        located: Dict[int, Tuple[str, str]] = {}
        dates: Dict[int, Optional[str]] = {}
        for i, repo in enumerate(repos):
            pair = transform.extract_owner_repo(repo)
            if pair is None:
                dates[i] = transform.resolve_last_commit_date(None, repo)
            else:
                located[i] = pair

        keys = {pair: cache_keys.commit_key(*pair) for pair in located.values()}
        cached = await self.cache.get_many(keys.values())
        missing = [pair for pair, key in keys.items() if cached.get(key) is None]

        fetched = await self.client.get_latest_commits(missing) if missing else {}
        found = {pair: commit for pair, commit in fetched.items() if commit is not None}
        await self.cache.set_many({keys[pair]: commit for pair, commit in found.items()})

        for i, pair in located.items():
            commit = cached.get(keys[pair]) or found.get(pair)
            dates[i] = transform.resolve_last_commit_date(commit, repos[i])
        return dates

    async def get_contributions(self, username: str) -> ContributionGraph:
        username = validate_username(username)
        key = cache_keys.contributions_key(username)

        graph = await self._cached_model(key, ContributionGraph)
        if graph is not None:
            return graph.model_copy(update={"cached": True})

        calendar = await self.client.get_contribution_calendar(username)
        graph = transform.to_contribution_graph(username, calendar)
        await self.cache.set(key, graph.model_dump(mode="json"))
        return graph

    # ----------------------------------------------------------- repositories

    async def get_repository(self, owner: str, repo: str) -> RepositorySummary:
        owner = validate_owner(owner)
        repo = validate_repository_name(repo)
        key = cache_keys.repository_key(owner, repo)

        summary = await self._cached_model(key, RepositorySummary)
        if summary is not None:
            return summary

        data = await self.client.get_repository(owner, repo)
        pair = transform.extract_owner_repo(data)
        if pair is not None:
            commit = await enrich(f"last commit of {owner}/{repo}", self.client.latest_commit(*pair))
        else:
            commit = Enrichment(None, False)
        summary = transform.to_repository_summary(
            data, last_commit_date=transform.resolve_last_commit_date(commit.value, data)
        )
        await self.cache.set(key, summary.model_dump(mode="json"))
        return summary

    async def get_readme(self, owner: str, repo: str) -> Readme:
        owner = validate_owner(owner)
        repo = validate_repository_name(repo)
        key = cache_keys.readme_key(owner, repo)

        readme = await self._cached_model(key, Readme)
        if readme is not None:
            return readme

        data = await self.client.get_readme(owner, repo)
        readme = transform.to_readme(data or {}, owner, repo)
        await self.cache.set(key, readme.model_dump(mode="json"))
        return readme

    async def search_repositories(
        self,
        query: str,
        page: int = 1,
        per_page: int = SEARCH_PER_PAGE,
        sort: str = "stars",
    ) -> SearchResult:
        """Search repositories.

        The cache key covers query and page only, so callers asking for the
        same page with a different sort or page size share one entry.
        """
        query = validate_search_query(query)
        page = validate_page(page, SEARCH_PAGE_CAP)
        key = cache_keys.search_key(query, page)

        result = await self._cached_model(key, SearchResult)
        if result is not None:
            return result

        data = await self.client.search_repositories(query, page=page, per_page=per_page, sort=sort)
        result = transform.to_search_result(data, query, page)
        await self.cache.set(key, result.model_dump(mode="json"), ttl_ms=SEARCH_CACHE_TTL_MS)
        return result

    # ------------------------------------------------------ random discovery

    async def get_random_repository(
        self,
        min_stars: Optional[int] = None,
        max_stars: Optional[int] = None,
        language: Optional[str] = None,
        country: Optional[str] = None,
    ) -> RepositorySummary:
        """Pick a repository from a randomly chosen page of search results.

        Search pages are star-ordered, not uniform samples, so this is uniform
        over one random page, retried with a fresh page when a page has no
        usable candidates.
        The page range narrows once GitHub reports how many results exist.
        """
        min_stars, max_stars = validate_star_range(min_stars, max_stars)
        language = normalize_language(language)
        country = validate_country(country)

        query = build_random_search_query(min_stars, max_stars, language)
        max_pages = self._random_page_range(min_stars)

        locations: Dict[str, Optional[str]] = {}
        for attempt in range(1, RANDOM_MAX_ATTEMPTS + 1):
            page = self.rng.randint(1, max_pages)
            try:
                data = await self.client.search_repositories(query, page=page, per_page=SEARCH_PER_PAGE)
            except GitHubError as e:
                if e.kind is not ErrorKind.INVALID_REQUEST or page == 1:
                    raise
                # GitHub refuses pages past the end of the results
                logger.debug("Random search %r: page %d rejected (attempt %d)", query, page, attempt)
                max_pages = page - 1
                continue

            total_count = data.get("total_count")
            if isinstance(total_count, int):
                max_pages = min(max_pages, reachable_pages(total_count))
            candidates = data.get("items") or []

            if country and candidates:
                locations.update(await self._owner_locations(candidates, skip=locations))
                candidates = [
                    r for r in candidates
                    if location_matches_country(locations.get(self._owner_login(r)), country)
                ]

            if candidates:
                logger.debug("Random search %r found %d candidates on page %d (attempt %d)",
                             query, len(candidates), page, attempt)
                chosen = self.rng.choice(candidates)
                return await self._enrich_random(chosen, locations)

            logger.debug("Random search %r: page %d empty (attempt %d)", query, page, attempt)

        raise GitHubError(
            ErrorKind.NOT_FOUND, "No repositories found matching the criteria", "getRandomRepository"
        )

    def _random_page_range(self, min_stars: Optional[int]) -> int:
        """Highest page to draw from before anything is known about the result count."""
        max_pages = min(self.settings.RANDOM_REPO_MAX_PAGES, reachable_pages(SEARCH_RESULT_CAP))
        if min_stars is not None and min_stars > HIGH_STAR_THRESHOLD:
            max_pages = min(max_pages, HIGH_STAR_MAX_PAGES)
        return max(1, max_pages)

    @staticmethod
    def _owner_login(repo: Dict[str, Any]) -> Optional[str]:
        login = (repo.get("owner") or {}).get("login")
        if login:
            return login
        pair = transform.extract_owner_repo(repo)
        return pair[0] if pair else None

    async def _owner_locations(
        self, repos: List[Dict[str, Any]], skip: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Optional[str]]:
        """Profile location of each distinct owner not in ``skip``, fetched a few at a time."""
        skip = skip or {}
        logins = [
            login for login in dict.fromkeys(filter(None, (self._owner_login(r) for r in repos)))
            if login not in skip
        ]
        locations: Dict[str, Optional[str]] = {}
        for start in range(0, len(logins), LOCATION_BATCH_SIZE):
            batch = logins[start:start + LOCATION_BATCH_SIZE]
            settled = await asyncio.gather(
                *(self.client.get_user(login) for login in batch), return_exceptions=True
            )
            for login, outcome in zip(batch, settled):
                if isinstance(outcome, BaseException):
                    logger.warning("Owner lookup failed for %s: %s", login, outcome)
                    locations[login] = None
                else:
                    locations[login] = (outcome or {}).get("location")
        return locations

    async def _enrich_random(
        self, repo: Dict[str, Any], known_locations: Dict[str, Optional[str]]
    ) -> RepositorySummary:
        owner = self._owner_login(repo)
        pair = transform.extract_owner_repo(repo)

        if owner and owner in known_locations:
            location = Enrichment(known_locations[owner], True)
        elif owner:
            location = await enrich(f"owner location of {owner}", self._user_location(owner))
        else:
            location = Enrichment(None, False)

        if pair is not None:
            languages = await enrich(
                f"languages of {pair[0]}/{pair[1]}", self.client.list_languages(*pair)
            )
        else:
            languages = Enrichment(None, False)

        return transform.to_repository_summary(
            repo,
            last_commit_date=transform.resolve_last_commit_date(None, repo),
            languages=transform.language_breakdown(languages.value) if languages.succeeded else None,
            owner_location=location.value,
        )

    async def _user_location(self, login: str) -> Optional[str]:
        user = await self.client.get_user(login)
        return (user or {}).get("location")

    # ---------------------------------------------------------------- admin

    async def warm_user_cache(self, username: str) -> CacheOperationResponse:
        """Fetch a user's profile and repositories and store both cache entries."""
        username = validate_username(username)
        user, repos = await asyncio.gather(
            self.client.get_user(username),
            self.client.list_all_user_repositories(username),
        )
        limit = self.settings.MAX_REPOSITORIES
        summary = self._build_user_summary(user, repos, limit)

        stats_key = self._user_stats_key(username, limit)
        repos_key = cache_keys.user_repositories_key(username)
        await self.cache.set_many({
            stats_key: summary.model_dump(mode="json"),
            repos_key: repos,
        })
        logger.info("Warmed cache for %s", username)
        return CacheOperationResponse(username=username, action="warmed", keys=[stats_key, repos_key])

    async def invalidate_user_cache(self, username: str) -> CacheOperationResponse:
        """Drop every cached summary variant and the repository list of a user."""
        username = validate_username(username)
        stats_key = cache_keys.user_stats_key(username)
        repos_key = cache_keys.user_repositories_key(username)
        prefix = cache_keys.user_stats_limit_prefix(username)

        await asyncio.gather(
            self.cache.delete(stats_key),
            self.cache.delete(repos_key),
            self.cache.delete_by_prefix(prefix),
        )
        logger.info("Invalidated cache for %s", username)
        return CacheOperationResponse(
            username=username, action="invalidated", keys=[stats_key, repos_key, f"{prefix}*"]
        )
