"""Pure functions turning raw GitHub payloads into repolens models.

Nothing in here performs I/O; raw repositories are the dicts returned by the
REST API and are never mutated.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlparse

from repolens.logging import get_logger
from repolens.models import (
    ContributionDay,
    ContributionGraph,
    LanguageShare,
    LanguageStat,
    Readme,
    RepositorySummary,
    SearchResult,
    UserSummary,
)

logger = get_logger(__name__)

Repo = Mapping[str, Any]


def round_half_up(value: float, digits: int = 0):
    """Round halves up, so 12.5 becomes 13."""
    if digits == 0:
        return math.floor(value + 0.5)
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def _stars(repo: Repo) -> int:
    return repo.get("stargazers_count") or 0


def sort_by_stars(repos: Iterable[Repo]) -> List[Repo]:
    """Most starred first; ``sorted`` is stable so ties keep input order."""
    return sorted(repos, key=_stars, reverse=True)


def sort_by_recency(repos: Iterable[Repo]) -> List[Repo]:
    """Most recently updated first, falling back to ``created_at``."""
    # ISO-8601 UTC timestamps order correctly as strings.
    return sorted(
        repos,
        key=lambda r: r.get("updated_at") or r.get("created_at") or "",
        reverse=True,
    )


def limit_repositories(repos: Sequence[Repo], limit: int) -> List[Repo]:
    if limit <= 0:
        return []
    return list(repos[:limit])


def filter_by_language(repos: Iterable[Repo], language: str) -> List[Repo]:
    wanted = language.strip().lower()
    return [r for r in repos if (r.get("language") or "").lower() == wanted]


def filter_public(repos: Iterable[Repo]) -> List[Repo]:
    return [r for r in repos if not r.get("private")]


def language_statistics(repos: Iterable[Repo], limit: Optional[int] = None) -> List[LanguageStat]:
    """Count primary languages across ``repos``.

    Repositories without a language count towards neither the numerator nor
    the denominator. Percentages are rounded to whole numbers.
    """
    counts = Counter(r["language"] for r in repos if r.get("language"))
    total = sum(counts.values())
    if not total:
        return []

    # Counter.most_common keeps first-seen order among equal counts.
    stats = [
        LanguageStat(name=name, count=count, percentage=round_half_up(count / total * 100))
        for name, count in counts.most_common()
    ]
    if limit is not None:
        stats = stats[: max(limit, 0)]
    return stats


def language_breakdown(languages: Mapping[str, int]) -> List[LanguageShare]:
    """Turn the languages endpoint's byte counts into one-decimal percentages."""
    total = sum(v for v in languages.values() if isinstance(v, (int, float)))
    if total <= 0:
        return []
    shares = [
        LanguageShare(name=name, percentage=round_half_up(size / total * 100, 1))
        for name, size in languages.items()
        if isinstance(size, (int, float))
    ]
    return sorted(shares, key=lambda s: s.percentage, reverse=True)


def resolve_last_commit_date(commit: Optional[Mapping[str, Any]], repo: Repo) -> Optional[str]:
    """First non-empty of committer date, author date, pushed, updated, created."""
    details = (commit or {}).get("commit") or {}
    candidates = (
        (details.get("committer") or {}).get("date"),
        (details.get("author") or {}).get("date"),
        repo.get("pushed_at"),
        repo.get("updated_at"),
        repo.get("created_at"),
    )
    for candidate in candidates:
        if candidate:
            return candidate
    return None


def extract_owner_repo(repo: Repo) -> Optional[Tuple[str, str]]:
    """Find ``(owner, name)`` for a raw repository, or ``None`` if impossible."""
    full_name = repo.get("full_name")
    if isinstance(full_name, str) and full_name.count("/") == 1:
        owner, name = full_name.split("/")
        if owner and name:
            return owner, name

    owner = (repo.get("owner") or {}).get("login")
    name = repo.get("name")
    if owner and name:
        return owner, name

    html_url = repo.get("html_url")
    if html_url:
        segments = [s for s in urlparse(html_url).path.split("/") if s]
        if len(segments) >= 2:
            return segments[0], segments[1]

    logger.warning("Could not determine owner/name for repository %r", repo.get("id") or name)
    return None


def to_repository_summary(
    repo: Repo,
    last_commit_date: Optional[str] = None,
    languages: Optional[List[LanguageShare]] = None,
    owner_location: Optional[str] = None,
) -> RepositorySummary:
    return RepositorySummary(
        name=repo.get("name") or "",
        full_name=repo.get("full_name"),
        owner=(repo.get("owner") or {}).get("login"),
        description=repo.get("description"),
        language=repo.get("language"),
        stars=_stars(repo),
        forks=repo.get("forks_count") or 0,
        open_issues=repo.get("open_issues_count") or 0,
        is_private=bool(repo.get("private")),
        created_at=repo.get("created_at"),
        updated_at=repo.get("updated_at"),
        pushed_at=repo.get("pushed_at"),
        html_url=repo.get("html_url") or "",
        last_commit_date=last_commit_date,
        languages=languages,
        owner_location=owner_location,
    )


def to_user_summary(
    user: Mapping[str, Any],
    top_repositories: List[RepositorySummary],
    languages: Optional[List[LanguageStat]] = None,
) -> UserSummary:
    return UserSummary(
        username=user.get("login") or "",
        name=user.get("name"),
        bio=user.get("bio"),
        location=user.get("location"),
        company=user.get("company"),
        blog=user.get("blog"),
        avatar_url=user.get("avatar_url") or "",
        github_url=user.get("html_url") or "",
        followers=user.get("followers") or 0,
        following=user.get("following") or 0,
        public_repos=user.get("public_repos") or 0,
        public_gists=user.get("public_gists") or 0,
        created_at=user.get("created_at"),
        updated_at=user.get("updated_at"),
        top_repositories=top_repositories,
        languages=languages or [],
    )


def to_readme(data: Mapping[str, Any], owner: str, repo: str) -> Readme:
    return Readme(
        owner=owner,
        repository=repo,
        name=data.get("name") or "README.md",
        path=data.get("path") or f"/{owner}/{repo}/README.md",
        content=data.get("content") or "",
        encoding=data.get("encoding") or "base64",
        size=data.get("size") or 0,
        html_url=data.get("html_url") or f"https://github.com/{owner}/{repo}/blob/main/README.md",
        download_url=data.get("download_url") or f"https://api.github.com/repos/{owner}/{repo}/readme",
    )


def to_search_result(data: Mapping[str, Any], query: str, page: int) -> SearchResult:
    items = data.get("items") or []
    return SearchResult(
        query=query,
        page=page,
        total_count=data.get("total_count") or 0,
        incomplete_results=bool(data.get("incomplete_results")),
        items=[to_repository_summary(item) for item in items],
    )


def to_contribution_graph(username: str, calendar: Mapping[str, Any]) -> ContributionGraph:
    weeks = [
        [
            ContributionDay(date=day.get("date", ""), count=day.get("contributionCount") or 0)
            for day in week.get("contributionDays") or []
        ]
        for week in calendar.get("weeks") or []
    ]
    month_labels = [m.get("name", "") for m in calendar.get("months") or []]
    return ContributionGraph(
        username=username,
        weeks=weeks,
        total_contributions=calendar.get("totalContributions") or 0,
        month_labels=month_labels,
    )

