"""
Cache key construction.

Keys are built from already-validated identifiers. A blank identifier here is
a bug in the caller, so it raises ``ValueError`` instead of producing a key
that would silently never match.
"""

from __future__ import annotations

import base64
from typing import Optional


def _require(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid {field_name} for cache key: {value!r}")
    return value


def user_stats_key(username: str, max_repos: Optional[int] = None) -> str:
    _require(username, "username")
    suffix = f":max:{max_repos}" if isinstance(max_repos, int) and max_repos > 0 else ""
    return f"user_stats:{username}{suffix}"


def user_stats_limit_prefix(username: str) -> str:
    """Prefix shared by every limit-specific user stats key of ``username``."""
    _require(username, "username")
    return f"user_stats:{username}:max:"


def user_repositories_key(username: str) -> str:
    _require(username, "username")
    return f"user_repos:{username}"


def repository_key(owner: str, repo: str) -> str:
    _require(owner, "owner")
    _require(repo, "repo")
    return f"repo:{owner}:{repo}"


def readme_key(owner: str, repo: str) -> str:
    _require(owner, "owner")
    _require(repo, "repo")
    return f"readme:{owner}:{repo}"


def commit_key(owner: str, repo: str) -> str:
    _require(owner, "owner")
    _require(repo, "repo")
    return f"commits:{owner}:{repo}"


def contributions_key(username: str) -> str:
    _require(username, "username")
    return f"contributions:{username}"


def search_key(query: str, page: int = 1) -> str:
    _require(query, "query")
    normalized = query.strip().lower()
    encoded = base64.b64encode(normalized.encode("utf-8")).decode("ascii")
    return f"search:{encoded}:{page}"
