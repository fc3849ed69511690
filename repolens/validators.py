"""Input validation and normalisation for GitHub identifiers and query filters."""

from __future__ import annotations

import re
from typing import Optional, Tuple

from repolens.errors import validation_error

MAX_USERNAME_LENGTH = 39
MAX_REPOSITORY_NAME_LENGTH = 100
MAX_STARS = 1_000_000
MAX_COUNTRY_LENGTH = 100
MAX_QUERY_LENGTH = 256

# Alphanumeric start, single hyphens allowed between alphanumerics.
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9]|-(?=[a-zA-Z0-9])){0,38}$")
_REPOSITORY_RE = re.compile(r"^[a-zA-Z0-9._-]+$")
_LANGUAGE_RE = re.compile(r"^[\w#+.\- ]{1,50}$")

LANGUAGE_ALIASES = {
    "js": "JavaScript",
    "javascript": "JavaScript",
    "node": "JavaScript",
    "ts": "TypeScript",
    "typescript": "TypeScript",
    "py": "Python",
    "python": "Python",
    "rb": "Ruby",
    "ruby": "Ruby",
    "go": "Go",
    "golang": "Go",
    "rs": "Rust",
    "rust": "Rust",
    "java": "Java",
    "kt": "Kotlin",
    "kotlin": "Kotlin",
    "cpp": "C++",
    "c++": "C++",
    "cs": "C#",
    "csharp": "C#",
    "c#": "C#",
    "c": "C",
    "php": "PHP",
    "sh": "Shell",
    "bash": "Shell",
    "shell": "Shell",
    "swift": "Swift",
    "objc": "Objective-C",
    "objective-c": "Objective-C",
    "html": "HTML",
    "css": "CSS",
    "scala": "Scala",
    "hs": "Haskell",
    "haskell": "Haskell",
    "ex": "Elixir",
    "elixir": "Elixir",
    "dart": "Dart",
    "lua": "Lua",
    "r": "R",
    "jupyter": "Jupyter Notebook",
    "ipynb": "Jupyter Notebook",
    "vue": "Vue",
}


def validate_username(username: Optional[str]) -> str:
    """Strip whitespace and a leading '@', then check GitHub login rules."""
    if not username or not isinstance(username, str):
        raise validation_error("Username is required", "validateUsername")

    sanitized = username.strip()
    if sanitized.startswith("@"):
        sanitized = sanitized[1:]

    if not sanitized:
        raise validation_error("Username cannot be empty", "validateUsername")
    if len(sanitized) > MAX_USERNAME_LENGTH:
        raise validation_error(
            f"Username too long (max {MAX_USERNAME_LENGTH} characters)", "validateUsername"
        )
    if not _USERNAME_RE.match(sanitized):
        raise validation_error("Invalid username format", "validateUsername")
    return sanitized


def validate_owner(owner: Optional[str]) -> str:
    return validate_username(owner)


def validate_repository_name(repo: Optional[str]) -> str:
    """Strip whitespace and a trailing '.git', then check allowed characters."""
    if not repo or not isinstance(repo, str):
        raise validation_error("Repository name is required", "validateRepositoryName")

    sanitized = repo.strip()
    if sanitized.endswith(".git"):
        sanitized = sanitized[: -len(".git")]

    if not sanitized:
        raise validation_error("Repository name cannot be empty", "validateRepositoryName")
    if len(sanitized) > MAX_REPOSITORY_NAME_LENGTH:
        raise validation_error(
            f"Repository name too long (max {MAX_REPOSITORY_NAME_LENGTH} characters)",
            "validateRepositoryName",
        )
    if not _REPOSITORY_RE.match(sanitized):
        raise validation_error("Invalid repository name format", "validateRepositoryName")
    return sanitized


def _check_star_bound(value: Optional[int], name: str) -> Optional[int]:
    if value is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise validation_error(f"{name} must be a non-negative integer", "validateStarRange")
    if value > MAX_STARS:
        raise validation_error(f"{name} must be at most {MAX_STARS:,}", "validateStarRange")
    return value


def validate_star_range(
    min_stars: Optional[int] = None, max_stars: Optional[int] = None
) -> Tuple[Optional[int], Optional[int]]:
    min_stars = _check_star_bound(min_stars, "minStars")
    max_stars = _check_star_bound(max_stars, "maxStars")
    if min_stars is not None and max_stars is not None and min_stars > max_stars:
        raise validation_error("minStars cannot be greater than maxStars", "validateStarRange")
    return min_stars, max_stars


def normalize_language(language: Optional[str]) -> Optional[str]:
    """Map common shorthands ("js", "golang", "cpp") to GitHub's language names.

    Unknown languages pass through trimmed; blank input means "no filter".
    """
    if language is None:
        return None
    cleaned = language.strip()
    if not cleaned:
        return None
    if not _LANGUAGE_RE.match(cleaned):
        raise validation_error("Invalid language format", "normalizeLanguage")
    return LANGUAGE_ALIASES.get(cleaned.lower(), cleaned)


def validate_country(country: Optional[str]) -> Optional[str]:
    if country is None:
        return None
    cleaned = " ".join(country.split())
    if not cleaned:
        return None
    if len(cleaned) > MAX_COUNTRY_LENGTH:
        raise validation_error(
            f"Country too long (max {MAX_COUNTRY_LENGTH} characters)", "validateCountry"
        )
    return cleaned


def validate_search_query(query: Optional[str]) -> str:
    if not query or not query.strip():
        raise validation_error("Search query is required", "validateSearchQuery")
    cleaned = query.strip()
    if len(cleaned) > MAX_QUERY_LENGTH:
        raise validation_error(
            f"Search query too long (max {MAX_QUERY_LENGTH} characters)", "validateSearchQuery"
        )
    return cleaned


def validate_page(page: int, max_page: int = 100) -> int:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1 or page > max_page:
        raise validation_error(f"page must be between 1 and {max_page}", "validatePage")
    return page
