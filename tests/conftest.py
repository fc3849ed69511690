import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from repolens.cache import CacheStore, InMemoryBackend
from repolens.config import Settings
from repolens.github_client import GitHubClient
from repolens.service import GitHubService


def make_settings(**overrides):
    values = {"GITHUB_TOKEN": "test-token"}
    values.update(overrides)
    return Settings(**values)


def make_repo(name="repo1", owner="octo", stars=0, **overrides):
    base = {
        "id": abs(hash((owner, name))) % 10_000_000,
        "name": name,
        "full_name": f"{owner}/{name}",
        "owner": {"login": owner},
        "description": f"{name} description",
        "language": "Python",
        "stargazers_count": stars,
        "forks_count": 1,
        "open_issues_count": 0,
        "private": False,
        "html_url": f"https://github.com/{owner}/{name}",
        "created_at": "2023-01-01T00:00:00Z",
        "updated_at": "2023-06-01T00:00:00Z",
        "pushed_at": "2023-06-02T00:00:00Z",
    }
    base.update(overrides)
    return base


def make_user(login="octo", **overrides):
    base = {
        "login": login,
        "name": "The Octocat",
        "bio": None,
        "location": "San Francisco",
        "company": "@github",
        "blog": "https://github.blog",
        "avatar_url": f"https://avatars.githubusercontent.com/{login}",
        "html_url": f"https://github.com/{login}",
        "followers": 10,
        "following": 2,
        "public_repos": 3,
        "public_gists": 1,
        "created_at": "2011-01-25T18:44:36Z",
        "updated_at": "2024-01-01T00:00:00Z",
    }
    base.update(overrides)
    return base


def make_client_mock():
    return AsyncMock(spec=GitHubClient)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def client():
    return make_client_mock()


@pytest.fixture
def backend():
    return InMemoryBackend(maxsize=128)


@pytest.fixture
def cache(backend, settings):
    return CacheStore(backend, default_ttl_ms=settings.CACHE_TIMEOUT_MS)


@pytest.fixture
def service(client, cache, settings):
    return GitHubService(client=client, cache=cache, settings=settings, rng=random.Random(1234))


@pytest.fixture
def session():
    return MagicMock()
