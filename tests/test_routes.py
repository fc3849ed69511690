import pytest
from fastapi.testclient import TestClient

from repolens import create_app
from repolens.cache import CacheStore, InMemoryBackend
from repolens.errors import ErrorKind, GitHubError
from repolens.service import GitHubService
from conftest import make_client_mock, make_repo, make_settings, make_user


@pytest.fixture
def upstream():
    return make_client_mock()


@pytest.fixture
def api(upstream):
    settings = make_settings()
    service = GitHubService(upstream, CacheStore(InMemoryBackend(), settings.CACHE_TIMEOUT_MS), settings)
    return TestClient(create_app(settings=settings, service=service))


def assert_error_body(response, status, path):
    body = response.json()
    assert response.status_code == status
    assert body["statusCode"] == status
    assert body["path"] == path
    assert set(body) == {"statusCode", "timestamp", "path", "error", "message"}
    return body


def test_root_and_health(api):
    assert api.get("/").json()["message"] == "Welcome to repolens"
    health = api.get("/health").json()
    assert health["status"] == "healthy"
    assert health["cache_backend"] == "InMemoryBackend"


def test_user_summary_camel_case(api, upstream):
    upstream.get_user.return_value = make_user("octo")
    upstream.list_all_user_repositories.return_value = [make_repo("a", stars=2), make_repo("b", stars=8)]

    first = api.get("/v1/users/octo/summary", params={"limit": 1})
    second = api.get("/v1/users/octo/summary", params={"limit": 1})

    assert first.status_code == 200
    body = first.json()
    assert body["cached"] is False
    assert [r["name"] for r in body["topRepositories"]] == ["b"]
    assert body["topRepositories"][0]["htmlUrl"] == "https://github.com/octo/b"
    assert "responseTime" in body
    assert second.json()["cached"] is True


def test_not_found_error_body(api, upstream):
    upstream.get_user.side_effect = GitHubError(
        ErrorKind.NOT_FOUND, "User 'ghost' not found", "getUser for ghost", 404
    )

    response = api.get("/v1/users/ghost/summary")

    body = assert_error_body(response, 404, "/v1/users/ghost/summary")
    assert body["error"] == "Not Found"
    assert body["message"] == "User 'ghost' not found"


def test_rate_limit_maps_to_429(api, upstream):
    upstream.get_repository.side_effect = GitHubError(ErrorKind.RATE_LIMITED, "GitHub API rate limit exceeded")
    response = api.get("/v1/repos/octo/hello")
    assert_error_body(response, 429, "/v1/repos/octo/hello")


def test_validation_error_from_service_is_400(api, upstream):
    response = api.get("/v1/repositories/random", params={"min_stars": 100, "max_stars": 50})

    body = assert_error_body(response, 400, "/v1/repositories/random")
    assert body["message"] == "minStars cannot be greater than maxStars"
    upstream.search_repositories.assert_not_awaited()


@pytest.mark.parametrize("url", [
    "/v1/users/octo/summary?limit=0",
    "/v1/users/octo/summary?limit=abc",
    "/v1/users/octo/repositories?sort=forks",
    "/v1/repositories/random?min_stars=-1",
    "/v1/search/repositories",
    "/v1/search/repositories?q=x&page=101",
])
def test_bad_query_parameters_are_400(api, url):
    response = api.get(url)
    assert response.status_code == 400
    assert response.json()["error"] == "Bad Request"


def test_unexpected_failure_is_500(api, upstream):
    upstream.get_readme.side_effect = RuntimeError("kaboom")

    response = api.get("/v1/repos/octo/hello/readme")

    body = assert_error_body(response, 500, "/v1/repos/octo/hello/readme")
    assert body["message"] == "Failed to get README: kaboom"


def test_unknown_route_uses_error_body(api):
    assert_error_body(api.get("/v1/nope"), 404, "/v1/nope")


def test_random_repository(api, upstream):
    upstream.search_repositories.return_value = {"items": [make_repo("pick", "octo", stars=12)]}
    upstream.get_user.return_value = make_user("octo", location="Oslo, Norway")
    upstream.list_languages.return_value = {"Rust": 10}

    response = api.get("/v1/repositories/random", params={"min_stars": 10, "language": "rs"})

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "pick"
    assert body["ownerLocation"] == "Oslo, Norway"
    assert body["languages"] == [{"name": "Rust", "percentage": 100.0}]
    assert upstream.search_repositories.await_args.args[0] == "is:public stars:>=10 language:Rust"


def test_search_and_repositories(api, upstream):
    upstream.search_repositories.return_value = {"total_count": 1, "items": [make_repo("x")]}
    upstream.list_all_user_repositories.return_value = [make_repo("old", stars=1), make_repo("big", stars=5)]

    search = api.get("/v1/search/repositories", params={"q": "fastapi"})
    repos = api.get("/v1/users/octo/repositories", params={"limit": 1})

    assert search.json()["totalCount"] == 1
    assert [r["name"] for r in repos.json()] == ["big"]


def test_contributions(api, upstream):
    upstream.get_contribution_calendar.return_value = {"totalContributions": 0, "weeks": [], "months": []}
    body = api.get("/v1/users/octo/contributions").json()
    assert body["totalContributions"] == 0
    assert body["monthLabels"] == []


def test_cache_warm_and_invalidate(api, upstream):
    upstream.get_user.return_value = make_user("octo")
    upstream.list_all_user_repositories.return_value = [make_repo("a")]

    warmed = api.post("/v1/cache/users/@octo/warm")
    assert warmed.status_code == 200
    assert warmed.json() == {"username": "octo", "action": "warmed", "keys": ["user_stats:octo", "user_repos:octo"]}
    assert api.get("/v1/users/octo/summary").json()["cached"] is True

    dropped = api.delete("/v1/cache/users/octo")
    assert dropped.json()["action"] == "invalidated"
    assert api.get("/v1/users/octo/summary").json()["cached"] is False


def test_cache_warm_rejects_doubled_at_sign(api, upstream):
    response = api.post("/v1/cache/users/@@octo/warm")

    assert_error_body(response, 400, "/v1/cache/users/@@octo/warm")
    upstream.get_user.assert_not_awaited()


def test_metrics_endpoint(api):
    response = api.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert 'repolens_app_info{app="repolens",version="1.0.0"} 1.0' in response.text
    assert "python_info" in response.text


def test_metrics_registries_are_per_app():
    settings = make_settings()
    first, second = (
        create_app(settings=settings, service=GitHubService(make_client_mock(), CacheStore(InMemoryBackend(), 1), settings))
        for _ in range(2)
    )

    assert first.state.metrics_registry is not second.state.metrics_registry
    assert TestClient(second).get("/metrics").status_code == 200
