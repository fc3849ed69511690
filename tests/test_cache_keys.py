import base64

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from repolens import cache_keys

identifier = st.from_regex(r"[a-zA-Z0-9][a-zA-Z0-9-]{0,20}", fullmatch=True)


def test_key_formats():
    assert cache_keys.user_stats_key("octo") == "user_stats:octo"
    assert cache_keys.user_stats_key("octo", 5) == "user_stats:octo:max:5"
    assert cache_keys.user_repositories_key("octo") == "user_repos:octo"
    assert cache_keys.repository_key("octo", "hello") == "repo:octo:hello"
    assert cache_keys.readme_key("octo", "hello") == "readme:octo:hello"
    assert cache_keys.contributions_key("octo") == "contributions:octo"


def test_search_key_normalizes_query():
    expected = base64.b64encode(b"fastapi stars:>10").decode()
    assert cache_keys.search_key("  FastAPI stars:>10 ", 2) == f"search:{expected}:2"
    assert cache_keys.search_key("fastapi", 1) != cache_keys.search_key("fastapi", 2)


def test_limit_variants_do_not_collide():
    assert cache_keys.user_stats_key("octo", 2) != cache_keys.user_stats_key("octo", 3)
    assert cache_keys.user_stats_key("octo", 2) != cache_keys.user_stats_key("octo")
    assert cache_keys.user_stats_key("octo", 2).startswith(cache_keys.user_stats_limit_prefix("octo"))


@pytest.mark.parametrize("builder,args", [
    (cache_keys.user_stats_key, ("",)),
    (cache_keys.user_repositories_key, ("  ",)),
    (cache_keys.repository_key, ("octo", "")),
    (cache_keys.readme_key, ("", "hello")),
    (cache_keys.search_key, ("",)),
])
def test_empty_identifiers_fail_fast(builder, args):
    with pytest.raises(ValueError):
        builder(*args)


@given(a=identifier, b=identifier)
@settings(max_examples=100)
def test_keys_are_deterministic_and_distinct(a, b):
    assert cache_keys.user_stats_key(a) == cache_keys.user_stats_key(a)
    assert cache_keys.repository_key(a, b) == cache_keys.repository_key(a, b)
    if a != b:
        assert cache_keys.user_stats_key(a) != cache_keys.user_stats_key(b)
        assert cache_keys.repository_key(a, b) != cache_keys.repository_key(b, a)
        assert cache_keys.readme_key(a, "x") != cache_keys.readme_key(b, "x")
