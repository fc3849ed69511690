import pytest

from repolens.locations import canonical_country, location_matches_country


@pytest.mark.parametrize("location,country", [
    ("San Francisco, USA", "United States"),
    ("NYC, U.S.A.", "usa"),
    ("Seattle, united states", "UNITED STATES"),
    ("London, UK", "United Kingdom"),
    ("Berlin, Deutschland", "Germany"),
    ("São Paulo, Brasil", "brazil"),
    ("Lagos, Nigeria", "Nigeria"),
    ("Houston, America", "United States"),
    ("Boston, U.S.", "usa"),
    ("U.S. east coast", "United States"),
])
def test_matches(location, country):
    assert location_matches_country(location, country)


@pytest.mark.parametrize("location,country", [
    ("Berlin", "United States"),
    ("Russian Federation? no, Belarus", "Germany"),
    ("Ukraine", "UK"),
    (None, "Germany"),
    ("", "Germany"),
    ("Berlin", ""),
])
def test_does_not_match(location, country):
    assert not location_matches_country(location, country)


def test_aliases_match_on_word_boundaries_only():
    assert not location_matches_country("Busan", "USA")
    assert not location_matches_country("Indiana", "India")


def test_canonical_country():
    assert canonical_country("  U.S.A. ") == "united states"
    assert canonical_country("Holland") == "netherlands"
    assert canonical_country("Nigeria") == "nigeria"
