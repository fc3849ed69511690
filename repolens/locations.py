"""Best-effort matching of free-text profile locations against a country.

GitHub locations are whatever users typed ("SF, USA", "Berlin", "🌍"), so
this only recognises a handful of spellings per country. Unknown countries
are matched on their own name.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional, Pattern

COUNTRY_ALIASES = {
    "united states": ("united states", "united states of america", "usa", "u.s.a.", "u.s.", "america"),
    "united kingdom": ("united kingdom", "uk", "u.k.", "great britain", "britain", "england", "scotland", "wales"),
    "germany": ("germany", "deutschland"),
    "france": ("france",),
    "india": ("india", "bharat"),
    "china": ("china", "中国"),
    "japan": ("japan", "日本"),
    "canada": ("canada",),
    "brazil": ("brazil", "brasil"),
    "netherlands": ("netherlands", "holland", "nederland"),
    "spain": ("spain", "españa", "espana"),
    "russia": ("russia", "russian federation"),
    "south korea": ("south korea", "korea", "republic of korea"),
    "australia": ("australia",),
}


def canonical_country(country: str) -> str:
    lowered = " ".join(country.lower().split())
    for canonical, aliases in COUNTRY_ALIASES.items():
        if lowered == canonical or lowered in aliases:
            return canonical
    return lowered


@lru_cache(maxsize=64)
def country_pattern(canonical: str) -> Pattern[str]:
    aliases = COUNTRY_ALIASES.get(canonical, (canonical,))
    # \b does not work next to the dots of "u.s.a.", so look around for word chars instead
    alternatives = "|".join(rf"(?<!\w){re.escape(a)}(?!\w)" for a in aliases)
    return re.compile(alternatives, re.IGNORECASE)


def location_matches_country(location: Optional[str], country: str) -> bool:
    """True if ``location`` mentions ``country`` or one of its known aliases."""
    if not location or not country:
        return False
    return country_pattern(canonical_country(country)).search(location) is not None
