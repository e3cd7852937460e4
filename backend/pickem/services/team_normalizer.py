"""
backend/pickem/services/team_normalizer.py

Purpose:
    Map the many spellings of an NFL franchise (full name, abbreviation,
    city-only, mascot-only, ESPN display variants) onto one canonical name so
    picks and game results recorded by different sources compare equal.

Notes:
    - Matching is case-insensitive and ignores punctuation, accents and
      repeated whitespace ("kc chiefs", "KC Chiefs!" and "KC  Chiefs" agree).
    - The canonical identifier is the franchise's full name.
    - Unknown input is returned unchanged; this function never raises.
    - Ambiguous city forms ("LA", "Los Angeles", "NY", "New York") are not
      mapped. The mascot decides between the two teams of a shared market.

Dependencies:
    - re
    - unicodedata
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

_PUNCT_RE = re.compile(r"[^a-z0-9\s]")
_SPACE_RE = re.compile(r"\s+")

# canonical name -> abbreviations, cities, nicknames, extra display variants
NFL_TEAMS: dict[str, dict[str, tuple[str, ...]]] = {
    "Arizona Cardinals": {
        "abbreviations": ("ARI", "ARZ"),
        "cities": ("Arizona",),
        "nicknames": ("Cardinals", "Cards"),
    },
    "Atlanta Falcons": {
        "abbreviations": ("ATL",),
        "cities": ("Atlanta",),
        "nicknames": ("Falcons",),
    },
    "Baltimore Ravens": {
        "abbreviations": ("BAL", "BLT"),
        "cities": ("Baltimore",),
        "nicknames": ("Ravens",),
    },
    "Buffalo Bills": {
        "abbreviations": ("BUF",),
        "cities": ("Buffalo",),
        "nicknames": ("Bills",),
    },
    "Carolina Panthers": {
        "abbreviations": ("CAR",),
        "cities": ("Carolina",),
        "nicknames": ("Panthers",),
    },
    "Chicago Bears": {
        "abbreviations": ("CHI",),
        "cities": ("Chicago",),
        "nicknames": ("Bears",),
    },
    "Cincinnati Bengals": {
        "abbreviations": ("CIN",),
        "cities": ("Cincinnati",),
        "nicknames": ("Bengals",),
    },
    "Cleveland Browns": {
        "abbreviations": ("CLE", "CLV"),
        "cities": ("Cleveland",),
        "nicknames": ("Browns",),
    },
    "Dallas Cowboys": {
        "abbreviations": ("DAL",),
        "cities": ("Dallas",),
        "nicknames": ("Cowboys",),
    },
    "Denver Broncos": {
        "abbreviations": ("DEN",),
        "cities": ("Denver",),
        "nicknames": ("Broncos",),
    },
    "Detroit Lions": {
        "abbreviations": ("DET",),
        "cities": ("Detroit",),
        "nicknames": ("Lions",),
    },
    "Green Bay Packers": {
        "abbreviations": ("GB", "GNB"),
        "cities": ("Green Bay",),
        "nicknames": ("Packers",),
    },
    "Houston Texans": {
        "abbreviations": ("HOU", "HST"),
        "cities": ("Houston",),
        "nicknames": ("Texans",),
    },
    "Indianapolis Colts": {
        "abbreviations": ("IND",),
        "cities": ("Indianapolis",),
        "nicknames": ("Colts",),
    },
    "Jacksonville Jaguars": {
        "abbreviations": ("JAX", "JAC"),
        "cities": ("Jacksonville",),
        "nicknames": ("Jaguars", "Jags"),
    },
    "Kansas City Chiefs": {
        "abbreviations": ("KC", "KAN"),
        "cities": ("Kansas City",),
        "nicknames": ("Chiefs",),
    },
    "Las Vegas Raiders": {
        "abbreviations": ("LV", "LVR", "OAK"),
        "cities": ("Las Vegas", "Vegas", "Oakland"),
        "nicknames": ("Raiders",),
    },
    "Los Angeles Chargers": {
        "abbreviations": ("LAC", "SD", "SDG"),
        "cities": ("San Diego",),
        "nicknames": ("Chargers", "Bolts"),
        "display": ("LA Chargers", "L.A. Chargers"),
    },
    "Los Angeles Rams": {
        "abbreviations": ("LAR", "STL"),
        "cities": ("St. Louis", "Saint Louis"),
        "nicknames": ("Rams",),
        "display": ("LA Rams", "L.A. Rams"),
    },
    "Miami Dolphins": {
        "abbreviations": ("MIA",),
        "cities": ("Miami",),
        "nicknames": ("Dolphins", "Fins"),
    },
    "Minnesota Vikings": {
        "abbreviations": ("MIN",),
        "cities": ("Minnesota",),
        "nicknames": ("Vikings", "Vikes"),
    },
    "New England Patriots": {
        "abbreviations": ("NE", "NWE"),
        "cities": ("New England",),
        "nicknames": ("Patriots", "Pats"),
    },
    "New Orleans Saints": {
        "abbreviations": ("NO", "NOR"),
        "cities": ("New Orleans",),
        "nicknames": ("Saints",),
    },
    "New York Giants": {
        "abbreviations": ("NYG",),
        "cities": (),
        "nicknames": ("Giants",),
        "display": ("NY Giants", "N.Y. Giants"),
    },
    "New York Jets": {
        "abbreviations": ("NYJ",),
        "cities": (),
        "nicknames": ("Jets",),
        "display": ("NY Jets", "N.Y. Jets"),
    },
    "Philadelphia Eagles": {
        "abbreviations": ("PHI",),
        "cities": ("Philadelphia",),
        "nicknames": ("Eagles",),
    },
    "Pittsburgh Steelers": {
        "abbreviations": ("PIT",),
        "cities": ("Pittsburgh",),
        "nicknames": ("Steelers",),
    },
    "San Francisco 49ers": {
        "abbreviations": ("SF", "SFO"),
        "cities": ("San Francisco",),
        "nicknames": ("49ers", "Niners"),
    },
    "Seattle Seahawks": {
        "abbreviations": ("SEA",),
        "cities": ("Seattle",),
        "nicknames": ("Seahawks",),
    },
    "Tampa Bay Buccaneers": {
        "abbreviations": ("TB", "TAM"),
        "cities": ("Tampa Bay", "Tampa"),
        "nicknames": ("Buccaneers", "Bucs"),
    },
    "Tennessee Titans": {
        "abbreviations": ("TEN",),
        "cities": ("Tennessee",),
        "nicknames": ("Titans",),
    },
    "Washington Commanders": {
        "abbreviations": ("WAS", "WSH"),
        "cities": ("Washington",),
        "nicknames": ("Commanders", "Football Team"),
    },
}


def fold_team_key(raw: Any) -> str:
    """
    Fold alias text into an ASCII-safe comparison key.

    Steps:
        1. lowercase + trim
        2. NFKD accent removal
        3. punctuation cleanup
        4. whitespace collapse
    """
    text = str(raw or "").strip().lower()
    if not text:
        return ""

    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = _PUNCT_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", text).strip()


def _aliases_for(canonical: str, entry: dict[str, tuple[str, ...]]) -> set[str]:
    abbreviations = entry.get("abbreviations", ())
    cities = entry.get("cities", ())
    nicknames = entry.get("nicknames", ())

    aliases = {canonical, *abbreviations, *cities, *nicknames, *entry.get("display", ())}
    for prefix in (*abbreviations, *cities):
        for nickname in nicknames:
            aliases.add(f"{prefix} {nickname}")
    city_of_canonical = canonical.rsplit(" ", 1)[0]
    for nickname in nicknames:
        aliases.add(f"{city_of_canonical} {nickname}")
    return aliases


def _build_alias_index() -> dict[str, str]:
    index: dict[str, str] = {}
    for canonical, entry in NFL_TEAMS.items():
        for alias in _aliases_for(canonical, entry):
            key = fold_team_key(alias)
            if key:
                index[key] = canonical
    return index


_ALIAS_INDEX = _build_alias_index()


def normalize_team(raw: Any) -> Any:
    """Return the canonical franchise name for ``raw``, or ``raw`` unchanged."""
    if not isinstance(raw, str):
        return raw
    return _ALIAS_INDEX.get(fold_team_key(raw), raw)


def teams_equal(team_a: Any, team_b: Any) -> bool:
    """True when both names resolve to the same franchise."""
    if not team_a or not team_b:
        return False
    canonical_a = normalize_team(team_a)
    canonical_b = normalize_team(team_b)
    if canonical_a in NFL_TEAMS or canonical_b in NFL_TEAMS:
        return canonical_a == canonical_b
    # Neither side is a known franchise: fall back to the folded text.
    return fold_team_key(team_a) == fold_team_key(team_b)


def is_known_team(raw: Any) -> bool:
    return normalize_team(raw) in NFL_TEAMS


def known_aliases() -> dict[str, str]:
    """Folded alias -> canonical name, for validation and admin tooling."""
    return dict(_ALIAS_INDEX)
