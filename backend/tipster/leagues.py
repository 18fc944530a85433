"""
backend/tipster/leagues.py

Purpose:
    League registry: maps our league slugs to the identifiers used by each
    upstream provider.

Dependencies:
    - tipster.config
"""

from typing import Any

from tipster.config import settings

LEAGUES: dict[str, dict[str, Any]] = {
    "serie-a": {
        "api_football_id": 135,
        "football_data_code": "SA",
        "season": 2025,
        "name": "Serie A",
        "name_short": "Serie A",
    },
    "serie-b": {
        # football-data.org free plan does not cover SB: fallback fails for this league
        "api_football_id": 136,
        "football_data_code": "SB",
        "season": 2025,
        "name": "Serie B",
        "name_short": "Serie B",
    },
    "champions-league": {
        "api_football_id": 2,
        "football_data_code": "CL",
        "season": 2025,
        "name": "Champions League",
        "name_short": "UCL",
    },
    "la-liga": {
        "api_football_id": 140,
        "football_data_code": "PD",
        "season": 2025,
        "name": "La Liga",
        "name_short": "La Liga",
    },
    "premier-league": {
        "api_football_id": 39,
        "football_data_code": "PL",
        "season": 2025,
        "name": "Premier League",
        "name_short": "PL",
    },
}

# Leagues covered by the daily generation pass
GENERATION_LEAGUES = ("serie-a", "champions-league", "la-liga", "premier-league")


class UnknownLeagueError(ValueError):
    """Raised when a league slug is not in the registry."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(
            f"Unknown league '{slug}'. Valid: {', '.join(sorted(LEAGUES))}"
        )


def get_league(slug: str) -> dict[str, Any]:
    league = LEAGUES.get(slug)
    if league is None:
        raise UnknownLeagueError(slug)
    return league


def resolve_league_slug(slug: str | None) -> str:
    """Return slug if registered, otherwise the configured default league."""
    if not slug or slug not in LEAGUES:
        return settings.DEFAULT_LEAGUE
    return slug
