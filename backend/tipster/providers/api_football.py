"""
backend/tipster/providers/api_football.py

Purpose:
    Primary provider adapter for api-football.com (api-sports.io v3) with
    normalized fixtures, results, standings and bookmaker odds payloads.

Dependencies:
    - tipster.providers.http_client
    - tipster.services.odds_resolver
    - tipster.leagues
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from tipster.config import settings
from tipster.leagues import get_league
from tipster.models.match import (
    Fixture,
    HeadToHead,
    HeadToHeadMatch,
    MatchResult,
    OddsMarket,
    Standing,
)
from tipster.providers.base import BaseProvider, ProviderError
from tipster.providers.http_client import ResilientClient
from tipster.services.odds_resolver import extract_markets
from tipster.utils import parse_utc

logger = logging.getLogger("tipster.api_football")

PROVIDER_NAME = "api_football"


class ApiFootballProvider(BaseProvider):
    """api-football.com: fixtures, results, standings and odds (Bet365 by default)."""

    name = PROVIDER_NAME

    def __init__(self):
        self._client = ResilientClient(PROVIDER_NAME)
        # league slug -> {lowercase team name: (api-football team id, display name)}
        self._team_ids: dict[str, dict[str, tuple[int, str]]] = {}

    async def _request(self, path: str, params: dict[str, Any]) -> list[dict]:
        api_key = settings.API_FOOTBALL_KEY
        if not api_key:
            raise ProviderError(PROVIDER_NAME, "API_FOOTBALL_KEY not configured")

        resp = await self._client.get(
            f"{settings.API_FOOTBALL_BASE_URL}{path}",
            params=params,
            headers={"x-apisports-key": api_key},
        )
        if resp.status_code < 200 or resp.status_code >= 300:
            raise ProviderError(PROVIDER_NAME, f"HTTP {resp.status_code} on {path}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise ProviderError(PROVIDER_NAME, f"malformed JSON on {path}: {e}") from e

        if not isinstance(payload, dict):
            raise ProviderError(PROVIDER_NAME, f"unexpected payload type on {path}")

        # api-sports reports quota/auth/parameter problems with HTTP 200 and
        # a non-empty "errors" (dict or list).
        errors = payload.get("errors")
        if errors:
            raise ProviderError(PROVIDER_NAME, f"error envelope on {path}: {errors}")

        response = payload.get("response")
        if not isinstance(response, list):
            raise ProviderError(PROVIDER_NAME, f"missing response array on {path}")
        return response

    async def fetch_upcoming(self, league: str, count: int) -> list[Fixture]:
        meta = get_league(league)
        data = await self._request("/fixtures", {
            "league": meta["api_football_id"],
            "season": meta["season"],
            "next": count,
        })
        try:
            return [
                Fixture(
                    match_id=str(item["fixture"]["id"]),
                    league=league,
                    match_date=parse_utc(item["fixture"]["date"]),
                    status=item["fixture"]["status"]["short"],
                    home_team=item["teams"]["home"]["name"],
                    away_team=item["teams"]["away"]["name"],
                    home_logo=item["teams"]["home"].get("logo"),
                    away_logo=item["teams"]["away"].get("logo"),
                )
                for item in data
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(PROVIDER_NAME, f"malformed fixture: {e}") from e

    async def fetch_results(self, league: str, count: int) -> list[MatchResult]:
        meta = get_league(league)
        data = await self._request("/fixtures", {
            "league": meta["api_football_id"],
            "season": meta["season"],
            "last": count,
        })
        try:
            results = [
                MatchResult(
                    match_id=str(item["fixture"]["id"]),
                    match_date=parse_utc(item["fixture"]["date"]),
                    status=item["fixture"]["status"]["short"],
                    home_team=item["teams"]["home"]["name"],
                    away_team=item["teams"]["away"]["name"],
                    goals_home=item["goals"]["home"],
                    goals_away=item["goals"]["away"],
                )
                for item in data
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(PROVIDER_NAME, f"malformed result: {e}") from e

        logger.info("api-football: %d recent results for %s", len(results), league)
        return results

    async def fetch_odds(self, match_id: str) -> Optional[OddsMarket]:
        data = await self._request("/odds", {
            "fixture": match_id,
            "bookmaker": settings.API_FOOTBALL_BOOKMAKER_ID,
        })
        if not data:
            return None
        bookmakers = data[0].get("bookmakers") or []
        if not bookmakers:
            return None
        return extract_markets(match_id, bookmakers[0])

    async def fetch_standings(self, league: str) -> list[Standing]:
        meta = get_league(league)
        data = await self._request("/standings", {
            "league": meta["api_football_id"],
            "season": meta["season"],
        })
        if not data:
            return []
        groups = (data[0].get("league") or {}).get("standings") or []
        # Group-stage competitions return one table per group
        entries = [entry for group in groups for entry in group]
        try:
            return [
                Standing(
                    rank=entry["rank"],
                    name=entry["team"]["name"],
                    logo=entry["team"].get("logo"),
                    points=entry["points"],
                    played=entry["all"]["played"],
                    win=entry["all"]["win"],
                    draw=entry["all"]["draw"],
                    lose=entry["all"]["lose"],
                    goals_for=entry["all"]["goals"]["for"],
                    goals_against=entry["all"]["goals"]["against"],
                    goal_diff=entry.get("goalsDiff") or 0,
                    form=entry.get("form"),
                )
                for entry in entries
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(PROVIDER_NAME, f"malformed standings: {e}") from e

    async def _teams(self, league: str) -> dict[str, tuple[int, str]]:
        if league in self._team_ids:
            return self._team_ids[league]
        meta = get_league(league)
        data = await self._request("/standings", {
            "league": meta["api_football_id"],
            "season": meta["season"],
        })
        teams: dict[str, tuple[int, str]] = {}
        groups = ((data[0].get("league") or {}).get("standings") or []) if data else []
        for entry in (e for group in groups for e in group):
            team = entry.get("team") or {}
            if team.get("id") is not None and team.get("name"):
                teams[team["name"].lower()] = (team["id"], team["name"])
        if teams:
            self._team_ids[league] = teams
        return teams

    async def fetch_head_to_head(
        self, league: str, home_team: str, away_team: str, last: int = 10,
    ) -> HeadToHead:
        teams = await self._teams(league)
        home = teams.get(home_team.lower())
        away = teams.get(away_team.lower())
        if home is None or away is None:
            logger.info("api-football: no team ids for %s vs %s in %s", home_team, away_team, league)
            return HeadToHead(home_team=home_team, away_team=away_team)

        data = await self._request("/fixtures/headtohead", {
            "h2h": f"{home[0]}-{away[0]}",
            "last": last,
        })
        try:
            matches = [
                HeadToHeadMatch(
                    match_date=parse_utc(item["fixture"]["date"]),
                    home_team=item["teams"]["home"]["name"],
                    away_team=item["teams"]["away"]["name"],
                    goals_home=item["goals"]["home"],
                    goals_away=item["goals"]["away"],
                )
                for item in data
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(PROVIDER_NAME, f"malformed head-to-head: {e}") from e
        matches.sort(key=lambda m: m.match_date or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return HeadToHead.from_matches(home[1], away[1], matches)

    async def aclose(self) -> None:
        await self._client.aclose()


api_football_provider = ApiFootballProvider()
