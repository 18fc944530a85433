"""
backend/tipster/providers/football_data.py

Purpose:
    Fallback provider adapter for football-data.org v4. Produces the same
    normalized shapes as the api-football adapter. Publishes no odds.

Dependencies:
    - tipster.providers.http_client
    - tipster.leagues
"""

import logging
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
from tipster.utils import parse_utc

logger = logging.getLogger("tipster.football_data")

PROVIDER_NAME = "football_data"


def _team_name(team: dict[str, Any]) -> str:
    """football-data.org ships both shortName and name; prefer the short one."""
    return team.get("shortName") or team.get("name") or ""


def _names(team: dict[str, Any]) -> set[str]:
    return {str(team.get(k) or "").lower() for k in ("shortName", "name")} - {""}


def _label(team: dict[str, Any], *wanted: str) -> str:
    """The caller's spelling of this team when it is one of `wanted`."""
    names = _names(team)
    return next((w for w in wanted if w.lower() in names), _team_name(team))


class FootballDataProvider(BaseProvider):
    """football-data.org: fixtures, results and standings (free plan, 10 req/min)."""

    name = PROVIDER_NAME

    def __init__(self):
        self._client = ResilientClient(PROVIDER_NAME)

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> dict:
        api_key = settings.FOOTBALL_DATA_KEY
        if not api_key:
            raise ProviderError(PROVIDER_NAME, "FOOTBALL_DATA_KEY not configured")

        resp = await self._client.get(
            f"{settings.FOOTBALL_DATA_BASE_URL}{path}",
            params=params or {},
            headers={"X-Auth-Token": api_key},
        )
        if resp.status_code < 200 or resp.status_code >= 300:
            raise ProviderError(PROVIDER_NAME, f"HTTP {resp.status_code} on {path}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise ProviderError(PROVIDER_NAME, f"malformed JSON on {path}: {e}") from e
        if not isinstance(payload, dict):
            raise ProviderError(PROVIDER_NAME, f"unexpected payload type on {path}")
        if payload.get("errorCode") or payload.get("error"):
            raise ProviderError(
                PROVIDER_NAME,
                f"error envelope on {path}: {payload.get('message') or payload.get('error')}",
            )
        return payload

    async def fetch_upcoming(self, league: str, count: int) -> list[Fixture]:
        code = get_league(league)["football_data_code"]
        payload = await self._request(
            f"/competitions/{code}/matches",
            {"status": "SCHEDULED", "limit": count},
        )
        try:
            return [
                Fixture(
                    match_id=str(m["id"]),
                    league=league,
                    match_date=parse_utc(m["utcDate"]),
                    status=m.get("status"),
                    home_team=_team_name(m["homeTeam"]),
                    away_team=_team_name(m["awayTeam"]),
                    home_logo=m["homeTeam"].get("crest"),
                    away_logo=m["awayTeam"].get("crest"),
                )
                for m in (payload.get("matches") or [])[:count]
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(PROVIDER_NAME, f"malformed fixture: {e}") from e

    async def fetch_results(self, league: str, count: int) -> list[MatchResult]:
        code = get_league(league)["football_data_code"]
        payload = await self._request(
            f"/competitions/{code}/matches",
            {"status": "FINISHED", "limit": count},
        )
        # Chronological order upstream; most recent first for callers.
        matches = list(reversed((payload.get("matches") or [])[-count:]))
        try:
            results = []
            for m in matches:
                full_time = (m.get("score") or {}).get("fullTime") or {}
                results.append(MatchResult(
                    match_id=str(m["id"]),
                    match_date=parse_utc(m["utcDate"]),
                    status=m.get("status"),
                    home_team=_team_name(m["homeTeam"]),
                    away_team=_team_name(m["awayTeam"]),
                    goals_home=full_time.get("home"),
                    goals_away=full_time.get("away"),
                ))
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(PROVIDER_NAME, f"malformed result: {e}") from e

        logger.info("football-data.org: %d recent results for %s", len(results), league)
        return results

    async def fetch_odds(self, match_id: str) -> Optional[OddsMarket]:
        raise ProviderError(PROVIDER_NAME, "odds are not available from football-data.org")

    async def fetch_standings(self, league: str) -> list[Standing]:
        code = get_league(league)["football_data_code"]
        payload = await self._request(f"/competitions/{code}/standings")
        tables = payload.get("standings") or []
        total = next((t for t in tables if t.get("type") == "TOTAL"), None)
        if total is None:
            return []
        try:
            return [
                Standing(
                    rank=row["position"],
                    name=_team_name(row["team"]),
                    logo=row["team"].get("crest"),
                    points=row["points"],
                    played=row["playedGames"],
                    win=row["won"],
                    draw=row["draw"],
                    lose=row["lost"],
                    goals_for=row["goalsFor"],
                    goals_against=row["goalsAgainst"],
                    goal_diff=row["goalDifference"],
                    form=row.get("form"),
                )
                for row in total.get("table") or []
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(PROVIDER_NAME, f"malformed standings: {e}") from e

    async def fetch_head_to_head(
        self, league: str, home_team: str, away_team: str, last: int = 10,
    ) -> HeadToHead:
        """Meetings within the competition's finished matches.

        The head2head endpoint needs a football-data match id, which tips
        created from api-football fixtures do not carry.
        """
        code = get_league(league)["football_data_code"]
        payload = await self._request(f"/competitions/{code}/matches", {"status": "FINISHED"})
        pair = {home_team.lower(), away_team.lower()}
        meetings = []
        try:
            for m in reversed(payload.get("matches") or []):
                if not pair <= _names(m["homeTeam"]) | _names(m["awayTeam"]):
                    continue
                full_time = (m.get("score") or {}).get("fullTime") or {}
                meetings.append(HeadToHeadMatch(
                    match_date=parse_utc(m["utcDate"]),
                    home_team=_label(m["homeTeam"], home_team, away_team),
                    away_team=_label(m["awayTeam"], home_team, away_team),
                    goals_home=full_time.get("home"),
                    goals_away=full_time.get("away"),
                ))
                if len(meetings) >= last:
                    break
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(PROVIDER_NAME, f"malformed head-to-head: {e}") from e
        return HeadToHead.from_matches(home_team, away_team, meetings)

    async def aclose(self) -> None:
        await self._client.aclose()


football_data_provider = FootballDataProvider()
