"""
backend/tests/test_api_football_provider.py

Purpose:
    api-football adapter: envelope error detection, result/fixture
    normalization and bookmaker odds extraction.
"""

from __future__ import annotations

import sys

import pytest

sys.path.insert(0, "backend")

from tipster.config import settings
from tipster.leagues import UnknownLeagueError
from tipster.providers.api_football import ApiFootballProvider
from tipster.providers.base import ProviderError
from tipster.services.odds_resolver import resolve_odds


class _FakeResponse:
    def __init__(self, payload, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.headers = {}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class _FakeClient:
    def __init__(self, responses: list[_FakeResponse]) -> None:
        self._responses = list(responses)
        self.calls: list[dict] = []

    async def get(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        return self._responses.pop(0)


def _fixture(fixture_id: int, goals_home, goals_away, status: str = "FT") -> dict:
    return {
        "fixture": {"id": fixture_id, "date": "2025-03-01T17:00:00+00:00", "status": {"short": status}},
        "teams": {"home": {"name": "Inter", "logo": "i.png"}, "away": {"name": "Milan", "logo": "m.png"}},
        "goals": {"home": goals_home, "away": goals_away},
    }


@pytest.fixture
def provider(monkeypatch):
    monkeypatch.setattr(settings, "API_FOOTBALL_KEY", "test-key")
    return ApiFootballProvider()


@pytest.mark.asyncio
async def test_fetch_results_normalizes_fixtures(provider, monkeypatch):
    fake = _FakeClient([_FakeResponse({"errors": [], "response": [_fixture(11, 2, 1), _fixture(12, None, None, "PST")]})])
    monkeypatch.setattr(provider, "_client", fake)

    results = await provider.fetch_results("serie-a", 30)

    assert fake.calls[0]["params"] == {"league": 135, "season": 2025, "last": 30}
    assert fake.calls[0]["headers"] == {"x-apisports-key": "test-key"}
    assert [r.match_id for r in results] == ["11", "12"]
    assert results[0].score == "2-1"
    assert results[0].match_date.tzinfo is not None
    assert not results[1].is_scored


@pytest.mark.asyncio
async def test_error_envelope_with_http_200_is_a_failure(provider, monkeypatch):
    fake = _FakeClient([_FakeResponse({"errors": {"requests": "Daily limit reached"}, "response": []})])
    monkeypatch.setattr(provider, "_client", fake)

    with pytest.raises(ProviderError, match="Daily limit"):
        await provider.fetch_results("serie-a", 10)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        _FakeResponse({"errors": []}, status_code=500),
        _FakeResponse(ValueError("bad json")),
        _FakeResponse(["not", "a", "dict"]),
        _FakeResponse({"errors": []}),
        _FakeResponse({"errors": [], "response": [{"fixture": {}}]}),
    ],
)
async def test_bad_payloads_raise_provider_error(provider, monkeypatch, response):
    monkeypatch.setattr(provider, "_client", _FakeClient([response]))

    with pytest.raises(ProviderError):
        await provider.fetch_results("serie-a", 10)


@pytest.mark.asyncio
async def test_missing_key_fails_without_request(monkeypatch):
    monkeypatch.setattr(settings, "API_FOOTBALL_KEY", "")
    provider = ApiFootballProvider()
    fake = _FakeClient([])
    monkeypatch.setattr(provider, "_client", fake)

    with pytest.raises(ProviderError, match="not configured"):
        await provider.fetch_upcoming("serie-a", 10)
    assert fake.calls == []


@pytest.mark.asyncio
async def test_unknown_league_raises_before_request(provider, monkeypatch):
    fake = _FakeClient([])
    monkeypatch.setattr(provider, "_client", fake)

    with pytest.raises(UnknownLeagueError):
        await provider.fetch_upcoming("ligue-7", 10)
    assert fake.calls == []


@pytest.mark.asyncio
async def test_fetch_odds_uses_first_bookmaker(provider, monkeypatch):
    payload = {"errors": [], "response": [{"bookmakers": [{
        "id": 8,
        "name": "Bet365",
        "bets": [
            {"id": 1, "name": "Match Winner", "values": [{"value": "Home", "odd": "1.85"}]},
            {"id": 5, "name": "Goals Over/Under", "values": [{"value": "Over 1.5", "odd": "1.30"}]},
        ],
    }]}]}
    fake = _FakeClient([_FakeResponse(payload)])
    monkeypatch.setattr(provider, "_client", fake)

    market = await provider.fetch_odds("11")

    assert fake.calls[0]["params"]["bookmaker"] == settings.API_FOOTBALL_BOOKMAKER_ID
    assert resolve_odds(market, "1 + Over 1.5") == 2.21


@pytest.mark.asyncio
async def test_fetch_odds_without_bookmakers_is_none(provider, monkeypatch):
    monkeypatch.setattr(provider, "_client", _FakeClient([_FakeResponse({"errors": [], "response": []})]))
    assert await provider.fetch_odds("11") is None


@pytest.mark.asyncio
async def test_fetch_standings_flattens_groups(provider, monkeypatch):
    row = {
        "rank": 1, "team": {"name": "Inter", "logo": None}, "points": 60, "goalsDiff": 30, "form": "WWDWW",
        "all": {"played": 25, "win": 19, "draw": 3, "lose": 3, "goals": {"for": 55, "against": 25}},
    }
    payload = {"errors": [], "response": [{"league": {"standings": [[row], [dict(row, rank=2)]]}}]}
    monkeypatch.setattr(provider, "_client", _FakeClient([_FakeResponse(payload)]))

    table = await provider.fetch_standings("champions-league")

    assert [s.rank for s in table] == [1, 2]
    assert table[0].goal_diff == 30


def _standing_row(team_id: int, name: str) -> dict:
    return {"rank": team_id, "team": {"id": team_id, "name": name}}


def _meeting(home: str, away: str, goals_home: int, goals_away: int, date: str) -> dict:
    return {
        "fixture": {"id": 1, "date": date},
        "teams": {"home": {"name": home}, "away": {"name": away}},
        "goals": {"home": goals_home, "away": goals_away},
    }


@pytest.mark.asyncio
async def test_head_to_head_counts_from_fixture_point_of_view(provider, monkeypatch):
    standings = {"errors": [], "response": [{"league": {"standings": [[
        _standing_row(505, "Inter"), _standing_row(489, "AC Milan"),
    ]]}}]}
    meetings = {"errors": [], "response": [
        _meeting("Inter", "AC Milan", 2, 1, "2024-09-22T18:45:00+00:00"),
        _meeting("AC Milan", "Inter", 1, 1, "2025-02-02T19:45:00+00:00"),
        _meeting("AC Milan", "Inter", 2, 0, "2024-04-22T18:45:00+00:00"),
    ]}
    fake = _FakeClient([_FakeResponse(standings), _FakeResponse(meetings), _FakeResponse(meetings)])
    monkeypatch.setattr(provider, "_client", fake)

    h2h = await provider.fetch_head_to_head("serie-a", "inter", "AC Milan", last=5)

    assert fake.calls[1]["params"] == {"h2h": "505-489", "last": 5}
    assert (h2h.home_team, h2h.away_team) == ("Inter", "AC Milan")
    assert (h2h.home_wins, h2h.away_wins, h2h.draws, h2h.total) == (1, 1, 1, 3)
    assert h2h.matches[0].match_date.year == 2025

    # team ids are looked up once per league
    await provider.fetch_head_to_head("serie-a", "AC Milan", "Inter")
    assert len(fake.calls) == 3
    assert fake.calls[2]["params"]["h2h"] == "489-505"


@pytest.mark.asyncio
async def test_head_to_head_for_unknown_team_is_empty(provider, monkeypatch):
    standings = {"errors": [], "response": [{"league": {"standings": [[_standing_row(505, "Inter")]]}}]}
    fake = _FakeClient([_FakeResponse(standings)])
    monkeypatch.setattr(provider, "_client", fake)

    h2h = await provider.fetch_head_to_head("serie-a", "Inter", "Pisa")

    assert h2h.total == 0
    assert h2h.matches == []
    assert len(fake.calls) == 1
