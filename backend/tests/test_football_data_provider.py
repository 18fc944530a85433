"""
backend/tests/test_football_data_provider.py

Purpose:
    football-data.org fallback adapter: shortName preference, result order,
    TOTAL standings table and error envelopes.
"""

from __future__ import annotations

import sys

import pytest

sys.path.insert(0, "backend")

from tipster.config import settings
from tipster.providers.base import ProviderError
from tipster.providers.football_data import FootballDataProvider


class _FakeResponse:
    def __init__(self, payload, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.headers = {}

    def json(self):
        return self._payload


class _FakeClient:
    def __init__(self, responses: list[_FakeResponse]) -> None:
        self._responses = list(responses)
        self.calls: list[dict] = []

    async def get(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        return self._responses.pop(0)


def _match(match_id: int, home: int | None, away: int | None, day: int) -> dict:
    return {
        "id": match_id,
        "utcDate": f"2025-03-{day:02d}T19:45:00Z",
        "status": "FINISHED",
        "homeTeam": {"name": "FC Internazionale Milano", "shortName": "Inter", "crest": "i.svg"},
        "awayTeam": {"name": "AC Milan", "shortName": None, "crest": "m.svg"},
        "score": {"fullTime": {"home": home, "away": away}},
    }


@pytest.fixture
def provider(monkeypatch):
    monkeypatch.setattr(settings, "FOOTBALL_DATA_KEY", "fd-key")
    return FootballDataProvider()


@pytest.mark.asyncio
async def test_results_are_most_recent_first_with_short_names(provider, monkeypatch):
    payload = {"matches": [_match(1, 0, 0, 1), _match(2, 2, 1, 8), _match(3, 1, 3, 15)]}
    fake = _FakeClient([_FakeResponse(payload)])
    monkeypatch.setattr(provider, "_client", fake)

    results = await provider.fetch_results("serie-a", 2)

    assert fake.calls[0]["url"].endswith("/competitions/SA/matches")
    assert fake.calls[0]["headers"] == {"X-Auth-Token": "fd-key"}
    assert [r.match_id for r in results] == ["3", "2"]
    assert results[0].home_team == "Inter"
    assert results[0].away_team == "AC Milan"
    assert results[0].score == "1-3"


@pytest.mark.asyncio
async def test_error_envelope_raises(provider, monkeypatch):
    payload = {"errorCode": 403, "message": "The resource you are looking for is restricted."}
    monkeypatch.setattr(provider, "_client", _FakeClient([_FakeResponse(payload)]))

    with pytest.raises(ProviderError, match="restricted"):
        await provider.fetch_upcoming("serie-b", 10)


@pytest.mark.asyncio
async def test_odds_are_not_available(provider):
    with pytest.raises(ProviderError):
        await provider.fetch_odds("1")


@pytest.mark.asyncio
async def test_standings_use_total_table(provider, monkeypatch):
    row = {
        "position": 1, "team": {"name": "SSC Napoli", "shortName": "Napoli", "crest": None},
        "points": 58, "playedGames": 25, "won": 18, "draw": 4, "lost": 3,
        "goalsFor": 44, "goalsAgainst": 20, "goalDifference": 24, "form": None,
    }
    payload = {"standings": [
        {"type": "HOME", "table": [dict(row, points=30)]},
        {"type": "TOTAL", "table": [row]},
    ]}
    monkeypatch.setattr(provider, "_client", _FakeClient([_FakeResponse(payload)]))

    table = await provider.fetch_standings("serie-a")

    assert len(table) == 1
    assert table[0].name == "Napoli"
    assert table[0].points == 58


@pytest.mark.asyncio
async def test_head_to_head_filters_competition_matches(provider, monkeypatch):
    other = dict(_match(9, 3, 0, 10), homeTeam={"name": "Genoa CFC", "shortName": "Genoa"})
    payload = {"matches": [_match(1, 0, 0, 1), _match(2, 2, 1, 8), other]}
    fake = _FakeClient([_FakeResponse(payload)])
    monkeypatch.setattr(provider, "_client", fake)

    h2h = await provider.fetch_head_to_head("serie-a", "FC Internazionale Milano", "AC Milan")

    assert fake.calls[0]["params"] == {"status": "FINISHED"}
    assert [m.goals_home for m in h2h.matches] == [2, 0]
    assert h2h.matches[0].home_team == "FC Internazionale Milano"
    assert (h2h.home_wins, h2h.away_wins, h2h.draws) == (1, 0, 1)
