"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import paths, plus an in-memory tip store and a
    scripted provider gateway used by the settlement, accumulator and
    generation tests.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]
_REPO_ROOT = _THIS_FILE.parents[2]

for candidate in (str(_BACKEND_DIR), str(_REPO_ROOT)):
    if candidate not in sys.path:
        sys.path.insert(0, candidate)

from tipster.config import settings
from tipster.models.accumulator import AccumulatorInDB, AccumulatorWithMembers
from tipster.models.match import MatchResult
from tipster.models.tip import Tier, TipInDB, TipStatus
from tipster.providers.base import ProviderError, ProviderUnavailableError
from tipster.services.tip_store import BaseTipStore

KICKOFF = datetime(2025, 3, 1, 15, 0, tzinfo=timezone.utc)


def make_tip(tip_id: str, match_id: str, prediction: str, **overrides) -> TipInDB:
    data = dict(
        id=tip_id,
        match_id=match_id,
        league="serie-a",
        home_team=f"Home {match_id}",
        away_team=f"Away {match_id}",
        match_date=KICKOFF,
        prediction=prediction,
        odds=1.8,
        confidence=75,
        tier=Tier.pro,
    )
    data.update(overrides)
    return TipInDB(**data)


def make_result(match_id: str, goals_home: int | None, goals_away: int | None, **overrides) -> MatchResult:
    data = dict(
        match_id=match_id,
        status="FT",
        goals_home=goals_home,
        goals_away=goals_away,
        match_date=KICKOFF + timedelta(hours=2),
    )
    data.update(overrides)
    return MatchResult(**data)


class InMemoryTipStore(BaseTipStore):
    """Dict-backed store honouring the status = pending write guard."""

    def __init__(self, tips: list[TipInDB] | None = None):
        self.tips: dict[str, TipInDB] = {t.id: t for t in tips or []}
        self.accumulators: dict[str, AccumulatorInDB] = {}
        self.update_calls: list[tuple] = []
        self.accumulator_update_calls: list[tuple] = []
        self.fail_status: TipStatus | None = None
        self._next_id = 0

    def _new_id(self) -> str:
        self._next_id += 1
        return f"{self._next_id:024x}"

    async def find_pending(self, league=None, *, before):
        return [
            t for t in self.tips.values()
            if t.status == TipStatus.pending
            and t.match_date < before
            and (league is None or (t.league or settings.DEFAULT_LEAGUE) == league)
        ]

    async def batch_update_status(self, ids, status, result, actual_result=None):
        self.update_calls.append((tuple(ids), status, result, actual_result))
        if self.fail_status is not None and status == self.fail_status:
            raise RuntimeError("write failed")
        modified = 0
        for tip_id in ids:
            tip = self.tips.get(tip_id)
            if tip is None or tip.status != TipStatus.pending:
                continue
            self.tips[tip_id] = tip.model_copy(update={
                "status": status, "result": result, "actual_result": actual_result,
            })
            modified += 1
        return modified

    async def find_accumulators(self, status):
        out = []
        for acc_id, acc in self.accumulators.items():
            if acc.status != status:
                continue
            members = [
                self.tips[leg.tip_id].status if leg.tip_id in self.tips else TipStatus.pending
                for leg in sorted(acc.legs, key=lambda leg: leg.position)
            ]
            out.append(AccumulatorWithMembers(id=acc_id, status=acc.status, member_statuses=members))
        return out

    async def batch_update_accumulator_status(self, ids, status):
        self.accumulator_update_calls.append((tuple(ids), status))
        modified = 0
        for acc_id in ids:
            acc = self.accumulators.get(acc_id)
            if acc is None or acc.status != TipStatus.pending:
                continue
            self.accumulators[acc_id] = acc.model_copy(update={"status": status})
            modified += 1
        return modified

    async def find_existing_match_ids(self, league, match_ids):
        wanted = set(match_ids)
        return {t.match_id for t in self.tips.values() if t.league == league and t.match_id in wanted}

    async def insert_tips(self, league, tips):
        existing = await self.find_existing_match_ids(league, [t.match_id for t in tips])
        inserted = 0
        for tip in tips:
            if tip.match_id in existing:
                continue
            tip_id = self._new_id()
            self.tips[tip_id] = TipInDB(**tip.model_dump(exclude={"league"}), id=tip_id, league=league)
            existing.add(tip.match_id)
            inserted += 1
        return inserted

    async def find_tips(self, ids):
        return [self.tips[i] for i in ids if i in self.tips]

    async def insert_accumulator(self, accumulator):
        acc_id = self._new_id()
        self.accumulators[acc_id] = accumulator.model_copy(update={"id": acc_id})
        return acc_id

    async def find_settled(self, league=None):
        settled = [
            t for t in self.tips.values()
            if t.status != TipStatus.pending and (league is None or t.league == league)
        ]
        return sorted(settled, key=lambda t: t.match_date, reverse=True)

    async def count_pending(self, league=None):
        return sum(
            1 for t in self.tips.values()
            if t.status == TipStatus.pending and (league is None or t.league == league)
        )

    async def archive_older_than(self, cutoff):
        count = 0
        for tip_id, tip in self.tips.items():
            if tip.status != TipStatus.pending and not tip.archived and tip.match_date < cutoff:
                self.tips[tip_id] = tip.model_copy(update={"archived": True})
                count += 1
        return count


class ScriptedGateway:
    """Gateway stand-in: canned results/fixtures per league, or an exception."""

    def __init__(self, results=None, fixtures=None, markets=None, standings=None, head_to_head=None):
        self.results = results or {}
        self.fixtures = fixtures or {}
        self.markets = markets or {}
        self.standings = standings if standings is not None else []
        self.head_to_head = head_to_head or {}
        self.result_calls: list[tuple[str, int]] = []

    async def fetch_results(self, league, count):
        self.result_calls.append((league, count))
        outcome = self.results.get(league, [])
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def fetch_upcoming(self, league, count):
        return list(self.fixtures.get(league, []))[:count]

    async def fetch_standings(self, league):
        if isinstance(self.standings, Exception):
            raise self.standings
        return self.standings

    async def fetch_odds_many(self, match_ids):
        return {match_id: self.markets.get(match_id) for match_id in match_ids}

    async def fetch_head_to_head_many(self, league, fixtures, last=10):
        return {f.match_id: self.head_to_head.get(f.match_id) for f in fixtures}


def unavailable(operation: str = "fetch_results[serie-a]") -> ProviderUnavailableError:
    return ProviderUnavailableError(
        operation,
        ProviderError("api_football", "HTTP 500"),
        ProviderError("football_data", "HTTP 429"),
    )


@pytest.fixture
def fake_db():
    """Minimal SimpleNamespace stand-in for the Motor database handle."""
    return SimpleNamespace()
