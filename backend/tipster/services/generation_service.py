"""
backend/tipster/services/generation_service.py

Purpose:
    Daily tip generation for one league: upcoming fixtures -> standings,
    recent form, market odds and head-to-head records (fetched concurrently)
    -> prediction oracle -> tier classification -> persisted pending tips.

    The oracle (an LLM call in production) is a black box behind
    PredictionOracle; its output is clamped and validated here before it
    reaches the tier classifier.

Dependencies:
    - tipster.providers.gateway
    - tipster.services.odds_resolver
    - tipster.services.tier_service
    - tipster.services.tip_store
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Optional, TypeVar

from tipster.config import settings
from tipster.models.match import Fixture, HeadToHead, MatchResult, OddsMarket, Standing
from tipster.models.tip import RawPrediction, TieredPrediction
from tipster.providers.base import ProviderUnavailableError
from tipster.providers.gateway import ProviderGateway, provider_gateway
from tipster.services.odds_resolver import resolve_odds
from tipster.services.tier_service import classify_and_balance
from tipster.services.tip_store import BaseTipStore, tip_store

logger = logging.getLogger("tipster.generation")

T = TypeVar("T")

# Codes the oracle may emit. Corner/card markets are settle-only.
GENERATION_CODES = (
    "1", "X", "2", "1X", "X2", "12",
    "Over 2.5", "Under 2.5", "Over 1.5", "Under 3.5",
    "Goal", "No Goal",
    "1 + Over 1.5", "2 + Over 1.5",
)
_CODES_BY_KEY = {" ".join(c.split()).lower(): c for c in GENERATION_CODES}

MIN_CONFIDENCE, MAX_CONFIDENCE = 60, 95
MIN_ODDS, MAX_ODDS = 1.2, 5.0


@dataclass
class OracleContext:
    """What the oracle sees besides the fixture itself."""
    league: str
    standings: list[Standing] = field(default_factory=list)
    recent_results: list[MatchResult] = field(default_factory=list)
    market: Optional[OddsMarket] = None
    head_to_head: Optional[HeadToHead] = None


class PredictionOracle(ABC):
    @abstractmethod
    async def predict(self, fixture: Fixture, context: OracleContext) -> dict[str, Any]:
        """Return {"prediction", "confidence", "odds", "analysis"} for one fixture."""
        ...


class InvalidPredictionError(ValueError):
    pass


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def normalize_prediction(fixture: Fixture, raw: dict[str, Any]) -> RawPrediction:
    """Validate one oracle answer and clamp its numbers into range."""
    code = _CODES_BY_KEY.get(" ".join(str(raw.get("prediction", "")).split()).lower())
    if code is None:
        raise InvalidPredictionError(f"prediction code {raw.get('prediction')!r} not allowed")
    try:
        confidence = int(round(float(raw.get("confidence"))))
        odds = float(raw.get("odds"))
    except (TypeError, ValueError) as e:
        raise InvalidPredictionError(f"non-numeric confidence/odds: {e}") from e

    return RawPrediction(
        match_id=fixture.match_id,
        league=fixture.league,
        home_team=fixture.home_team,
        away_team=fixture.away_team,
        match_date=fixture.match_date,
        prediction=code,
        confidence=int(_clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE)),
        odds=round(_clamp(odds, MIN_ODDS, MAX_ODDS), 2),
        analysis=str(raw.get("analysis") or ""),
    )


async def _predict_one(
    oracle: PredictionOracle,
    fixture: Fixture,
    context: OracleContext,
) -> Optional[RawPrediction]:
    try:
        raw = await oracle.predict(fixture, context)
        prediction = normalize_prediction(fixture, raw)
    except Exception as e:
        logger.warning(
            "Oracle failed for %s vs %s (%s): %s",
            fixture.home_team, fixture.away_team, fixture.match_id, e,
        )
        return None

    market_price = resolve_odds(context.market, prediction.prediction)
    if market_price is not None:
        prediction = prediction.model_copy(update={"odds": market_price})
    return prediction


async def _or_empty(call: Awaitable[list[T]], league: str, what: str) -> list[T]:
    try:
        return await call
    except ProviderUnavailableError as e:
        logger.warning("Generation %s: %s unavailable, continuing without: %s", league, what, e)
        return []


async def generate_for_league(
    league: str,
    oracle: PredictionOracle,
    store: Optional[BaseTipStore] = None,
    gateway: Optional[ProviderGateway] = None,
) -> dict[str, Any]:
    """Generate and store tips for the next upcoming matches of one league.

    Matches that already have a tip are skipped. Returns
    {"league", "generated", "tips"}.
    """
    store = store or tip_store
    gateway = gateway or provider_gateway

    fixtures = await gateway.fetch_upcoming(league, settings.GENERATION_MATCH_COUNT)
    existing = await store.find_existing_match_ids(league, [f.match_id for f in fixtures])
    fresh = [f for f in fixtures if f.match_id not in existing]
    if not fresh:
        logger.info("Generation %s: no new fixtures (%d already tipped)", league, len(existing))
        return {"league": league, "generated": 0, "tips": []}

    standings, recent_results, markets, head_to_head = await asyncio.gather(
        _or_empty(gateway.fetch_standings(league), league, "standings"),
        _or_empty(
            gateway.fetch_results(league, settings.GENERATION_RECENT_RESULTS), league, "recent results",
        ),
        gateway.fetch_odds_many([f.match_id for f in fresh]),
        gateway.fetch_head_to_head_many(league, fresh, settings.GENERATION_HEAD_TO_HEAD),
    )

    raw_predictions: list[RawPrediction] = []
    for fixture in fresh:
        context = OracleContext(
            league=league,
            standings=standings,
            recent_results=recent_results,
            market=markets.get(fixture.match_id),
            head_to_head=head_to_head.get(fixture.match_id),
        )
        prediction = await _predict_one(oracle, fixture, context)
        if prediction is not None:
            raw_predictions.append(prediction)

    tiered: list[TieredPrediction] = classify_and_balance(raw_predictions)
    inserted = await store.insert_tips(league, tiered)
    logger.info(
        "Generation %s: %d fixtures, %d new, %d predicted, %d stored",
        league, len(fixtures), len(fresh), len(tiered), inserted,
    )
    return {
        "league": league,
        "generated": inserted,
        "tips": [t.model_dump(mode="json") for t in tiered],
    }
