"""
backend/tipster/routers/fixtures.py

Purpose:
    Read API for upcoming fixtures, recent results, standings and per-match
    odds, served through the provider gateway. Reading results also schedules an
    opportunistic settlement pass for that league.

Dependencies:
    - tipster.providers.gateway
    - tipster.services.settlement_service
    - tipster.services.odds_resolver
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from tipster.leagues import get_league, resolve_league_slug
from tipster.models.match import Fixture, MatchResult, OddsMarket, Standing
from tipster.providers import gateway as gateway_module
from tipster.services import settlement_service
from tipster.services.odds_resolver import resolve_odds

logger = logging.getLogger("tipster.fixtures")

router = APIRouter(prefix="/api/fixtures", tags=["fixtures"])


def _league(slug: Optional[str]) -> str:
    if not slug:
        return resolve_league_slug(slug)
    get_league(slug)  # UnknownLeagueError -> 400
    return slug


@router.get("/upcoming", response_model=list[Fixture])
async def upcoming(
    league: Optional[str] = Query(None, description="League slug, default league when omitted"),
    count: int = Query(10, ge=1, le=50),
):
    return await gateway_module.provider_gateway.fetch_upcoming(_league(league), count)


@router.get("/results", response_model=list[MatchResult])
async def results(
    league: Optional[str] = Query(None, description="League slug, default league when omitted"),
    count: int = Query(10, ge=1, le=50),
):
    """Recent results. Fresh results mean tips may be settleable, so a
    settlement pass is scheduled without delaying the response."""
    slug = _league(league)
    data = await gateway_module.provider_gateway.fetch_results(slug, count)
    settlement_service.trigger_opportunistic_settlement(slug)
    return data


@router.get("/standings", response_model=list[Standing])
async def standings(
    league: Optional[str] = Query(None, description="League slug, default league when omitted"),
):
    return await gateway_module.provider_gateway.fetch_standings(_league(league))


class MatchOdds(BaseModel):
    match_id: str
    market: Optional[OddsMarket] = None
    prediction: Optional[str] = None
    price: Optional[float] = None


@router.get("/{match_id}/odds", response_model=MatchOdds)
async def match_odds(
    match_id: str,
    prediction: Optional[str] = Query(None, description='Prediction code to price, e.g. "1 + Over 1.5"'),
):
    """Bookmaker markets for one match; with `prediction`, also its resolved price."""
    market = await gateway_module.provider_gateway.fetch_odds(match_id)
    price = resolve_odds(market, prediction) if prediction else None
    return MatchOdds(match_id=match_id, market=market, prediction=prediction, price=price)
