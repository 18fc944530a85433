"""
backend/tipster/services/odds_resolver.py

Purpose:
    Map a raw per-match market payload to one decimal price for a prediction
    code, including synthesized prices for combo codes, and build that payload
    from an api-football bookmaker entry.

Dependencies:
    - tipster.services.prediction_codes
    - tipster.models.match
"""

from __future__ import annotations

import re
from typing import Any, Optional

from tipster.models.match import OddsMarket, OddsOutcome
from tipster.services.prediction_codes import (
    AWAY,
    DRAW,
    HOME,
    BothTeamsScoreCode,
    ComboCode,
    DoubleChanceCode,
    GoalsLineCode,
    MatchOutcomeCode,
    StatLineCode,
    parse_prediction_code,
)

# Calibration constant, not derived from data. A side winning and a
# high-scoring game are positively correlated, so the product of the two leg
# prices overstates the combo price. Do not tune without domain input.
COMBO_CORRELATION_FACTOR = 0.92

_MATCH_WINNER_LABELS = {HOME: "home", DRAW: "draw", AWAY: "away"}
_DOUBLE_CHANCE_LABELS = {"1X": "home/draw", "X2": "draw/away", "12": "home/away"}

_LINE_LABEL_RE = re.compile(r"^(over|under)\s+(\d+(?:\.\d+)?)$")

# api-football bet ids
_BET_MATCH_WINNER = 1
_BET_GOALS_OVER_UNDER = 5
_BET_BOTH_TEAMS_SCORE = 8
_BET_DOUBLE_CHANCE = 12
_BET_CORNERS = 45
_BET_CARDS = 75


def _normalize(label: Any) -> str:
    return " ".join(str(label).split()).lower()


def _to_price(value: Any) -> Optional[float]:
    try:
        price = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if price < 1.0:
        return None
    return price


def _find_label(outcomes: list[OddsOutcome], label: str) -> Optional[float]:
    for entry in outcomes:
        if _normalize(entry.outcome) == label:
            return _to_price(entry.odd)
    return None


def _find_line(outcomes: list[OddsOutcome], direction: str, threshold: float) -> Optional[float]:
    """Exact-threshold lookup: "Over 1.5" never answers for "Over 2.5"."""
    for entry in outcomes:
        m = _LINE_LABEL_RE.match(_normalize(entry.outcome))
        if m and m.group(1) == direction and float(m.group(2)) == threshold:
            return _to_price(entry.odd)
    return None


def resolve_odds(market: OddsMarket | None, code: str) -> Optional[float]:
    """Decimal price for `code` in `market`, or None when the market is absent."""
    if market is None:
        return None
    parsed = parse_prediction_code(code)

    if isinstance(parsed, MatchOutcomeCode):
        return _find_label(market.match_winner, _MATCH_WINNER_LABELS[parsed.side])

    if isinstance(parsed, DoubleChanceCode):
        return _find_label(market.double_chance, _DOUBLE_CHANCE_LABELS[parsed.label])

    if isinstance(parsed, GoalsLineCode):
        return _find_line(market.over_under, parsed.direction, parsed.threshold)

    if isinstance(parsed, BothTeamsScoreCode):
        return _find_label(market.both_teams_score, "yes" if parsed.both_score else "no")

    if isinstance(parsed, StatLineCode):
        outcomes = market.corners if parsed.stat == "corners" else market.cards
        return _find_line(outcomes, parsed.direction, parsed.threshold)

    if isinstance(parsed, ComboCode):
        side_price = _find_label(market.match_winner, _MATCH_WINNER_LABELS[parsed.side])
        line_price = _find_line(market.over_under, parsed.goals.direction, parsed.goals.threshold)
        if side_price is None or line_price is None:
            return None
        return round(side_price * line_price * COMBO_CORRELATION_FACTOR, 2)

    return None


def _outcomes(bet: dict[str, Any] | None) -> list[OddsOutcome]:
    if not bet:
        return []
    return [
        OddsOutcome(outcome=str(v.get("value", "")), odd=v.get("odd") or "")
        for v in bet.get("values") or []
    ]


def extract_markets(match_id: str, bookmaker: dict[str, Any]) -> OddsMarket:
    """Build an OddsMarket from one api-football bookmaker entry."""
    bets: list[dict[str, Any]] = bookmaker.get("bets") or []
    by_id = {b.get("id"): b for b in bets}

    def _named(bet_id: int, *needles: str) -> dict[str, Any] | None:
        # Corner/card market names vary between bookmaker feed versions
        if bet_id in by_id:
            return by_id[bet_id]
        for bet in bets:
            name = str(bet.get("name", "")).lower()
            if any(n in name for n in needles):
                return bet
        return None

    return OddsMarket(
        match_id=str(match_id),
        bookmaker=bookmaker.get("name"),
        match_winner=_outcomes(by_id.get(_BET_MATCH_WINNER)),
        over_under=_outcomes(by_id.get(_BET_GOALS_OVER_UNDER)),
        both_teams_score=_outcomes(by_id.get(_BET_BOTH_TEAMS_SCORE)),
        double_chance=_outcomes(by_id.get(_BET_DOUBLE_CHANCE)),
        corners=_outcomes(_named(_BET_CORNERS, "corner")),
        cards=_outcomes(_named(_BET_CARDS, "card", "booking")),
    )
