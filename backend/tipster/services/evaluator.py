"""
backend/tipster/services/evaluator.py

Purpose:
    Pure prediction evaluation: (prediction code, final score, extras) ->
    verdict, plus the canonical human-readable result descriptor used for the
    audit trail and notifications.

Dependencies:
    - tipster.services.prediction_codes
    - tipster.models
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from tipster.models.match import MatchExtras, MatchResult
from tipster.models.tip import TipStatus
from tipster.services.prediction_codes import (
    AWAY,
    DRAW,
    HOME,
    OVER,
    BothTeamsScoreCode,
    ComboCode,
    DoubleChanceCode,
    GoalsLineCode,
    MatchOutcomeCode,
    PredictionCode,
    StatLineCode,
    UnrecognizedCode,
    parse_prediction_code,
)

logger = logging.getLogger("tipster.evaluator")


@dataclass(frozen=True)
class Settled:
    status: TipStatus  # won | lost


@dataclass(frozen=True)
class RequiresManualReview:
    """Data needed to settle is missing; the tip must stay pending."""
    reason: str


@dataclass(frozen=True)
class Unrecognized:
    """Unknown prediction code; written as void."""
    code: str


Verdict = Union[Settled, RequiresManualReview, Unrecognized]


def _outcome(goals_home: int, goals_away: int) -> str:
    if goals_home > goals_away:
        return HOME
    if goals_home == goals_away:
        return DRAW
    return AWAY


def _won(condition: bool) -> Settled:
    return Settled(TipStatus.won if condition else TipStatus.lost)


def _line_holds(direction: str, value: int, threshold: float) -> bool:
    return value > threshold if direction == OVER else value < threshold


def evaluate(
    code: str | PredictionCode,
    result: MatchResult,
    total_goals: int | None = None,
    extras: MatchExtras | None = None,
) -> Verdict:
    """Evaluate a prediction against a final result.

    total_goals defaults to the result's own sum. extras defaults to
    result.extras; corner/card markets return RequiresManualReview when the
    statistic they need is absent.
    """
    parsed = code if not isinstance(code, str) else parse_prediction_code(code)

    if not result.is_scored:
        return RequiresManualReview(reason="missing final score")

    goals_home = result.goals_home
    goals_away = result.goals_away
    if total_goals is None:
        total_goals = goals_home + goals_away
    outcome = _outcome(goals_home, goals_away)
    both_scored = goals_home > 0 and goals_away > 0

    if isinstance(parsed, MatchOutcomeCode):
        return _won(outcome == parsed.side)

    if isinstance(parsed, DoubleChanceCode):
        return _won(outcome in parsed.sides)

    if isinstance(parsed, GoalsLineCode):
        return _won(_line_holds(parsed.direction, total_goals, parsed.threshold))

    if isinstance(parsed, BothTeamsScoreCode):
        return _won(both_scored == parsed.both_score)

    if isinstance(parsed, ComboCode):
        return _won(
            outcome == parsed.side
            and _line_holds(parsed.goals.direction, total_goals, parsed.goals.threshold)
        )

    if isinstance(parsed, StatLineCode):
        stats = extras if extras is not None else result.extras
        value: Optional[int] = getattr(stats, parsed.stat, None) if stats is not None else None
        if value is None:
            return RequiresManualReview(reason=f"{parsed.stat} not available")
        return _won(_line_holds(parsed.direction, value, parsed.threshold))

    raw = parsed.raw if isinstance(parsed, UnrecognizedCode) else str(code)
    logger.warning("Unrecognized prediction code %r, settling as void", raw)
    return Unrecognized(code=raw)


def verdict_status(verdict: Verdict) -> TipStatus | None:
    """Status to persist for a verdict; None means leave pending for manual review."""
    if isinstance(verdict, Settled):
        return verdict.status
    if isinstance(verdict, Unrecognized):
        return TipStatus.void
    return None


def evaluate_status(
    code: str,
    result: MatchResult,
    total_goals: int | None = None,
    extras: MatchExtras | None = None,
) -> TipStatus | None:
    return verdict_status(evaluate(code, result, total_goals, extras))


def describe_result(result: MatchResult) -> str:
    """Canonical descriptor, e.g. "3-1, 1, O2.5, O1.5, Goal"."""
    goals_home = result.goals_home
    goals_away = result.goals_away
    total = goals_home + goals_away
    parts = [
        f"{goals_home}-{goals_away}",
        _outcome(goals_home, goals_away),
        "O2.5" if total > 2 else "U2.5",
        "O1.5" if total > 1 else "U1.5",
        "Goal" if goals_home > 0 and goals_away > 0 else "NoGoal",
    ]
    return ", ".join(parts)
