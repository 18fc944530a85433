"""
backend/tipster/services/tier_service.py

Purpose:
    Subscription tier assignment for generated predictions: a first-match
    decision table per prediction, then a batch balancer that guarantees every
    tier is represented on calm match days.

Dependencies:
    - tipster.models.tip
"""

import logging

from tipster.models.tip import RawPrediction, Tier, TieredPrediction
from tipster.services.prediction_codes import is_combo

logger = logging.getLogger("tipster.tier_service")

TIER_LEVELS = {Tier.free: 0, Tier.pro: 1, Tier.vip: 2}

# Calibration constants, kept exact for behavioural compatibility.
FREE_MIN_CONFIDENCE = 80
FREE_MAX_ODDS = 1.8
VIP_MIN_ODDS = 2.5
PRO_MIN_CONFIDENCE = 70

MIN_BALANCE_BATCH = 3


def tier_level(tier: Tier | str) -> int:
    return TIER_LEVELS[Tier(tier)]


def has_access(user_tier: Tier | str, required_tier: Tier | str) -> bool:
    """True when user_tier is at least required_tier (free < pro < vip)."""
    return tier_level(user_tier) >= tier_level(required_tier)


def classify_tier(prediction: str, confidence: int, odds: float) -> Tier:
    """Decision table, first matching row wins."""
    if confidence >= FREE_MIN_CONFIDENCE and odds <= FREE_MAX_ODDS:
        return Tier.free
    if is_combo(prediction):
        return Tier.vip
    if odds >= VIP_MIN_ODDS:
        return Tier.vip
    if confidence >= PRO_MIN_CONFIDENCE:
        return Tier.pro
    return Tier.free


def balance_tiers(predictions: list[TieredPrediction]) -> list[TieredPrediction]:
    """Redistribute tiers when a batch of 3+ does not already cover all three.

    The batch is ranked by confidence * odds and cut into contiguous thirds
    (free, pro, vip); the remainder goes to vip. Input order is preserved.
    """
    if len(predictions) < MIN_BALANCE_BATCH:
        return list(predictions)

    present = {p.tier for p in predictions}
    if present == set(Tier):
        return list(predictions)

    ranked = sorted(range(len(predictions)), key=lambda i: predictions[i].confidence * predictions[i].odds)
    third = len(predictions) // 3
    new_tiers: dict[int, Tier] = {}
    for rank, index in enumerate(ranked):
        if rank < third:
            new_tiers[index] = Tier.free
        elif rank < third * 2:
            new_tiers[index] = Tier.pro
        else:
            new_tiers[index] = Tier.vip

    logger.info(
        "Rebalanced %d predictions (tiers present before: %s)",
        len(predictions), ", ".join(sorted(t.value for t in present)),
    )
    return [
        p.model_copy(update={"tier": new_tiers[i]})
        for i, p in enumerate(predictions)
    ]


def classify_and_balance(raw_predictions: list[RawPrediction]) -> list[TieredPrediction]:
    tiered = [
        TieredPrediction(
            **raw.model_dump(),
            tier=classify_tier(raw.prediction, raw.confidence, raw.odds),
        )
        for raw in raw_predictions
    ]
    return balance_tiers(tiered)
