"""
backend/tipster/workers/generation_worker.py

Purpose:
    Daily generation job: settle what is due first, then generate tips for
    every league in GENERATION_LEAGUES with the configured prediction oracle.

Dependencies:
    - tipster.services.generation_service
    - tipster.services.settlement_service
    - tipster.workers._state
"""

import logging
from typing import Optional

from tipster.leagues import GENERATION_LEAGUES
from tipster.services import generation_service, settlement_service
from tipster.services.generation_service import PredictionOracle
from tipster.workers._state import set_synced

logger = logging.getLogger("tipster.generation_worker")

STATE_KEY = "tip_generation"

_oracle: Optional[PredictionOracle] = None


def set_oracle(oracle: Optional[PredictionOracle]) -> None:
    """Install the oracle used by the daily job (None disables generation)."""
    global _oracle
    _oracle = oracle


def get_oracle() -> Optional[PredictionOracle]:
    return _oracle


async def run_daily_generation() -> dict[str, int]:
    """Returns {league: tips stored}. A failing league is logged and skipped."""
    try:
        await settlement_service.settle_pending_tips(trigger="batch")
    except Exception:
        logger.exception("Pre-generation settlement failed, continuing with generation")

    if _oracle is None:
        logger.warning("No prediction oracle configured, skipping tip generation")
        return {}

    generated: dict[str, int] = {}
    for league in GENERATION_LEAGUES:
        try:
            outcome = await generation_service.generate_for_league(league, _oracle)
        except Exception:
            logger.exception("Tip generation failed for %s", league)
            continue
        generated[league] = outcome["generated"]

    await set_synced(STATE_KEY, {"generated": generated})
    logger.info("Daily generation done: %s", generated)
    return generated
