"""
backend/tipster/workers/settlement_worker.py

Purpose:
    Scheduled settlement pass over all pending tips and accumulators.

Dependencies:
    - tipster.services.settlement_service
    - tipster.workers._state
"""

import logging
from datetime import timedelta

import tipster.database as _db
from tipster.models.settlement import SettlementReport
from tipster.models.tip import TipStatus
from tipster.services import settlement_service
from tipster.utils import utcnow
from tipster.workers._state import recently_synced, set_synced

logger = logging.getLogger("tipster.settlement_worker")

STATE_KEY = "tip_settlement"


async def run_settlement() -> SettlementReport | None:
    """Settle pending tips.

    Smart sleep: right after a recent run, skip unless some pending tip has
    already kicked off.
    """
    if await recently_synced(STATE_KEY, timedelta(minutes=30)):
        due = await _db.db.tips.find_one({
            "status": TipStatus.pending.value,
            "match_date": {"$lt": utcnow()},
        })
        if not due:
            logger.debug("Smart sleep: no pending tips past kickoff")
            return None

    report = await settlement_service.settle_pending_tips(trigger="batch")
    await set_synced(STATE_KEY, {
        "settled": report.settled_count,
        "manual_review": report.manual_review_count,
        "skipped_leagues": report.skipped_leagues,
        "failed_writes": report.failed_writes,
    })
    return report
