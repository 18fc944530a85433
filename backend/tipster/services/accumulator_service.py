"""
backend/tipster/services/accumulator_service.py

Purpose:
    Accumulator ("schedina") lifecycle: creation with frozen legs and
    combined odds, and status aggregation from member tip statuses.

Dependencies:
    - tipster.services.tip_store
    - tipster.models.accumulator
"""

import logging
import math
from collections import defaultdict
from typing import Iterable, Optional

from tipster.models.accumulator import AccumulatorInDB, AccumulatorLeg
from tipster.models.tip import TERMINAL_STATUSES, Tier, TipInDB, TipStatus
from tipster.services.tip_store import BaseTipStore
from tipster.utils import utcnow

logger = logging.getLogger("tipster.accumulator")

MIN_LEGS = 2


class AccumulatorError(ValueError):
    pass


def aggregate_status(statuses: Iterable[TipStatus | str]) -> TipStatus:
    """Derive an accumulator status from its member statuses.

    One lost leg loses the whole slip. Void legs drop out, so won + void is
    won and all void is void. Anything still pending keeps it pending; so
    does an empty slip.
    """
    members = [TipStatus(s) for s in statuses]
    if not members:
        return TipStatus.pending
    if TipStatus.lost in members:
        return TipStatus.lost
    if TipStatus.pending in members:
        return TipStatus.pending
    if all(s == TipStatus.void for s in members):
        return TipStatus.void
    return TipStatus.won


def build_accumulator(
    tips: list[TipInDB],
    risk_level: int,
    tier: Tier | str,
    name: str = "",
) -> AccumulatorInDB:
    if len(tips) < MIN_LEGS:
        raise AccumulatorError(f"An accumulator needs at least {MIN_LEGS} legs, got {len(tips)}")
    if risk_level not in (1, 2, 3):
        raise AccumulatorError(f"risk_level must be 1, 2 or 3, got {risk_level}")
    missing = [t for t in tips if not t.id]
    if missing:
        raise AccumulatorError("Every leg must reference a stored tip")
    if len({t.id for t in tips}) != len(tips):
        raise AccumulatorError("Duplicate tip in accumulator legs")

    # Stored unrounded; only display paths round
    combined = math.prod(t.odds for t in tips)
    return AccumulatorInDB(
        name=name,
        risk_level=risk_level,
        combined_odds=combined,
        tier=Tier(tier),
        status=TipStatus.pending,
        match_date=min(t.match_date for t in tips),
        legs=[AccumulatorLeg(tip_id=t.id, position=i) for i, t in enumerate(tips, start=1)],
        created_at=utcnow(),
    )


async def create_accumulator(
    store: BaseTipStore,
    tip_ids: list[str],
    risk_level: int,
    tier: Tier | str,
    name: str = "",
) -> str:
    """Load the member tips in the given order and persist a new accumulator."""
    tips = await store.find_tips(tip_ids)
    if len(tips) != len(tip_ids):
        found = {t.id for t in tips}
        absent = [i for i in tip_ids if i not in found]
        raise AccumulatorError(f"Unknown tips: {', '.join(absent)}")
    accumulator = build_accumulator(tips, risk_level, tier, name)
    acc_id = await store.insert_accumulator(accumulator)
    logger.info(
        "Created accumulator %s (%d legs, odds %.2f, tier %s)",
        acc_id, len(accumulator.legs), accumulator.combined_odds, accumulator.tier.value,
    )
    return acc_id


async def settle_accumulators(store: BaseTipStore, failures: Optional[list[str]] = None) -> int:
    """Recompute every pending accumulator from its members and persist the terminal ones.

    One guarded write per terminal status. Returns the number of documents
    modified. When `failures` is given, statuses whose write raised are
    appended to it instead of propagating.
    """
    pending = await store.find_accumulators(TipStatus.pending)
    by_status: dict[TipStatus, list[str]] = defaultdict(list)
    for acc in pending:
        status = aggregate_status(acc.member_statuses)
        if status in TERMINAL_STATUSES:
            by_status[status].append(acc.id)

    modified = 0
    for status, ids in by_status.items():
        try:
            modified += await store.batch_update_accumulator_status(ids, status)
        except Exception:
            if failures is None:
                raise
            logger.exception("Accumulator update to %s failed for %d documents", status.value, len(ids))
            failures.append(status.value)

    if pending:
        logger.info("Accumulators: %d pending checked, %d settled", len(pending), modified)
    return modified
