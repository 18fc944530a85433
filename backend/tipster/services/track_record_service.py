"""
backend/tipster/services/track_record_service.py

Purpose:
    Public track record over settled tips: win rate, ROI at a flat 1u stake,
    average winning odds, the latest settled tips and a monthly breakdown.

Dependencies:
    - tipster.services.tip_store
    - tipster.models.track_record
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from tipster.models.tip import TipInDB, TipStatus
from tipster.models.track_record import MonthlyRecord, TrackRecord, TrackRecordEntry
from tipster.services.tip_store import BaseTipStore, tip_store

logger = logging.getLogger("tipster.track_record")

RECENT_COUNT = 10
MONTHS_SHOWN = 6


def _rate(won: int, lost: int) -> float:
    settled = won + lost
    return round(won / settled * 100, 1) if settled else 0.0


def _profit(tip: TipInDB) -> float:
    if tip.status == TipStatus.won:
        return tip.odds - 1
    if tip.status == TipStatus.lost:
        return -1.0
    return 0.0


def _monthly(tips: Iterable[TipInDB]) -> list[MonthlyRecord]:
    months: dict[str, MonthlyRecord] = defaultdict(lambda: MonthlyRecord(month=""))
    for tip in tips:
        key = tip.match_date.strftime("%Y-%m")
        record = months[key]
        record.month = key
        if tip.status == TipStatus.won:
            record.won += 1
        elif tip.status == TipStatus.lost:
            record.lost += 1
        record.profit += _profit(tip)

    out = []
    for key in sorted(months)[-MONTHS_SHOWN:]:
        record = months[key]
        record.win_rate = _rate(record.won, record.lost)
        record.profit = round(record.profit, 1)
        out.append(record)
    return out


def summarize(settled: list[TipInDB], pending: int = 0, league: Optional[str] = None) -> TrackRecord:
    """Build the track record from settled tips ordered most recent first."""
    won = [t for t in settled if t.status == TipStatus.won]
    lost = sum(1 for t in settled if t.status == TipStatus.lost)
    void = sum(1 for t in settled if t.status == TipStatus.void)
    decided = len(won) + lost

    profit = sum(_profit(t) for t in settled)
    return TrackRecord(
        league=league,
        total_tips=len(settled) + pending,
        won=len(won),
        lost=lost,
        void=void,
        pending=pending,
        win_rate=_rate(len(won), lost),
        avg_odds=round(sum(t.odds for t in won) / len(won), 2) if won else 0.0,
        roi=round(profit / decided * 100, 1) if decided else 0.0,
        recent=[
            TrackRecordEntry(
                home_team=t.home_team,
                away_team=t.away_team,
                prediction=t.prediction,
                odds=t.odds,
                status=t.status,
                match_date=t.match_date,
            )
            for t in settled[:RECENT_COUNT]
        ],
        monthly=_monthly(settled),
    )


async def get_track_record(
    league: Optional[str] = None,
    store: Optional[BaseTipStore] = None,
) -> TrackRecord:
    store = store or tip_store
    settled = await store.find_settled(league)
    pending = await store.count_pending(league)
    record = summarize(settled, pending, league)
    logger.debug(
        "Track record%s: %d settled, win rate %.1f%%, roi %.1f%%",
        f" {league}" if league else "", len(settled), record.win_rate, record.roi,
    )
    return record
