"""
backend/tipster/services/settlement_service.py

Purpose:
    Settlement pass for pending tips: fetch recent results per league through
    the provider gateway, evaluate each tip, persist grouped status updates
    and roll settled tips up into their accumulators.

    Safe to run concurrently with itself (cron and opportunistic triggers
    overlap): every write is guarded by status = pending, so a tip is
    transitioned at most once and a losing concurrent pass modifies nothing.

Dependencies:
    - tipster.providers.gateway
    - tipster.services.evaluator
    - tipster.services.accumulator_service
    - tipster.services.tip_store
"""

import asyncio
import logging
from collections import defaultdict
from typing import Optional

from tipster.config import settings
from tipster.leagues import UnknownLeagueError
from tipster.models.match import MatchResult
from tipster.models.settlement import SettledMatch, SettlementReport
from tipster.models.tip import TipInDB, TipStatus
from tipster.providers.base import ProviderUnavailableError
from tipster.providers.gateway import ProviderGateway, provider_gateway
from tipster.services.accumulator_service import settle_accumulators
from tipster.services.evaluator import (
    RequiresManualReview,
    Unrecognized,
    describe_result,
    evaluate,
    verdict_status,
)
from tipster.services.tip_store import BaseTipStore, tip_store
from tipster.utils import utcnow

logger = logging.getLogger("tipster.settlement")

# Provider status codes for matches that will never produce a score
ABANDONED_STATUSES = frozenset({"ABD", "CANC", "CANCELLED"})

# Fire-and-forget passes; referenced until done so they are not collected mid-run
_background_tasks: set[asyncio.Task] = set()

UpdateKey = tuple[TipStatus, Optional[str], Optional[str]]


def _is_abandoned(result: MatchResult) -> bool:
    return (result.status or "").upper() in ABANDONED_STATUSES


async def _results_for_league(
    gateway: ProviderGateway,
    league: str,
    results_count: int,
    report: SettlementReport,
) -> Optional[dict[str, MatchResult]]:
    try:
        results = await gateway.fetch_results(league, results_count)
    except (ProviderUnavailableError, UnknownLeagueError) as e:
        logger.error("Skipping league %s: %s", league, e)
        report.skipped_leagues.append(league)
        return None
    return {r.match_id: r for r in results}


def _evaluate_tip(
    tip: TipInDB,
    league: str,
    result: MatchResult,
    report: SettlementReport,
    updates: dict[UpdateKey, list[str]],
) -> None:
    entry = SettledMatch(
        tip_id=tip.id,
        match=f"{tip.home_team} vs {tip.away_team}",
        league=league,
        prediction=tip.prediction,
    )

    if _is_abandoned(result):
        entry.status = TipStatus.void
        updates[(TipStatus.void, None, None)].append(tip.id)
        report.per_match_results.append(entry)
        return

    if not result.is_scored:
        logger.info("Tip %s: match %s reported without a final score (%s)", tip.id, tip.match_id, result.status)
        report.manual_review_count += 1
        report.per_match_results.append(entry)
        return

    score = result.score
    actual = describe_result(result)
    entry.result = score
    entry.actual = actual

    verdict = evaluate(tip.prediction, result)
    if isinstance(verdict, RequiresManualReview):
        logger.info("Tip %s (%s) needs manual review: %s", tip.id, tip.prediction, verdict.reason)
        report.manual_review_count += 1
        report.per_match_results.append(entry)
        return
    if isinstance(verdict, Unrecognized):
        report.void_unrecognized_count += 1

    status = verdict_status(verdict)
    entry.status = status
    updates[(status, score, actual)].append(tip.id)
    report.per_match_results.append(entry)


async def settle_pending_tips(
    store: Optional[BaseTipStore] = None,
    gateway: Optional[ProviderGateway] = None,
    results_count: Optional[int] = None,
    trigger: str = "batch",
    league: Optional[str] = None,
) -> SettlementReport:
    """Run one settlement pass and return its report.

    results_count defaults to SETTLEMENT_BATCH_RESULTS. A league whose results
    cannot be fetched from either provider is skipped; its tips stay pending
    for the next pass.
    """
    store = store or tip_store
    gateway = gateway or provider_gateway
    if results_count is None:
        results_count = settings.SETTLEMENT_BATCH_RESULTS
    report = SettlementReport(trigger=trigger)

    pending = await store.find_pending(league, before=utcnow())
    report.pending_count = len(pending)

    by_league: dict[str, list[TipInDB]] = defaultdict(list)
    for tip in pending:
        by_league[tip.league or settings.DEFAULT_LEAGUE].append(tip)

    updates: dict[UpdateKey, list[str]] = defaultdict(list)
    for league_slug, tips in by_league.items():
        results = await _results_for_league(gateway, league_slug, results_count, report)
        if results is None:
            continue
        for tip in tips:
            result = results.get(tip.match_id)
            if result is None:
                report.unmatched_count += 1
                continue
            _evaluate_tip(tip, league_slug, result, report, updates)

    for (status, score, actual), ids in updates.items():
        try:
            report.settled_count += await store.batch_update_status(ids, status, score, actual)
        except Exception:
            logger.exception(
                "Status update to %s (%s) failed for %d tips", status.value, score, len(ids),
            )
            report.failed_writes += 1

    failures: list[str] = []
    try:
        report.accumulators_settled = await settle_accumulators(store, failures)
    except Exception:
        logger.exception("Accumulator settlement failed")
        report.failed_writes += 1
    report.failed_writes += len(failures)

    logger.info(
        "Settlement (%s): pending=%d settled=%d manual_review=%d unmatched=%d "
        "skipped_leagues=%s failed_writes=%d accumulators=%d",
        trigger, report.pending_count, report.settled_count, report.manual_review_count,
        report.unmatched_count, report.skipped_leagues, report.failed_writes,
        report.accumulators_settled,
    )
    return report


async def _run_opportunistic(league: Optional[str]) -> None:
    try:
        await settle_pending_tips(
            results_count=settings.SETTLEMENT_OPPORTUNISTIC_RESULTS,
            trigger="opportunistic",
            league=league,
        )
    except Exception:
        logger.exception("Opportunistic settlement failed")


def trigger_opportunistic_settlement(league: Optional[str] = None) -> asyncio.Task:
    """Schedule a settlement pass without waiting for it. Errors are logged only."""
    task = asyncio.create_task(_run_opportunistic(league))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
