from typing import List, Optional

from pydantic import BaseModel

from tipster.models.tip import TipStatus


class SettledMatch(BaseModel):
    """One evaluated tip, as reported to the notification layer."""
    tip_id: str
    match: str                          # "Home vs Away"
    league: str
    prediction: str
    result: Optional[str] = None        # "2-1"
    actual: Optional[str] = None        # describe_result() output
    status: Optional[TipStatus] = None  # None: routed to manual review


class SettlementReport(BaseModel):
    """Outcome of one settlement pass. Always returned, even when every count is zero."""
    trigger: str = "batch"              # batch | opportunistic
    pending_count: int = 0
    settled_count: int = 0              # documents actually transitioned out of pending
    manual_review_count: int = 0        # result found but not decidable: no final score, or missing extras
    unmatched_count: int = 0            # no result for the match among the fetched ones
    void_unrecognized_count: int = 0    # voided because the prediction code is unknown
    skipped_leagues: List[str] = []     # both providers failed for these leagues
    failed_writes: int = 0              # update groups whose write raised
    per_match_results: List[SettledMatch] = []
    accumulators_settled: int = 0
