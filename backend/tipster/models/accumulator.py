from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from tipster.models.tip import Tier, TipStatus


class AccumulatorLeg(BaseModel):
    tip_id: str
    position: int  # 1-based display order, fixed at creation


class AccumulatorInDB(BaseModel):
    """Accumulator ("schedina") document. Membership and combined_odds are frozen at creation."""
    id: Optional[str] = None
    name: str = ""
    risk_level: int = Field(ge=1, le=3)
    combined_odds: float                 # product of member odds at creation time
    tier: Tier
    status: TipStatus = TipStatus.pending
    match_date: Optional[datetime] = None
    legs: List[AccumulatorLeg]
    created_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None


class AccumulatorWithMembers(BaseModel):
    """Pending accumulator with its member tip statuses joined in (ordered by position)."""
    id: str
    status: TipStatus
    member_statuses: List[TipStatus]
