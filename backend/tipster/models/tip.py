from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TipStatus(str, Enum):
    pending = "pending"
    won = "won"
    lost = "lost"
    void = "void"


TERMINAL_STATUSES = frozenset({TipStatus.won, TipStatus.lost, TipStatus.void})


class Tier(str, Enum):
    free = "free"
    pro = "pro"
    vip = "vip"


class RawPrediction(BaseModel):
    """Oracle output joined with its match context, before tier assignment."""
    match_id: str
    league: Optional[str] = None
    home_team: str
    away_team: str
    match_date: datetime
    prediction: str                      # prediction code, e.g. "1", "Over 2.5", "1 + Over 1.5"
    odds: float = Field(ge=1.0)
    confidence: int = Field(ge=60, le=95)
    analysis: str = ""


class TieredPrediction(RawPrediction):
    tier: Tier


class TipInDB(BaseModel):
    """Tip document as stored in MongoDB. Only status/result fields change after creation."""
    id: Optional[str] = None
    match_id: str
    league: Optional[str] = None      # unset on legacy rows: settled under the default league
    home_team: str
    away_team: str
    match_date: datetime
    prediction: str
    odds: float
    confidence: int
    tier: Tier
    status: TipStatus = TipStatus.pending
    result: Optional[str] = None         # "2-1"; None while pending or for abandoned matches
    actual_result: Optional[str] = None  # describe_result() output, audit trail
    analysis: str = ""
    archived: bool = False
    created_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None
