from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from tipster.models.tip import TipStatus


class TrackRecordEntry(BaseModel):
    home_team: str
    away_team: str
    prediction: str
    odds: float
    status: TipStatus
    match_date: datetime


class MonthlyRecord(BaseModel):
    month: str        # "2025-03"
    won: int = 0
    lost: int = 0
    win_rate: float = 0.0
    profit: float = 0.0   # units, flat 1u stake per tip


class TrackRecord(BaseModel):
    """Public performance summary over settled tips. Void tips count toward neither rate nor profit."""
    league: Optional[str] = None
    total_tips: int = 0
    won: int = 0
    lost: int = 0
    void: int = 0
    pending: int = 0
    win_rate: float = 0.0
    avg_odds: float = 0.0     # mean odds of winning tips
    roi: float = 0.0          # percent, flat 1u stake per tip
    recent: List[TrackRecordEntry] = []
    monthly: List[MonthlyRecord] = []
