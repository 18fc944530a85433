from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class MatchExtras(BaseModel):
    """Statistics outside the core score, needed only by corner/card markets."""
    corners: Optional[int] = None
    cards: Optional[int] = None


class MatchResult(BaseModel):
    """Provider-sourced result. Ephemeral: consumed during settlement, never persisted."""
    match_id: str
    match_date: Optional[datetime] = None
    status: Optional[str] = None
    home_team: str = ""
    away_team: str = ""
    goals_home: Optional[int] = None
    goals_away: Optional[int] = None
    extras: Optional[MatchExtras] = None

    @property
    def is_scored(self) -> bool:
        return self.goals_home is not None and self.goals_away is not None

    @property
    def total_goals(self) -> int:
        return (self.goals_home or 0) + (self.goals_away or 0)

    @property
    def score(self) -> str:
        return f"{self.goals_home}-{self.goals_away}"


class Fixture(BaseModel):
    """Upcoming match, normalized across providers."""
    match_id: str
    league: str
    match_date: datetime
    status: Optional[str] = None
    home_team: str
    away_team: str
    home_logo: Optional[str] = None
    away_logo: Optional[str] = None


class Standing(BaseModel):
    rank: int
    name: str
    logo: Optional[str] = None
    points: int = 0
    played: int = 0
    win: int = 0
    draw: int = 0
    lose: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_diff: int = 0
    form: Optional[str] = None


class OddsOutcome(BaseModel):
    outcome: str         # provider label, e.g. "Home", "Over 2.5", "Yes", "Home/Draw"
    odd: str | float     # providers send decimal strings; parsed at resolution time


class OddsMarket(BaseModel):
    """Raw per-match market payload: one outcome array per market family."""
    match_id: str
    bookmaker: Optional[str] = None
    match_winner: List[OddsOutcome] = []
    over_under: List[OddsOutcome] = []
    both_teams_score: List[OddsOutcome] = []
    double_chance: List[OddsOutcome] = []
    corners: List[OddsOutcome] = []
    cards: List[OddsOutcome] = []


class HeadToHeadMatch(BaseModel):
    match_date: Optional[datetime] = None
    home_team: str
    away_team: str
    goals_home: Optional[int] = None
    goals_away: Optional[int] = None


class HeadToHead(BaseModel):
    """Previous meetings of two teams, counted from the upcoming fixture's point of view."""
    home_team: str
    away_team: str
    home_wins: int = 0
    away_wins: int = 0
    draws: int = 0
    matches: List[HeadToHeadMatch] = []

    @property
    def total(self) -> int:
        return self.home_wins + self.away_wins + self.draws

    @classmethod
    def from_matches(cls, home_team: str, away_team: str, matches: List[HeadToHeadMatch]) -> "HeadToHead":
        h2h = cls(home_team=home_team, away_team=away_team, matches=matches)
        key = home_team.lower()
        for m in matches:
            if m.goals_home is None or m.goals_away is None:
                continue
            if m.goals_home == m.goals_away:
                h2h.draws += 1
                continue
            winner = m.home_team if m.goals_home > m.goals_away else m.away_team
            if winner.lower() == key:
                h2h.home_wins += 1
            else:
                h2h.away_wins += 1
        return h2h
