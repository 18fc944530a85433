"""
backend/tipster/services/prediction_codes.py

Purpose:
    Parse external prediction-code strings ("1", "X2", "Over 2.5",
    "1 + Over 1.5", "Corners Over 9.5", ...) once into a closed set of typed
    variants consumed by the evaluator and the odds resolver.

Dependencies:
    - dataclasses
    - re
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

HOME = "1"
DRAW = "X"
AWAY = "2"

OVER = "over"
UNDER = "under"

CORNERS = "corners"
CARDS = "cards"

_NUMBER = r"(\d+(?:\.\d+)?)"
_GOALS_LINE_RE = re.compile(rf"^(over|under)\s+{_NUMBER}$", re.IGNORECASE)
_STAT_LINE_RE = re.compile(rf"^(corners|cards)\s+(over|under)\s+{_NUMBER}$", re.IGNORECASE)
_COMBO_RE = re.compile(rf"^([12x])\s*\+\s*(over|under)\s+{_NUMBER}$", re.IGNORECASE)

_DOUBLE_CHANCE = {
    "1X": frozenset({HOME, DRAW}),
    "X2": frozenset({DRAW, AWAY}),
    "12": frozenset({HOME, AWAY}),
}


def _format_threshold(threshold: float) -> str:
    return f"{threshold:g}"


@dataclass(frozen=True)
class MatchOutcomeCode:
    side: str  # "1" | "X" | "2"

    @property
    def canonical(self) -> str:
        return self.side


@dataclass(frozen=True)
class DoubleChanceCode:
    label: str  # "1X" | "X2" | "12"

    @property
    def sides(self) -> frozenset[str]:
        return _DOUBLE_CHANCE[self.label]

    @property
    def canonical(self) -> str:
        return self.label


@dataclass(frozen=True)
class GoalsLineCode:
    direction: str  # "over" | "under"
    threshold: float

    @property
    def canonical(self) -> str:
        return f"{self.direction.capitalize()} {_format_threshold(self.threshold)}"


@dataclass(frozen=True)
class BothTeamsScoreCode:
    both_score: bool

    @property
    def canonical(self) -> str:
        return "Goal" if self.both_score else "No Goal"


@dataclass(frozen=True)
class ComboCode:
    """Side outcome AND goals line, settled as one conjunction."""
    side: str
    goals: GoalsLineCode

    @property
    def canonical(self) -> str:
        return f"{self.side} + {self.goals.canonical}"


@dataclass(frozen=True)
class StatLineCode:
    stat: str  # "corners" | "cards"
    direction: str
    threshold: float

    @property
    def canonical(self) -> str:
        return (
            f"{self.stat.capitalize()} {self.direction.capitalize()} "
            f"{_format_threshold(self.threshold)}"
        )


@dataclass(frozen=True)
class UnrecognizedCode:
    raw: str

    @property
    def canonical(self) -> str:
        return self.raw


PredictionCode = Union[
    MatchOutcomeCode,
    DoubleChanceCode,
    GoalsLineCode,
    BothTeamsScoreCode,
    ComboCode,
    StatLineCode,
    UnrecognizedCode,
]


def _half_line(value: str) -> float | None:
    """Goal lines must be half-goal (N.5) so that no result can land on the line."""
    threshold = float(value)
    if threshold * 2 % 2 != 1:
        return None
    return threshold


def parse_prediction_code(raw: str) -> PredictionCode:
    """Parse a prediction string into its variant. Never raises."""
    if not isinstance(raw, str):
        return UnrecognizedCode(raw=str(raw))
    code = " ".join(raw.split())
    upper = code.upper()

    if upper in (HOME, DRAW, AWAY):
        return MatchOutcomeCode(side=upper)
    if upper in _DOUBLE_CHANCE:
        return DoubleChanceCode(label=upper)
    if upper == "GOAL":
        return BothTeamsScoreCode(both_score=True)
    if upper in ("NO GOAL", "NOGOAL"):
        return BothTeamsScoreCode(both_score=False)

    m = _GOALS_LINE_RE.match(code)
    if m:
        threshold = _half_line(m.group(2))
        if threshold is not None:
            return GoalsLineCode(direction=m.group(1).lower(), threshold=threshold)
        return UnrecognizedCode(raw=raw)

    m = _COMBO_RE.match(code)
    if m:
        threshold = _half_line(m.group(3))
        if threshold is not None:
            return ComboCode(
                side=m.group(1).upper(),
                goals=GoalsLineCode(direction=m.group(2).lower(), threshold=threshold),
            )
        return UnrecognizedCode(raw=raw)

    # Corner and card lines may be whole numbers; landing on the line loses both ways
    m = _STAT_LINE_RE.match(code)
    if m:
        return StatLineCode(
            stat=m.group(1).lower(),
            direction=m.group(2).lower(),
            threshold=float(m.group(3)),
        )

    return UnrecognizedCode(raw=raw)


def is_combo(raw: str) -> bool:
    """Any code joining two conditions with '+' counts as a combo for tiering."""
    return "+" in raw
