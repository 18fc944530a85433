from abc import ABC, abstractmethod
from typing import Optional

from tipster.models.match import Fixture, HeadToHead, MatchResult, OddsMarket, Standing


class ProviderError(Exception):
    """A single upstream source failed (non-2xx, malformed payload, or error envelope)."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderUnavailableError(Exception):
    """Primary and fallback both failed for one gateway call."""

    def __init__(
        self,
        operation: str,
        primary_error: BaseException,
        fallback_error: BaseException,
    ):
        self.operation = operation
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        super().__init__(
            f"{operation} failed on all providers "
            f"(primary: {primary_error}; fallback: {fallback_error})"
        )


class BaseProvider(ABC):
    """Abstract upstream football data source.

    Every method returns normalized models or raises ProviderError. Returning
    an empty list is a valid answer ("nothing there"), not a failure.
    """

    name: str = "base"

    @abstractmethod
    async def fetch_upcoming(self, league: str, count: int) -> list[Fixture]:
        """Next `count` scheduled matches of a league."""
        ...

    @abstractmethod
    async def fetch_results(self, league: str, count: int) -> list[MatchResult]:
        """Last `count` finished matches of a league, most recent first."""
        ...

    @abstractmethod
    async def fetch_odds(self, match_id: str) -> Optional[OddsMarket]:
        """Market payload for one match, or None if the bookmaker has none."""
        ...

    @abstractmethod
    async def fetch_standings(self, league: str) -> list[Standing]:
        """Overall league table ordered by rank."""
        ...

    @abstractmethod
    async def fetch_head_to_head(
        self, league: str, home_team: str, away_team: str, last: int = 10,
    ) -> HeadToHead:
        """Last `last` meetings of two teams, newest first. Unknown teams give an empty record."""
        ...
