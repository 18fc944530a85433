"""
backend/tipster/providers/gateway.py

Purpose:
    Provider gateway: a single entry point for matches, results, standings,
    odds and head-to-head records that tries the primary source and fails over to the fallback source
    once per call.

Dependencies:
    - tipster.providers.api_football
    - tipster.providers.football_data
"""

import asyncio
import logging
from typing import Awaitable, Callable, Hashable, Optional, TypeVar

from tipster.leagues import UnknownLeagueError
from tipster.models.match import Fixture, HeadToHead, MatchResult, OddsMarket, Standing
from tipster.providers.api_football import api_football_provider
from tipster.providers.base import BaseProvider, ProviderUnavailableError
from tipster.providers.football_data import football_data_provider

logger = logging.getLogger("tipster.gateway")

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


async def with_fallback(
    operation: str,
    primary_fn: Callable[[], Awaitable[T]],
    fallback_fn: Callable[[], Awaitable[T]],
) -> T:
    """Run primary_fn; on any error run fallback_fn once.

    Not sticky: every call starts on the primary again. When both fail the
    two causes are wrapped in one ProviderUnavailableError.
    """
    try:
        return await primary_fn()
    except UnknownLeagueError:
        # Caller error, identical on both sources
        raise
    except Exception as primary_exc:
        logger.warning("%s: primary failed (%s), trying fallback", operation, primary_exc)
        try:
            result = await fallback_fn()
        except UnknownLeagueError:
            raise
        except Exception as fallback_exc:
            logger.error("%s: fallback failed too (%s)", operation, fallback_exc)
            raise ProviderUnavailableError(operation, primary_exc, fallback_exc) from fallback_exc
        logger.info("%s: served by fallback", operation)
        return result


async def _fan_out(
    label: str,
    keys: list[K],
    call: Callable[[K], Awaitable[T]],
) -> dict[K, Optional[T]]:
    """Run `call` for every key concurrently.

    Each lookup settles on its own: a failed key maps to None and never
    cancels its siblings.
    """
    outcomes = await asyncio.gather(*(call(key) for key in keys), return_exceptions=True)
    out: dict[K, Optional[T]] = {}
    failed = 0
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, BaseException):
            failed += 1
            logger.warning("%s unavailable for %s: %s", label, key, outcome)
            out[key] = None
        else:
            out[key] = outcome
    if failed:
        logger.info("%s fan-out: %d/%d lookups failed", label, failed, len(keys))
    return out


class ProviderGateway:
    def __init__(self, primary: BaseProvider, fallback: BaseProvider):
        self.primary = primary
        self.fallback = fallback

    async def fetch_upcoming(self, league: str, count: int) -> list[Fixture]:
        return await with_fallback(
            f"fetch_upcoming[{league}]",
            lambda: self.primary.fetch_upcoming(league, count),
            lambda: self.fallback.fetch_upcoming(league, count),
        )

    async def fetch_results(self, league: str, count: int) -> list[MatchResult]:
        return await with_fallback(
            f"fetch_results[{league}]",
            lambda: self.primary.fetch_results(league, count),
            lambda: self.fallback.fetch_results(league, count),
        )

    async def fetch_odds(self, match_id: str) -> Optional[OddsMarket]:
        return await with_fallback(
            f"fetch_odds[{match_id}]",
            lambda: self.primary.fetch_odds(match_id),
            lambda: self.fallback.fetch_odds(match_id),
        )

    async def fetch_standings(self, league: str) -> list[Standing]:
        return await with_fallback(
            f"fetch_standings[{league}]",
            lambda: self.primary.fetch_standings(league),
            lambda: self.fallback.fetch_standings(league),
        )

    async def fetch_head_to_head(
        self, league: str, home_team: str, away_team: str, last: int = 10,
    ) -> HeadToHead:
        return await with_fallback(
            f"fetch_head_to_head[{league}:{home_team}-{away_team}]",
            lambda: self.primary.fetch_head_to_head(league, home_team, away_team, last),
            lambda: self.fallback.fetch_head_to_head(league, home_team, away_team, last),
        )

    async def fetch_odds_many(self, match_ids: list[str]) -> dict[str, Optional[OddsMarket]]:
        """Odds for every match concurrently; a failed match maps to None."""
        return await _fan_out("Odds", match_ids, self.fetch_odds)

    async def fetch_head_to_head_many(
        self, league: str, fixtures: list[Fixture], last: int = 10,
    ) -> dict[str, Optional[HeadToHead]]:
        """Head-to-head record per fixture (keyed by match id); a failed lookup maps to None."""
        by_id = {f.match_id: f for f in fixtures}
        return await _fan_out(
            "Head-to-head",
            list(by_id),
            lambda match_id: self.fetch_head_to_head(
                league, by_id[match_id].home_team, by_id[match_id].away_team, last,
            ),
        )


provider_gateway = ProviderGateway(api_football_provider, football_data_provider)
