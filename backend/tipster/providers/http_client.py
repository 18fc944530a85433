import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from tipster.config import settings

logger = logging.getLogger("tipster.http_client")

RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})
MAX_BACKOFF_SECONDS = 30.0

_NETWORK_ERRORS = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)


def _parse_retry_after(response: httpx.Response) -> Optional[float]:
    """Seconds to wait from Retry-After (or the api-sports variant), if numeric."""
    for header in ("retry-after", "x-ratelimit-retry-after"):
        raw = response.headers.get(header)
        if raw is None:
            continue
        try:
            return float(raw)
        except ValueError:
            continue
    return None


def _safe_url(url: str) -> str:
    """URL without its query string: provider keys may travel as parameters."""
    parts = urlparse(str(url))
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


class ResilientClient:
    """Thin httpx.AsyncClient wrapper for provider calls.

    Transient failures (429/5xx, timeouts, refused connections) get a small
    number of retries with exponential backoff. Anything else is returned to
    the adapter untouched. The gateway fails over to the other provider as
    soon as an error escapes this client, so the retry budget stays small.
    """

    def __init__(
        self,
        name: str,
        timeout: float | None = None,
        max_retries: int | None = None,
        base_delay: float | None = None,
    ):
        self._name = name
        self._client = httpx.AsyncClient(
            timeout=settings.PROVIDER_TIMEOUT_SECONDS if timeout is None else timeout,
        )
        self._attempts = 1 + (settings.PROVIDER_MAX_RETRIES if max_retries is None else max_retries)
        self._base_delay = settings.PROVIDER_BASE_DELAY_SECONDS if base_delay is None else base_delay

    def _backoff(self, attempt: int, response: Optional[httpx.Response] = None) -> float:
        hinted = _parse_retry_after(response) if response is not None else None
        delay = hinted if hinted is not None else self._base_delay * (2 ** attempt)
        return min(delay, MAX_BACKOFF_SECONDS)

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request; the last response (even a 5xx) is returned once retries run out.

        Network errors are re-raised after the final attempt.
        """
        target = _safe_url(url)
        response: Optional[httpx.Response] = None
        error: Optional[Exception] = None

        for attempt in range(self._attempts):
            is_last = attempt == self._attempts - 1
            try:
                response = await self._client.request(method, url, **kwargs)
            except _NETWORK_ERRORS as e:
                error, response = e, None
                logger.warning(
                    "[%s] %s %s network error, attempt %d/%d: %s",
                    self._name, method, target, attempt + 1, self._attempts, e,
                )
                if not is_last:
                    await asyncio.sleep(self._backoff(attempt))
                continue

            if response.status_code not in RETRY_STATUSES:
                return response
            logger.warning(
                "[%s] %s %s -> HTTP %d, attempt %d/%d",
                self._name, method, target, response.status_code, attempt + 1, self._attempts,
            )
            if not is_last:
                await asyncio.sleep(self._backoff(attempt, response))

        if response is not None:
            logger.error("[%s] %s %s still HTTP %d after %d attempts",
                         self._name, method, target, response.status_code, self._attempts)
            return response
        logger.error("[%s] %s %s failed after %d attempts: %s",
                     self._name, method, target, self._attempts, error)
        raise error  # type: ignore[misc]

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
