from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from config.settings import Settings, settings as default_settings
from core.models import FetchResult

log = logging.getLogger(__name__)


class BaseFetcher(ABC):
    source_name: str

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cfg = config or default_settings
        self._transport = transport

    @abstractmethod
    async def fetch(self) -> FetchResult:
        """Execute a full fetch cycle."""
        ...

    def _client(self, headers: dict[str, str] | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"User-Agent": self._cfg.USER_AGENT, **(headers or {})},
            follow_redirects=True,
            timeout=self._cfg.REQUEST_TIMEOUT_SECONDS,
            transport=self._transport,
        )


class RateLimiter:
    """Simple token-bucket style rate limiter."""

    def __init__(self, delay_seconds: float = 2.0) -> None:
        self._delay = delay_seconds
        self._lock = asyncio.Lock()
        self._last_request: float = 0.0

    async def wait(self) -> None:
        async with self._lock:
            now = asyncio.get_event_loop().time()
            elapsed = now - self._last_request
            if elapsed < self._delay:
                await asyncio.sleep(self._delay - elapsed)
            self._last_request = asyncio.get_event_loop().time()


def _retry_after(resp: httpx.Response) -> float | None:
    value = resp.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(int(value)))
    except ValueError:
        return None


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    max_retries: int = 3,
    delay_seconds: float = 1.0,
) -> httpx.Response:
    """GET ``url`` with backoff on 5xx/network errors and Retry-After on 429.

    Other 4xx responses are returned as-is for the caller to handle.
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            resp = await client.get(url, params=params, headers=headers)

            if resp.is_success:
                return resp

            if resp.status_code == 429:
                wait = _retry_after(resp)
                if wait is None:
                    wait = delay_seconds * (attempt + 1)
                log.info("Rate limited by %s, waiting %.1fs", url, wait)
                last_error = ConnectionError(f"HTTP 429 from {url}")
                if attempt < max_retries - 1:
                    await asyncio.sleep(wait)
                continue

            if resp.status_code >= 500:
                raise ConnectionError(f"HTTP {resp.status_code} from {url}")

            return resp
        except (httpx.TransportError, ConnectionError) as exc:
            last_error = exc
            if attempt < max_retries - 1:
                wait = delay_seconds * (2 ** attempt)
                log.debug(
                    "Attempt %d for %s failed (%s), retrying in %.1fs",
                    attempt + 1, url, exc, wait,
                )
                await asyncio.sleep(wait)

    raise last_error or ConnectionError(f"Fetch failed after retries: {url}")
