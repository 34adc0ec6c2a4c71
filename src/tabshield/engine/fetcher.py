"""ListFetcher: downloads the raw text of a filter list over HTTP.

Every failure mode (DNS, connect, timeout, non-2xx status, undecodable
body) is reported the same way: ListFetchError. The caller decides what
a failed list means; the fetcher never retries.
"""
from __future__ import annotations

import logging

import httpx

from tabshield.domain.types import Url
from tabshield.errors import ListFetchError

log = logging.getLogger(__name__)


class ListFetcher:
    """Async filter-list downloader sharing one httpx client.

    Args:
        timeout: per-request timeout in seconds; None waits indefinitely.
        transport: optional httpx transport (tests pass a MockTransport).
        client: optional preconfigured client; the fetcher won't close it.
    """

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )
        self.fetch_count = 0

    async def fetch(self, url: Url) -> str:
        """Return the body of ``url`` as text. Raises ListFetchError."""
        self.fetch_count += 1
        log.debug("Fetching filter list %s", url)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.text
        except httpx.TimeoutException as exc:
            raise ListFetchError(url, "timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise ListFetchError(url, f"HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeDecodeError) as exc:
            raise ListFetchError(url, str(exc) or exc.__class__.__name__) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
