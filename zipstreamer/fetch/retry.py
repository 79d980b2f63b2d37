"""Retrying source fetcher.

Each entry is fetched with up to five attempts and exponential backoff
(1s, 2s, 4s, 8s, 16s, capped at 30s). Transport errors and a small set of
transient HTTP statuses are retried; any other response is handed back to
the caller, which treats everything but 200 as a failed entry.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

import httpx

from zipstreamer.build_info import user_agent
from zipstreamer.errors import FetchError
from zipstreamer.fetch.object_store import ObjectStoreFetcher, OBJECT_STORE_ERRORS
from zipstreamer.fetch.result import FetchResult
from zipstreamer.models.config import ServerSettings

logger = logging.getLogger(__name__)

NUM_RETRIES = 5
MAX_BACKOFF_SECONDS = 30
DEFAULT_CHUNK_SIZE = 64 * 1024

RETRYABLE_STATUS_CODES = frozenset({
    408,  # Request Timeout
    429,  # Too Many Requests
    500,  # Internal Server Error
    502,  # Bad Gateway
    503,  # Service Unavailable
    504,  # Gateway Timeout
})


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after the zero-based ``attempt`` failed."""
    return float(min(2 ** attempt, MAX_BACKOFF_SECONDS))


async def _iter_response(url: str, response: httpx.Response, chunk_size: int) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_bytes(chunk_size):
            yield chunk
    except httpx.HTTPError as e:
        raise FetchError(url, f"read failed: {e}") from e


class RetryingFetcher:
    """Fetches sources over HTTP, or through S3 for object-store URLs."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        max_attempts: int = NUM_RETRIES,
        timeout: float = 30.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        object_store: ObjectStoreFetcher | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.object_store = object_store
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> "RetryingFetcher":
        """Create a fetcher, with the S3 path if a marker is configured."""
        object_store = None
        if settings.object_store_marker:
            object_store = ObjectStoreFetcher(
                settings.object_store_marker,
                region=settings.object_store_region,
                chunk_size=settings.chunk_size,
            )
        return cls(
            max_attempts=settings.max_attempts,
            timeout=settings.fetch_timeout,
            chunk_size=settings.chunk_size,
            object_store=object_store,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> FetchResult:
        """Fetch ``url`` with retries.

        Returns:
            The first non-retryable result. Its status may be anything
            other than the retryable set; object-store results are always 200.

        Raises:
            FetchError: If the URL is unusable or every attempt failed.
        """
        # Object-store results are never reclassified by status code.
        use_object_store = self.object_store is not None and self.object_store.matches(url)
        last_error: Exception | None = None
        last_status: int | None = None

        for attempt in range(self.max_attempts):
            if use_object_store:
                try:
                    return await self.object_store.fetch(url)
                except OBJECT_STORE_ERRORS as e:
                    last_error = e
                    logger.warning(f"Object store fetch failed ({attempt + 1}/{self.max_attempts}) {url}: {e}")
            else:
                try:
                    result = await self._get(url)
                except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
                    raise FetchError(url, f"invalid url: {e}") from e
                except httpx.TransportError as e:
                    last_error, last_status = e, None
                    logger.warning(f"Fetch failed ({attempt + 1}/{self.max_attempts}) {url}: {e!r}")
                except httpx.RequestError as e:
                    # Redirect loops and similar do not change between attempts.
                    raise FetchError(url, f"request failed: {e}") from e
                else:
                    if result.status_code not in RETRYABLE_STATUS_CODES:
                        return result
                    last_error, last_status = None, result.status_code
                    await result.aclose()
                    logger.warning(
                        f"Retryable status {result.status_code} ({attempt + 1}/{self.max_attempts}) {url}"
                    )

            if attempt < self.max_attempts - 1:
                await self._sleep(backoff_delay(attempt))

        reason = (str(last_error) or repr(last_error)) if last_error else "max retries exceeded"
        raise FetchError(url, reason, status_code=last_status) from last_error

    async def _get(self, url: str) -> FetchResult:
        request = self.client.build_request("GET", url, headers={"User-Agent": user_agent()})
        response = await self.client.send(request, stream=True)
        return FetchResult(
            url=url,
            status_code=response.status_code,
            chunks=_iter_response(url, response, self.chunk_size),
            close=response.aclose,
        )
