"""S3 retrieval path for object-store URLs.

URLs are expected in virtual-hosted form
(``https://<bucket>.s3.<region>.amazonaws.com/<key>``). Objects are read
with boto3 in worker threads so the event loop never blocks.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import unquote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from zipstreamer.errors import FetchError
from zipstreamer.fetch.result import FetchResult

DEFAULT_REGION = "us-east-1"

# Errors raised by boto3 for a failed request; each one costs a retry attempt.
OBJECT_STORE_ERRORS = (BotoCoreError, ClientError)


def resolve_region(region: str | None = None) -> str:
    """Pick the S3 region: explicit, then AWS_REGION, then AWS_DEFAULT_REGION."""
    return (
        region
        or os.environ.get("AWS_REGION")
        or os.environ.get("AWS_DEFAULT_REGION")
        or DEFAULT_REGION
    )


def parse_object_location(url: str) -> tuple[str, str]:
    """Split an object-store URL into (bucket, key)."""
    parsed = urlparse(url)
    bucket = parsed.hostname.split(".")[0] if parsed.hostname else ""
    key = unquote(parsed.path.lstrip("/"))
    return bucket, key


class ObjectStoreFetcher:
    """Fetches objects for URLs carrying the configured marker."""

    def __init__(
        self,
        marker: str,
        *,
        region: str | None = None,
        client: Any | None = None,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self.marker = marker
        self.region = resolve_region(region)
        self.chunk_size = chunk_size
        self._client = client

    @property
    def client(self) -> Any:
        """Get or create the S3 client."""
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def matches(self, url: str) -> bool:
        return bool(self.marker) and self.marker in url

    async def fetch(self, url: str) -> FetchResult:
        """Fetch an object; a returned result always has status 200.

        Raises:
            BotoCoreError, ClientError: If the request fails.
        """
        bucket, key = parse_object_location(url)
        response = await asyncio.to_thread(self.client.get_object, Bucket=bucket, Key=key)
        body = response["Body"]

        async def close() -> None:
            body.close()

        return FetchResult(
            url=url,
            status_code=200,
            chunks=self._iter_body(url, body),
            close=close,
        )

    async def _iter_body(self, url: str, body: Any) -> AsyncIterator[bytes]:
        while True:
            try:
                chunk = await asyncio.to_thread(body.read, self.chunk_size)
            except OBJECT_STORE_ERRORS as e:
                raise FetchError(url, f"read failed: {e}") from e
            if not chunk:
                return
            yield chunk
