"""FastAPI router for zipstreamer.

Usage:
    from fastapi import FastAPI
    from zipstreamer.api import ZipStreamerServer, create_router

    app = FastAPI()
    app.include_router(create_router(ZipStreamerServer(settings)))
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ValidationError

from zipstreamer.api.channel import ResponseChannel
from zipstreamer.archive.stream import ArchiveStreamer, Fetcher
from zipstreamer.cache import LinkCache
from zipstreamer.errors import FetchError
from zipstreamer.fetch.manifest import retrieve_archive_request
from zipstreamer.fetch.retry import RetryingFetcher
from zipstreamer.models.config import ServerSettings
from zipstreamer.models.entry import ArchiveRequest
from zipstreamer.telemetry import NullReporter, Reporter

logger = logging.getLogger(__name__)


class LinkResponse(BaseModel):
    status: str = "ok"
    link_id: str


class ZipStreamerServer:
    """Shared state for all requests: settings, fetcher, link cache, reporter."""

    def __init__(
        self,
        settings: ServerSettings,
        *,
        fetcher: Fetcher | None = None,
        cache: LinkCache | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.settings = settings
        self.owns_fetcher = fetcher is None
        if fetcher is None:
            fetcher = RetryingFetcher.from_settings(settings)
        if cache is None:
            cache = LinkCache(
                ttl=settings.link_ttl,
                max_size=settings.link_cache_max_size,
            )
        self.fetcher = fetcher
        self.cache = cache
        self.reporter = reporter if reporter is not None else NullReporter()

    async def close(self) -> None:
        if self.owns_fetcher and isinstance(self.fetcher, RetryingFetcher):
            await self.fetcher.close()

    def parse_request(self, body: bytes) -> ArchiveRequest:
        """Parse and check a posted manifest, raising 400 on failure."""
        try:
            request = ArchiveRequest.from_json(body)
        except ValidationError:
            raise HTTPException(status_code=400, detail="invalid body")
        self.check_entries(request)
        return request

    def check_entries(self, request: ArchiveRequest) -> None:
        try:
            request.check_url_prefix(self.settings.url_prefix)
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid entries")

    async def load_listfile(self, url: str) -> ArchiveRequest:
        client = self.fetcher.client if isinstance(self.fetcher, RetryingFetcher) else None
        if client is None:
            raise HTTPException(status_code=404, detail="file not found")
        try:
            return await retrieve_archive_request(client, url, self.settings.listfile_basic_auth)
        except FetchError as e:
            logger.warning(f"Listfile unavailable: {e}")
            raise HTTPException(status_code=404, detail="file not found")

    def stream(self, request: ArchiveRequest) -> StreamingResponse:
        """Start streaming ``request`` as the response body."""
        channel = ResponseChannel(chunk_size=self.settings.chunk_size)
        streamer = ArchiveStreamer(
            request,
            self.fetcher,
            compression=self.settings.compression,
            reporter=self.reporter,
        )

        async def produce() -> None:
            try:
                await streamer.stream_all(channel, flusher=channel, abort=channel)
            except Exception as e:
                # The channel already carries the abort to the client.
                logger.error(f"Archive transfer aborted: {e}")
            else:
                await channel.close()

        async def body() -> AsyncIterator[bytes]:
            task = asyncio.create_task(produce())
            try:
                async for chunk in channel.iter_chunks():
                    yield chunk
            finally:
                if not task.done():
                    task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        return StreamingResponse(
            body(),
            media_type="application/zip",
            headers={"Content-Disposition": request.content_disposition()},
        )


def create_router(
    server: ZipStreamerServer,
    *,
    prefix: str = "",
    tags: list[str] | None = None,
) -> APIRouter:
    """Create a FastAPI router for zipstreamer.

    Args:
        server: Shared server state
        prefix: URL prefix for all routes
        tags: OpenAPI tags for the router

    Returns:
        APIRouter that can be included in a FastAPI app
    """
    if tags is None:
        tags = ["zipstreamer"]

    router = APIRouter(prefix=prefix, tags=tags)

    @router.post("/download")
    async def post_download(request: Request) -> StreamingResponse:
        """Stream a ZIP of the files in the posted manifest."""
        archive_request = server.parse_request(await request.body())
        return server.stream(archive_request)

    @router.get("/download")
    async def get_download(
        zsurl: Annotated[str | None, Query(description="Manifest URL")] = None,
        zsid: Annotated[str | None, Query(description="Manifest id under the listfile prefix")] = None,
    ) -> StreamingResponse:
        """Stream a ZIP of the files in a remotely hosted manifest."""
        listfile_url = zsurl
        prefix = server.settings.listfile_url_prefix
        if not listfile_url and prefix and zsid:
            listfile_url = prefix + zsid
        if not listfile_url:
            raise HTTPException(status_code=400, detail="invalid parameters")

        archive_request = await server.load_listfile(listfile_url)
        server.check_entries(archive_request)
        return server.stream(archive_request)

    @router.post("/create_download_link", response_model=LinkResponse)
    async def create_download_link(request: Request) -> LinkResponse:
        """Store a manifest and return a short-lived link id for it."""
        archive_request = server.parse_request(await request.body())
        link_id = server.cache.set(archive_request)
        return LinkResponse(link_id=link_id)

    @router.get("/download_link/{link_id}")
    async def download_link(link_id: str) -> StreamingResponse:
        """Stream a ZIP for a previously created link."""
        archive_request = server.cache.get(link_id)
        if archive_request is None:
            raise HTTPException(status_code=404, detail="link not found")
        return server.stream(archive_request)

    return router
