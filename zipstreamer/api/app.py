"""Application factory for the zipstreamer HTTP service."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from zipstreamer import __version__
from zipstreamer.api.routes import ZipStreamerServer, create_router
from zipstreamer.archive.stream import Fetcher
from zipstreamer.cache import LinkCache
from zipstreamer.models.config import ServerSettings
from zipstreamer.telemetry import NullReporter, Reporter, init_sentry


async def _error_response(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "error": exc.detail},
    )


def create_app(
    settings: ServerSettings | None = None,
    *,
    fetcher: Fetcher | None = None,
    cache: LinkCache | None = None,
    reporter: Reporter | None = None,
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Service settings (default: read from the environment)
        fetcher: Source fetcher (default: built from settings)
        cache: Link cache (default: built from settings)
        reporter: Telemetry reporter (default: Sentry if a DSN is set)
    """
    if settings is None:
        settings = ServerSettings.from_env()
    if reporter is None:
        if settings.sentry_dsn:
            reporter = init_sentry(settings.sentry_dsn, settings.sentry_traces_sample_rate)
        else:
            reporter = NullReporter()

    server = ZipStreamerServer(settings, fetcher=fetcher, cache=cache, reporter=reporter)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await server.close()

    app = FastAPI(title="zipstreamer", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_headers=["Content-Type", "X-Requested-With", "*"],
        allow_methods=["GET", "HEAD", "POST", "PUT", "OPTIONS"],
    )
    app.add_exception_handler(StarletteHTTPException, _error_response)
    app.include_router(create_router(server))
    app.state.server = server
    return app
