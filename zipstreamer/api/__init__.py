"""FastAPI service for zipstreamer."""

from zipstreamer.api.app import create_app
from zipstreamer.api.channel import ResponseChannel
from zipstreamer.api.routes import ZipStreamerServer, create_router

__all__ = ["create_app", "create_router", "ResponseChannel", "ZipStreamerServer"]
