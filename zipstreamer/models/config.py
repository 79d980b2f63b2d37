"""Server configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class CompressionMethod(str, Enum):
    """Archive-wide member compression."""
    STORE = "store"
    DEFLATE = "deflate"


class ServerSettings(BaseModel):
    """Settings for the HTTP service and the fetch pipeline."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=4008)
    compression: CompressionMethod = Field(
        default=CompressionMethod.STORE,
        description="Store keeps CPU low and streams best; deflate trades CPU for size",
    )
    listfile_url_prefix: str | None = Field(
        default=None, description="Prefix joined with ?zsid= to locate a manifest"
    )
    listfile_basic_auth: str | None = Field(
        default=None, description="Basic auth password sent when fetching manifests"
    )
    url_prefix: str | None = Field(
        default=None, description="If set, every entry URL must start with this"
    )
    link_ttl: float = Field(default=60.0, gt=0, description="Download link lifetime in seconds")
    link_cache_max_size: int = Field(default=10000, ge=1)
    max_attempts: int = Field(default=5, ge=1)
    fetch_timeout: float = Field(default=30.0, gt=0)
    chunk_size: int = Field(default=64 * 1024, ge=1024)
    object_store_marker: str | None = Field(
        default=None, description="URLs containing this marker are fetched through S3"
    )
    object_store_region: str | None = None
    sentry_dsn: str | None = None
    sentry_traces_sample_rate: float = Field(default=0.05, ge=0, le=1)

    @classmethod
    def from_yaml(cls, path: Path) -> "ServerSettings":
        """Load settings from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServerSettings":
        """Load settings from ``PORT``, ``ZS_*`` and ``SENTRY_DSN`` variables."""
        env = os.environ if environ is None else environ
        data: dict[str, object] = {}

        if env.get("PORT"):
            data["port"] = env["PORT"]
        if env.get("ZS_COMPRESSION", "").upper() == "DEFLATE":
            data["compression"] = CompressionMethod.DEFLATE

        mapping = {
            "ZS_LISTFILE_URL_PREFIX": "listfile_url_prefix",
            "ZS_LISTFILE_BASIC_AUTH": "listfile_basic_auth",
            "ZS_URL_PREFIX": "url_prefix",
            "ZS_LINK_TTL": "link_ttl",
            "ZS_OBJECT_STORE_MARKER": "object_store_marker",
            "ZS_OBJECT_STORE_REGION": "object_store_region",
            "SENTRY_DSN": "sentry_dsn",
        }
        for var, field_name in mapping.items():
            value = env.get(var)
            if value:
                data[field_name] = value

        return cls.model_validate(data)
