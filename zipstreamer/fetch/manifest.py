"""Retrieval of remotely hosted manifests (listfiles)."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from zipstreamer.build_info import user_agent
from zipstreamer.errors import FetchError
from zipstreamer.models.entry import ArchiveRequest

logger = logging.getLogger(__name__)


async def retrieve_archive_request(
    client: httpx.AsyncClient,
    url: str,
    basic_auth: str | None = None,
) -> ArchiveRequest:
    """Download and parse a JSON manifest in a single attempt.

    Args:
        client: HTTP client to use
        url: Manifest location
        basic_auth: Password for HTTP basic auth (empty username)

    Raises:
        FetchError: On transport failure, a non-200 status or an invalid body.
    """
    auth = httpx.BasicAuth("", basic_auth) if basic_auth else None
    try:
        response = await client.get(url, auth=auth, headers={"User-Agent": user_agent()})
    except httpx.HTTPError as e:
        raise FetchError(url, f"listfile request failed: {e}") from e

    if response.status_code != 200:
        raise FetchError(url, "List File Server Error", status_code=response.status_code)

    try:
        return ArchiveRequest.from_json(response.content)
    except ValidationError as e:
        logger.warning(f"Invalid listfile {url}: {e}")
        raise FetchError(url, "invalid listfile") from e
