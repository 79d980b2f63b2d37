"""Source retrieval: retrying HTTP fetcher, S3 path and manifests."""

from zipstreamer.fetch.manifest import retrieve_archive_request
from zipstreamer.fetch.object_store import ObjectStoreFetcher, parse_object_location
from zipstreamer.fetch.result import FetchResult
from zipstreamer.fetch.retry import (
    NUM_RETRIES,
    RETRYABLE_STATUS_CODES,
    RetryingFetcher,
    backoff_delay,
)

__all__ = [
    "FetchResult",
    "NUM_RETRIES",
    "ObjectStoreFetcher",
    "RETRYABLE_STATUS_CODES",
    "RetryingFetcher",
    "backoff_delay",
    "parse_object_location",
    "retrieve_archive_request",
]
