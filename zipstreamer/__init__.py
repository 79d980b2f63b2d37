"""zipstreamer - Stream remote files to clients as a single ZIP archive."""

__version__ = "0.1.0"

from zipstreamer.archive.stream import ArchiveStreamer  # noqa: E402
from zipstreamer.cache import LinkCache  # noqa: E402
from zipstreamer.fetch.retry import RetryingFetcher  # noqa: E402
from zipstreamer.models.config import CompressionMethod, ServerSettings  # noqa: E402
from zipstreamer.models.entry import ArchiveRequest, EntryDescriptor  # noqa: E402

__all__ = [
    "ArchiveRequest",
    "ArchiveStreamer",
    "CompressionMethod",
    "EntryDescriptor",
    "LinkCache",
    "RetryingFetcher",
    "ServerSettings",
]
