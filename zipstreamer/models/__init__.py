"""Data models for zipstreamer."""

from zipstreamer.models.config import CompressionMethod, ServerSettings
from zipstreamer.models.entry import (
    DEFAULT_ARCHIVE_FILENAME,
    ArchiveRequest,
    EntryDescriptor,
    validate_zip_path,
)

__all__ = [
    "ArchiveRequest",
    "CompressionMethod",
    "DEFAULT_ARCHIVE_FILENAME",
    "EntryDescriptor",
    "ServerSettings",
    "validate_zip_path",
]
