"""Exception hierarchy for zipstreamer."""

from __future__ import annotations


class ZipStreamerError(Exception):
    """Base class for all zipstreamer errors."""


class FetchError(ZipStreamerError):
    """A source could not be retrieved.

    Raised per entry; the stream recovers by writing an empty member.
    """

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class ArchiveError(ZipStreamerError):
    """The archive could not be completed."""


class ArchiveWriteError(ArchiveError):
    """Writing to the archive failed after bytes were committed."""


class NoEntriesRetrievedError(ArchiveError):
    """Every entry failed to fetch, so the archive was not finalized."""

    def __init__(self, total: int) -> None:
        super().__init__(f"empty file - all {total} files failed")
        self.total = total


class TransferAborted(ZipStreamerError):
    """Raised into the HTTP response so the connection is dropped mid-stream."""
