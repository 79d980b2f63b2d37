"""Streams an archive request into a byte sink.

Entries are fetched one after another and written in request order. A
source that cannot be fetched becomes an empty member at its path so the
failure is visible in the archive without aborting it. Failures after
member data has been committed to the sink cannot be undone and end the
transfer.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from zipstreamer.archive.assembler import ZipAssembler
from zipstreamer.errors import ArchiveWriteError, FetchError, NoEntriesRetrievedError
from zipstreamer.fetch.result import FetchResult
from zipstreamer.models.config import CompressionMethod
from zipstreamer.models.entry import ArchiveRequest, EntryDescriptor
from zipstreamer.telemetry import NullReporter, Reporter, safe_report_exception, safe_report_message

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchResult: ...


class ArchiveSink(Protocol):
    """Destination for archive bytes."""

    async def write(self, data: bytes) -> None: ...


class Flusher(Protocol):
    """Pushes buffered bytes on to the downstream transport."""

    async def flush(self) -> None: ...


class TransferAbort(Protocol):
    """Terminates the transport so the client sees a truncated transfer."""

    async def abort(self, exc: BaseException) -> None: ...


class NullFlusher:
    """Flusher for sinks that have nothing to flush."""

    async def flush(self) -> None:
        return None


class ArchiveStreamer:
    """Stream session for one archive transfer.

    Not reusable: each transfer gets its own streamer and assembler.
    """

    def __init__(
        self,
        request: ArchiveRequest,
        fetcher: Fetcher,
        *,
        compression: CompressionMethod = CompressionMethod.STORE,
        reporter: Reporter | None = None,
    ) -> None:
        self.request = request
        self.fetcher = fetcher
        # Store by default: no CPU spent compressing and bytes leave immediately.
        self.compression = compression
        self.reporter = reporter if reporter is not None else NullReporter()
        self.assembler = ZipAssembler()
        self.succeeded = 0
        self.failed: list[EntryDescriptor] = []

    async def stream_all(
        self,
        sink: ArchiveSink,
        flusher: Flusher | None = None,
        abort: TransferAbort | None = None,
    ) -> int:
        """Write every entry into ``sink`` and finish the archive.

        Args:
            sink: Receives archive bytes in order
            flusher: Flushed after every member (no-op if omitted)
            abort: Invoked with the error before any exception propagates

        Returns:
            Number of entries whose source was written.

        Raises:
            ArchiveWriteError: If writing failed after bytes were committed.
            NoEntriesRetrievedError: If no entry could be fetched.
        """
        if flusher is None:
            flusher = NullFlusher()
        try:
            return await self._stream(sink, flusher)
        except Exception as e:
            if abort is not None:
                await abort.abort(e)
            raise

    async def _stream(self, sink: ArchiveSink, flusher: Flusher) -> int:
        total = len(self.request.entries)
        logger.info(f"Streaming archive {self.request.escaped_suggested_filename} ({total} entries)")

        for entry in self.request.entries:
            result = await self._fetch(entry)
            try:
                writer = self.assembler.begin_member(entry.zip_path, self.compression, datetime.now())

                # A failed entry stays in the archive as an empty member.
                if result is not None:
                    try:
                        async for chunk in result.aiter_bytes():
                            writer.write(chunk)
                            await self._drain(sink)
                    except FetchError as e:
                        raise ArchiveWriteError(f"copying {entry.zip_path} failed: {e}") from e

                self.assembler.finish_member()
            finally:
                if result is not None:
                    await result.aclose()

            await self._drain(sink)
            await flusher.flush()

            if result is not None:
                self.succeeded += 1

        if self.succeeded == 0:
            error = NoEntriesRetrievedError(total)
            logger.error(f"Archive {self.request.escaped_suggested_filename} aborted: {error}")
            safe_report_message(self.reporter, str(error))
            raise error

        self.assembler.finish()
        await self._drain(sink)
        await flusher.flush()

        logger.info(
            f"Finished archive {self.request.escaped_suggested_filename}: "
            f"{self.succeeded}/{total} entries, {self.assembler.bytes_written} bytes"
        )
        return self.succeeded

    async def _fetch(self, entry: EntryDescriptor) -> FetchResult | None:
        """Fetch an entry, returning None if it failed."""
        try:
            result = await self.fetcher.fetch(entry.url)
        except FetchError as e:
            self._record_failure(entry, e)
            return None

        if not result.ok:
            await result.aclose()
            self._record_failure(
                entry,
                FetchError(entry.url, f"unexpected status {result.status_code}", result.status_code),
            )
            return None
        return result

    def _record_failure(self, entry: EntryDescriptor, error: FetchError) -> None:
        logger.warning(f"Entry failed: {entry.url} ({error.reason})")
        self.failed.append(entry)
        safe_report_exception(self.reporter, error)

    async def _drain(self, sink: ArchiveSink) -> None:
        data = self.assembler.drain()
        if data:
            await sink.write(data)
