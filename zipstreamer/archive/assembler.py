"""Incremental ZIP writer for streams of unknown length.

The assembler drives :mod:`zipfile` over an unseekable in-memory buffer.
Because the buffer cannot seek, every member is written with general
purpose flag bit 3: the local header carries no CRC or sizes and a data
descriptor follows the member data. The central directory is written only
by :meth:`ZipAssembler.finish`, so a stream cut short before that point is
not a readable archive.

Output accumulates in the buffer until :meth:`ZipAssembler.drain` hands
it over. Draining after each chunk of member data keeps memory bounded by
one chunk regardless of member size.
"""

from __future__ import annotations

import logging
import warnings
import zipfile
from datetime import datetime
from typing import IO

from zipstreamer.errors import ArchiveWriteError
from zipstreamer.models.config import CompressionMethod
from zipstreamer.models.entry import validate_zip_path

logger = logging.getLogger(__name__)

ZIP_METHODS = {
    CompressionMethod.STORE: zipfile.ZIP_STORED,
    CompressionMethod.DEFLATE: zipfile.ZIP_DEFLATED,
}

# rw-r--r-- regular file
DEFAULT_FILE_MODE = 0o100644

MIN_DOS_TIMESTAMP = datetime(1980, 1, 1)


class _OutputBuffer:
    """Append-only byte buffer. No tell/seek, so zipfile streams into it."""

    def __init__(self) -> None:
        self._data = bytearray()
        self.total = 0

    def write(self, data: bytes) -> int:
        self._data += data
        self.total += len(data)
        return len(data)

    def flush(self) -> None:
        pass

    def take(self) -> bytes:
        data = bytes(self._data)
        self._data.clear()
        return data

    def __len__(self) -> int:
        return len(self._data)


class MemberWriter:
    """Writable handle for the data of the member currently open."""

    def __init__(self, name: str, handle: IO[bytes]) -> None:
        self.name = name
        self._handle = handle
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        try:
            self._handle.write(data)
        except (ValueError, OSError, zipfile.LargeZipFile) as e:
            raise ArchiveWriteError(f"writing {self.name} failed: {e}") from e
        self.bytes_written += len(data)
        return len(data)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def _close(self) -> None:
        try:
            self._handle.close()
        except (ValueError, OSError, RuntimeError) as e:
            raise ArchiveWriteError(f"closing member {self.name} failed: {e}") from e


class ZipAssembler:
    """Builds a ZIP archive one member at a time.

    Usage:
        assembler = ZipAssembler()
        writer = assembler.begin_member("a.txt")
        writer.write(b"hello")
        assembler.finish_member()
        assembler.finish()
        data = assembler.drain()
    """

    def __init__(self, *, zip64: bool = True) -> None:
        # zip64 keeps members over 4 GiB writable since sizes are unknown up front.
        # Without it a member is limited to 2 GiB.
        self._buffer = _OutputBuffer()
        self._zip = zipfile.ZipFile(self._buffer, mode="w", allowZip64=zip64)
        self._zip64 = zip64
        self._current: MemberWriter | None = None
        self._finished = False
        self.member_count = 0

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def bytes_written(self) -> int:
        """Total archive bytes produced so far, drained or not."""
        return self._buffer.total

    @property
    def pending(self) -> int:
        """Bytes produced but not yet drained."""
        return len(self._buffer)

    def begin_member(
        self,
        path: str,
        method: CompressionMethod = CompressionMethod.STORE,
        timestamp: datetime | None = None,
    ) -> MemberWriter:
        """Write a local header and return a writer for the member's data.

        Raises:
            ArchiveWriteError: If a member is still open, the archive is
                finished, or the path is not a valid member name.
        """
        if self._finished:
            raise ArchiveWriteError("archive already finished")
        if self._current is not None:
            raise ArchiveWriteError(f"member {self._current.name} is still open")
        try:
            validate_zip_path(path)
        except ValueError as e:
            raise ArchiveWriteError(str(e)) from e

        info = zipfile.ZipInfo(path, date_time=_dos_date_time(timestamp or datetime.now()))
        info.compress_type = ZIP_METHODS[CompressionMethod(method)]
        info.external_attr = DEFAULT_FILE_MODE << 16

        try:
            with warnings.catch_warnings():
                # Duplicate member names are allowed.
                warnings.simplefilter("ignore", UserWarning)
                handle = self._zip.open(info, mode="w", force_zip64=self._zip64)
        except (ValueError, OSError, zipfile.LargeZipFile) as e:
            raise ArchiveWriteError(f"cannot open member {path}: {e}") from e

        self._current = MemberWriter(path, handle)
        return self._current

    def finish_member(self) -> None:
        """Close the open member, appending its data descriptor."""
        if self._current is None:
            raise ArchiveWriteError("no member is open")
        writer, self._current = self._current, None
        writer._close()
        self.member_count += 1
        logger.debug(f"Closed member {writer.name} ({writer.bytes_written} bytes)")

    def finish(self) -> None:
        """Write the central directory and end record; no writes after this."""
        if self._finished:
            raise ArchiveWriteError("archive already finished")
        if self._current is not None:
            raise ArchiveWriteError(f"member {self._current.name} is still open")
        try:
            self._zip.close()
        except (ValueError, OSError, zipfile.LargeZipFile) as e:
            raise ArchiveWriteError(f"writing central directory failed: {e}") from e
        self._finished = True

    def drain(self) -> bytes:
        """Hand over all bytes produced since the last drain."""
        return self._buffer.take()


def _dos_date_time(timestamp: datetime) -> tuple[int, int, int, int, int, int]:
    # DOS time starts in 1980.
    if timestamp.year < MIN_DOS_TIMESTAMP.year:
        timestamp = MIN_DOS_TIMESTAMP
    return (
        timestamp.year,
        timestamp.month,
        timestamp.day,
        timestamp.hour,
        timestamp.minute,
        timestamp.second,
    )
