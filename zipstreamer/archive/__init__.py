"""Streaming ZIP assembly."""

from zipstreamer.archive.assembler import MemberWriter, ZipAssembler
from zipstreamer.archive.stream import (
    ArchiveSink,
    ArchiveStreamer,
    Flusher,
    NullFlusher,
    TransferAbort,
)

__all__ = [
    "ArchiveSink",
    "ArchiveStreamer",
    "Flusher",
    "MemberWriter",
    "NullFlusher",
    "TransferAbort",
    "ZipAssembler",
]
