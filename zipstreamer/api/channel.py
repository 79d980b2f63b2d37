"""Bridge between the archive streamer and a streaming HTTP response.

The streamer pushes bytes into a :class:`ResponseChannel` from a producer
task while the response body iterator pulls them out. A bounded queue
between the two applies backpressure: a slow client stalls the producer
instead of letting the archive pile up in memory.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from zipstreamer.errors import TransferAborted

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_PENDING = 4

_DONE = object()


class ResponseChannel:
    """Sink, flusher and abort signal for one HTTP response."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_pending: int = DEFAULT_MAX_PENDING,
    ) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=max_pending)
        self._buffer = bytearray()
        self._chunk_size = chunk_size

    async def write(self, data: bytes) -> None:
        """Buffer data, passing on full chunks."""
        self._buffer += data
        while len(self._buffer) >= self._chunk_size:
            chunk = bytes(self._buffer[: self._chunk_size])
            del self._buffer[: self._chunk_size]
            await self._queue.put(chunk)

    async def flush(self) -> None:
        """Pass on whatever is buffered, even a partial chunk."""
        if self._buffer:
            chunk = bytes(self._buffer)
            self._buffer.clear()
            await self._queue.put(chunk)

    async def close(self) -> None:
        """End the response normally."""
        await self.flush()
        await self._queue.put(_DONE)

    async def abort(self, exc: BaseException) -> None:
        """End the response by raising into the body iterator.

        Headers announcing success are already out, so the server drops
        the connection and the client sees an incomplete archive.
        """
        self._buffer.clear()
        await self._queue.put(TransferAborted(str(exc)))

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        while True:
            item = await self._queue.get()
            if item is _DONE:
                return
            if isinstance(item, TransferAborted):
                raise item
            yield item
