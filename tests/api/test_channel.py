"""Tests for the response channel."""

from __future__ import annotations

import asyncio

import pytest

from zipstreamer.api.channel import ResponseChannel
from zipstreamer.errors import ArchiveWriteError, TransferAborted


async def collect(channel: ResponseChannel) -> list[bytes]:
    return [chunk async for chunk in channel.iter_chunks()]


class TestResponseChannel:
    """Tests for the producer/consumer bridge."""

    @pytest.mark.asyncio
    async def test_full_chunks_pass_immediately(self):
        channel = ResponseChannel(chunk_size=4, max_pending=10)

        await channel.write(b"abcdefghij")
        await channel.close()

        assert await collect(channel) == [b"abcd", b"efgh", b"ij"]

    @pytest.mark.asyncio
    async def test_flush_sends_partial_chunk(self):
        channel = ResponseChannel(chunk_size=1024, max_pending=10)

        await channel.write(b"small")
        await channel.flush()
        await channel.flush()
        await channel.write(b"more")
        await channel.close()

        assert await collect(channel) == [b"small", b"more"]

    @pytest.mark.asyncio
    async def test_abort_raises_into_consumer(self):
        channel = ResponseChannel(chunk_size=4, max_pending=10)

        await channel.write(b"abcdxy")
        await channel.abort(ArchiveWriteError("copy failed"))

        received = []
        with pytest.raises(TransferAborted, match="copy failed"):
            async for chunk in channel.iter_chunks():
                received.append(chunk)

        # Buffered bytes are discarded on abort
        assert received == [b"abcd"]

    @pytest.mark.asyncio
    async def test_backpressure(self):
        channel = ResponseChannel(chunk_size=1, max_pending=2)
        producer = asyncio.create_task(channel.write(b"abcde"))

        await asyncio.sleep(0.01)
        assert not producer.done()

        consumer = asyncio.create_task(collect(channel))
        await producer
        await channel.close()

        assert await consumer == [b"a", b"b", b"c", b"d", b"e"]
