"""Result of a single successful fetch attempt."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable


class FetchResult:
    """A response whose body has not been read yet.

    The body is consumed once through :meth:`aiter_bytes`; read failures
    surface as :class:`~zipstreamer.errors.FetchError`.
    """

    def __init__(
        self,
        url: str,
        status_code: int,
        chunks: AsyncIterator[bytes],
        close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self._chunks = chunks
        self._close = close
        self._closed = False

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self._chunks

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._close is not None:
            await self._close()

    async def __aenter__(self) -> "FetchResult":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"FetchResult(url={self.url!r}, status_code={self.status_code})"
