"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import io
import tempfile
import zipfile
from collections.abc import Generator
from pathlib import Path

import httpx
import pytest

from zipstreamer.build_info import get_vcs_revision
from zipstreamer.fetch.retry import RetryingFetcher


class SourceServer:
    """Fake upstream serving canned responses per URL.

    Each URL maps to a list of responses consumed in order; the last one
    repeats. A response is a ``(status, body)`` tuple, an ``httpx.Response``
    factory, or an exception instance to raise.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, *responses) -> None:
        self.routes[url] = list(responses)

    def calls(self, url: str) -> int:
        return sum(1 for r in self.requests if str(r.url) == url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes.get(str(request.url))
        if responses is None:
            return httpx.Response(404, content=b"not found")

        item = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        status, body = item
        return httpx.Response(status, content=body)


class RecordingReporter:
    """Telemetry reporter that keeps what it was given."""

    def __init__(self) -> None:
        self.exceptions: list[BaseException] = []
        self.messages: list[str] = []

    def report_exception(self, exc: BaseException) -> None:
        self.exceptions.append(exc)

    def report_message(self, message: str) -> None:
        self.messages.append(message)


class MemorySink:
    """Archive sink and flusher collecting bytes in memory."""

    def __init__(self) -> None:
        self.chunks: list[bytes] = []
        self.flushes = 0

    async def write(self, data: bytes) -> None:
        self.chunks.append(data)

    async def flush(self) -> None:
        self.flushes += 1

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)


class RecordingAbort:
    def __init__(self) -> None:
        self.errors: list[BaseException] = []

    async def abort(self, exc: BaseException) -> None:
        self.errors.append(exc)


def read_members(data: bytes) -> list[tuple[str, bytes]]:
    """Open a finished archive and list (name, content) in archive order."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return [(info.filename, zf.read(info)) for info in zf.infolist()]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def fixed_revision(monkeypatch):
    """Pin the build revision so User-Agent checks are deterministic."""
    monkeypatch.setenv("ZIPSTREAMER_REVISION", "abcdef0123456789")
    get_vcs_revision.cache_clear()
    yield
    get_vcs_revision.cache_clear()


@pytest.fixture
def source_server() -> SourceServer:
    return SourceServer()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_fetcher(source_server: SourceServer, sleeps: list[float]):
    """Build fetchers bound to the fake upstream, recording backoff sleeps."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    def factory(**kwargs) -> RetryingFetcher:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(source_server.handler),
            follow_redirects=True,
        )
        return RetryingFetcher(client=client, sleep=fake_sleep, **kwargs)

    return factory


@pytest.fixture
def fetcher(make_fetcher) -> RetryingFetcher:
    return make_fetcher()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def abort() -> RecordingAbort:
    return RecordingAbort()


@pytest.fixture
def read_zip():
    return read_members


# Markers for test categories
def pytest_configure(config):
    config.addinivalue_line("markers", "mock: tests using mocked upstream responses")
    config.addinivalue_line("markers", "slow: slow running tests")
