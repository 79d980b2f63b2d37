"""CLI commands for zipstreamer."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from zipstreamer import __version__
from zipstreamer.archive.stream import ArchiveStreamer
from zipstreamer.build_info import get_vcs_revision
from zipstreamer.errors import ArchiveError
from zipstreamer.fetch.retry import RetryingFetcher
from zipstreamer.models.config import CompressionMethod, ServerSettings
from zipstreamer.models.entry import DEFAULT_ARCHIVE_FILENAME, ArchiveRequest

console = Console()

COMPRESSION_CHOICES = click.Choice([m.value for m in CompressionMethod], case_sensitive=False)


def load_settings(config: str | None) -> ServerSettings:
    if config:
        return ServerSettings.from_yaml(Path(config))
    return ServerSettings.from_env()


class FileSink:
    """Archive sink writing to a local file."""

    def __init__(self, path: Path) -> None:
        self._file = open(path, "wb")
        self.bytes_written = 0

    async def write(self, data: bytes) -> None:
        self._file.write(data)
        self.bytes_written += len(data)

    async def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        self._file.close()


@click.group()
@click.option("--log-level", default="INFO", help="Logging level")
def main(log_level: str) -> None:
    """zipstreamer - Stream remote files as one ZIP archive."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to")
@click.option("--config", "-c", default=None, help="YAML settings file (default: environment)")
@click.option("--compression", default=None, type=COMPRESSION_CHOICES, help="Member compression")
def serve(host: str | None, port: int | None, config: str | None, compression: str | None) -> None:
    """Start the HTTP server."""
    import uvicorn

    from zipstreamer.api import create_app

    settings = load_settings(config)
    updates: dict[str, object] = {}
    if host:
        updates["host"] = host
    if port:
        updates["port"] = port
    if compression:
        updates["compression"] = CompressionMethod(compression.lower())
    if updates:
        settings = settings.model_copy(update=updates)

    app = create_app(settings)

    console.print(
        f"[green]Starting zipstreamer at http://{settings.host}:{settings.port} "
        f"({settings.compression.value})[/green]"
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


@main.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, help="Output ZIP path (default: suggested filename)")
@click.option("--compression", default="store", type=COMPRESSION_CHOICES, help="Member compression")
@click.option("--config", "-c", default=None, help="YAML settings file (default: environment)")
def pack(manifest: str, output: str | None, compression: str, config: str | None) -> None:
    """Build a ZIP file locally from a JSON manifest."""
    try:
        request = ArchiveRequest.from_json(Path(manifest).read_bytes())
    except ValidationError as e:
        console.print(f"[red]Invalid manifest: {escape(str(e))}[/red]")
        raise SystemExit(2)

    out_path = Path(output or request.suggested_filename or DEFAULT_ARCHIVE_FILENAME)
    settings = load_settings(config)
    fetcher = RetryingFetcher.from_settings(settings)
    streamer = ArchiveStreamer(
        request,
        fetcher,
        compression=CompressionMethod(compression.lower()),
    )
    sink = FileSink(out_path)

    async def run() -> int:
        try:
            return await streamer.stream_all(sink, flusher=sink)
        finally:
            await fetcher.close()

    error: ArchiveError | None = None
    try:
        with console.status(f"Packing {len(request)} files..."):
            succeeded = asyncio.run(run())
    except ArchiveError as e:
        error = e
    finally:
        sink.close()

    if error is not None:
        console.print(f"[red]Packing failed: {escape(str(error))}[/red]")
        out_path.unlink(missing_ok=True)
        raise SystemExit(1)

    table = Table(title=str(out_path))
    table.add_column("Entries", justify="right", style="cyan")
    table.add_column("Written", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Bytes", justify="right")
    table.add_row(str(len(request)), str(succeeded), str(len(streamer.failed)), str(sink.bytes_written))
    console.print(table)

    for entry in streamer.failed:
        console.print(f"[yellow]Empty placeholder:[/yellow] {entry.zip_path} ({entry.url})")


@main.command()
def version() -> None:
    """Show version and build revision."""
    console.print(f"zipstreamer {__version__} ({get_vcs_revision()})")


if __name__ == "__main__":
    main()
