"""Archive request models.

An archive request is an ordered list of entries, each naming a remote
source and the path it takes inside the produced ZIP file.
"""

from __future__ import annotations

from urllib.parse import quote, urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ARCHIVE_FILENAME = "archive.zip"


def validate_zip_path(path: str) -> str:
    """Check that a path is usable as a ZIP member name.

    Raises:
        ValueError: If the path is empty, absolute, uses backslashes or
            contains empty, "." or ".." segments.
    """
    if not path:
        raise ValueError("zip path must not be empty")
    if path.startswith("/"):
        raise ValueError(f"zip path must be relative: {path!r}")
    if "\\" in path:
        raise ValueError(f"zip path must use forward slashes: {path!r}")
    for segment in path.split("/"):
        if segment in ("", ".", ".."):
            raise ValueError(f"invalid segment in zip path: {path!r}")
    return path


class EntryDescriptor(BaseModel):
    """One archive member: where to fetch it and where to put it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = Field(..., description="Absolute http(s) URL of the source file")
    zip_path: str = Field(..., alias="zipPath", description="Path inside the archive")

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"url must be an absolute http(s) URL: {value!r}")
        return value

    @field_validator("zip_path")
    @classmethod
    def _check_zip_path(cls, value: str) -> str:
        return validate_zip_path(value)


class ArchiveRequest(BaseModel):
    """Ordered, non-empty list of entries plus a suggested download name."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    entries: tuple[EntryDescriptor, ...] = Field(..., alias="files")
    suggested_filename: str = Field(default="", alias="suggestedFilename")

    @field_validator("entries")
    @classmethod
    def _check_entries(cls, value: tuple[EntryDescriptor, ...]) -> tuple[EntryDescriptor, ...]:
        if len(value) == 0:
            raise ValueError("must have at least 1 entry")
        return value

    @classmethod
    def from_json(cls, data: str | bytes) -> "ArchiveRequest":
        """Parse a JSON manifest (``{"suggestedFilename": ..., "files": [...]}``)."""
        return cls.model_validate_json(data)

    @property
    def escaped_suggested_filename(self) -> str:
        escaped = self.suggested_filename.replace('"', '\\"')
        return escaped or DEFAULT_ARCHIVE_FILENAME

    def content_disposition(self) -> str:
        """Build a Content-Disposition header value for the archive."""
        filename = self.escaped_suggested_filename
        if filename.isascii():
            return f'attachment; filename="{filename}"'
        fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
        encoded = quote(self.suggested_filename, safe="")
        return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"

    def check_url_prefix(self, prefix: str | None) -> None:
        """Reject entries whose source URL is outside ``prefix``.

        Raises:
            ValueError: If any entry URL does not start with the prefix.
        """
        if not prefix:
            return
        for entry in self.entries:
            if not entry.url.startswith(prefix):
                raise ValueError(f"url not allowed: {entry.url}")

    def __len__(self) -> int:
        return len(self.entries)
