"""Domain entities for uploaded and stored files."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, runtime_checkable


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@runtime_checkable
class AsyncReadable(Protocol):
    """Anything with an async ``read(size)``, e.g. starlette's UploadFile."""

    async def read(self, size: int = -1) -> bytes: ...


@dataclass
class UploadPart:
    """One file part of an upload request. Lives only for the request."""

    field_name: str
    filename: str
    content_type: Optional[str]
    stream: AsyncReadable


@dataclass(frozen=True)
class StoredFile:
    """A file persisted under ``<bucket_date>/<storage_name>``.

    Identity is the relative path; nothing mutates a stored file after the
    writer creates it.
    """

    bucket_date: str
    storage_name: str
    original_name: str
    declared_mime_type: Optional[str]
    size_bytes: int
    field_name: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", _ensure_utc(self.created_at))

    @property
    def key(self) -> str:
        return f"{self.bucket_date}/{self.storage_name}"
