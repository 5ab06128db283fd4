"""Application-owned storage port abstraction (hexagonal architecture).

Defines the minimal methods needed by the upload use cases so that
the application layer does not depend on infrastructure details.
Implementations translate their own failures into domain exceptions
(``FileTooLargeException``, ``StorageUnavailableException``,
``StoredFileNotFoundException``).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from domain.upload.entity import AsyncReadable


@dataclass
class StagedUpload:
    handle: Any
    size: int


@dataclass
class CommittedFile:
    bucket: str
    filename: str
    key: str
    size: int
    url: str
    created_at: Optional[datetime] = None


@dataclass
class FileEntry:
    filename: str
    key: str
    size: int
    url: str
    created_at: Optional[datetime] = None


@runtime_checkable
class StoragePort(Protocol):
    def bucket_for(self, now: Optional[datetime] = None) -> str: ...

    async def stage(self, stream: AsyncReadable, max_size: int) -> StagedUpload: ...

    async def commit(
        self,
        staged: StagedUpload,
        bucket: str,
        allocate_name: Callable[[], str],
    ) -> CommittedFile: ...

    async def discard(self, staged: StagedUpload) -> None: ...

    async def list_files(self) -> list[FileEntry]: ...

    async def resolve(self, filename: str) -> Optional[str]: ...

    async def delete(self, key: str) -> bool: ...

    def public_url(self, key: str) -> str: ...
