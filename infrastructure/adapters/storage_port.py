"""Infrastructure adapter that implements the application StoragePort
by delegating to the concrete StorageProvider and translating models
and storage errors.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from application.ports.storage import (
    CommittedFile,
    FileEntry,
    StagedUpload,
    StoragePort,
)
from core.logging_config import get_logger
from domain.common.exceptions import (
    FileTooLargeException,
    StorageUnavailableException,
    StoredFileNotFoundException,
)
from domain.upload.entity import AsyncReadable
from infrastructure.external.storage import (
    PayloadTooLargeError,
    StorageError,
    StorageProvider,
    ValidationError,
)

logger = get_logger(__name__)


def _unavailable(operation: str, exc: Exception) -> StorageUnavailableException:
    # Internal cause goes to the log only
    logger.error("storage_unavailable", operation=operation, error=str(exc))
    return StorageUnavailableException()


class StorageProviderPortAdapter(StoragePort):
    def __init__(self, provider: StorageProvider):
        self.provider = provider

    def bucket_for(self, now: Optional[datetime] = None) -> str:
        return self.provider.bucket_for(now)

    async def stage(self, stream: AsyncReadable, max_size: int) -> StagedUpload:
        try:
            staged = await self.provider.stage(stream, max_size)
        except PayloadTooLargeError as exc:
            raise FileTooLargeException(exc.max_size) from exc
        except StorageError as exc:
            raise _unavailable("stage", exc) from exc
        return StagedUpload(handle=staged, size=staged.size)

    async def commit(
        self,
        staged: StagedUpload,
        bucket: str,
        allocate_name: Callable[[], str],
    ) -> CommittedFile:
        try:
            result = await self.provider.commit(staged.handle, bucket, allocate_name)
        except StorageError as exc:
            raise _unavailable("commit", exc) from exc
        return CommittedFile(
            bucket=result.bucket,
            filename=result.filename,
            key=result.key,
            size=result.size,
            url=result.url or self.provider.public_url(result.key),
            created_at=result.created_at,
        )

    async def discard(self, staged: StagedUpload) -> None:
        await self.provider.discard(staged.handle)

    async def list_files(self) -> list[FileEntry]:
        try:
            objects = await self.provider.list_objects()
        except StorageError as exc:
            raise _unavailable("list", exc) from exc
        return [
            FileEntry(
                filename=obj.filename,
                key=obj.key,
                size=obj.size,
                url=obj.url or self.provider.public_url(obj.key),
                created_at=obj.created_at,
            )
            for obj in objects
        ]

    async def resolve(self, filename: str) -> Optional[str]:
        try:
            path = await self.provider.resolve(filename)
        except ValidationError:
            return None
        except StorageError as exc:
            raise _unavailable("resolve", exc) from exc
        if path is None:
            return None
        return self.provider.key_for(path)

    async def delete(self, key: str) -> bool:
        try:
            return await self.provider.delete(key)
        except ValidationError as exc:
            raise StoredFileNotFoundException(key) from exc
        except StorageError as exc:
            raise _unavailable("delete", exc) from exc

    def public_url(self, key: str) -> str:
        return self.provider.public_url(key)
