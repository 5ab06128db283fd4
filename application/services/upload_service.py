"""Application layer orchestration for uploads, listing and deletion."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from application.ports.storage import FileEntry, StoragePort
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    FileTooLargeException,
    NoFileProvidedException,
    StorageUnavailableException,
    StoredFileNotFoundException,
)
from domain.upload.entity import StoredFile, UploadPart
from domain.upload.naming import bare_filename, storage_name_for
from domain.upload.policy import EndpointPolicy

logger = get_logger(__name__)


@dataclass
class UploadFailure:
    part: UploadPart
    error: BusinessException


@dataclass
class UploadBatch:
    files: list[StoredFile] = field(default_factory=list)
    failed: list[UploadFailure] = field(default_factory=list)


@dataclass
class FieldsUploadBatch:
    files: dict[str, list[StoredFile]] = field(default_factory=dict)
    failed: list[UploadFailure] = field(default_factory=list)


class UploadApplicationService:
    """Upload workflows bridging the HTTP layer and storage.

    Multi-file calls are best-effort, not atomic: every part is checked
    (field, count, declared type) before anything is written, then each part
    is stored independently. A part failing mid-write never rolls back siblings
    already stored; the failure is reported next to them.
    """

    def __init__(self, storage: StoragePort, *, max_basename_length: int = 100):
        self._storage = storage
        self._max_basename_length = max_basename_length

    # ------------------------------------------------------------------
    # Upload operations
    # ------------------------------------------------------------------
    async def handle_single_upload(
        self,
        parts: Sequence[UploadPart],
        policy: EndpointPolicy,
        *,
        now: Optional[datetime] = None,
    ) -> StoredFile:
        self._check_request(parts, policy)
        return await self._store(parts[0], policy, self._storage.bucket_for(now))

    async def handle_multi_upload(
        self,
        parts: Sequence[UploadPart],
        policy: EndpointPolicy,
        *,
        now: Optional[datetime] = None,
    ) -> UploadBatch:
        self._check_request(parts, policy)
        bucket = self._storage.bucket_for(now)
        batch = UploadBatch()
        for part in parts:
            try:
                batch.files.append(await self._store(part, policy, bucket))
            except (FileTooLargeException, StorageUnavailableException) as exc:
                batch.failed.append(UploadFailure(part=part, error=exc))
        self._raise_if_nothing_stored(batch.files, batch.failed)
        return batch

    async def handle_fields_upload(
        self,
        parts: Sequence[UploadPart],
        policy: EndpointPolicy,
        *,
        now: Optional[datetime] = None,
    ) -> FieldsUploadBatch:
        """Store parts spread over several named fields (``policy.fields``)."""
        self._check_request(parts, policy)
        bucket = self._storage.bucket_for(now)
        batch = FieldsUploadBatch()
        for part in parts:
            try:
                stored = await self._store(part, policy, bucket)
            except (FileTooLargeException, StorageUnavailableException) as exc:
                batch.failed.append(UploadFailure(part=part, error=exc))
                continue
            batch.files.setdefault(part.field_name, []).append(stored)
        self._raise_if_nothing_stored(batch.files, batch.failed)
        return batch

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    async def list_all(self) -> list[FileEntry]:
        """Every stored file, in directory-entry order (not sorted)."""
        return await self._storage.list_files()

    async def delete_by_name(self, filename: str) -> str:
        """Delete the first stored file with this bare name; return its key.

        Directory components are stripped first, so ``../../etc/passwd`` is
        looked up as ``passwd`` inside the storage root only.
        """
        bare = bare_filename(filename)
        if not bare:
            raise StoredFileNotFoundException(filename)
        key = await self._storage.resolve(bare)
        if key is None or not await self._storage.delete(key):
            raise StoredFileNotFoundException(bare)
        logger.info("file_deleted_by_name", filename=bare, key=key)
        return key

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _check_request(self, parts: Sequence[UploadPart], policy: EndpointPolicy) -> None:
        if not parts:
            raise NoFileProvidedException()
        policy.check_counts(part.field_name for part in parts)
        for part in parts:
            policy.type_policy.check(part.content_type, field=part.field_name)

    async def _store(self, part: UploadPart, policy: EndpointPolicy, bucket: str) -> StoredFile:
        try:
            staged = await self._storage.stage(part.stream, policy.max_file_size)
        except FileTooLargeException as exc:
            raise FileTooLargeException(
                policy.max_file_size, filename=part.filename, field=part.field_name
            ) from exc

        try:
            committed = await self._storage.commit(
                staged,
                bucket,
                lambda: storage_name_for(part.filename, max_basename_length=self._max_basename_length),
            )
        except BaseException:
            await self._storage.discard(staged)
            raise

        logger.info(
            "file_stored",
            endpoint=policy.name,
            field=part.field_name,
            key=committed.key,
            size=committed.size,
            content_type=part.content_type,
        )
        return StoredFile(
            bucket_date=committed.bucket,
            storage_name=committed.filename,
            original_name=part.filename,
            declared_mime_type=part.content_type,
            size_bytes=committed.size,
            field_name=part.field_name,
            url=committed.url,
            created_at=committed.created_at,
        )

    @staticmethod
    def _raise_if_nothing_stored(files, failed: list[UploadFailure]) -> None:
        if not files and failed:
            raise failed[0].error
