"""Local file system storage provider implementation."""
import asyncio
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, Optional

import aiofiles
import aiofiles.os

from core.logging_config import get_logger
from domain.upload.entity import AsyncReadable
from ..base import StorageProvider
from ..bucketing import DateBucketer
from ..config import StorageConfig
from ..models import StagedFile, StorageObject, UploadResult
from ..exceptions import (
    StorageError,
    NameCollisionError,
    PayloadTooLargeError,
    ValidationError,
)
from ..utils import build_public_url, collision_retrying, relative_key, safe_join

logger = get_logger(__name__)


def _created_at(stat) -> datetime:
    # Birth time where the platform has it (macOS/BSD/Windows), ctime otherwise
    ts = getattr(stat, "st_birthtime", None) or stat.st_ctime
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class LocalProvider(StorageProvider):
    """Local file system storage provider.

    Layout: ``root/<YYYY-MM-DD>/<storage name>``. Uploads are streamed into
    ``root/.staging`` first and hard-linked into their bucket once complete,
    so a bucket only ever holds whole files and an existing name is never
    overwritten.
    """

    def __init__(self, config: StorageConfig):
        """Initialize local storage provider.

        Args:
            config: Storage configuration
        """
        self.config = config
        self.root = Path(config.root_dir).resolve()
        self.staging_path = self.root / config.staging_dir_name
        self.bucketer = DateBucketer(self.root)

        # Ensure base paths exist
        self.staging_path.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------
    def bucket_for(self, now: Optional[datetime] = None) -> str:
        return self.bucketer.bucket_name(now)

    async def stage(self, stream: AsyncReadable, max_size: int) -> StagedFile:
        """Stream ``stream`` into a staging file.

        The staging file is removed on every failure path: size limit hit,
        I/O error, or task cancellation when the client goes away.

        Raises:
            PayloadTooLargeError: If the stream exceeds ``max_size`` bytes
            StorageError: On write failure
        """
        path = self.staging_path / f"{uuid.uuid4().hex}.part"
        size = 0
        try:
            await aiofiles.os.makedirs(self.staging_path, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                while True:
                    chunk = await stream.read(self.config.chunk_size)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > max_size:
                        raise PayloadTooLargeError(max_size)
                    await f.write(chunk)
        except PayloadTooLargeError:
            self._unlink_quietly(path)
            logger.info("upload_too_large", max_size=max_size, received=size)
            raise
        except OSError as e:
            self._unlink_quietly(path)
            raise StorageError(f"Failed to stage upload: {e}") from e
        except BaseException:
            self._unlink_quietly(path)
            logger.warning("upload_aborted", received=size)
            raise

        logger.debug("file_staged", path=path.name, size=size)
        return StagedFile(path=path, size=size)

    async def commit(
        self,
        staged: StagedFile,
        bucket: str,
        allocate_name: Callable[[], str],
    ) -> UploadResult:
        """Link a staged file into ``bucket`` under a fresh, unused name.

        Raises:
            NameCollisionError: If every allocated name was already taken
            StorageError: On bucket creation or link failure
        """
        bucket_path = await self.bucketer.resolve(bucket)
        target: Path = bucket_path
        async for attempt in collision_retrying(self.config.name_retry_attempts):
            with attempt:
                filename = allocate_name()
                target = safe_join(self.root, f"{bucket}/{filename}")
                if target.parent != bucket_path:
                    raise ValidationError(f"Invalid storage name: {filename}")
                await self._link_exclusive(staged.path, target)

        await self.discard(staged)
        key = relative_key(self.root, target)
        try:
            stat = await aiofiles.os.stat(target)
        except OSError as e:
            raise StorageError(f"Failed to stat {key}: {e}") from e

        logger.info("file_committed", key=key, size=stat.st_size)
        return UploadResult(
            bucket=bucket,
            filename=target.name,
            key=key,
            size=stat.st_size,
            url=self.public_url(key),
            created_at=_created_at(stat),
        )

    async def discard(self, staged: StagedFile) -> None:
        self._unlink_quietly(staged.path)

    async def _link_exclusive(self, source: Path, target: Path) -> None:
        try:
            await aiofiles.os.link(source, target)
        except FileExistsError as e:
            logger.warning("name_collision_retry", target=target.name)
            raise NameCollisionError(f"Name already taken: {target.name}") from e
        except OSError as e:
            raise StorageError(f"Failed to store {target.name}: {e}") from e

    def _unlink_quietly(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("staging_cleanup_failed", path=path.name, error=str(e))

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def _iter_files(self) -> Iterator[Path]:
        # Directory-entry order, staging area excluded
        for path in self.root.rglob("*"):
            if self.staging_path == path or self.staging_path in path.parents:
                continue
            if path.is_file():
                yield path

    def _scan(self) -> list[StorageObject]:
        objects: list[StorageObject] = []
        for path in self._iter_files():
            try:
                stat = path.stat()
            except FileNotFoundError:
                # Deleted between walk and stat
                continue
            key = relative_key(self.root, path)
            objects.append(
                StorageObject(
                    filename=path.name,
                    key=key,
                    size=stat.st_size,
                    created_at=_created_at(stat),
                    url=self.public_url(key),
                )
            )
        return objects

    def _find(self, filename: str) -> Optional[Path]:
        for path in self._iter_files():
            if path.name == filename:
                return path
        return None

    async def list_objects(self) -> list[StorageObject]:
        """List every stored file. Order is directory-entry order, unsorted."""
        try:
            return await asyncio.to_thread(self._scan)
        except OSError as e:
            raise StorageError(f"Failed to list objects: {e}") from e

    async def resolve(self, filename: str) -> Optional[Path]:
        """First stored file named exactly ``filename``, in walk order.

        Only bare names are accepted, so the lookup cannot leave the root.
        When several buckets hold the same name the first one found wins.
        """
        if not filename or filename in {".", ".."} or "/" in filename or "\\" in filename:
            return None
        try:
            found = await asyncio.to_thread(self._find, filename)
        except OSError as e:
            raise StorageError(f"Failed to resolve {filename}: {e}") from e
        if found is None:
            return None
        # Symlinked entries must not point outside the root
        safe_join(self.root, relative_key(self.root, found))
        return found

    async def delete(self, key: str) -> bool:
        """Delete a stored file by relative key."""
        try:
            file_path = safe_join(self.root, key)

            if file_path.is_file():
                await aiofiles.os.remove(file_path)
                logger.info("file_deleted", key=key)
                return True

            return False

        except ValidationError:
            raise
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

    def key_for(self, path: Path) -> str:
        return relative_key(self.root, path)

    def public_url(self, key: str) -> str:
        return build_public_url(self.config.public_base_url, key)

    async def health_check(self) -> bool:
        """Check local storage accessibility."""
        try:
            # Check if root exists and is writable
            test_file = self.staging_path / ".health_check"
            test_file.touch()
            test_file.unlink()
            return True
        except OSError as e:
            logger.error("local_storage_health_check_failed", error=str(e))
            return False
