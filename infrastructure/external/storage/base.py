"""Storage provider protocol definitions."""
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Protocol, runtime_checkable

from domain.upload.entity import AsyncReadable
from .models import StagedFile, StorageObject, UploadResult


@runtime_checkable
class StorageProvider(Protocol):
    """Core storage provider protocol for duck typing."""

    def bucket_for(self, now: Optional[datetime] = None) -> str:
        """Bucket name (date) for an upload arriving at ``now``."""
        ...

    async def stage(self, stream: AsyncReadable, max_size: int) -> StagedFile:
        """Stream an upload into the staging area, enforcing ``max_size``."""
        ...

    async def commit(
        self,
        staged: StagedFile,
        bucket: str,
        allocate_name: Callable[[], str],
    ) -> UploadResult:
        """Move a staged file into its bucket under a freshly allocated name.

        Never overwrites; ``allocate_name`` is called again on collision.
        """
        ...

    async def discard(self, staged: StagedFile) -> None:
        """Drop a staged file."""
        ...

    async def list_objects(self) -> list[StorageObject]:
        """Recursively list stored files."""
        ...

    async def resolve(self, filename: str) -> Optional[Path]:
        """Find the first stored file with this bare name."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete a stored file by relative key."""
        ...

    def key_for(self, path: Path) -> str:
        """Relative, '/'-separated key of a stored path."""
        ...

    def public_url(self, key: str) -> str:
        """Public URL for a relative key."""
        ...

    async def health_check(self) -> bool:
        """Check storage accessibility."""
        ...
