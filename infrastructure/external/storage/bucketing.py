"""Date buckets: one directory per UTC calendar day under the storage root."""
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiofiles.os

from core.logging_config import get_logger
from .exceptions import StorageError
from .utils import safe_join

logger = get_logger(__name__)


class DateBucketer:
    """Resolves (and lazily creates) ``root/<YYYY-MM-DD>``.

    Dates are UTC, the date part of an ISO-8601 timestamp taken when the
    request is handled. Creation is idempotent, so concurrent first writers
    of the same day need no lock.
    """

    def __init__(self, root: Path):
        self.root = root

    @staticmethod
    def bucket_name(now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        return now.date().isoformat()

    async def resolve(self, bucket: str) -> Path:
        """Return the existing bucket directory, creating it if absent.

        Raises:
            StorageError: If the directory cannot be created
        """
        path = safe_join(self.root, bucket)
        try:
            await aiofiles.os.makedirs(path, exist_ok=True)
        except OSError as e:
            logger.error("bucket_create_failed", bucket=bucket, error=str(e))
            raise StorageError(f"Failed to create bucket {bucket}: {e}") from e
        return path
