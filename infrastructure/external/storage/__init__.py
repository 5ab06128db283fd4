"""Storage service entry point and lifecycle management."""
from typing import Optional
from functools import lru_cache

from core.config import settings
from core.logging_config import get_logger
from .base import StorageProvider
from .bucketing import DateBucketer
from .config import StorageConfig
from .exceptions import (
    StorageError,
    ValidationError,
    PayloadTooLargeError,
    NameCollisionError,
)
from .models import StagedFile, StorageObject, UploadResult
from .providers.local import LocalProvider
from .utils import build_public_url, relative_key, safe_join

logger = get_logger(__name__)

# Global storage client instance
_storage_client: Optional[StorageProvider] = None


@lru_cache
def get_storage_config() -> StorageConfig:
    """Get storage configuration from settings.

    Assembles StorageConfig from core.config.settings to maintain
    single source of truth for configuration.

    Returns:
        Storage configuration instance
    """
    u = settings.upload
    return StorageConfig(
        root_dir=u.root_dir,
        public_base_url=u.public_base_url,
        chunk_size=u.chunk_size,
        name_retry_attempts=u.name_retry_attempts,
        max_basename_length=u.max_basename_length,
    )


async def init_storage_client(config: Optional[StorageConfig] = None) -> None:
    """Initialize storage client.

    Args:
        config: Explicit configuration; defaults to the one built from settings
    """
    global _storage_client

    if _storage_client is not None:
        logger.warning("storage_client_already_initialized")
        return

    try:
        config = config or get_storage_config()
        _storage_client = LocalProvider(config)
        logger.info("storage_client_initialized", root=str(_storage_client.root))
    except Exception as e:
        logger.error("storage_client_init_failed", error=str(e))
        raise


def get_storage_client() -> Optional[StorageProvider]:
    """Get storage client instance.

    Returns:
        Storage provider instance or None if not initialized
    """
    return _storage_client


async def shutdown_storage_client() -> None:
    """Shutdown storage client."""
    global _storage_client

    if _storage_client is None:
        return

    _storage_client = None
    logger.info("storage_client_shutdown")


async def get_storage() -> StorageProvider:
    """FastAPI dependency for storage service.

    Returns:
        Storage provider instance

    Raises:
        RuntimeError: If storage not initialized
    """
    client = get_storage_client()
    if client is None:
        raise RuntimeError(
            "Storage client not initialized. "
            "Call init_storage_client() during startup."
        )
    return client


__all__ = [
    # Lifecycle
    "init_storage_client",
    "get_storage_client",
    "shutdown_storage_client",
    "get_storage",

    # Configuration
    "get_storage_config",
    "StorageConfig",

    # Base types
    "StorageProvider",
    "LocalProvider",
    "DateBucketer",

    # Models
    "StagedFile",
    "StorageObject",
    "UploadResult",

    # Exceptions
    "StorageError",
    "ValidationError",
    "PayloadTooLargeError",
    "NameCollisionError",

    # Utils
    "build_public_url",
    "relative_key",
    "safe_join",
]
