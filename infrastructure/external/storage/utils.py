"""Storage path and URL helpers shared by the writer and the index."""
from pathlib import Path, PurePath

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
)

from .exceptions import NameCollisionError, ValidationError


def safe_join(base: Path, relative: str) -> Path:
    """Safely join paths preventing traversal attacks.

    Args:
        base: Resolved base path
        relative: Relative path to join

    Returns:
        Safe joined path

    Raises:
        ValidationError: If path would escape base
    """
    # Clean the relative path
    clean = relative.replace("\\", "/").lstrip("/")

    full_path = (base / clean).resolve()

    # Ensure result is within base using relative_to guard
    try:
        full_path.relative_to(base)
    except ValueError:
        raise ValidationError(f"Path escapes base directory: {relative}")

    return full_path


def relative_key(root: Path, path: PurePath) -> str:
    """Relative key of ``path`` under ``root``, '/'-separated on every OS.

    Listing and URL building both go through here so that a listed URL and a
    delete lookup always agree on a file's identity.
    """
    return path.relative_to(root).as_posix()


def build_public_url(public_base_url: str, key: str) -> str:
    """Join the public base and a relative key.

    Example:
        build_public_url("/uploads", "2024-01-15/a-1-2.pdf")
        -> "/uploads/2024-01-15/a-1-2.pdf"
    """
    base = public_base_url.rstrip("/")
    path = key.replace("\\", "/").lstrip("/")
    return f"{base}/{path}"


def collision_retrying(max_attempts: int) -> AsyncRetrying:
    """Retry controller for name allocation collisions.

    Collisions are resolved by allocating a new name, so there is no backoff.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        retry=retry_if_exception_type(NameCollisionError),
        reraise=True,
    )
