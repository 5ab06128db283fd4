"""Storage configuration models."""
from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    """Local disk storage configuration.

    The root is always passed in explicitly so that several providers (e.g.
    one per test) can live side by side.
    """
    root_dir: str = "./uploads"
    public_base_url: str = "/uploads"  # Path or absolute URL prefix

    # Streaming
    chunk_size: int = Field(default=64 * 1024, gt=0)
    staging_dir_name: str = ".staging"

    # Naming
    name_retry_attempts: int = Field(default=5, ge=1)
    max_basename_length: int = Field(default=100, ge=1, le=200)
