"""Storage data transfer objects."""
from datetime import datetime
from pathlib import Path
from typing import Optional
from pydantic import BaseModel


class StagedFile(BaseModel):
    """A fully received upload waiting in the staging area."""
    path: Path
    size: int


class StorageObject(BaseModel):
    """A stored file as seen by the index."""
    filename: str
    key: str  # Relative path, always '/'-separated
    size: int
    created_at: Optional[datetime] = None
    url: Optional[str] = None


class UploadResult(BaseModel):
    """Commit operation result."""
    bucket: str
    filename: str
    key: str
    size: int
    url: Optional[str] = None
    created_at: Optional[datetime] = None
