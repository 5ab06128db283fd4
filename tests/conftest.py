"""Pytest bootstrap configuration.

Point the upload root at a throwaway directory before any module reads
application settings, and provide isolated storage per test.
"""
import os
import tempfile

# Settings are read at import time
os.environ.setdefault("UPLOAD__ROOT_DIR", tempfile.mkdtemp(prefix="uploads-test-"))

import asyncio
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from application.services.upload_service import UploadApplicationService
from domain.upload.entity import UploadPart
from infrastructure.adapters.storage_port import StorageProviderPortAdapter
from infrastructure.external.storage import LocalProvider, StorageConfig, get_storage


class BytesStream:
    """Async readable over in-memory bytes, optionally failing part-way."""

    def __init__(self, data: bytes, *, fail_after: Optional[int] = None, exc: Optional[BaseException] = None):
        self._data = data
        self._pos = 0
        self._fail_after = fail_after
        self._exc = exc or asyncio.CancelledError()

    async def read(self, size: int = -1) -> bytes:
        if self._fail_after is not None and self._pos >= self._fail_after:
            raise self._exc
        if size < 0:
            size = len(self._data) - self._pos
        chunk = self._data[self._pos:self._pos + size]
        self._pos += len(chunk)
        return chunk


def make_part(
    data: bytes = b"hello",
    filename: str = "hello.txt",
    content_type: Optional[str] = "text/plain",
    field_name: str = "file",
) -> UploadPart:
    return UploadPart(
        field_name=field_name,
        filename=filename,
        content_type=content_type,
        stream=BytesStream(data),
    )


def stored_files(root) -> list:
    """Every regular file under root except the staging area."""
    return [
        p for p in root.rglob("*")
        if p.is_file() and ".staging" not in p.relative_to(root).parts
    ]


@pytest.fixture
def storage_config(tmp_path) -> StorageConfig:
    return StorageConfig(root_dir=str(tmp_path / "uploads"))


@pytest.fixture
def provider(storage_config) -> LocalProvider:
    return LocalProvider(storage_config)


@pytest.fixture
def service(provider) -> UploadApplicationService:
    return UploadApplicationService(StorageProviderPortAdapter(provider))


@pytest.fixture
def client(provider):
    from main import app

    app.dependency_overrides[get_storage] = lambda: provider
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
