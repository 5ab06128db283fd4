import re
from datetime import datetime, timezone

import pytest

from application.utils.policies import FIELDS, GENERAL, IMAGE, MULTIPLE, build_endpoint_policies
from core.config import UploadSettings
from domain.common.exceptions import (
    FileTooLargeException,
    NoFileProvidedException,
    StoredFileNotFoundException,
    TooManyFilesException,
    UnexpectedFieldException,
    UnsupportedTypeException,
)
from domain.upload.policy import MB, EndpointPolicy, TypePolicy

from conftest import make_part, stored_files

JAN_15 = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def policies():
    return build_endpoint_policies(UploadSettings())


@pytest.fixture
def tiny_policy():
    return EndpointPolicy(
        name="tiny",
        type_policy=TypePolicy.general(),
        max_file_size=8,
        max_file_count=5,
        fields={"files": 5},
    )


@pytest.mark.asyncio
async def test_single_upload_lands_in_date_bucket(service, provider, policies):
    part = make_part(b"%PDF-1.4 data", "report.pdf", "application/pdf")

    stored = await service.handle_single_upload([part], policies[GENERAL], now=JAN_15)

    assert stored.bucket_date == "2024-01-15"
    assert re.fullmatch(r"report-\d+-\d+\.pdf", stored.storage_name)
    assert stored.original_name == "report.pdf"
    assert stored.declared_mime_type == "application/pdf"
    assert stored.size_bytes == 13
    assert stored.url == f"/uploads/2024-01-15/{stored.storage_name}"
    assert (provider.root / "2024-01-15" / stored.storage_name).read_bytes() == b"%PDF-1.4 data"


@pytest.mark.asyncio
async def test_hostile_filename_stays_inside_bucket(service, provider, policies):
    part = make_part(b"x", "../../etc/passwd.txt", "text/plain")

    stored = await service.handle_single_upload([part], policies[GENERAL], now=JAN_15)

    assert re.fullmatch(r"passwd-\d+-\d+\.txt", stored.storage_name)
    assert [p.parent.name for p in stored_files(provider.root)] == ["2024-01-15"]


@pytest.mark.asyncio
async def test_oversized_image_is_rejected_and_not_persisted(service, provider, policies):
    part = make_part(b"\x89PNG" + b"0" * (6 * MB), "big.png", "image/png", field_name="image")

    with pytest.raises(FileTooLargeException) as exc:
        await service.handle_single_upload([part], policies[IMAGE])

    assert exc.value.details["max_size"] == 5 * MB
    assert exc.value.details["filename"] == "big.png"
    assert stored_files(provider.root) == []
    assert list(provider.staging_path.iterdir()) == []


@pytest.mark.asyncio
async def test_unsupported_type_writes_nothing(service, provider, policies):
    part = make_part(b"MZ", "setup.exe", "application/x-msdownload")

    with pytest.raises(UnsupportedTypeException):
        await service.handle_single_upload([part], policies[GENERAL])

    assert stored_files(provider.root) == []


@pytest.mark.asyncio
async def test_no_parts(service, policies):
    with pytest.raises(NoFileProvidedException):
        await service.handle_single_upload([], policies[GENERAL])


@pytest.mark.asyncio
async def test_multi_upload_rejects_whole_request_on_bad_type(service, provider, policies):
    parts = [
        make_part(b"ok", "a.txt", "text/plain", field_name="files"),
        make_part(b"MZ", "b.exe", "application/x-msdownload", field_name="files"),
    ]

    with pytest.raises(UnsupportedTypeException) as exc:
        await service.handle_multi_upload(parts, policies[MULTIPLE])

    assert exc.value.field == "files"
    assert stored_files(provider.root) == []


@pytest.mark.asyncio
async def test_multi_upload_too_many_files(service, provider, policies):
    parts = [make_part(field_name="files") for _ in range(6)]

    with pytest.raises(TooManyFilesException):
        await service.handle_multi_upload(parts, policies[MULTIPLE])

    assert stored_files(provider.root) == []


@pytest.mark.asyncio
async def test_multi_upload_reports_partial_failures(service, provider, tiny_policy):
    parts = [
        make_part(b"small", "a.txt", "text/plain", field_name="files"),
        make_part(b"far too large", "b.txt", "text/plain", field_name="files"),
        make_part(b"tiny", "c.txt", "text/plain", field_name="files"),
    ]

    batch = await service.handle_multi_upload(parts, tiny_policy)

    assert [f.original_name for f in batch.files] == ["a.txt", "c.txt"]
    assert len(batch.failed) == 1
    assert batch.failed[0].part.filename == "b.txt"
    assert isinstance(batch.failed[0].error, FileTooLargeException)
    assert len(stored_files(provider.root)) == 2


@pytest.mark.asyncio
async def test_multi_upload_raises_when_nothing_stored(service, provider, tiny_policy):
    parts = [make_part(b"far too large", "b.txt", "text/plain", field_name="files")]

    with pytest.raises(FileTooLargeException):
        await service.handle_multi_upload(parts, tiny_policy)

    assert stored_files(provider.root) == []


@pytest.mark.asyncio
async def test_fields_upload_groups_by_field(service, policies):
    parts = [
        make_part(b"a", "me.png", "image/png", field_name="avatar"),
        make_part(b"g1", "one.jpg", "image/jpeg", field_name="gallery"),
        make_part(b"g2", "two.jpg", "image/jpeg", field_name="gallery"),
        make_part(b"d", "cv.pdf", "application/pdf", field_name="documents"),
    ]

    batch = await service.handle_fields_upload(parts, policies[FIELDS], now=JAN_15)

    assert sorted(batch.files) == ["avatar", "documents", "gallery"]
    assert [f.original_name for f in batch.files["gallery"]] == ["one.jpg", "two.jpg"]
    assert batch.failed == []


@pytest.mark.asyncio
async def test_fields_upload_unexpected_field(service, provider, policies):
    parts = [make_part(b"a", "me.png", "image/png", field_name="banner")]

    with pytest.raises(UnexpectedFieldException):
        await service.handle_fields_upload(parts, policies[FIELDS])

    assert stored_files(provider.root) == []


@pytest.mark.asyncio
async def test_list_urls_match_upload_urls(service, policies):
    stored = await service.handle_single_upload([make_part()], policies[GENERAL])

    entries = await service.list_all()

    assert len(entries) == 1
    assert entries[0].filename == stored.storage_name
    assert entries[0].key == stored.key
    assert entries[0].url == stored.url
    assert entries[0].size == stored.size_bytes


@pytest.mark.asyncio
async def test_delete_by_name_removes_file(service, policies):
    stored = await service.handle_single_upload([make_part()], policies[GENERAL], now=JAN_15)

    key = await service.delete_by_name(stored.storage_name)

    assert key == f"2024-01-15/{stored.storage_name}"
    assert [e.filename for e in await service.list_all()] == []


@pytest.mark.asyncio
async def test_delete_strips_directory_components(service, policies):
    stored = await service.handle_single_upload([make_part()], policies[GENERAL])

    await service.delete_by_name(f"../../{stored.storage_name}")

    assert await service.list_all() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["missing.txt", "..", "", "../../etc/passwd"])
async def test_delete_unknown_name(service, name):
    with pytest.raises(StoredFileNotFoundException):
        await service.delete_by_name(name)


@pytest.mark.asyncio
async def test_deleting_twice_is_not_found(service, policies):
    stored = await service.handle_single_upload([make_part()], policies[GENERAL])
    await service.delete_by_name(stored.storage_name)

    with pytest.raises(StoredFileNotFoundException):
        await service.delete_by_name(stored.storage_name)


@pytest.mark.asyncio
async def test_long_cjk_filename_is_stored(service, provider, policies):
    part = make_part(b"x", "报" * 90 + ".pdf", "application/pdf")

    stored = await service.handle_single_upload([part], policies[GENERAL], now=JAN_15)

    assert stored.storage_name.startswith("报" * 66 + "-")
    assert stored.storage_name.endswith(".pdf")
    assert len(stored.storage_name.encode("utf-8")) <= 255
    assert (provider.root / "2024-01-15" / stored.storage_name).read_bytes() == b"x"


@pytest.mark.asyncio
async def test_delete_ignores_trailing_separator(service, policies):
    stored = await service.handle_single_upload([make_part()], policies[GENERAL])

    await service.delete_by_name(f"{stored.storage_name}/")

    assert await service.list_all() == []
