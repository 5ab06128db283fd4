import re

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from api.routes.upload import limit_request_body
from domain.common.exceptions import FileTooLargeException
from domain.upload.policy import MB, EndpointPolicy, TypePolicy
from infrastructure.external.storage import LocalProvider, get_storage, get_storage_config

from conftest import stored_files


def test_single_upload(client, provider):
    resp = client.post(
        "/api/upload/single",
        files={"file": ("report.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["original_name"] == "report.pdf"
    assert data["mimetype"] == "application/pdf"
    assert data["size"] == 8
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}/report-\d+-\d+\.pdf", data["path"])
    assert data["url"] == f"http://testserver/uploads/{data['path']}"
    assert (provider.root / data["path"]).read_bytes() == b"%PDF-1.4"


def test_single_upload_without_file(client):
    resp = client.post("/api/upload/single", data={"note": "no file here"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["type"] == "NoFileProvided"


def test_single_upload_unexpected_field(client, provider):
    resp = client.post(
        "/api/upload/single",
        files={"attachment": ("a.txt", b"x", "text/plain")},
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "UnexpectedField"
    assert stored_files(provider.root) == []


def test_executable_is_rejected(client, provider):
    resp = client.post(
        "/api/upload/single",
        files={"file": ("setup.exe", b"MZ", "application/x-msdownload")},
    )

    assert resp.status_code == 415
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["type"] == "UnsupportedType"
    assert stored_files(provider.root) == []


def test_multiple_upload(client):
    resp = client.post(
        "/api/upload/multiple",
        files=[
            ("files", ("a.txt", b"aaa", "text/plain")),
            ("files", ("b.png", b"\x89PNG", "image/png")),
        ],
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [f["original_name"] for f in data["files"]] == ["a.txt", "b.png"]
    assert data["failed"] == []


def test_multiple_upload_too_many(client, provider):
    files = [("files", (f"{i}.txt", b"x", "text/plain")) for i in range(6)]

    resp = client.post("/api/upload/multiple", files=files)

    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "TooMany"
    assert stored_files(provider.root) == []


def test_fields_upload(client):
    resp = client.post(
        "/api/upload/fields",
        files=[
            ("avatar", ("me.png", b"a", "image/png")),
            ("gallery", ("1.jpg", b"g", "image/jpeg")),
            ("documents", ("cv.pdf", b"d", "application/pdf")),
        ],
    )

    assert resp.status_code == 200
    files = resp.json()["data"]["files"]
    assert set(files) == {"avatar", "gallery", "documents"}
    assert files["avatar"][0]["field"] == "avatar"


def test_image_upload(client):
    resp = client.post(
        "/api/upload/image",
        files={"image": ("cat.webp", b"RIFF0000WEBP", "image/webp")},
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert set(data) == {"filename", "url", "size"}
    assert re.fullmatch(r"cat-\d+-\d+\.webp", data["filename"])
    assert data["size"] == 12


def test_image_endpoint_rejects_pdf(client):
    resp = client.post(
        "/api/upload/image",
        files={"image": ("doc.pdf", b"%PDF", "application/pdf")},
    )

    assert resp.status_code == 415


def test_image_endpoint_requires_a_file(client):
    resp = client.post("/api/upload/image", data={"x": "y"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Please upload an image file"


def test_oversized_image(client, provider):
    resp = client.post(
        "/api/upload/image",
        files={"image": ("big.png", b"0" * (6 * MB), "image/png")},
    )

    assert resp.status_code == 413
    body = resp.json()
    assert body["error"]["type"] == "TooLarge"
    assert stored_files(provider.root) == []


def test_list_and_delete(client):
    uploaded = client.post(
        "/api/upload/single",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    ).json()["data"]

    listed = client.get("/api/upload/list").json()["data"]
    assert len(listed) == 1
    assert listed[0]["filename"] == uploaded["filename"]
    assert listed[0]["path"] == uploaded["path"]
    assert listed[0]["url"] == f"/uploads/{uploaded['path']}"
    assert listed[0]["size"] == 5
    assert listed[0]["created_at"].endswith("Z")

    resp = client.delete(f"/api/upload/delete/{uploaded['filename']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["path"] == uploaded["path"]

    assert client.get("/api/upload/list").json()["data"] == []

    again = client.delete(f"/api/upload/delete/{uploaded['filename']}")
    assert again.status_code == 404
    assert again.json()["success"] is False


def test_delete_cannot_escape_root(client, tmp_path):
    outside = tmp_path / "secret.txt"
    outside.write_text("keep me")

    resp = client.delete("/api/upload/delete/..%2Fsecret.txt")

    assert resp.status_code == 404
    assert outside.read_text() == "keep me"


def test_list_empty(client):
    resp = client.get("/api/upload/list")

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "code": 0, "message": "Success", "data": [], "error": None}


def test_unknown_route_uses_envelope(client):
    resp = client.get("/api/upload/nope")

    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_uploaded_file_is_served():
    from main import app

    app.dependency_overrides[get_storage] = lambda: LocalProvider(get_storage_config())
    try:
        client = TestClient(app)
        path = client.post(
            "/api/upload/single",
            files={"file": ("served.txt", b"served bytes", "text/plain")},
        ).json()["data"]["path"]

        resp = client.get(f"/uploads/{path}")

        assert resp.status_code == 200
        assert resp.content == b"served bytes"
    finally:
        app.dependency_overrides.clear()


@pytest.mark.parametrize("path", ["/", "/health"])
def test_root_and_health(path):
    from main import app

    with TestClient(app) as client:
        resp = client.get(path)

    assert resp.status_code == 200
    assert resp.json()["success"] is True


@pytest.fixture
def stage_calls(provider, monkeypatch):
    calls = []
    original = provider.stage

    async def spy(stream, max_size):
        calls.append(max_size)
        return await original(stream, max_size)

    monkeypatch.setattr(provider, "stage", spy)
    return calls


def test_declared_oversized_body_is_refused_before_parsing(client, provider, stage_calls):
    resp = client.post(
        "/api/upload/image",
        files={"image": ("huge.png", b"0" * (8 * MB), "image/png")},
    )

    assert resp.status_code == 413
    assert resp.json()["error"]["type"] == "TooLarge"
    assert stage_calls == []
    assert stored_files(provider.root) == []


def test_chunked_oversized_body_is_cut_off(client, provider, stage_calls):
    def body():
        for _ in range(8):
            yield b"0" * MB

    resp = client.post(
        "/api/upload/image",
        content=body(),
        headers={"content-type": "multipart/form-data; boundary=xyz"},
    )

    assert resp.status_code == 413
    assert stage_calls == []


def _request(headers, chunks, reads):
    async def receive():
        reads.append(1)
        if chunks:
            return {"type": "http.request", "body": chunks.pop(0), "more_body": bool(chunks)}
        return {"type": "http.request", "body": b"", "more_body": False}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/upload/single",
        "query_string": b"",
        "headers": headers,
    }
    return Request(scope, receive)


@pytest.fixture
def small_policy():
    return EndpointPolicy(
        name="small",
        type_policy=TypePolicy.general(),
        max_file_size=10,
        max_file_count=1,
        fields={"file": 1},
    )


def test_declared_length_over_limit_reads_nothing(small_policy):
    reads = []
    request = _request([(b"content-length", str(50 * MB).encode())], [b"x"], reads)

    with pytest.raises(FileTooLargeException):
        limit_request_body(request, small_policy)

    assert reads == []


@pytest.mark.asyncio
async def test_undeclared_length_stops_reading_at_limit(small_policy):
    reads = []
    chunks = [b"x" * (MB // 2) for _ in range(8)]
    limited = limit_request_body(_request([], chunks, reads), small_policy)

    with pytest.raises(FileTooLargeException):
        await limited.body()

    # 1 MB + 10 bytes is crossed by the third half-megabyte chunk
    assert len(reads) == 3


@pytest.mark.asyncio
async def test_body_within_limit_passes_through(small_policy):
    reads = []
    limited = limit_request_body(_request([(b"content-length", b"5")], [b"hello"], reads), small_policy)

    assert await limited.body() == b"hello"


def test_staging_area_is_not_served():
    staging = LocalProvider(get_storage_config()).staging_path
    (staging / "pending.part").write_bytes(b"half an upload")

    from main import app

    resp = TestClient(app).get("/uploads/.staging/pending.part")

    assert resp.status_code == 404
    assert resp.json()["success"] is False
