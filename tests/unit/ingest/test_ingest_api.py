import uuid
from pathlib import Path

import pytest

from src.tubely.config import IngestLimits
from src.tubely.ingest.ingest_api import MULTIPART_OVERHEAD_BYTES, BodySizeGuard
from src.tubely.ingest.ingest_errors import PayloadTooLargeError
from src.tubely.storage.keys import is_valid_key
from tests.helpers.app_stubs import (
    MemoryBackend,
    RecordingVideoRepository,
    auth_headers,
    build_upload_app,
)
from tests.helpers.media_bytes import jpeg_bytes, mp4_bytes, png_bytes

OWNER = "user-owner"


@pytest.fixture
def repo(session_factory) -> RecordingVideoRepository:
    return RecordingVideoRepository(session_factory)


@pytest.fixture
def video_id(repo: RecordingVideoRepository) -> str:
    return repo.create_video(user_id=OWNER, title="Boots demo").id


def test_thumbnail_upload_updates_record(tmp_path: Path, session_factory, repo, video_id) -> None:
    backend = MemoryBackend()
    client, _ = build_upload_app(
        session_factory=session_factory, scratch=tmp_path / "scratch", backend=backend, repo=repo
    )
    payload = png_bytes(2048)

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"thumbnail": ("cover.png", payload, "image/png")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 200
    body = response.json()
    key = body["thumbnail_url"].removeprefix("memory://")
    assert is_valid_key(key)
    assert key.endswith(".png")
    assert backend.objects[key] == payload
    assert repo.get_video(video_id).thumbnail_url == f"memory://{key}"
    assert list((tmp_path / "scratch").iterdir()) == []


def test_video_upload_records_aspect_ratio(tmp_path: Path, session_factory, repo, video_id) -> None:
    client, _ = build_upload_app(
        session_factory=session_factory, scratch=tmp_path / "scratch", repo=repo
    )

    response = client.post(
        f"/api/video_upload/{video_id}",
        files={"video": ("clip.mp4", mp4_bytes(), "video/mp4")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["video_url"].endswith(".mp4")
    assert body["aspect_ratio"] == "16:9"


def test_requires_bearer_token(tmp_path: Path, session_factory, video_id) -> None:
    client, _ = build_upload_app(session_factory=session_factory, scratch=tmp_path)

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"thumbnail": ("cover.png", png_bytes(), "image/png")},
    )

    assert response.status_code == 401
    assert response.json()["detail"]["failure_reason"] == "missing_token"


def test_invalid_video_id(tmp_path: Path, session_factory) -> None:
    client, _ = build_upload_app(session_factory=session_factory, scratch=tmp_path)

    response = client.post(
        "/api/thumbnail_upload/not-a-uuid",
        files={"thumbnail": ("cover.png", png_bytes(), "image/png")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 400
    assert response.json()["detail"]["failure_reason"] == "invalid_video_id"


def test_unknown_video(tmp_path: Path, session_factory) -> None:
    client, _ = build_upload_app(session_factory=session_factory, scratch=tmp_path)

    response = client.post(
        f"/api/thumbnail_upload/{uuid.uuid4()}",
        files={"thumbnail": ("cover.png", png_bytes(), "image/png")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 404
    assert response.json()["detail"]["failure_reason"] == "video_not_found"


def test_foreign_video_is_forbidden_and_nothing_stored(
    tmp_path: Path, session_factory, repo, video_id
) -> None:
    backend = MemoryBackend()
    client, _ = build_upload_app(
        session_factory=session_factory, scratch=tmp_path, backend=backend, repo=repo
    )

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"thumbnail": ("cover.png", png_bytes(), "image/png")},
        headers=auth_headers("someone-else"),
    )

    assert response.status_code == 403
    assert response.json()["detail"]["failure_reason"] == "not_owner"
    assert backend.objects == {}
    assert repo.updates == []


def test_content_type_mismatch_is_415(tmp_path: Path, session_factory, repo, video_id) -> None:
    backend = MemoryBackend()
    client, _ = build_upload_app(
        session_factory=session_factory, scratch=tmp_path, backend=backend, repo=repo
    )

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"thumbnail": ("cover.png", jpeg_bytes(), "image/png")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 415
    assert response.json()["detail"]["failure_reason"] == "unsupported_media_type"
    assert backend.objects == {}


def test_non_mp4_video_is_415(tmp_path: Path, session_factory, repo, video_id) -> None:
    client, _ = build_upload_app(session_factory=session_factory, scratch=tmp_path, repo=repo)

    response = client.post(
        f"/api/video_upload/{video_id}",
        files={"video": ("clip.mov", png_bytes(), "video/quicktime")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 415
    assert repo.updates == []


def test_oversize_thumbnail_is_413(tmp_path: Path, session_factory, repo, video_id) -> None:
    backend = MemoryBackend()
    client, _ = build_upload_app(
        session_factory=session_factory,
        scratch=tmp_path,
        backend=backend,
        repo=repo,
        limits=IngestLimits(thumbnail_max_bytes=1000),
    )

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"thumbnail": ("cover.png", png_bytes(2048), "image/png")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 413
    assert response.json()["detail"]["failure_reason"] == "payload_too_large"
    assert backend.objects == {}


def test_content_length_guard_rejects_before_parsing(
    tmp_path: Path, session_factory, repo, video_id
) -> None:
    client, _ = build_upload_app(
        session_factory=session_factory,
        scratch=tmp_path,
        repo=repo,
        limits=IngestLimits(thumbnail_max_bytes=16),
    )

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"thumbnail": ("cover.png", png_bytes((1 << 20) + 4096), "image/png")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 413


def test_missing_file_field_is_400(tmp_path: Path, session_factory, video_id) -> None:
    client, _ = build_upload_app(session_factory=session_factory, scratch=tmp_path)

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"image": ("cover.png", png_bytes(), "image/png")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 400
    assert response.json()["detail"]["failure_reason"] == "invalid_request"


def test_storage_failure_never_touches_record(
    tmp_path: Path, session_factory, repo, video_id
) -> None:
    client, _ = build_upload_app(
        session_factory=session_factory,
        scratch=tmp_path / "scratch",
        backend=MemoryBackend(fail_put=True),
        repo=repo,
    )

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"thumbnail": ("cover.png", png_bytes(), "image/png")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 500
    assert response.json()["detail"]["failure_reason"] == "storage_error"
    assert repo.updates == []
    assert repo.get_video(video_id).thumbnail_url is None
    assert list((tmp_path / "scratch").iterdir()) == []


def test_persistence_failure_discards_stored_object(
    tmp_path: Path, session_factory, video_id
) -> None:
    backend = MemoryBackend()
    repo = RecordingVideoRepository(session_factory, fail_update=True)
    client, _ = build_upload_app(
        session_factory=session_factory, scratch=tmp_path, backend=backend, repo=repo
    )

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        files={"thumbnail": ("cover.png", png_bytes(), "image/png")},
        headers=auth_headers(OWNER),
    )

    assert response.status_code == 500
    assert response.json()["detail"]["failure_reason"] == "persistence_error"
    assert len(repo.updates) == 1
    assert len(backend.deleted) == 1
    assert backend.objects == {}


BOUNDARY = "tubely-test-boundary"
CHUNK = 64 * 1024


def _multipart_prelude(field: str, filename: str, content_type: str) -> bytes:
    return (
        f"--{BOUNDARY}\r\n"
        f'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n'
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode()


def _oversized_chunks(total_chunks: int = 128):
    yield _multipart_prelude("thumbnail", "cover.png", "image/png") + png_bytes(2048)
    for _ in range(total_chunks):
        yield b"\x00" * CHUNK


def test_chunked_body_without_content_length_is_413(
    tmp_path: Path, session_factory, repo, video_id
) -> None:
    backend = MemoryBackend()
    client, _ = build_upload_app(
        session_factory=session_factory,
        scratch=tmp_path / "scratch",
        backend=backend,
        repo=repo,
        limits=IngestLimits(thumbnail_max_bytes=1000),
    )

    response = client.post(
        f"/api/thumbnail_upload/{video_id}",
        content=_oversized_chunks(),
        headers={
            **auth_headers(OWNER),
            "Content-Type": f"multipart/form-data; boundary={BOUNDARY}",
        },
    )

    assert response.status_code == 413
    assert response.json()["detail"]["failure_reason"] == "payload_too_large"
    assert backend.objects == {}
    assert repo.updates == []


@pytest.mark.asyncio
async def test_chunked_body_is_read_no_further_than_the_budget(
    tmp_path: Path, session_factory, repo, video_id
) -> None:
    limit = 1000
    _, app = build_upload_app(
        session_factory=session_factory,
        scratch=tmp_path / "scratch",
        repo=repo,
        limits=IngestLimits(thumbnail_max_bytes=limit),
    )
    chunks = _oversized_chunks()
    delivered = 0
    sent: list[dict] = []

    async def receive() -> dict:
        nonlocal delivered
        chunk = next(chunks, None)
        if chunk is None:
            return {"type": "http.request", "body": b"", "more_body": False}
        delivered += len(chunk)
        return {"type": "http.request", "body": chunk, "more_body": True}

    async def send(message: dict) -> None:
        sent.append(message)

    path = f"/api/thumbnail_upload/{video_id}"
    headers = {
        **auth_headers(OWNER),
        "content-type": f"multipart/form-data; boundary={BOUNDARY}",
        "transfer-encoding": "chunked",
    }
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [(name.lower().encode(), value.encode()) for name, value in headers.items()],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }

    await app(scope, receive, send)

    start = next(message for message in sent if message["type"] == "http.response.start")
    assert start["status"] == 413
    assert delivered <= limit + MULTIPART_OVERHEAD_BYTES + CHUNK
    assert delivered < 8 * 1024 * 1024


@pytest.mark.asyncio
async def test_body_size_guard_passes_small_bodies_and_stops_large_ones() -> None:
    messages = iter(
        [
            {"type": "http.request", "body": b"a" * 60, "more_body": True},
            {"type": "http.request", "body": b"b" * 40, "more_body": True},
            {"type": "http.request", "body": b"c", "more_body": False},
        ]
    )

    async def receive() -> dict:
        return next(messages)

    guard = BodySizeGuard(receive, budget=100)

    assert (await guard())["body"] == b"a" * 60
    assert (await guard())["body"] == b"b" * 40
    with pytest.raises(PayloadTooLargeError):
        await guard()
    assert guard.received == 101


@pytest.mark.asyncio
async def test_body_size_guard_ignores_disconnect_messages() -> None:
    async def receive() -> dict:
        return {"type": "http.disconnect"}

    guard = BodySizeGuard(receive, budget=0)

    assert (await guard())["type"] == "http.disconnect"
