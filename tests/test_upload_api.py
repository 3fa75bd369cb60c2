from __future__ import annotations

import pytest

pytest.importorskip("loguru")

from httpx import ASGITransport, AsyncClient
from starlette.datastructures import UploadFile

from archive.exceptions import ConfigurationError
from archive.uploader import Uploader
from services.api.main import app
from services.api.utils import uploader_provider
from tests.utils_archive import SAMPLE_PDF, MemoryStorage

FORM = {
    "study": "computer-science",
    "year": "first-year",
    "code": "CS1010",
    "type": "exam",
}


@pytest.fixture()
def storage():
    backend = MemoryStorage()
    app.dependency_overrides[uploader_provider] = lambda: lambda: Uploader(backend)
    yield backend
    app.dependency_overrides.pop(uploader_provider, None)


@pytest.fixture()
def closed_files(monkeypatch):
    closed = []
    original_close = UploadFile.close

    async def close(self):
        closed.append(self.filename)
        await original_close(self)

    monkeypatch.setattr(UploadFile, "close", close)
    return closed


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio()
async def test_form_page_is_served() -> None:
    async with _client() as client:
        response = await client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert 'action="/upload"' in response.text
    assert 'name="file"' in response.text


@pytest.mark.asyncio()
async def test_upload_stores_file(storage) -> None:
    async with _client() as client:
        response = await client.post(
            "/upload",
            data=FORM,
            files={"file": ("exam.pdf", SAMPLE_PDF, "application/pdf")},
        )

    key = "uploads/computer-science/first-year/CS1010/exam.pdf"
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text.startswith("File uploaded successfully!")
    assert response.text.rstrip().endswith(f"Blob {key} uploaded.")
    assert storage.objects[key] == SAMPLE_PDF


@pytest.mark.asyncio()
async def test_answers_checkbox(storage) -> None:
    async with _client() as client:
        response = await client.post(
            "/upload",
            data={**FORM, "answers": "on"},
            files={"file": ("exam.pdf", SAMPLE_PDF, "application/pdf")},
        )

    assert response.status_code == 200
    assert "uploads/computer-science/first-year/CS1010/exam_answers.pdf" in storage.objects


@pytest.mark.asyncio()
async def test_missing_file_fails_without_backend(storage) -> None:
    async with _client() as client:
        response = await client.post("/upload", data=FORM)

    assert response.status_code == 400
    assert response.headers["x-upload-error"] == "missing-file"
    assert "no such file" in response.text
    assert storage.sessions == []


@pytest.mark.asyncio()
async def test_invalid_fields_fail_without_backend(storage) -> None:
    async with _client() as client:
        response = await client.post(
            "/upload",
            data={**FORM, "study": "astrology"},
            files={"file": ("exam.pdf", SAMPLE_PDF, "application/pdf")},
        )

    assert response.status_code == 400
    assert response.headers["x-upload-error"] == "invalid-descriptor"
    assert "study" in response.text
    assert storage.sessions == []


@pytest.mark.asyncio()
async def test_duplicate_upload_reports_existing_object(storage) -> None:
    key = "uploads/computer-science/first-year/CS1010/exam.pdf"
    storage.objects[key] = b"archived"

    async with _client() as client:
        response = await client.post(
            "/upload",
            data=FORM,
            files={"file": ("exam.pdf", SAMPLE_PDF, "application/pdf")},
        )

    assert response.status_code == 200
    assert response.headers["x-upload-error"] == "already-exists"
    assert "already exists" in response.text
    assert "File uploaded successfully!" not in response.text
    assert storage.objects[key] == b"archived"


@pytest.mark.asyncio()
async def test_text_file_field_is_a_missing_file(storage) -> None:
    async with _client() as client:
        response = await client.post("/upload", data={**FORM, "file": "notafile"})

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["x-upload-error"] == "missing-file"
    assert response.text == "http: no such file"
    assert storage.sessions == []


@pytest.mark.asyncio()
async def test_file_is_closed_after_success(storage, closed_files) -> None:
    async with _client() as client:
        response = await client.post(
            "/upload",
            data=FORM,
            files={"file": ("exam.pdf", SAMPLE_PDF, "application/pdf")},
        )

    assert response.status_code == 200
    assert "exam.pdf" in closed_files


@pytest.mark.asyncio()
async def test_file_is_closed_after_invalid_fields(storage, closed_files) -> None:
    async with _client() as client:
        response = await client.post(
            "/upload",
            data={**FORM, "code": "lowercase"},
            files={"file": ("exam.pdf", SAMPLE_PDF, "application/pdf")},
        )

    assert response.status_code == 400
    assert "exam.pdf" in closed_files


@pytest.mark.asyncio()
async def test_file_is_closed_after_storage_failure(storage, closed_files) -> None:
    storage.objects["uploads/computer-science/first-year/CS1010/exam.pdf"] = b"archived"

    async with _client() as client:
        response = await client.post(
            "/upload",
            data=FORM,
            files={"file": ("exam.pdf", SAMPLE_PDF, "application/pdf")},
        )

    assert response.headers["x-upload-error"] == "already-exists"
    assert "exam.pdf" in closed_files


@pytest.fixture()
def misconfigured():
    def build_uploader() -> Uploader:
        raise ConfigurationError(
            "Environment variable 'ARCHIVE_BUCKET' is required to name the target bucket",
            {"setting": "ARCHIVE_BUCKET"},
        )

    app.dependency_overrides[uploader_provider] = lambda: build_uploader
    yield
    app.dependency_overrides.pop(uploader_provider, None)


@pytest.mark.asyncio()
async def test_missing_file_is_rejected_before_storage_setup(misconfigured) -> None:
    async with _client() as client:
        response = await client.post("/upload", data=FORM)

    assert response.status_code == 400
    assert response.headers["x-upload-error"] == "missing-file"


@pytest.mark.asyncio()
async def test_misconfigured_storage_is_a_server_error(misconfigured, closed_files) -> None:
    async with _client() as client:
        response = await client.post(
            "/upload",
            data=FORM,
            files={"file": ("exam.pdf", SAMPLE_PDF, "application/pdf")},
        )

    assert response.status_code == 500
    assert "ARCHIVE_BUCKET" in response.text
    assert "exam.pdf" in closed_files
