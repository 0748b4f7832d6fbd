"""Tests for the object storage backends."""

import json

import httpx
import pytest

from src.core.errors import ConfigurationError, DocumentNotFoundError, PersistenceError
from src.rag.storage import (
    LocalFolderStorage,
    SupabaseStorage,
    create_object_store,
)

BASE_URL = "https://project.supabase.co"
BUCKET = "curriculum-documents"


def _storage(handler) -> SupabaseStorage:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseStorage(client, BASE_URL, BUCKET)


class TestSupabaseStorage:
    async def test_lists_documents_across_pages(self, monkeypatch):
        monkeypatch.setattr(SupabaseStorage, "PAGE_SIZE", 2)
        pages = {
            0: [{"name": "a.pdf", "id": "1"}, {"name": "b.pdf", "id": "2"}],
            2: [{"name": "pasta", "id": None}, {"name": "c.pdf", "id": "3"}],
            4: [],
        }
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            requests.append((request.url.path, body))
            return httpx.Response(200, json=pages[body["offset"]])

        names = await _storage(handler).list_documents()

        assert names == ["a.pdf", "b.pdf", "c.pdf"]
        assert requests[0][0] == f"/storage/v1/object/list/{BUCKET}"
        assert [body["offset"] for _, body in requests] == [0, 2, 4]
        assert requests[0][1]["sortBy"] == {"column": "name", "order": "asc"}

    async def test_list_failure_is_persistence_error(self):
        storage = _storage(lambda request: httpx.Response(500, json={"error": "boom"}))

        with pytest.raises(PersistenceError):
            await storage.list_documents()

    async def test_downloads_object_bytes(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/storage/v1/object/{BUCKET}/Programa 5º ano.pdf"
            return httpx.Response(200, content=b"%PDF-1.7")

        payload = await _storage(handler).download("Programa 5º ano.pdf")

        assert payload == b"%PDF-1.7"

    @pytest.mark.parametrize("status_code", [400, 404])
    async def test_missing_object_is_not_found(self, status_code):
        storage = _storage(
            lambda request: httpx.Response(status_code, json={"error": "Object not found"})
        )

        with pytest.raises(DocumentNotFoundError):
            await storage.download("missing.pdf")

    async def test_transport_error_is_persistence_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PersistenceError):
            await _storage(handler).download("a.pdf")


class TestLocalFolderStorage:
    async def test_lists_files_sorted(self, tmp_path):
        (tmp_path / "b.md").write_text("b")
        (tmp_path / "a.pdf").write_bytes(b"a")
        (tmp_path / "sub").mkdir()

        storage = LocalFolderStorage(tmp_path)

        assert await storage.list_documents() == ["a.pdf", "b.md"]
        assert await storage.download("b.md") == b"b"

    async def test_rejects_paths_outside_folder(self, tmp_path):
        with pytest.raises(DocumentNotFoundError):
            await LocalFolderStorage(tmp_path).download("../secret.txt")


def test_factory_selects_backend(settings, tmp_path):
    assert isinstance(create_object_store(settings), SupabaseStorage)

    local = settings.model_copy(
        update={"storage_backend": "local", "curriculum_folder_path": str(tmp_path)}
    )
    assert isinstance(create_object_store(local), LocalFolderStorage)

    unknown = settings.model_copy(update={"storage_backend": "ftp"})
    with pytest.raises(ConfigurationError):
        create_object_store(unknown)
