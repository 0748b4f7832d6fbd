"""Object storage backends holding the source curriculum documents.

Two backends share the same interface:
- SupabaseStorage: Supabase Storage REST API over httpx
- LocalFolderStorage: a directory on the local filesystem
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx

from src.core.config import Settings
from src.core.errors import ConfigurationError, DocumentNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    """Read-only view of a bucket of source documents."""

    async def list_documents(self) -> list[str]:
        """Return the names of all documents in the bucket."""

    async def download(self, name: str) -> bytes:
        """Return the raw bytes of a document."""


class SupabaseStorage:
    """Supabase Storage client for a single bucket."""

    PAGE_SIZE = 100

    def __init__(self, client: httpx.AsyncClient, base_url: str, bucket: str):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket

    async def list_documents(self) -> list[str]:
        """List every object at the bucket root, following pagination."""
        names: list[str] = []
        offset = 0

        while True:
            try:
                response = await self.client.post(
                    f"{self.base_url}/storage/v1/object/list/{self.bucket}",
                    json={
                        "prefix": "",
                        "limit": self.PAGE_SIZE,
                        "offset": offset,
                        "sortBy": {"column": "name", "order": "asc"},
                    },
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise PersistenceError(f"Failed to list bucket '{self.bucket}': {e}") from e

            page = response.json()
            # Folder placeholders come back with a null id
            names.extend(item["name"] for item in page if item.get("id") is not None)

            if len(page) < self.PAGE_SIZE:
                break
            offset += self.PAGE_SIZE

        return names

    async def download(self, name: str) -> bytes:
        """Download an object's bytes."""
        try:
            response = await self.client.get(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(name)}"
            )
        except httpx.HTTPError as e:
            raise PersistenceError(f"Failed to download '{name}': {e}") from e

        # Supabase reports missing objects as 400 with an "Object not found" body
        if response.status_code in (400, 404):
            raise DocumentNotFoundError(name)
        if response.is_error:
            raise PersistenceError(
                f"Failed to download '{name}': status {response.status_code}"
            )
        return response.content


class LocalFolderStorage:
    """Documents read from a local directory."""

    def __init__(self, folder: str | Path):
        self.folder = Path(folder)

    async def list_documents(self) -> list[str]:
        if not self.folder.is_dir():
            raise DocumentNotFoundError(str(self.folder))
        return sorted(p.name for p in self.folder.iterdir() if p.is_file())

    async def download(self, name: str) -> bytes:
        path = self.folder / name
        if path.parent != self.folder or not path.is_file():
            raise DocumentNotFoundError(name)
        return await asyncio.to_thread(path.read_bytes)


def create_object_store(settings: Settings, http_client: httpx.AsyncClient | None = None) -> ObjectStore:
    """Build the configured object store backend."""
    if settings.storage_backend == "local":
        return LocalFolderStorage(settings.curriculum_folder_path)

    if settings.storage_backend == "supabase":
        client = http_client or httpx.AsyncClient(
            headers={
                "apikey": settings.supabase_service_key,
                "Authorization": f"Bearer {settings.supabase_service_key}",
            },
            timeout=httpx.Timeout(60.0, connect=settings.request_connect_timeout),
        )
        return SupabaseStorage(client, settings.supabase_url, settings.storage_bucket)

    raise ConfigurationError(f"Unknown storage backend: {settings.storage_backend}")
