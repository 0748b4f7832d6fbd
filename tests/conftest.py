"""Shared pytest fixtures and in-memory fakes.

Provides:
- ``FakeObjectStore``: dict-backed source bucket
- ``FakeChunkRepository``: in-memory chunk table with cosine similarity search
- ``FakeSessionMaker``: async session factory for driving the real ChunkRepository
- ``FakeOpenAI``: embeddings and streaming chat completions without a network
- ``settings``: Settings with every required value filled in
"""

import asyncio
import math
from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from src.core.config import Settings
from src.core.errors import DocumentNotFoundError, PersistenceError
from src.rag.embedder import Embedder
from src.rag.vector_store import VectorStore

MODEL = "text-embedding-3-small"


class FakeObjectStore:
    """Source bucket held in a dict; names listed in insertion order."""

    def __init__(self, documents: dict[str, bytes] | None = None, broken: set[str] | None = None):
        self.documents = dict(documents or {})
        self.broken = broken or set()
        self.downloads: list[str] = []

    async def list_documents(self) -> list[str]:
        return list(self.documents)

    async def download(self, name: str) -> bytes:
        self.downloads.append(name)
        if name in self.broken or name not in self.documents:
            raise DocumentNotFoundError(name)
        return self.documents[name]


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeChunkRepository:
    """In-memory stand-in for ChunkRepository."""

    def __init__(self):
        self.rows: list[dict] = []
        self.fail_inserts_for: set[str] = set()
        self.fail_search = False
        self.locked = False
        self.lock_acquisitions = 0

    async def has_chunks(self, document_name: str) -> bool:
        return any(row["document_name"] == document_name for row in self.rows)

    async def insert_chunk(self, document_name, chunk_index, content, embedding, embedding_model):
        if content in self.fail_inserts_for:
            raise PersistenceError(f"Insert failed for {document_name}: constraint violation")
        self.rows.append(
            {
                "document_name": document_name,
                "chunk_index": chunk_index,
                "content": content,
                "embedding": embedding,
                "embedding_model": embedding_model,
            }
        )

    async def match_chunks(self, query_embedding, match_threshold, match_count, embedding_model):
        if self.fail_search:
            raise PersistenceError("Similarity search failed: connection refused")
        scored = [
            {
                "content": row["content"],
                "document_name": row["document_name"],
                "similarity": cosine(query_embedding, row["embedding"]),
            }
            for row in self.rows
            if row["embedding_model"] == embedding_model
        ]
        scored = [row for row in scored if row["similarity"] >= match_threshold]
        scored.sort(key=lambda row: row["similarity"], reverse=True)
        return scored[:match_count]

    async def embedding_models(self) -> list[str]:
        return sorted({row["embedding_model"] for row in self.rows})

    async def ping(self) -> None:
        return None

    @asynccontextmanager
    async def ingestion_lock(self):
        if self.locked:
            yield False
            return
        self.locked = True
        self.lock_acquisitions += 1
        try:
            yield True
        finally:
            self.locked = False


class FakeResult:
    def first(self):
        return None

    def all(self):
        return []

    def scalar(self):
        return True

    def mappings(self):
        return self


class FakeSession:
    def __init__(self, maker: "FakeSessionMaker"):
        self.maker = maker
        self.pending: list = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    def _connect(self):
        if self.maker.down:
            raise ConnectionRefusedError(111, "Connect call failed")

    async def connection(self, execution_options=None):
        self._connect()
        self.maker.execution_options.append(execution_options or {})

    async def execute(self, statement, params=None):
        self._connect()
        self.maker.statements.append(statement)
        return FakeResult()

    def add(self, row):
        self.pending.append(row)

    async def commit(self):
        self._connect()
        if self.maker.refuse_commits:
            self.maker.refuse_commits -= 1
            raise ConnectionRefusedError(111, "Connect call failed")
        self.maker.committed.extend(self.pending)
        self.pending = []

    async def invalidate(self):
        self.maker.invalidated += 1


class FakeSessionMaker:
    """Session factory whose connections can be refused the way asyncpg refuses them."""

    def __init__(self, down: bool = False, refuse_commits: int = 0):
        self.down = down
        self.refuse_commits = refuse_commits
        self.committed: list = []
        self.statements: list = []
        self.execution_options: list[dict] = []
        self.invalidated = 0

    def __call__(self) -> FakeSession:
        return FakeSession(self)


class FakeChatStream:
    """Async iterator of chat completion chunks."""

    def __init__(self, tokens: list[str | None], fail_after: int | None = None, delay: float = 0.0):
        self.tokens = tokens
        self.fail_after = fail_after
        self.delay = delay
        self.consumed = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.fail_after is not None and self.consumed >= self.fail_after:
            raise OpenAIError("upstream connection reset")
        if self.consumed >= len(self.tokens):
            raise StopAsyncIteration
        if self.delay:
            await asyncio.sleep(self.delay)
        token = self.tokens[self.consumed]
        self.consumed += 1
        return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=token))])

    async def close(self):
        self.closed = True


class FakeOpenAI:
    """Minimal AsyncOpenAI surface: embeddings.create and chat.completions.create."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, default_vector=None):
        self.vectors = vectors or {}
        self.default_vector = default_vector or [1.0, 0.0, 0.0]
        self.embedding_calls: list[dict] = []
        self.chat_calls: list[dict] = []
        self.failing_inputs: set[str] = set()
        self.empty_response = False
        self.chat_error: Exception | None = None
        self.stream = FakeChatStream(["Olá", " mundo"])

        self.embeddings = SimpleNamespace(create=self._create_embedding)
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create_chat))

    async def _create_embedding(self, input, model, timeout=None):
        self.embedding_calls.append({"input": input, "model": model, "timeout": timeout})
        if input in self.failing_inputs:
            raise OpenAIError("rate limited")
        if self.empty_response:
            return SimpleNamespace(data=[])
        return SimpleNamespace(
            data=[SimpleNamespace(embedding=self.vectors.get(input, self.default_vector))]
        )

    async def _create_chat(self, **kwargs):
        self.chat_calls.append(kwargs)
        if self.chat_error:
            raise self.chat_error
        return self.stream

    async def close(self):
        return None


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        supabase_url="https://project.supabase.co",
        supabase_service_key="service-key",
        ingest_secret="top-secret",
    )


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def repository() -> FakeChunkRepository:
    return FakeChunkRepository()


@pytest.fixture
def openai_client() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def embedder(openai_client) -> Embedder:
    return Embedder(openai_client, MODEL, timeout=5.0)


@pytest.fixture
def vector_store(repository, object_store) -> VectorStore:
    return VectorStore(repository, object_store, MODEL)
