"""Vector store adapter for the curriculum corpus.

Wraps the chunk repository (Postgres + pgvector) and the source object
store behind the operations the pipelines need: listing unprocessed
documents, downloading them, inserting chunks, and similarity search.
"""

import logging
from dataclasses import dataclass

from src.core.errors import EmbeddingModelMismatchError, EmptyPayloadError
from src.db.repository import ChunkRepository
from src.rag.storage import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class RetrievedMatch:
    """A persisted chunk returned by similarity search."""

    content: str
    document_name: str
    similarity: float


class VectorStore:
    """Curriculum chunk store with similarity search.

    Every chunk is tagged with the embedding model that produced it, and
    searches only consider chunks from the configured model.
    """

    def __init__(
        self,
        repository: ChunkRepository,
        object_store: ObjectStore,
        embedding_model: str,
    ):
        self.repository = repository
        self.object_store = object_store
        self.embedding_model = embedding_model

    async def list_documents(self) -> list[str]:
        """All document names in the source bucket."""
        return await self.object_store.list_documents()

    async def is_processed(self, document_name: str) -> bool:
        """Whether the document already has at least one persisted chunk."""
        return await self.repository.has_chunks(document_name)

    async def list_unprocessed_documents(self) -> list[str]:
        """Documents in the source bucket that have zero persisted chunks."""
        unprocessed = []
        for name in await self.list_documents():
            if not await self.is_processed(name):
                unprocessed.append(name)
        return unprocessed

    async def download_document(self, name: str) -> bytes:
        """Download a source document.

        Raises:
            DocumentNotFoundError: If the object is missing
            EmptyPayloadError: If the object has zero bytes
        """
        payload = await self.object_store.download(name)
        if not payload:
            raise EmptyPayloadError(name)
        return payload

    async def insert_chunk(
        self,
        document_name: str,
        content: str,
        embedding: list[float],
        chunk_index: int = 0,
    ) -> None:
        """Append a persisted chunk. Raises PersistenceError on failure."""
        await self.repository.insert_chunk(
            document_name=document_name,
            chunk_index=chunk_index,
            content=content,
            embedding=embedding,
            embedding_model=self.embedding_model,
        )

    async def search(
        self,
        query_embedding: list[float],
        threshold: float = 0.5,
        limit: int = 5,
    ) -> list[RetrievedMatch]:
        """Search for similar chunks.

        Args:
            query_embedding: Query embedding from the pinned model
            threshold: Minimum similarity score
            limit: Maximum results

        Returns:
            Matches ordered by similarity descending
        """
        if limit <= 0:
            return []

        rows = await self.repository.match_chunks(
            query_embedding=query_embedding,
            match_threshold=threshold,
            match_count=limit,
            embedding_model=self.embedding_model,
        )

        matches = [
            RetrievedMatch(
                content=row["content"],
                document_name=row["document_name"],
                similarity=float(row["similarity"]),
            )
            for row in rows
        ]
        # Threshold and limit hold for any match function
        matches = [m for m in matches if m.similarity >= threshold]
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:limit]

    def ingestion_lock(self):
        """Cross-process guard so only one ingestion run writes at a time."""
        return self.repository.ingestion_lock()

    async def verify_embedding_model(self) -> None:
        """Fail fast if the store holds vectors from another embedding model."""
        stored = await self.repository.embedding_models()
        foreign = [model for model in stored if model != self.embedding_model]
        if foreign:
            raise EmbeddingModelMismatchError(self.embedding_model, stored)
        logger.info(f"Embedding model check passed for '{self.embedding_model}'")
