"""Curriculum ingestion pipeline.

Pipeline per document:
1. Skip if already processed (has persisted chunks)
2. Download from object storage
3. Extract text
4. Split into chunks
5. Embed and store each chunk, one at a time

A failure on one document or chunk never aborts its siblings.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum

from src.core.errors import (
    DocumentNotFoundError,
    EmptyPayloadError,
    ExtractionError,
    IngestionInProgressError,
    PersistenceError,
    ProviderError,
    RagError,
)
from src.observability.metrics import CHUNKS_TOTAL, DOCUMENTS_TOTAL
from src.rag.chunking import ParagraphChunker
from src.rag.embedder import Embedder
from src.rag.extractors import DocumentExtractor
from src.rag.vector_store import VectorStore

logger = logging.getLogger(__name__)


class DocumentStatus(str, Enum):
    """Per-document ingestion state."""
    PENDING = "pending"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class DocumentResult:
    """Outcome of ingesting one source document."""

    document_name: str
    status: DocumentStatus = DocumentStatus.PENDING
    chunk_count: int = 0
    stored_chunks: int = 0
    failed_chunks: int = 0
    error: str | None = None
    processing_time_ms: int = 0
    logs: list[str] = field(default_factory=list)

    def log(self, message: str) -> None:
        self.logs.append(message)


@dataclass
class IngestionReport:
    """Result of a whole ingestion run."""

    results: list[DocumentResult] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def count(self, status: DocumentStatus) -> int:
        return sum(1 for r in self.results if r.status == status)


class IngestionPipeline:
    """Ingests every unprocessed document from the source bucket.

    Documents run through a worker pool of `concurrency` (1 keeps them
    strictly sequential); chunks within a document are always sequential.
    Results and logs are reported in listing order.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: Embedder,
        extractor: DocumentExtractor | None = None,
        chunker: ParagraphChunker | None = None,
        concurrency: int = 1,
    ):
        self.vector_store = vector_store
        self.embedder = embedder
        self.extractor = extractor or DocumentExtractor()
        self.chunker = chunker or ParagraphChunker()
        self.concurrency = max(1, concurrency)

    async def ingest_all(self) -> IngestionReport:
        """Process every unprocessed document in the bucket.

        Raises:
            IngestionInProgressError: If another run holds the ingestion lock
            EmbeddingModelMismatchError: If the store holds vectors from another model

        Other top-level failures (listing the bucket, for example) abort the
        run and are reported once through `IngestionReport.error`.
        """
        report = IngestionReport()

        async with self.vector_store.ingestion_lock() as acquired:
            if not acquired:
                raise IngestionInProgressError()

            await self.vector_store.verify_embedding_model()

            try:
                names = await self.vector_store.list_documents()
            except RagError as e:
                logger.error(f"[Ingestion] Failed to list source documents: {e.message}")
                report.error = e.message
                report.logs.append(f"ERRO FATAL: {e.message}")
                return report

            report.logs.append(f"Encontrados {len(names)} ficheiros para processar.")
            logger.info(f"[Ingestion] Found {len(names)} source documents")

            report.results = [DocumentResult(document_name=name) for name in names]

            if self.concurrency == 1:
                for result in report.results:
                    await self._process_document(result)
            else:
                semaphore = asyncio.Semaphore(self.concurrency)

                async def worker(result: DocumentResult) -> None:
                    async with semaphore:
                        await self._process_document(result)

                await asyncio.gather(*(worker(r) for r in report.results))

        for result in report.results:
            report.logs.extend(result.logs)

        summary = (
            f"Processamento concluído! {report.count(DocumentStatus.DONE)} processados, "
            f"{report.count(DocumentStatus.SKIPPED)} ignorados, "
            f"{report.count(DocumentStatus.FAILED)} com erro."
        )
        report.logs.append(summary)
        logger.info(f"[Ingestion] {summary}")
        return report

    async def _process_document(self, result: DocumentResult) -> None:
        """Run one document through the state machine. Never raises for document-level failures."""
        name = result.document_name
        start = time.monotonic()
        result.log(f"--- A processar: {name} ---")

        try:
            await self._run_stages(result)
        except Exception as e:
            # Unexpected failure is still scoped to this document
            logger.error(f"[Ingestion] Unexpected failure processing {name}: {e}", exc_info=True)
            self._fail(result, str(e))
        finally:
            result.processing_time_ms = int((time.monotonic() - start) * 1000)

        DOCUMENTS_TOTAL.labels(outcome=result.status.value).inc()

    async def _run_stages(self, result: DocumentResult) -> None:
        name = result.document_name

        try:
            already_processed = await self.vector_store.is_processed(name)
        except PersistenceError as e:
            self._fail(result, f"existence check failed: {e.message}")
            return

        if already_processed:
            result.status = DocumentStatus.SKIPPED
            result.log(f"O documento {name} já foi processado anteriormente. A ignorar.")
            logger.info(f"[Ingestion] Skipping {name}: already processed")
            return

        try:
            self.extractor.ensure_supported(name)
        except ExtractionError as e:
            self._fail(result, e.message)
            return

        result.status = DocumentStatus.DOWNLOADING
        try:
            payload = await self.vector_store.download_document(name)
        except (DocumentNotFoundError, EmptyPayloadError, PersistenceError) as e:
            self._fail(result, e.message)
            return

        result.status = DocumentStatus.EXTRACTING
        try:
            text = await asyncio.to_thread(self.extractor.extract, payload, name)
        except ExtractionError as e:
            self._fail(result, e.message)
            return
        result.log(f"Texto extraído com sucesso de {name} ({len(text)} caracteres).")

        result.status = DocumentStatus.CHUNKING
        chunks = self.chunker.chunk(text)
        result.chunk_count = len(chunks)
        result.log(f"Documento {name} dividido em {len(chunks)} chunks.")
        logger.info(f"[Ingestion] {name}: {len(text)} chars -> {len(chunks)} chunks")

        result.status = DocumentStatus.EMBEDDING
        for index, chunk in enumerate(chunks):
            await self._store_chunk(result, index, chunk)

        result.status = DocumentStatus.DONE
        result.log(
            f"Documento {name} concluído: {result.stored_chunks}/{result.chunk_count} chunks inseridos."
        )
        logger.info(
            f"[Ingestion] {name} done: {result.stored_chunks} stored, {result.failed_chunks} failed"
        )

    async def _store_chunk(self, result: DocumentResult, index: int, chunk: str) -> None:
        """Embed and persist one chunk; failures are logged and the chunk skipped."""
        name = result.document_name
        position = f"{index + 1}/{result.chunk_count}"

        try:
            embedding = await self.embedder.embed_text(chunk)
            await self.vector_store.insert_chunk(
                document_name=name,
                content=chunk,
                embedding=embedding,
                chunk_index=index,
            )
        except (ProviderError, PersistenceError) as e:
            result.failed_chunks += 1
            CHUNKS_TOTAL.labels(outcome="failed").inc()
            result.log(f"Erro no chunk {position} de {name}: {e.message}")
            logger.warning(f"[Ingestion] Chunk {position} of {name} skipped: {e.message}")
            return

        result.stored_chunks += 1
        CHUNKS_TOTAL.labels(outcome="stored").inc()
        result.log(f"Chunk {position} de {name} inserido com sucesso.")

    def _fail(self, result: DocumentResult, reason: str) -> None:
        result.status = DocumentStatus.FAILED
        result.error = reason
        result.log(f"Erro ao processar {result.document_name}: {reason}")
        logger.error(f"[Ingestion] {result.document_name} failed: {reason}")
