"""Tests for the ingestion pipeline."""

import pytest

from src.core.errors import EmbeddingModelMismatchError, IngestionInProgressError, PersistenceError
from src.db.repository import ChunkRepository
from src.rag.chunking import ParagraphChunker
from src.rag.extractors import DocumentExtractor
from src.rag.ingestion import DocumentStatus, IngestionPipeline
from src.rag.vector_store import VectorStore

from tests.conftest import MODEL, FakeSessionMaker


@pytest.fixture
def pipeline(vector_store, embedder) -> IngestionPipeline:
    return IngestionPipeline(
        vector_store=vector_store,
        embedder=embedder,
        extractor=DocumentExtractor(),
        chunker=ParagraphChunker(1500),
    )


def _statuses(report) -> list[tuple[str, DocumentStatus]]:
    return [(r.document_name, r.status) for r in report.results]


async def test_failed_download_does_not_abort_batch(pipeline, object_store):
    object_store.documents = {
        "1-programa.txt": b"Primeiro documento.",
        "2-metas.txt": b"Segundo documento.",
        "3-perfil.txt": b"Terceiro documento.",
    }
    object_store.broken = {"2-metas.txt"}

    report = await pipeline.ingest_all()

    assert report.success
    assert _statuses(report) == [
        ("1-programa.txt", DocumentStatus.DONE),
        ("2-metas.txt", DocumentStatus.FAILED),
        ("3-perfil.txt", DocumentStatus.DONE),
    ]
    assert "Document not found" in report.results[1].error

    # Log lines follow the listing order
    first = next(i for i, line in enumerate(report.logs) if "1-programa.txt" in line)
    second = next(i for i, line in enumerate(report.logs) if "2-metas.txt" in line)
    third = next(i for i, line in enumerate(report.logs) if "3-perfil.txt" in line)
    assert first < second < third
    assert report.logs[-1].startswith("Processamento concluído!")


async def test_second_run_skips_everything(pipeline, object_store, repository, openai_client):
    object_store.documents = {"a.txt": b"Alfa.\n\nBeta.", "b.md": b"# Gama\n\nDelta."}

    first = await pipeline.ingest_all()
    rows_after_first = len(repository.rows)
    embedding_calls = len(openai_client.embedding_calls)
    object_store.downloads.clear()

    second = await pipeline.ingest_all()

    assert all(r.status == DocumentStatus.DONE for r in first.results)
    assert all(r.status == DocumentStatus.SKIPPED for r in second.results)
    assert len(repository.rows) == rows_after_first
    assert len(openai_client.embedding_calls) == embedding_calls
    assert object_store.downloads == []
    assert any("já foi processado anteriormente" in line for line in second.logs)


async def test_failed_chunk_embedding_skips_only_that_chunk(
    vector_store, embedder, object_store, openai_client, repository
):
    object_store.documents = {"doc.txt": b"Primeiro paragrafo.\n\nSegundo paragrafo."}
    openai_client.failing_inputs.add("Primeiro paragrafo.")
    pipeline = IngestionPipeline(vector_store, embedder, chunker=ParagraphChunker(20))

    report = await pipeline.ingest_all()

    result = report.results[0]
    assert result.status == DocumentStatus.DONE
    assert result.chunk_count == 2
    assert result.failed_chunks == 1
    assert result.stored_chunks == 1
    assert [row["content"] for row in repository.rows] == ["Segundo paragrafo."]
    assert any("chunk 1/2" in line and "doc.txt" in line for line in report.logs)


async def test_failed_insert_skips_only_that_chunk(vector_store, embedder, object_store, repository):
    object_store.documents = {"doc.txt": b"Um.\n\nDois.\n\nTres."}
    repository.fail_inserts_for.add("Dois.")
    pipeline = IngestionPipeline(vector_store, embedder, chunker=ParagraphChunker(5))

    report = await pipeline.ingest_all()

    assert report.results[0].failed_chunks == 1
    assert [row["content"] for row in repository.rows] == ["Um.", "Tres."]
    assert [row["chunk_index"] for row in repository.rows] == [0, 2]



async def test_refused_connection_on_insert_skips_only_that_chunk(embedder, object_store):
    sessions = FakeSessionMaker(refuse_commits=1)
    vector_store = VectorStore(ChunkRepository(sessions), object_store, MODEL)
    object_store.documents = {"a.txt": b"Um.\n\nDois."}
    pipeline = IngestionPipeline(vector_store, embedder, chunker=ParagraphChunker(5))

    report = await pipeline.ingest_all()

    result = report.results[0]
    assert result.status == DocumentStatus.DONE
    assert (result.stored_chunks, result.failed_chunks) == (1, 1)
    assert [row.content for row in sessions.committed] == ["Dois."]
    assert any(
        line.startswith("Erro no chunk 1/2 de a.txt") and "Connect call failed" in line
        for line in report.logs
    )


async def test_whitespace_document_fails_with_no_text_extracted(pipeline, object_store):
    object_store.documents = {"branco.txt": b"   \n\n  ", "ok.txt": b"Conteudo."}

    report = await pipeline.ingest_all()

    assert _statuses(report) == [
        ("branco.txt", DocumentStatus.FAILED),
        ("ok.txt", DocumentStatus.DONE),
    ]
    assert report.results[0].error == "no text extracted"


async def test_empty_payload_and_unsupported_type_fail(pipeline, object_store, openai_client):
    object_store.documents = {"vazio.pdf": b"", "imagem.png": b"\x89PNG"}

    report = await pipeline.ingest_all()

    assert [r.status for r in report.results] == [DocumentStatus.FAILED, DocumentStatus.FAILED]
    assert "empty" in report.results[0].error
    assert "Unsupported file type" in report.results[1].error
    assert openai_client.embedding_calls == []
    assert object_store.downloads == ["vazio.pdf"]


async def test_concurrent_run_is_rejected(pipeline, repository):
    repository.locked = True

    with pytest.raises(IngestionInProgressError):
        await pipeline.ingest_all()


async def test_lock_is_released_after_run(pipeline, object_store, repository):
    object_store.documents = {"a.txt": b"Alfa."}

    await pipeline.ingest_all()
    await pipeline.ingest_all()

    assert repository.lock_acquisitions == 2
    assert not repository.locked


async def test_listing_failure_aborts_run_once(pipeline, object_store):
    async def broken_listing():
        raise PersistenceError("Failed to list bucket 'curriculum-documents': timeout")

    object_store.list_documents = broken_listing

    report = await pipeline.ingest_all()

    assert not report.success
    assert "Failed to list bucket" in report.error
    assert report.results == []


async def test_model_mismatch_fails_fast(pipeline, object_store, repository):
    object_store.documents = {"a.txt": b"Alfa."}
    await repository.insert_chunk("old.txt", 0, "antigo", [1.0, 0.0, 0.0], "text-embedding-ada-002")

    with pytest.raises(EmbeddingModelMismatchError):
        await pipeline.ingest_all()

    assert object_store.downloads == []


async def test_worker_pool_keeps_listing_order(vector_store, embedder, object_store):
    object_store.documents = {f"doc{i}.txt": f"Documento {i}.".encode() for i in range(6)}
    object_store.broken = {"doc3.txt"}
    pipeline = IngestionPipeline(vector_store, embedder, concurrency=3)

    report = await pipeline.ingest_all()

    assert [r.document_name for r in report.results] == [f"doc{i}.txt" for i in range(6)]
    assert report.count(DocumentStatus.DONE) == 5
    assert report.count(DocumentStatus.FAILED) == 1
