"""Service container built once per process.

Every collaborator (OpenAI client, database engine, object store, the two
pipelines) is constructed here from a single Settings object and handed to
its users through their constructors.
"""

import logging
from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncEngine

from src.core.config import Settings
from src.core.errors import ConfigurationError
from src.db.database import create_engine, create_session_maker
from src.db.repository import ChunkRepository
from src.rag.chunking import ParagraphChunker
from src.rag.embedder import Embedder, create_openai_client
from src.rag.extractors import DocumentExtractor
from src.rag.ingestion import IngestionPipeline
from src.rag.query import QueryPipeline
from src.rag.retriever import Retriever
from src.rag.storage import SupabaseStorage, create_object_store
from src.rag.vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Process-wide collaborators.

    When configuration is incomplete only `settings` and `configuration_error`
    are set; pipeline-backed endpoints then answer 500 with that error.
    """

    settings: Settings
    configuration_error: ConfigurationError | None = None
    engine: AsyncEngine | None = None
    repository: ChunkRepository | None = None
    openai_client: AsyncOpenAI | None = None
    http_client: httpx.AsyncClient | None = None
    vector_store: VectorStore | None = None
    ingestion: IngestionPipeline | None = None
    query: QueryPipeline | None = None

    def require_ingestion(self) -> IngestionPipeline:
        if self.configuration_error:
            raise self.configuration_error
        return self.ingestion

    def require_query(self) -> QueryPipeline:
        if self.configuration_error:
            raise self.configuration_error
        return self.query

    async def aclose(self) -> None:
        if self.openai_client is not None:
            await self.openai_client.close()
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.engine is not None:
            await self.engine.dispose()


def build_container(settings: Settings) -> ServiceContainer:
    """Wire adapters and pipelines from settings.

    Missing configuration is recorded on the container rather than raised,
    so the process still starts and can report it.
    """
    try:
        settings.require()
    except ConfigurationError as e:
        logger.error(f"Configuration incomplete: {e.message}")
        return ServiceContainer(settings=settings, configuration_error=e)

    engine = create_engine(settings)
    repository = ChunkRepository(create_session_maker(engine), settings.match_function)

    openai_client = create_openai_client(settings)
    object_store = create_object_store(settings)
    http_client = object_store.client if isinstance(object_store, SupabaseStorage) else None

    vector_store = VectorStore(repository, object_store, settings.embedding_model)
    embedder = Embedder(openai_client, settings.embedding_model, timeout=settings.embedding_timeout)

    ingestion = IngestionPipeline(
        vector_store=vector_store,
        embedder=embedder,
        extractor=DocumentExtractor(),
        chunker=ParagraphChunker(settings.chunk_size),
        concurrency=settings.ingest_concurrency,
    )

    retriever = Retriever(
        embedder=embedder,
        vector_store=vector_store,
        threshold=settings.match_threshold,
        limit=settings.match_count,
        max_context_chars=settings.max_context_chars,
    )
    query = QueryPipeline(
        retriever=retriever,
        chat_client=openai_client,
        chat_model=settings.chat_model,
        temperature=settings.chat_temperature,
        max_tokens=settings.chat_max_tokens,
        stream_timeout=settings.stream_timeout,
        min_question_length=settings.question_min_length,
        max_question_length=settings.question_max_length,
    )

    return ServiceContainer(
        settings=settings,
        engine=engine,
        repository=repository,
        openai_client=openai_client,
        http_client=http_client,
        vector_store=vector_store,
        ingestion=ingestion,
        query=query,
    )
