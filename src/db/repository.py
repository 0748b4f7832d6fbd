"""Database repository for curriculum chunk persistence.

Provides async operations over the curriculum_chunks table and the
server-side similarity function. Each call runs in its own short session;
no transaction spans more than one row write.
"""

import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from pgvector.sqlalchemy import Vector
from sqlalchemy import bindparam, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.errors import PersistenceError
from src.db.models import CurriculumChunk

logger = logging.getLogger(__name__)

# Arbitrary but stable key for pg_try_advisory_lock
INGESTION_LOCK_KEY = 7_310_412_001

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ChunkRepository:
    """Repository for persisted curriculum chunks."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        match_function: str = "match_curriculum_chunks",
    ):
        if not _IDENTIFIER.match(match_function):
            raise ValueError(f"Invalid match function name: {match_function!r}")
        self.session_maker = session_maker
        self.match_function = match_function

    async def has_chunks(self, document_name: str) -> bool:
        """Check whether a document already has at least one persisted chunk."""
        stmt = select(CurriculumChunk.id).where(CurriculumChunk.document_name == document_name).limit(1)
        try:
            async with self.session_maker() as db:
                result = await db.execute(stmt)
                return result.first() is not None
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Existence check failed for {document_name}: {e}") from e

    async def insert_chunk(
        self,
        document_name: str,
        chunk_index: int,
        content: str,
        embedding: list[float],
        embedding_model: str,
    ) -> None:
        """Append a single chunk row."""
        row = CurriculumChunk(
            document_name=document_name,
            chunk_index=chunk_index,
            content=content,
            embedding=embedding,
            embedding_model=embedding_model,
        )
        try:
            async with self.session_maker() as db:
                db.add(row)
                await db.commit()
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Insert failed for {document_name}: {e}") from e

    async def match_chunks(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        embedding_model: str,
    ) -> list[dict]:
        """Call the server-side similarity function.

        Returns rows with content, document_name and similarity, ordered by
        similarity descending.
        """
        stmt = text(
            f"SELECT content, document_name, similarity "
            f"FROM {self.match_function}(:query_embedding, :match_threshold, :match_count, :filter_model)"
        ).bindparams(bindparam("query_embedding", type_=Vector()))

        try:
            async with self.session_maker() as db:
                result = await db.execute(
                    stmt,
                    {
                        "query_embedding": query_embedding,
                        "match_threshold": match_threshold,
                        "match_count": match_count,
                        "filter_model": embedding_model,
                    },
                )
                return [dict(row) for row in result.mappings().all()]
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Similarity search failed: {e}") from e

    async def embedding_models(self) -> list[str]:
        """Distinct embedding models present in the store."""
        stmt = select(CurriculumChunk.embedding_model).distinct()
        try:
            async with self.session_maker() as db:
                result = await db.execute(stmt)
                return [row[0] for row in result.all()]
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Could not read stored embedding models: {e}") from e

    async def chunk_stats(self) -> list[dict]:
        """Per-document chunk counts and content length statistics."""
        length = func.length(CurriculumChunk.content)
        stmt = (
            select(
                CurriculumChunk.document_name,
                func.count().label("chunk_count"),
                func.min(length).label("min_length"),
                func.avg(length).label("avg_length"),
                func.max(length).label("max_length"),
                func.count().filter(length < 100).label("short_chunks"),
                func.count().filter(length > 2000).label("long_chunks"),
            )
            .group_by(CurriculumChunk.document_name)
            .order_by(CurriculumChunk.document_name)
        )
        try:
            async with self.session_maker() as db:
                result = await db.execute(stmt)
                return [dict(row) for row in result.mappings().all()]
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Could not compute chunk statistics: {e}") from e

    async def ping(self) -> None:
        """Round-trip a trivial query."""
        async with self.session_maker() as db:
            await db.execute(text("SELECT 1"))

    @asynccontextmanager
    async def ingestion_lock(self) -> AsyncIterator[bool]:
        """Hold a Postgres session advisory lock for the duration of an ingestion run.

        The lock connection runs in autocommit so it never sits idle in a
        transaction while the run is in progress. Yields True if the lock was
        acquired, False if another run holds it.
        """
        async with self.session_maker() as db:
            try:
                await db.connection(execution_options={"isolation_level": "AUTOCOMMIT"})
                result = await db.execute(
                    text("SELECT pg_try_advisory_lock(:key)"), {"key": INGESTION_LOCK_KEY}
                )
                acquired = bool(result.scalar())
            except (SQLAlchemyError, OSError) as e:
                raise PersistenceError(f"Could not acquire ingestion lock: {e}") from e

            try:
                yield acquired
            finally:
                if acquired:
                    try:
                        await db.execute(
                            text("SELECT pg_advisory_unlock(:key)"), {"key": INGESTION_LOCK_KEY}
                        )
                    except (SQLAlchemyError, OSError):
                        # Discard the pooled connection so the session lock dies with it
                        logger.warning("Failed to release ingestion lock", exc_info=True)
                        await db.invalidate()
