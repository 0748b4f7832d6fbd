"""SQLAlchemy database models.

Defines the persisted curriculum chunk table searched by the RAG pipeline.
"""

from datetime import datetime
from uuid import uuid4

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class CurriculumChunk(Base):
    """A chunk of a curriculum document with its embedding.

    Rows are written once during ingestion and never updated. The
    embedding_model column pins which model produced the vector; vectors
    from different models are never compared. The vector dimension is fixed
    by the migration from the configured embedding dimensions.
    """
    __tablename__ = "curriculum_chunks"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid4()))
    document_name: Mapped[str] = mapped_column(String(1024), nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float]] = mapped_column(Vector(), nullable=False)
    embedding_model: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_curriculum_chunks_document_name", "document_name"),
        Index("ix_curriculum_chunks_embedding_model", "embedding_model"),
    )
