"""Create curriculum_chunks table and similarity search function

Revision ID: 20261019_0900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

from alembic import context, op

# revision identifiers, used by Alembic.
revision: str = "20261019_0900"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _options() -> tuple[int, str]:
    attributes = context.config.attributes
    return (
        int(attributes.get("embedding_dimensions", 1536)),
        attributes.get("match_function", "match_curriculum_chunks"),
    )


def upgrade() -> None:
    """Create the vector extension, chunk table, indexes and match function."""
    dimensions, match_function = _options()

    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "curriculum_chunks",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("document_name", sa.String(1024), nullable=False),
        sa.Column("chunk_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("embedding", Vector(dimensions), nullable=False),
        sa.Column(
            "embedding_model",
            sa.String(255),
            nullable=False,
            comment="Embedding model that produced the vector",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
    )
    op.create_index("ix_curriculum_chunks_document_name", "curriculum_chunks", ["document_name"])
    op.create_index("ix_curriculum_chunks_embedding_model", "curriculum_chunks", ["embedding_model"])
    op.execute(
        "CREATE INDEX ix_curriculum_chunks_embedding_hnsw ON curriculum_chunks "
        "USING hnsw (embedding vector_cosine_ops)"
    )

    # Cosine similarity, filtered by threshold and model, best match first
    op.execute(
        f"""
        CREATE OR REPLACE FUNCTION {match_function}(
            query_embedding vector({dimensions}),
            match_threshold float,
            match_count int,
            filter_model text
        )
        RETURNS TABLE (content text, document_name text, similarity float)
        LANGUAGE sql STABLE
        AS $$
            SELECT
                c.content,
                c.document_name::text,
                1 - (c.embedding <=> query_embedding) AS similarity
            FROM curriculum_chunks AS c
            WHERE c.embedding_model = filter_model
              AND 1 - (c.embedding <=> query_embedding) >= match_threshold
            ORDER BY c.embedding <=> query_embedding
            LIMIT match_count;
        $$
        """
    )


def downgrade() -> None:
    """Drop the match function and chunk table."""
    dimensions, match_function = _options()

    op.execute(
        f"DROP FUNCTION IF EXISTS {match_function}(vector({dimensions}), float, int, text)"
    )
    op.drop_index("ix_curriculum_chunks_embedding_hnsw", table_name="curriculum_chunks")
    op.drop_index("ix_curriculum_chunks_embedding_model", table_name="curriculum_chunks")
    op.drop_index("ix_curriculum_chunks_document_name", table_name="curriculum_chunks")
    op.drop_table("curriculum_chunks")
