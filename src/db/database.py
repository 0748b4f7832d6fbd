"""Async database engine and session factory."""

from pgvector.asyncpg import register_vector
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.core.config import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database.

    Registers the pgvector codec on every new asyncpg connection so vector
    columns and parameters round-trip as lists of floats.
    """
    engine = create_async_engine(
        settings.get_database_url,
        echo=settings.debug,
        pool_pre_ping=True,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _register_vector(dbapi_connection, connection_record):
        dbapi_connection.run_async(register_vector)

    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to the engine."""
    return async_sessionmaker(engine, expire_on_commit=False)
