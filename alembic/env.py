"""Alembic migration environment.

Uses synchronous psycopg connections for migrations; the application
itself talks to the database through asyncpg.
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

# Import models so Alembic can detect them
from src.db.models import Base
from src.core.config import get_settings

config = context.config

settings = get_settings()

# postgresql+asyncpg:// -> postgresql+psycopg://
sync_url = settings.get_database_url.replace("postgresql+asyncpg://", "postgresql+psycopg://")
config.set_main_option("sqlalchemy.url", sync_url)

# Migrations read these when rendering the schema
config.attributes.setdefault("embedding_dimensions", settings.embedding_dimensions)
config.attributes.setdefault("match_function", settings.match_function)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    connectable = create_engine(
        config.get_main_option("sqlalchemy.url"),
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
