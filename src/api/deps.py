"""FastAPI dependency injection.

Provides common dependencies for API routes. Everything is read from the
ServiceContainer stored on app.state during lifespan startup.
"""

import secrets
from typing import Annotated

from fastapi import Depends, Request

from src.api.container import ServiceContainer
from src.core.config import Settings
from src.core.errors import ConfigurationError, UnauthorizedError
from src.rag.ingestion import IngestionPipeline
from src.rag.query import QueryPipeline


def get_container(request: Request) -> ServiceContainer:
    """Get the process-wide service container."""
    return request.app.state.container


Container = Annotated[ServiceContainer, Depends(get_container)]


def get_app_settings(container: Container) -> Settings:
    return container.settings


AppSettings = Annotated[Settings, Depends(get_app_settings)]


async def get_ingestion_pipeline(container: Container) -> IngestionPipeline:
    """Get the ingestion pipeline, or fail with the recorded configuration error."""
    return container.require_ingestion()


async def get_query_pipeline(container: Container) -> QueryPipeline:
    """Get the query pipeline, or fail with the recorded configuration error."""
    return container.require_query()


Ingestion = Annotated[IngestionPipeline, Depends(get_ingestion_pipeline)]
QueryEngine = Annotated[QueryPipeline, Depends(get_query_pipeline)]


async def verify_ingest_secret(request: Request, settings: AppSettings) -> None:
    """Require `Authorization: Bearer <shared secret>` on ingestion triggers."""
    if not settings.ingest_secret:
        raise ConfigurationError(
            "Missing environment variables. Required: CURRICULUM_PROCESSING_SECRET"
        )

    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(
        token.strip().encode(), settings.ingest_secret.encode()
    ):
        raise UnauthorizedError("Unauthorized")


RequireIngestSecret = Depends(verify_ingest_secret)
