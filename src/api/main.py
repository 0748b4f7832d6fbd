"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from src.api.container import ServiceContainer, build_container
from src.api.routes import health, ingest, query
from src.core.config import Settings, get_settings
from src.core.errors import RagError
from src.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use (defaults to environment)
        container: Pre-built services; when omitted they are built at startup
    """
    settings = settings or (container.settings if container else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - startup and shutdown."""
        configure_logging(settings)
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        logger.info(f"Environment: {settings.environment}")

        owned = container is None
        app.state.container = build_container(settings) if owned else container
        logger.info("Startup complete - ready to accept requests")

        yield

        logger.info("Shutting down...")
        if owned:
            await app.state.container.aclose()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Curriculum retrieval-augmented question answering",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RagError)
    async def rag_error_handler(request: Request, exc: RagError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    app.include_router(health.router, tags=["Health"])
    app.include_router(ingest.router, tags=["Ingestion"])
    app.include_router(query.router, tags=["Query"])

    # Prometheus metrics endpoint
    app.mount("/metrics", make_asgi_app())

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if settings.debug else None,
            "health": "/health/ready",
        }

    return app


app = create_app()
