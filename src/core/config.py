"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
See .env.example for available settings.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ============================================
    # Application
    # ============================================
    app_name: str = "Curriculum RAG Service"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    allowed_origins: list[str] = ["http://localhost:3000"]

    # ============================================
    # Database (PostgreSQL + pgvector)
    # ============================================
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "postgres"

    # Explicit DATABASE_URL takes precedence if set
    database_url: str | None = None

    @property
    def get_database_url(self) -> str:
        """Get database URL - explicit or constructed from components."""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # ============================================
    # Object Storage (source documents)
    # ============================================
    storage_backend: str = Field(
        default="supabase", description="'supabase' (Storage REST API) or 'local' (folder)"
    )
    supabase_url: str = ""
    supabase_service_key: str = ""
    storage_bucket: str = "curriculum-documents"
    curriculum_folder_path: str = ""

    # ============================================
    # LLM Provider (OpenAI)
    # ============================================
    openai_api_key: str = ""
    openai_base_url: str | None = None
    chat_model: str = "gpt-4"
    chat_temperature: float = 0.7
    chat_max_tokens: int = 1000

    # ============================================
    # Embeddings
    # ============================================
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model pinned for the whole corpus",
    )
    embedding_dimensions: int = Field(
        default=1536, description="Embedding vector dimensions (must match model)"
    )

    # ============================================
    # Retrieval
    # ============================================
    match_threshold: float = 0.5
    match_count: int = 5
    match_function: str = "match_curriculum_chunks"
    max_context_chars: int = 8000

    # ============================================
    # Chunking / Ingestion
    # ============================================
    chunk_size: int = 1500
    ingest_secret: str = Field(
        default="",
        validation_alias=AliasChoices("ingest_secret", "curriculum_processing_secret"),
        description="Shared bearer secret for POST /ingest",
    )
    ingest_concurrency: int = Field(default=1, ge=1)

    # ============================================
    # Question validation
    # ============================================
    question_min_length: int = 10
    question_max_length: int = 500

    # ============================================
    # Timeouts (seconds)
    # ============================================
    embedding_timeout: float = 30.0
    stream_timeout: float = 120.0
    request_connect_timeout: float = 10.0

    # ============================================
    # Logging
    # ============================================
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"

    def missing_settings(self) -> list[str]:
        """Names of required settings that are empty for the configured backends."""
        missing = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")

        if self.storage_backend == "supabase":
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_service_key:
                missing.append("SUPABASE_SERVICE_KEY")
        elif self.storage_backend == "local":
            if not self.curriculum_folder_path:
                missing.append("CURRICULUM_FOLDER_PATH")
        else:
            missing.append(f"STORAGE_BACKEND (unknown backend '{self.storage_backend}')")

        return missing

    def require(self) -> None:
        """Raise ConfigurationError if any required setting is missing."""
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(
                f"Missing environment variables. Required: {', '.join(missing)}"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
