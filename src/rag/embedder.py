"""Embedding service using the OpenAI embeddings API.

Generates vector embeddings for text chunks and queries. One model is
pinned per corpus; callers never choose a model per call.
"""

import logging

import httpx
from openai import AsyncOpenAI, OpenAIError

from src.core.config import Settings
from src.core.errors import ProviderError
from src.observability.metrics import EMBEDDING_REQUESTS_TOTAL

logger = logging.getLogger(__name__)


class Embedder:
    """OpenAI embedding service.

    Each call embeds exactly one input string. Failures are never retried.
    """

    DEFAULT_MODEL = "text-embedding-3-small"

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = DEFAULT_MODEL,
        timeout: float | None = None,
    ):
        self.client = client
        self.model = model
        self.timeout = timeout

    async def embed_text(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            ProviderError: If the API call fails, times out, or returns no data
        """
        text = text.strip()
        if not text:
            raise ValueError("Cannot embed empty text")

        try:
            response = await self.client.embeddings.create(
                input=text,
                model=self.model,
                timeout=self.timeout,
            )
        except OpenAIError as e:
            EMBEDDING_REQUESTS_TOTAL.labels(outcome="error").inc()
            raise ProviderError(f"Embedding request failed: {e}") from e

        if not response.data or not response.data[0].embedding:
            EMBEDDING_REQUESTS_TOTAL.labels(outcome="error").inc()
            raise ProviderError("Embedding API returned no data")

        EMBEDDING_REQUESTS_TOTAL.labels(outcome="success").inc()
        return list(response.data[0].embedding)

    async def embed_query(self, query: str) -> list[float]:
        """Embed a search query.

        Alias for embed_text, but can be extended for query-specific processing.
        """
        return await self.embed_text(query)


def create_openai_client(settings: Settings) -> AsyncOpenAI:
    """Build the shared OpenAI client used for embeddings and chat completions."""
    logger.info(
        f"Initializing OpenAI client (chat model '{settings.chat_model}', "
        f"embedding model '{settings.embedding_model}')"
    )
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=httpx.Timeout(settings.stream_timeout, connect=settings.request_connect_timeout),
        max_retries=0,
    )
