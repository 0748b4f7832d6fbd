"""RAG Retriever - semantic search over the curriculum corpus.

Combines embedding and vector search, and turns the ranked matches into
the grounding context handed to the chat model.
"""

import logging

from src.rag.embedder import Embedder
from src.rag.prompts import SYSTEM_PROMPT, build_query_prompt
from src.rag.vector_store import RetrievedMatch, VectorStore

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n"


class Retriever:
    """Semantic retrieval with a fixed threshold and result cap."""

    def __init__(
        self,
        embedder: Embedder,
        vector_store: VectorStore,
        threshold: float = 0.5,
        limit: int = 5,
        max_context_chars: int = 8000,
    ):
        self.embedder = embedder
        self.vector_store = vector_store
        self.threshold = threshold
        self.limit = limit
        self.max_context_chars = max_context_chars

    async def retrieve(self, question: str) -> list[RetrievedMatch]:
        """Retrieve relevant chunks for a question.

        Args:
            question: Validated user question

        Returns:
            Matches sorted by similarity descending

        Raises:
            ProviderError: If the question cannot be embedded
            PersistenceError: If the similarity search fails
        """
        query_vector = await self.embedder.embed_query(question)
        matches = await self.vector_store.search(
            query_vector, threshold=self.threshold, limit=self.limit
        )
        logger.info(f"Retrieved {len(matches)} chunks (threshold {self.threshold})")
        return matches

    def format_context(self, matches: list[RetrievedMatch]) -> str:
        """Join match contents in ranked order, bounded by max_context_chars.

        The top match is always kept, truncated if it alone exceeds the bound.
        """
        if not matches:
            return ""

        parts: list[str] = []
        total_chars = 0

        for match in matches:
            added = len(match.content) + (len(CONTEXT_SEPARATOR) if parts else 0)
            if parts and total_chars + added > self.max_context_chars:
                break
            parts.append(match.content)
            total_chars += added

        context = CONTEXT_SEPARATOR.join(parts)
        return context[: self.max_context_chars]

    def build_messages(self, question: str, matches: list[RetrievedMatch]) -> list[dict]:
        """System instruction plus a user turn carrying context and question."""
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_query_prompt(self.format_context(matches), question)},
        ]


def distinct_sources(matches: list[RetrievedMatch]) -> list[str]:
    """Document names in ranked order, duplicates removed."""
    return list(dict.fromkeys(match.document_name for match in matches))
