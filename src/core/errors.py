"""Error taxonomy for the curriculum RAG pipelines.

Every error carries the HTTP status it maps to when raised before a
response has started. Once an answer stream is open, errors are reported
as ``error`` events instead.
"""


class RagError(Exception):
    """Base class for all pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(RagError):
    """Required external-service credentials or URLs are absent."""

    status_code = 500


class EmbeddingModelMismatchError(ConfigurationError):
    """Stored embeddings were produced by a different model than the configured one."""

    status_code = 409

    def __init__(self, configured: str, stored: list[str]):
        self.configured = configured
        self.stored = stored
        super().__init__(
            f"Embedding model mismatch: configured '{configured}', "
            f"store contains {', '.join(sorted(stored))}"
        )


class UnauthorizedError(RagError):
    """Ingestion triggered without a valid shared secret."""

    status_code = 401


class QuestionValidationError(RagError):
    """The question is empty or outside the allowed length."""

    status_code = 400


class DocumentNotFoundError(RagError):
    """A source document is missing from object storage."""

    status_code = 404

    def __init__(self, document_name: str):
        self.document_name = document_name
        super().__init__(f"Document not found: {document_name}")


class EmptyPayloadError(RagError):
    """A source document downloaded with zero bytes."""

    status_code = 422

    def __init__(self, document_name: str):
        self.document_name = document_name
        super().__init__(f"Document is empty: {document_name}")


class ExtractionError(RagError):
    """Raised when text extraction fails."""

    status_code = 422


class NoTextExtractedError(ExtractionError):
    """Extraction succeeded but produced no usable text."""

    def __init__(self, message: str = "no text extracted"):
        super().__init__(message)


class ProviderError(RagError):
    """The embedding or chat-completion provider failed."""

    status_code = 502


class PersistenceError(RagError):
    """An insert or search against the vector store failed."""

    status_code = 503


class NoRelevantInformationError(RagError):
    """No stored chunk matched the question above the similarity threshold."""

    status_code = 404


class IngestionInProgressError(RagError):
    """Another ingestion run holds the ingestion lock."""

    status_code = 409

    def __init__(self):
        super().__init__("Another ingestion run is already in progress")
