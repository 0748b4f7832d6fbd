"""RAG (Retrieval-Augmented Generation) package.

Components:
- Chunker: paragraph-based document chunking
- Embedder: OpenAI embedding service
- Extractor: Text extraction from PDF, Markdown, TXT
- ObjectStore: source document buckets (Supabase Storage or a local folder)
- VectorStore: pgvector-backed chunk store and similarity search
- Retriever: Semantic search and context building
- IngestionPipeline: bucket -> chunks -> embeddings -> store
- QueryPipeline: question -> retrieval -> streamed answer events
"""

from src.rag.chunking import ParagraphChunker, chunk_text
from src.rag.embedder import Embedder, create_openai_client
from src.rag.extractors import DocumentExtractor
from src.rag.ingestion import DocumentResult, DocumentStatus, IngestionPipeline, IngestionReport
from src.rag.query import AnswerStream, QueryPipeline, validate_question
from src.rag.retriever import Retriever
from src.rag.storage import LocalFolderStorage, ObjectStore, SupabaseStorage, create_object_store
from src.rag.vector_store import RetrievedMatch, VectorStore

__all__ = [
    "AnswerStream",
    "DocumentExtractor",
    "DocumentResult",
    "DocumentStatus",
    "Embedder",
    "IngestionPipeline",
    "IngestionReport",
    "LocalFolderStorage",
    "ObjectStore",
    "ParagraphChunker",
    "QueryPipeline",
    "RetrievedMatch",
    "Retriever",
    "SupabaseStorage",
    "VectorStore",
    "chunk_text",
    "create_object_store",
    "create_openai_client",
    "validate_question",
]
