"""Prometheus metrics for the ingestion and query pipelines."""

from prometheus_client import Counter, Histogram

DOCUMENTS_TOTAL = Counter(
    "rag_documents_total",
    "Source documents handled by ingestion",
    ["outcome"],  # done, skipped, failed
)

CHUNKS_TOTAL = Counter(
    "rag_chunks_total",
    "Chunks handled by ingestion",
    ["outcome"],  # stored, failed
)

EMBEDDING_REQUESTS_TOTAL = Counter(
    "rag_embedding_requests_total",
    "Embedding API calls",
    ["outcome"],  # success, error
)

QUERY_TOTAL = Counter(
    "rag_query_total",
    "Questions answered by the query pipeline",
    ["outcome"],  # answered, no_match, invalid, error
)

QUERY_DURATION = Histogram(
    "rag_query_duration_seconds",
    "Time from question received to stream closed",
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)
