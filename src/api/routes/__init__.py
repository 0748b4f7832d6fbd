"""API route modules."""

from . import health, ingest, query

__all__ = ["health", "ingest", "query"]
