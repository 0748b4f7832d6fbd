"""Curriculum ingestion endpoint."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.api.deps import Ingestion, RequireIngestSecret

logger = logging.getLogger(__name__)

router = APIRouter()


class DocumentSummary(BaseModel):
    """Outcome of one document in an ingestion run."""

    document_name: str
    status: str
    chunk_count: int
    stored_chunks: int
    failed_chunks: int
    error: str | None = None


class IngestResponse(BaseModel):
    """Ingestion run response."""

    success: bool
    logs: list[str]
    documents: list[DocumentSummary] = []


@router.post("/ingest", response_model=IngestResponse, dependencies=[RequireIngestSecret])
async def ingest(pipeline: Ingestion):
    """Process every unprocessed curriculum document in the bucket.

    Runs synchronously; the response carries the full run log. Returns 500
    with the partial log if the run aborted.
    """
    report = await pipeline.ingest_all()

    if not report.success:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": report.error, "logs": report.logs},
        )

    return IngestResponse(
        success=True,
        logs=report.logs,
        documents=[
            DocumentSummary(
                document_name=r.document_name,
                status=r.status.value,
                chunk_count=r.chunk_count,
                stored_chunks=r.stored_chunks,
                failed_chunks=r.failed_chunks,
                error=r.error,
            )
            for r in report.results
        ],
    )
