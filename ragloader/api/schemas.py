"""Pydantic request/response schemas for the ragloader HTTP API.

Request schemas end with "Request", response schemas with "Response".
FastAPI uses them for validation, serialization and the generated
OpenAPI docs.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Returned when an upload was ingested successfully."""

    success: bool = True
    message: str
    job_id: str
    document_id: str
    records_written: int = Field(ge=0)
    processing_steps: list[str] = Field(default_factory=list)


class UploadErrorResponse(BaseModel):
    """Returned when an upload was rejected or its ingestion failed."""

    success: bool = False
    message: str
    error: str
    kind: str
    job_id: str | None = None
    records_written: int = 0


class QueryRequest(BaseModel):
    """Semantic search over ingested records."""

    query: str = Field(..., min_length=1, max_length=2000)
    top_k: int = Field(default=5, ge=1, le=50)
    filters: dict[str, Any] | None = Field(
        default=None,
        description='Metadata filter, e.g. {"source": "shopify"}.',
    )
    prioritize_products: bool = True


class QueryMatch(BaseModel):
    """A single search hit."""

    id: str
    score: float = Field(ge=0.0, le=1.0)
    is_product: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class QueryResponse(BaseModel):
    query: str
    total: int
    matches: list[QueryMatch] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
