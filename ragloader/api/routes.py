"""FastAPI routes for the ragloader upload and query boundary.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint             Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/upload       POST    Multipart upload → ingestion pipeline
# /api/v1/query        POST    Text query → embed → vector search
# /api/v1/health       GET     Health check + provider status
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from ragloader import __version__
from ragloader.api.schemas import (
    HealthResponse,
    QueryMatch,
    QueryRequest,
    QueryResponse,
    UploadErrorResponse,
    UploadResponse,
)
from ragloader.interfaces.embedding_provider import IEmbeddingProvider
from ragloader.interfaces.vector_store_provider import IVectorStoreProvider
from ragloader.models.ingestion import RawUpload
from ragloader.models.vector import prioritize_products
from ragloader.pipeline.orchestrator import IngestionPipeline
from ragloader.utils.errors import (
    ErrorKind,
    RagLoaderError,
    SizeLimitExceededError,
    UnsupportedFormatError,
)
from ragloader.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

# Uploads are read in 1 MB increments so oversized files are rejected
# without buffering the whole payload.
_UPLOAD_CHUNK_SIZE = 1024 * 1024

# Failures the client can fix by sending a different file.
_CLIENT_ERROR_KINDS = frozenset(
    {
        ErrorKind.UNSUPPORTED_FORMAT,
        ErrorKind.SIZE_LIMIT_EXCEEDED,
        ErrorKind.TRANSCRIPTION_FAILURE,
    }
)


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def _get_embedding_provider(request: Request) -> IEmbeddingProvider:
    return request.app.state.embedding_provider


def _get_vector_store(request: Request) -> IVectorStoreProvider:
    return request.app.state.vector_store


PipelineDep = Annotated[IngestionPipeline, Depends(_get_pipeline)]
EmbeddingDep = Annotated[IEmbeddingProvider, Depends(_get_embedding_provider)]
VectorStoreDep = Annotated[IVectorStoreProvider, Depends(_get_vector_store)]


def _error_response(status_code: int, exc_or_kind: Any, message: str, **extra: Any) -> JSONResponse:
    kind = exc_or_kind.kind if isinstance(exc_or_kind, RagLoaderError) else exc_or_kind
    body = UploadErrorResponse(
        message=message,
        error=str(exc_or_kind) if isinstance(exc_or_kind, RagLoaderError) else message,
        kind=kind.value,
        **extra,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        413: {"model": UploadErrorResponse},
        415: {"model": UploadErrorResponse},
        422: {"model": UploadErrorResponse},
        502: {"model": UploadErrorResponse},
    },
    summary="Upload a file and ingest it into the vector store",
)
async def upload_file(file: UploadFile, pipeline: PipelineDep) -> Any:
    filename = file.filename or ""
    if not filename:
        raise HTTPException(status_code=400, detail="No file provided")

    try:
        classification = pipeline.classifier.classify(filename)
    except UnsupportedFormatError as exc:
        return _error_response(415, exc, "Unsupported file type")

    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > classification.max_bytes:
            exc = SizeLimitExceededError(
                message=(
                    f"{filename} exceeds the {classification.category.value} limit of "
                    f"{classification.max_bytes // (1024 * 1024)} MB"
                )
            )
            _logger.info("upload_rejected_size", filename=filename, limit=classification.max_bytes)
            return _error_response(413, exc, "File too large")
        chunks.append(chunk)
    data = b"".join(chunks)
    del chunks

    outcome = await pipeline.process(RawUpload(filename=filename, data=data, declared_size=file.size))

    if outcome.failure is not None:
        failure = outcome.failure
        status_code = 422 if failure.kind in _CLIENT_ERROR_KINDS else 502
        if failure.kind is ErrorKind.SIZE_LIMIT_EXCEEDED:
            status_code = 413
        body = UploadErrorResponse(
            message=f"Failed to process {filename}",
            error=failure.message,
            kind=failure.kind.value,
            job_id=outcome.job_id,
            records_written=outcome.records_written,
        )
        return JSONResponse(status_code=status_code, content=body.model_dump())

    document = outcome.document
    if document is None:
        _logger.error("upload_outcome_without_document", filename=filename, job_id=outcome.job_id)
        raise HTTPException(status_code=500, detail=f"No document produced for {filename}")
    return UploadResponse(
        message=f"Successfully processed {filename}",
        job_id=outcome.job_id,
        document_id=document.id,
        records_written=outcome.records_written,
        processing_steps=document.metadata.processing_steps,
    )


@router.post(
    "/query",
    response_model=QueryResponse,
    summary="Semantic search over ingested records",
)
async def query_records(
    body: QueryRequest,
    embedding_provider: EmbeddingDep,
    vector_store: VectorStoreDep,
) -> QueryResponse:
    try:
        vector = await embedding_provider.embed_single(body.query)
        matches = await vector_store.query(vector, top_k=body.top_k, filters=body.filters)
    except RagLoaderError as exc:
        _logger.error("query_failed", error=str(exc))
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    if body.prioritize_products:
        matches = prioritize_products(matches)

    _logger.info("query_served", query_length=len(body.query), results=len(matches))
    return QueryResponse(
        query=body.query,
        total=len(matches),
        matches=[
            QueryMatch(id=m.id, score=m.score, is_product=m.is_product, metadata=m.metadata)
            for m in matches
        ],
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    for name in ("embedding_provider", "transcriber", "vector_store", "media_converter"):
        component = getattr(request.app.state, name, None)
        if component is None:
            providers[name] = False
            continue
        try:
            providers[name] = bool(component.is_available())
        except Exception:
            providers[name] = False

    critical_ok = providers.get("embedding_provider", False) and providers.get("vector_store", False)
    if critical_ok and all(providers.values()):
        status = "healthy"
    elif critical_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version=__version__, providers=providers)
