"""Pydantic data models for the ingestion pipeline and vector records."""

from ragloader.models.ingestion import (
    Chunk,
    Classification,
    Document,
    DocumentMetadata,
    FileCategory,
    GenericMetadata,
    IngestionFailure,
    IngestionOutcome,
    JobStage,
    MediaSegment,
    ProductMetadata,
    RawUpload,
)
from ragloader.models.vector import VectorMatch, VectorRecord

__all__ = [
    "Chunk",
    "Classification",
    "Document",
    "DocumentMetadata",
    "FileCategory",
    "GenericMetadata",
    "IngestionFailure",
    "IngestionOutcome",
    "JobStage",
    "MediaSegment",
    "ProductMetadata",
    "RawUpload",
    "VectorMatch",
    "VectorRecord",
]
