"""Ingestion data models for ragloader.

Pydantic v2 models describing an upload as it moves through the pipeline:
the raw upload, its classification, media segments, text chunks, the
resulting :class:`Document`, and the per-job :class:`IngestionOutcome`.
All models are frozen; derived variants are produced with
``model_copy(update={...})``.

Document metadata is a tagged variant: :class:`GenericMetadata` for plain
text / audio / video uploads and :class:`ProductMetadata` for records
imported from product or webpage CSV exports.  The ``kind`` field is the
discriminator, so serialized metadata round-trips to the right class.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from ragloader.utils.errors import ErrorKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------
class FileCategory(str, Enum):  # noqa: UP042
    """Content category assigned to an upload from its extension."""

    TEXT = "text"
    AUDIO = "audio"
    VIDEO = "video"
    TABULAR = "tabular"


class Classification(BaseModel):
    """Category and size ceiling derived once from an upload's filename."""

    model_config = ConfigDict(frozen=True)

    category: FileCategory
    extension: str = Field(description="Lowercase extension without the leading dot.")
    max_bytes: int = Field(ge=0, description="Size ceiling for this category.")


class RawUpload(BaseModel):
    """An uploaded byte buffer and its original filename."""

    model_config = ConfigDict(frozen=True)

    filename: str
    data: bytes
    declared_size: int | None = Field(
        default=None,
        description="Size reported by the upload boundary, if any.",
    )

    @property
    def size(self) -> int:
        return len(self.data)


# ---------------------------------------------------------------------------
# Media segments and chunks
# ---------------------------------------------------------------------------
class MediaSegment(BaseModel):
    """A time-bounded slice of a long video written to its own file."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    path: str
    start_seconds: float = Field(ge=0.0)
    duration_seconds: float = Field(ge=0.0)


class Chunk(BaseModel):
    """A bounded span of a document's text.

    ``overlap_chars`` is the length of the leading span that was carried
    over from the previous chunk (0 for the first chunk), which lets
    consumers tell seeded context apart from new text.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    text: str
    overlap_chars: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Document metadata (tagged variant)
# ---------------------------------------------------------------------------
class GenericMetadata(BaseModel):
    """Metadata for documents produced from text, audio, or video uploads."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["generic"] = "generic"
    source: str = Field(description='Source category, e.g. "text", "audio", "shopify".')
    original_format: str
    uploaded_at: datetime = Field(default_factory=_utcnow)
    processing_steps: list[str] = Field(default_factory=list)
    duration_seconds: float | None = None
    chunk_index: int | None = None
    chunk_count: int | None = None


class ProductMetadata(GenericMetadata):
    """Metadata for product and webpage records imported from CSV exports."""

    kind: Literal["product"] = "product"  # type: ignore[assignment]
    product_type: str = Field(description='"shopify_product", "webpage", or "csv_row".')
    product_handle: str | None = None
    product_title: str | None = None
    vendor: str | None = None
    product_category: str | None = None
    tags: list[str] = Field(default_factory=list)
    price: float | None = None
    sku: str | None = None
    in_stock: bool | None = None
    url: str | None = None
    priority_score: int = Field(default=50, ge=0, le=100)


DocumentMetadata = Annotated[
    Union[GenericMetadata, ProductMetadata],
    Field(discriminator="kind"),
]


class Document(BaseModel):
    """A processed upload (or one record of it) ready for embedding."""

    model_config = ConfigDict(frozen=True)

    id: str
    filename: str
    content: str
    metadata: DocumentMetadata

    def with_chunk(self, index: int, count: int, text: str) -> Document:
        """Return the per-chunk variant of this document.

        The id gets a deterministic ``-chunk-{index}`` suffix and the
        processing-step log gains ``chunk_{index+1}_of_{count}``.
        """
        steps = [*self.metadata.processing_steps, f"chunk_{index + 1}_of_{count}"]
        return self.model_copy(
            update={
                "id": f"{self.id}-chunk-{index}",
                "content": text,
                "metadata": self.metadata.model_copy(
                    update={
                        "processing_steps": steps,
                        "chunk_index": index,
                        "chunk_count": count,
                    }
                ),
            }
        )


# ---------------------------------------------------------------------------
# Job stages and outcome
# ---------------------------------------------------------------------------
class JobStage(str, Enum):  # noqa: UP042
    """States of a per-upload processing job."""

    UPLOADED = "uploaded"
    CLASSIFIED = "classified"
    CONVERTED = "converted"
    EXTRACTED = "extracted"
    CHUNKED = "chunked"
    EMBEDDED = "embedded"
    STORED = "stored"
    COMPLETE = "complete"
    FAILED = "failed"


class IngestionFailure(BaseModel):
    """Structured failure returned to the caller when a job ends in FAILED."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    provider_name: str | None = None
    failed_stage: JobStage | None = Field(
        default=None,
        description="Last stage the job reached before failing.",
    )


class IngestionOutcome(BaseModel):
    """Result of one :meth:`IngestionPipeline.process` call."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    filename: str
    stage: JobStage
    document: Document | None = None
    failure: IngestionFailure | None = None
    records_written: int = Field(
        default=0,
        ge=0,
        description="Vector records upserted, including those written before a failure.",
    )
    elapsed_seconds: float = Field(default=0.0, ge=0.0)

    @property
    def succeeded(self) -> bool:
        return self.stage is JobStage.COMPLETE and self.failure is None
