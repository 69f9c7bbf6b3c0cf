"""Vector-store record models.

A :class:`VectorRecord` is what the ingestion pipeline hands to an
:class:`~ragloader.interfaces.vector_store_provider.IVectorStoreProvider`:
an id, the embedding, and a flat metadata projection of the source
:class:`~ragloader.models.ingestion.Document`.  The store is not a document
store, so only the first ``content_chars`` characters of the content travel
with the vector.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ragloader.models.ingestion import Document, ProductMetadata

MetadataValue = str | int | float | bool


class VectorRecord(BaseModel):
    """An (id, vector, metadata) triple ready for upsert."""

    model_config = ConfigDict(frozen=True)

    id: str
    vector: list[float]
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)

    @classmethod
    def from_document(
        cls,
        document: Document,
        vector: list[float],
        content_chars: int = 1000,
    ) -> VectorRecord:
        return cls(
            id=document.id,
            vector=vector,
            metadata=project_metadata(document, content_chars),
        )


class VectorMatch(BaseModel):
    """A query hit: record id, similarity score, and stored metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_product(self) -> bool:
        return self.metadata.get("source") == "shopify" or bool(self.metadata.get("product_type"))


def project_metadata(document: Document, content_chars: int = 1000) -> dict[str, MetadataValue]:
    """Flatten a document into scalar-only vector metadata.

    ``None`` values are dropped and lists are joined with commas, since
    vector stores only accept scalar metadata values.
    """
    meta = document.metadata
    raw: dict[str, Any] = {
        "filename": document.filename,
        "content": document.content[:content_chars],
        "kind": meta.kind,
        "source": meta.source,
        "original_format": meta.original_format,
        "uploaded_at": meta.uploaded_at.isoformat(),
        "processing_steps": meta.processing_steps,
        "duration_seconds": meta.duration_seconds,
        "chunk_index": meta.chunk_index,
        "chunk_count": meta.chunk_count,
    }
    if isinstance(meta, ProductMetadata):
        raw.update(
            {
                "product_type": meta.product_type,
                "product_handle": meta.product_handle,
                "product_title": meta.product_title,
                "vendor": meta.vendor,
                "product_category": meta.product_category,
                "tags": meta.tags,
                "price": meta.price,
                "sku": meta.sku,
                "in_stock": meta.in_stock,
                "url": meta.url,
                "priority_score": meta.priority_score,
            }
        )

    projected: dict[str, MetadataValue] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if isinstance(value, list):
            if not value:
                continue
            value = ",".join(str(v) for v in value)
        projected[key] = value
    return projected


def prioritize_products(matches: list[VectorMatch]) -> list[VectorMatch]:
    """Order product matches ahead of other matches, keeping score order within each group."""
    ranked = sorted(matches, key=lambda m: m.score, reverse=True)
    return [m for m in ranked if m.is_product] + [m for m in ranked if not m.is_product]
