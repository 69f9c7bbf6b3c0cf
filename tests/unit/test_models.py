"""Unit tests for ingestion and vector models."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from ragloader.models.ingestion import (
    Document,
    DocumentMetadata,
    GenericMetadata,
    IngestionFailure,
    IngestionOutcome,
    JobStage,
    ProductMetadata,
    RawUpload,
)
from ragloader.models.vector import VectorMatch, VectorRecord, prioritize_products, project_metadata
from ragloader.utils.errors import ErrorKind


def _text_document(content: str = "hello world") -> Document:
    return Document(
        id="abc",
        filename="notes.txt",
        content=content,
        metadata=GenericMetadata(source="text", original_format="txt", processing_steps=["text_extracted"]),
    )


def _product_document() -> Document:
    return Document(
        id="shopify-calm-mist",
        filename="products.csv",
        content="Product: Calm Mist",
        metadata=ProductMetadata(
            source="shopify",
            original_format="csv",
            product_type="shopify_product",
            product_title="Calm Mist",
            tags=["calm", "sleep"],
            price=38.0,
            in_stock=True,
            priority_score=100,
        ),
    )


class TestDocument:
    def test_with_chunk_derives_id_and_steps(self) -> None:
        doc = _text_document()

        chunk = doc.with_chunk(1, 3, "world")

        assert chunk.id == "abc-chunk-1"
        assert chunk.content == "world"
        assert chunk.metadata.chunk_index == 1
        assert chunk.metadata.chunk_count == 3
        assert chunk.metadata.processing_steps == ["text_extracted", "chunk_2_of_3"]
        assert doc.metadata.processing_steps == ["text_extracted"]

    def test_models_are_frozen(self) -> None:
        doc = _text_document()

        with pytest.raises(ValidationError):
            doc.id = "other"  # type: ignore[misc]

    def test_metadata_discriminated_by_kind(self) -> None:
        adapter = TypeAdapter(DocumentMetadata)
        dumped = _product_document().metadata.model_dump()

        restored = adapter.validate_python(dumped)

        assert isinstance(restored, ProductMetadata)
        assert restored.product_title == "Calm Mist"

    def test_priority_score_bounded(self) -> None:
        with pytest.raises(ValidationError):
            ProductMetadata(source="text", original_format="csv", product_type="webpage", priority_score=120)


class TestOutcome:
    def test_succeeded_only_when_complete_without_failure(self) -> None:
        ok = IngestionOutcome(job_id="j", filename="a.txt", stage=JobStage.COMPLETE, document=_text_document())
        failed = IngestionOutcome(
            job_id="j",
            filename="a.txt",
            stage=JobStage.FAILED,
            failure=IngestionFailure(kind=ErrorKind.STORE_FAILURE, message="boom"),
            records_written=2,
        )

        assert ok.succeeded
        assert not failed.succeeded
        assert failed.records_written == 2

    def test_raw_upload_size(self) -> None:
        assert RawUpload(filename="a.txt", data=b"12345").size == 5


class TestVectorProjection:
    def test_generic_metadata_projection(self) -> None:
        meta = project_metadata(_text_document("x" * 2000), content_chars=100)

        assert meta["content"] == "x" * 100
        assert meta["source"] == "text"
        assert meta["processing_steps"] == "text_extracted"
        assert "duration_seconds" not in meta
        assert "product_type" not in meta

    def test_product_projection_flattens_lists(self) -> None:
        meta = project_metadata(_product_document())

        assert meta["tags"] == "calm,sleep"
        assert meta["price"] == 38.0
        assert meta["in_stock"] is True
        assert meta["priority_score"] == 100
        assert all(isinstance(v, (str, int, float, bool)) for v in meta.values())

    def test_record_from_document(self) -> None:
        record = VectorRecord.from_document(_product_document(), [0.1, 0.2])

        assert record.id == "shopify-calm-mist"
        assert record.vector == [0.1, 0.2]
        assert record.metadata["product_title"] == "Calm Mist"


class TestPrioritizeProducts:
    def test_products_first_then_score_order(self) -> None:
        matches = [
            VectorMatch(id="text-high", score=0.95, metadata={"source": "text"}),
            VectorMatch(id="product-low", score=0.40, metadata={"source": "shopify"}),
            VectorMatch(id="text-low", score=0.30, metadata={"source": "audio"}),
            VectorMatch(id="product-high", score=0.80, metadata={"product_type": "shopify_product"}),
        ]

        ordered = prioritize_products(matches)

        assert [m.id for m in ordered] == ["product-high", "product-low", "text-high", "text-low"]

    def test_is_product(self) -> None:
        assert VectorMatch(id="a", metadata={"source": "shopify"}).is_product
        assert not VectorMatch(id="b", metadata={"source": "text"}).is_product
