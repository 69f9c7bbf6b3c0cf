"""Unit tests for the ChromaDB vector store provider.

Runs against a real local PersistentClient in a temporary directory.
"""

from __future__ import annotations

from pathlib import Path

import chromadb
import pytest
from chromadb.config import Settings as ChromaSettings

from ragloader.models.vector import VectorRecord
from ragloader.providers.vector_store.chromadb_provider import ChromaDBProvider
from ragloader.utils.errors import ErrorKind, StoreError

_DIM = 8


def _unit(i: int, dim: int = _DIM) -> list[float]:
    vector = [0.0] * dim
    vector[i % dim] = 1.0
    return vector


def _record(record_id: str, i: int, **metadata: str | int | float | bool) -> VectorRecord:
    return VectorRecord(id=record_id, vector=_unit(i), metadata={"content": record_id, **metadata})


@pytest.fixture
def persist_dir(tmp_path: Path) -> str:
    return str(tmp_path / "chroma")


class TestChromaDBProvider:
    def test_get_provider_name(self, persist_dir: str) -> None:
        assert ChromaDBProvider(persist_dir, "test_name").get_provider_name() == "chromadb"

    def test_is_available(self, persist_dir: str) -> None:
        assert ChromaDBProvider(persist_dir, "test_available").is_available() is True

    @pytest.mark.asyncio
    async def test_writes_require_ensure_index(self, persist_dir: str) -> None:
        provider = ChromaDBProvider(persist_dir, "test_uninitialised")

        with pytest.raises(StoreError, match="ensure_index"):
            await provider.upsert(_record("a", 0))

    @pytest.mark.asyncio
    async def test_upsert_and_query(self, persist_dir: str) -> None:
        provider = ChromaDBProvider(persist_dir, "test_query")
        await provider.ensure_index(_DIM, "cosine")

        written = await provider.upsert_many([_record("a", 0), _record("b", 1), _record("c", 2)])
        matches = await provider.query(_unit(1), top_k=2)

        assert written == 3
        assert await provider.count() == 3
        assert len(matches) == 2
        assert matches[0].id == "b"
        assert matches[0].score == pytest.approx(1.0, abs=1e-4)
        assert matches[0].metadata["content"] == "b"
        assert 0.0 <= matches[1].score <= 1.0

    @pytest.mark.asyncio
    async def test_upsert_overwrites_existing_id(self, persist_dir: str) -> None:
        provider = ChromaDBProvider(persist_dir, "test_overwrite")
        await provider.ensure_index(_DIM)

        await provider.upsert(_record("doc", 0, version=1))
        await provider.upsert(_record("doc", 0, version=2))
        matches = await provider.query(_unit(0), top_k=5)

        assert await provider.count() == 1
        assert matches[0].metadata["version"] == 2

    @pytest.mark.asyncio
    async def test_query_with_filters(self, persist_dir: str) -> None:
        provider = ChromaDBProvider(persist_dir, "test_filters")
        await provider.ensure_index(_DIM)
        await provider.upsert_many(
            [_record("p1", 0, source="shopify"), _record("t1", 0, source="text")]
        )

        matches = await provider.query(_unit(0), top_k=5, filters={"source": "shopify"})

        assert [m.id for m in matches] == ["p1"]

    @pytest.mark.asyncio
    async def test_query_empty_store(self, persist_dir: str) -> None:
        provider = ChromaDBProvider(persist_dir, "test_empty")
        await provider.ensure_index(_DIM)

        assert await provider.query(_unit(0)) == []

    @pytest.mark.asyncio
    async def test_delete(self, persist_dir: str) -> None:
        provider = ChromaDBProvider(persist_dir, "test_delete")
        await provider.ensure_index(_DIM)
        await provider.upsert_many([_record("a", 0), _record("b", 1)])

        await provider.delete("a")

        assert await provider.count() == 1

    @pytest.mark.asyncio
    async def test_wrong_vector_length_rejected(self, persist_dir: str) -> None:
        provider = ChromaDBProvider(persist_dir, "test_length")
        await provider.ensure_index(_DIM)

        with pytest.raises(StoreError) as exc_info:
            await provider.upsert(VectorRecord(id="x", vector=[1.0, 0.0]))

        assert exc_info.value.kind is ErrorKind.STORE_FAILURE
        assert await provider.count() == 0


class TestIndexShape:
    @pytest.mark.asyncio
    async def test_reopen_with_same_shape_succeeds(self, persist_dir: str) -> None:
        first = ChromaDBProvider(persist_dir, "test_reopen")
        await first.ensure_index(_DIM, "cosine")
        await first.upsert(_record("a", 0))

        second = ChromaDBProvider(persist_dir, "test_reopen")
        await second.ensure_index(_DIM, "cosine")

        assert await second.count() == 1

    @pytest.mark.asyncio
    async def test_dimension_mismatch_rejected(self, persist_dir: str) -> None:
        first = ChromaDBProvider(persist_dir, "test_mismatch")
        await first.ensure_index(_DIM, "cosine")

        second = ChromaDBProvider(persist_dir, "test_mismatch")
        with pytest.raises(StoreError, match="dimension"):
            await second.ensure_index(_DIM * 2, "cosine")

    @pytest.mark.asyncio
    async def test_metric_mismatch_rejected(self, persist_dir: str) -> None:
        first = ChromaDBProvider(persist_dir, "test_metric")
        await first.ensure_index(_DIM, "cosine")

        second = ChromaDBProvider(persist_dir, "test_metric")
        with pytest.raises(StoreError, match="metric"):
            await second.ensure_index(_DIM, "l2")

    @pytest.mark.asyncio
    async def test_collection_without_space_treated_as_l2(self, persist_dir: str) -> None:
        client = chromadb.PersistentClient(path=persist_dir, settings=ChromaSettings(anonymized_telemetry=False))
        client.create_collection("test_plain")

        with pytest.raises(StoreError, match="metric=l2"):
            await ChromaDBProvider(persist_dir, "test_plain").ensure_index(_DIM, "cosine")

        plain = ChromaDBProvider(persist_dir, "test_plain")
        await plain.ensure_index(_DIM, "l2")
        assert await plain.count() == 0
