"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`.
Records are written with pre-computed embeddings; ChromaDB never embeds
anything itself.  Fully local, no external service required.
"""

from __future__ import annotations

import os
from typing import Any

# Telemetry must be disabled before chromadb is imported.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from ragloader.interfaces.vector_store_provider import IVectorStoreProvider
from ragloader.models.vector import VectorMatch, VectorRecord
from ragloader.utils.errors import StoreError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    ragloader always passes pre-computed embeddings, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its
    default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "ragloader uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    :meth:`ensure_index` must run before the first write; it opens (or
    creates) the collection and pins the vector dimension that every
    subsequent upsert is checked against.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "ragloader_documents",
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collection: Any = None
        self._dimension: int | None = None
        self._metric: str | None = None

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    async def ensure_index(self, dimension: int, metric: str = "cosine") -> None:
        if self._collection is not None and (self._dimension, self._metric) == (dimension, metric):
            return

        wanted = {"hnsw:space": metric, "dimension": dimension}
        try:
            # Existing collections are opened as-is so their stored shape can be checked.
            if self._collection_name in self._collection_names():
                try:
                    collection = self._client.get_collection(
                        name=self._collection_name,
                        embedding_function=_NoopEmbeddingFunction(),
                    )
                except ValueError:
                    # Collection persisted with a different embedding function.
                    collection = self._client.get_collection(name=self._collection_name)
            else:
                collection = self._client.create_collection(
                    name=self._collection_name,
                    metadata=wanted,
                    embedding_function=_NoopEmbeddingFunction(),
                )
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB could not open collection '{self._collection_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        existing = collection.metadata or {}
        # Chroma falls back to l2 when a collection declares no space.
        stored_metric = existing.get("hnsw:space", "l2")
        stored_dim = existing.get("dimension")
        if stored_metric != metric or (stored_dim is not None and int(stored_dim) != dimension):
            raise StoreError(
                message=(
                    f"Index '{self._collection_name}' exists with dimension={stored_dim}, "
                    f"metric={stored_metric}; requested dimension={dimension}, metric={metric}"
                ),
                provider_name=self.get_provider_name(),
            )

        sample_dim = self._peek_dimension(collection)
        if sample_dim is not None and sample_dim != dimension:
            raise StoreError(
                message=(
                    f"Index '{self._collection_name}' holds {sample_dim}-dim vectors; "
                    f"requested dimension={dimension}"
                ),
                provider_name=self.get_provider_name(),
            )

        self._collection = collection
        self._dimension = dimension
        self._metric = metric
        logger.info(
            "chromadb_index_ready",
            collection=self._collection_name,
            dimension=dimension,
            metric=metric,
            records=collection.count(),
        )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, record: VectorRecord) -> None:
        await self.upsert_many([record])

    async def upsert_many(self, records: list[VectorRecord]) -> int:
        """Upsert records in one call; ids that already exist are overwritten."""
        if not records:
            return 0
        collection = self._require_collection()
        for record in records:
            if len(record.vector) != self._dimension:
                raise StoreError(
                    message=(
                        f"Vector for '{record.id}' has {len(record.vector)} dimensions; "
                        f"index expects {self._dimension}"
                    ),
                    provider_name=self.get_provider_name(),
                )

        try:
            collection.upsert(
                ids=[r.id for r in records],
                embeddings=[r.vector for r in records],
                metadatas=[dict(r.metadata) or None for r in records],
            )
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_upsert", count=len(records), first_id=records[0].id)
        return len(records)

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        collection = self._require_collection()
        try:
            available = collection.count()
            if available == 0 or top_k <= 0:
                return []

            kwargs: dict[str, Any] = {
                "query_embeddings": [vector],
                "n_results": min(top_k, available),
                "include": ["metadatas", "distances"],
            }
            if filters:
                kwargs["where"] = filters
            results = collection.query(**kwargs)
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [0.0] * len(ids)

        matches = [
            VectorMatch(
                id=record_id,
                score=max(0.0, min(1.0, 1.0 - distance)),
                metadata=dict(meta or {}),
            )
            for record_id, meta, distance in zip(ids, metadatas, distances, strict=True)
        ]
        logger.info(
            "chromadb_query",
            results_count=len(matches),
            top_score=matches[0].score if matches else 0.0,
        )
        return matches

    async def delete(self, record_id: str) -> None:
        collection = self._require_collection()
        try:
            collection.delete(ids=[record_id])
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chromadb_delete", record_id=record_id)

    async def count(self) -> int:
        collection = self._require_collection()
        try:
            return collection.count()
        except Exception as exc:
            raise StoreError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_collection(self) -> Any:
        if self._collection is None:
            raise StoreError(
                message="Index not initialised; call ensure_index() first",
                provider_name=self.get_provider_name(),
            )
        return self._collection

    def _collection_names(self) -> set[str]:
        # Older chromadb releases return Collection objects, newer ones plain names.
        return {c if isinstance(c, str) else c.name for c in self._client.list_collections()}

    @staticmethod
    def _peek_dimension(collection: Any) -> int | None:
        """Return the length of one stored vector, or ``None`` if the collection is empty."""
        if collection.count() == 0:
            return None
        sample = collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return None
        return len(embeddings[0])
