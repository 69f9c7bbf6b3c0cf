"""Abstract base class for vector-store service providers.

Defines the contract for storing and querying embedded records.  The
concrete implementation wraps ChromaDB; any store with id-keyed upsert
semantics (Pinecone, Qdrant) fits behind the same interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ragloader.models.vector import VectorMatch, VectorRecord


# Concrete implementation: ChromaDBProvider (ragloader/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the ingestion pipeline.

    Writes have overwrite semantics: upserting an id that already exists
    replaces the stored record, so re-running an ingestion never creates
    duplicates.
    """

    @abstractmethod
    async def ensure_index(self, dimension: int, metric: str = "cosine") -> None:
        """Create the index if missing; verify its shape if it exists.

        Idempotent: a second call with the same shape is a no-op.

        Raises
        ------
        ragloader.utils.errors.StoreError
            If an existing index has a different dimension or metric.
        """

    @abstractmethod
    async def upsert(self, record: VectorRecord) -> None:
        """Insert or overwrite a single record keyed by ``record.id``.

        Raises
        ------
        ragloader.utils.errors.StoreError
            If the vector does not match the index dimension or the write
            is rejected.
        """

    @abstractmethod
    async def upsert_many(self, records: list[VectorRecord]) -> int:
        """Upsert several records; returns the number written."""

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Return up to *top_k* records nearest to *vector*, best first.

        *filters* is a metadata filter in the backend's ``where`` syntax,
        e.g. ``{"source": "shopify"}``.
        """

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """Delete the record with the given id (no-op if absent)."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored records."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this vector-store provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is reachable."""
