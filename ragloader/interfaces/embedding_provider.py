"""Abstract base class for text-embedding service providers.

Defines the contract for generating fixed-dimension embedding vectors from
text.  The concrete implementation wraps the OpenAI embeddings API; tests
substitute an in-memory deterministic provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider (ragloader/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the ingestion pipeline.

    Every vector returned by one provider instance has the same length,
    :meth:`get_dimension`, which must match the dimension of the vector
    store index.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.

        Raises
        ------
        ragloader.utils.errors.EmbeddingError
            If the provider rejects the input or the API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        This value must remain constant for the lifetime of the provider
        instance and must match the dimension configured in the vector store.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
