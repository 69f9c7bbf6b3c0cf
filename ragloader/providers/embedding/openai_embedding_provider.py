"""OpenAI embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Uses ``text-embedding-3-large`` with the ``dimensions`` parameter so the
vectors match the configured index dimension.  Also works against
OpenAI-compatible endpoints via ``openai_base_url``.
"""

from __future__ import annotations

import openai
import structlog

from ragloader.config.settings import Settings
from ragloader.interfaces.embedding_provider import IEmbeddingProvider
from ragloader.utils.errors import ConfigurationError, EmbeddingError
from ragloader.utils.retry import call_with_retry

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

# Models that accept the ``dimensions`` request parameter.
_SHORTENABLE_MODELS = frozenset({"text-embedding-3-small", "text-embedding-3-large"})


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the OpenAI embeddings API.

    The requested dimension comes from ``settings.embedding_dimension``;
    transient API errors are retried up to
    ``settings.remote_retry_attempts`` times before surfacing as
    :class:`EmbeddingError`.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        self._base_url = settings.openai_base_url
        self._client: openai.AsyncOpenAI | None = None
        self._model = settings.openai_embedding_model
        self._dimension = settings.embedding_dimension
        self._attempts = settings.remote_retry_attempts
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Inputs above the per-call limit of 2048 texts are split into
        several requests.
        """
        if not texts:
            return []

        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
            batch = texts[start : start + _OPENAI_BATCH_LIMIT]
            response = await self._create(batch)
            all_embeddings.extend(item.embedding for item in response.data)
            logger.info(
                "openai_embedding_batch",
                model=self._model,
                provider=self._provider_label,
                batch_size=len(batch),
                tokens=response.usage.total_tokens if response.usage else None,
            )
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text])
        if not result:
            raise EmbeddingError(
                message="Embedding API returned no vectors",
                provider_name=self.get_provider_name(),
            )
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError(
                    message="OPENAI_API_KEY is required for embeddings",
                    provider_name=self.get_provider_name(),
                )
            self._client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url or None)
        return self._client

    async def _create(self, batch: list[str]):  # noqa: ANN202 - SDK response type
        kwargs: dict = {"input": batch, "model": self._model}
        if self._model in _SHORTENABLE_MODELS:
            kwargs["dimensions"] = self._dimension
        try:
            return await call_with_retry(
                self._get_client().embeddings.create,
                attempts=self._attempts,
                operation="embedding",
                **kwargs,
            )
        except openai.BadRequestError as exc:
            if "context length" in str(exc).lower() or "maximum" in str(exc).lower():
                raise EmbeddingError(
                    message=f"Input too large for {self._model}: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise EmbeddingError(
                message=f"{self._provider_label} rejected the request: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
