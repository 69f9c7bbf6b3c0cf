"""Bounded-concurrency embedding of many texts.

The embedding service is called once per text.  Texts are grouped into
batches of ``batch_size``; inside a batch all calls run concurrently, and a
semaphore of the same size caps in-flight calls.  By default batches run
one after another, so a batch's results are complete before the next batch
starts.  With ``cross_batch_overlap`` the barrier between batches goes away
and the semaphore alone bounds concurrency.

Any failure aborts the whole call: the caller gets an
:class:`EmbeddingError` and no partial vectors.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import structlog

from ragloader.interfaces.embedding_provider import IEmbeddingProvider
from ragloader.utils.concurrency import throttled_gather
from ragloader.utils.errors import EmbeddingError, RagLoaderError

logger = structlog.get_logger(logger_name=__name__)

BatchCallback = Callable[[int, int], Any]


class EmbeddingBatchScheduler:
    """Embeds texts with at most ``batch_size`` provider calls in flight.

    Parameters
    ----------
    provider:
        The embedding service adapter.
    batch_size:
        Texts per batch and the in-flight call ceiling.
    max_input_chars:
        Per-call input ceiling; longer texts are truncated and suffixed with
        ``"..."``.
    expected_dimension:
        Vector length every result must have.  Defaults to the provider's
        declared dimension.
    cross_batch_overlap:
        Let the next batch start while the previous one is still running.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        batch_size: int = 5,
        max_input_chars: int = 8000,
        expected_dimension: int | None = None,
        cross_batch_overlap: bool = False,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._provider = provider
        self._batch_size = batch_size
        self._max_input_chars = max_input_chars
        self._dimension = expected_dimension or provider.get_dimension()
        self._cross_batch_overlap = cross_batch_overlap

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def max_input_chars(self) -> int:
        return self._max_input_chars

    async def embed_all(
        self,
        texts: list[str],
        on_batch_done: BatchCallback | None = None,
    ) -> list[list[float]]:
        """Return one vector per text, in input order.

        *on_batch_done* is called as ``on_batch_done(done, total)`` after
        each batch with the number of texts embedded so far; it may be a
        coroutine function.
        """
        if not texts:
            return []

        prepared = [self._fit(text, i) for i, text in enumerate(texts)]
        total = len(prepared)
        semaphore = asyncio.Semaphore(self._batch_size)
        batches = [
            list(range(start, min(start + self._batch_size, total)))
            for start in range(0, total, self._batch_size)
        ]

        vectors: list[list[float] | None] = [None] * total
        done = 0

        async def _run_batch(indices: list[int]) -> None:
            nonlocal done
            results = await throttled_gather(
                [self._embed_one(prepared[i], i) for i in indices],
                semaphore,
            )
            for i, vector in zip(indices, results):
                vectors[i] = vector  # type: ignore[assignment]
            done += len(indices)
            logger.debug("embedding_batch_done", done=done, total=total)
            if on_batch_done is not None:
                result = on_batch_done(done, total)
                if asyncio.iscoroutine(result):
                    await result

        if self._cross_batch_overlap:
            tasks = [asyncio.ensure_future(_run_batch(b)) for b in batches]
            try:
                await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        else:
            for batch in batches:
                await _run_batch(batch)

        logger.info(
            "embedding_complete",
            texts=total,
            batches=len(batches),
            batch_size=self._batch_size,
            provider=self._provider.get_provider_name(),
        )
        return [v for v in vectors if v is not None]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fit(self, text: str, index: int) -> str:
        if len(text) <= self._max_input_chars:
            return text
        logger.warning(
            "embedding_input_truncated",
            index=index,
            original_chars=len(text),
            limit=self._max_input_chars,
        )
        return text[: self._max_input_chars] + "..."

    async def _embed_one(self, text: str, index: int) -> list[float]:
        try:
            vector = await self._provider.embed_single(text)
        except EmbeddingError:
            raise
        except RagLoaderError as exc:
            raise EmbeddingError(message=exc.message, provider_name=exc.provider_name) from exc
        except Exception as exc:
            raise EmbeddingError(
                message=f"Embedding call {index} failed: {exc}",
                provider_name=self._provider.get_provider_name(),
            ) from exc

        if len(vector) != self._dimension:
            raise EmbeddingError(
                message=(
                    f"Embedding {index} has {len(vector)} dimensions; "
                    f"expected {self._dimension}"
                ),
                provider_name=self._provider.get_provider_name(),
            )
        return vector
