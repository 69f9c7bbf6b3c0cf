"""Unit tests for the error hierarchy, retry helper and throttled gather."""

from __future__ import annotations

import asyncio

import httpx
import openai
import pytest

from ragloader.utils.concurrency import throttled_gather
from ragloader.utils.errors import (
    ConversionError,
    EmbeddingError,
    ErrorKind,
    RagLoaderError,
    SizeLimitExceededError,
    StoreError,
    TranscriptionError,
    UnsupportedFormatError,
)
from ragloader.utils.retry import call_with_retry

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


class TestErrors:
    @pytest.mark.parametrize(
        ("error_cls", "kind"),
        [
            (UnsupportedFormatError, ErrorKind.UNSUPPORTED_FORMAT),
            (SizeLimitExceededError, ErrorKind.SIZE_LIMIT_EXCEEDED),
            (ConversionError, ErrorKind.CONVERSION_FAILURE),
            (TranscriptionError, ErrorKind.TRANSCRIPTION_FAILURE),
            (EmbeddingError, ErrorKind.EMBEDDING_FAILURE),
            (StoreError, ErrorKind.STORE_FAILURE),
        ],
    )
    def test_each_error_carries_its_kind(self, error_cls: type[RagLoaderError], kind: ErrorKind) -> None:
        error = error_cls(message="x")

        assert isinstance(error, RagLoaderError)
        assert error.kind is kind

    def test_str_prefixes_provider(self) -> None:
        assert str(StoreError(message="write rejected", provider_name="chromadb")) == "[chromadb] write rejected"
        assert str(StoreError(message="write rejected")) == "write rejected"

    def test_conversion_error_tool_missing_flag(self) -> None:
        assert ConversionError(tool_missing=True).tool_missing is True
        assert ConversionError().tool_missing is False


class _Flaky:
    def __init__(self, failures: list[Exception]) -> None:
        self.failures = list(failures)
        self.calls = 0

    async def __call__(self, value: str) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return value.upper()


class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self) -> None:
        flaky = _Flaky([openai.APIConnectionError(request=_REQUEST), openai.APITimeoutError(request=_REQUEST)])

        result = await call_with_retry(flaky, "ok", attempts=3, initial_wait=0, max_wait=0)

        assert result == "OK"
        assert flaky.calls == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self) -> None:
        flaky = _Flaky([openai.APIConnectionError(request=_REQUEST)] * 5)

        with pytest.raises(openai.APIConnectionError):
            await call_with_retry(flaky, "ok", attempts=2, initial_wait=0, max_wait=0)

        assert flaky.calls == 2

    @pytest.mark.asyncio
    async def test_non_transient_errors_fail_fast(self) -> None:
        flaky = _Flaky([ValueError("bad input")])

        with pytest.raises(ValueError):
            await call_with_retry(flaky, "ok", attempts=5, initial_wait=0, max_wait=0)

        assert flaky.calls == 1


class TestThrottledGather:
    @pytest.mark.asyncio
    async def test_bounded_and_ordered(self) -> None:
        in_flight = 0
        peak = 0

        async def _work(i: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return i * 2

        results = await throttled_gather([_work(i) for i in range(8)], asyncio.Semaphore(3))

        assert results == [i * 2 for i in range(8)]
        assert peak <= 3

    @pytest.mark.asyncio
    async def test_first_failure_cancels_the_rest(self) -> None:
        finished: list[int] = []

        async def _work(i: int) -> int:
            if i == 0:
                raise RuntimeError("boom")
            await asyncio.sleep(0.05)
            finished.append(i)
            return i

        with pytest.raises(RuntimeError):
            await throttled_gather([_work(i) for i in range(4)], asyncio.Semaphore(4))

        assert finished == []
