"""Shared pytest fixtures for the ragloader test suite.

The mocks below implement the provider interfaces in memory so pipeline
and API tests never touch OpenAI, ffmpeg or a ChromaDB directory.
"""

from __future__ import annotations

import asyncio
import hashlib
import math
import struct
from pathlib import Path
from typing import Any

import pytest

from ragloader.config.settings import Settings
from ragloader.interfaces.embedding_provider import IEmbeddingProvider
from ragloader.interfaces.media_converter import IMediaConverter
from ragloader.interfaces.transcription_provider import ITranscriptionProvider
from ragloader.interfaces.vector_store_provider import IVectorStoreProvider
from ragloader.models.ingestion import MediaSegment
from ragloader.models.vector import VectorMatch, VectorRecord
from ragloader.pipeline.orchestrator import IngestionPipeline
from ragloader.pipeline.progress_tracker import ProgressTracker
from ragloader.utils.errors import ConversionError, EmbeddingError, StoreError, TranscriptionError

TEST_DIMENSION = 16


def _hash_to_vector(text: str, dim: int = TEST_DIMENSION) -> list[float]:
    """Deterministic unit vector derived from the SHA-256 of *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    while len(digest) < dim * 4:
        digest += hashlib.sha256(digest).digest()
    raw = struct.unpack(f"<{dim}I", digest[: dim * 4])
    values = [(v / 0xFFFFFFFF) * 2.0 - 1.0 for v in raw]
    norm = math.sqrt(sum(v * v for v in values)) or 1.0
    return [v / norm for v in values]


# ---------------------------------------------------------------------------
# In-memory providers
# ---------------------------------------------------------------------------


class MockEmbeddingProvider(IEmbeddingProvider):
    """Hash-based embedder that records calls and peak concurrency."""

    def __init__(
        self,
        dimension: int = TEST_DIMENSION,
        delay: float = 0.0,
        fail_on: str | None = None,
        wrong_dimension_on: str | None = None,
    ) -> None:
        self._dimension = dimension
        self._delay = delay
        self._fail_on = fail_on
        self._wrong_dimension_on = wrong_dimension_on
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            self.calls.append(text)
            if self._fail_on is not None and self._fail_on in text:
                raise EmbeddingError(message="rejected by mock", provider_name="mock_embedding")
            if self._wrong_dimension_on is not None and self._wrong_dimension_on in text:
                return _hash_to_vector(text, self._dimension + 1)
            return _hash_to_vector(text, self._dimension)
        finally:
            self.in_flight -= 1

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "mock_embedding"

    def is_available(self) -> bool:
        return True


class MockVectorStore(IVectorStoreProvider):
    """Dict-backed vector store with optional write failure injection."""

    def __init__(self, fail_after: int | None = None, available: bool = True) -> None:
        self.records: dict[str, VectorRecord] = {}
        self.dimension: int | None = None
        self.metric: str | None = None
        self.ensure_calls = 0
        self.upserts = 0
        self._fail_after = fail_after
        self._available = available

    async def ensure_index(self, dimension: int, metric: str = "cosine") -> None:
        self.ensure_calls += 1
        if self.dimension is not None and self.dimension != dimension:
            raise StoreError(message="dimension mismatch", provider_name="mock_store")
        self.dimension = dimension
        self.metric = metric

    async def upsert(self, record: VectorRecord) -> None:
        await self.upsert_many([record])

    async def upsert_many(self, records: list[VectorRecord]) -> int:
        if self.dimension is None:
            raise StoreError(message="index not ensured", provider_name="mock_store")
        for record in records:
            if self._fail_after is not None and self.upserts >= self._fail_after:
                raise StoreError(message="write rejected", provider_name="mock_store")
            if len(record.vector) != self.dimension:
                raise StoreError(message="wrong vector length", provider_name="mock_store")
            self.records[record.id] = record
            self.upserts += 1
        return len(records)

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        hits: list[VectorMatch] = []
        for record in self.records.values():
            if filters and any(record.metadata.get(k) != v for k, v in filters.items()):
                continue
            score = sum(a * b for a, b in zip(vector, record.vector))
            hits.append(
                VectorMatch(id=record.id, score=max(0.0, min(1.0, score)), metadata=dict(record.metadata))
            )
        hits.sort(key=lambda m: m.score, reverse=True)
        return hits[:top_k]

    async def delete(self, record_id: str) -> None:
        self.records.pop(record_id, None)

    async def count(self) -> int:
        return len(self.records)

    def get_provider_name(self) -> str:
        return "mock_store"

    def is_available(self) -> bool:
        return self._available


class MockTranscriber(ITranscriptionProvider):
    """Returns a canned transcript per call; records every path it saw."""

    def __init__(self, text: str = "spoken words about lavender", empty: bool = False) -> None:
        self._text = text
        self._empty = empty
        self.paths: list[str] = []

    async def transcribe(self, audio_path: str, mime_hint: str | None = None) -> str:
        self.paths.append(audio_path)
        if not Path(audio_path).exists():
            raise TranscriptionError(message=f"missing {audio_path}", provider_name="mock_whisper")
        if self._empty:
            return "   "
        return f"{self._text} ({Path(audio_path).name})"

    def get_provider_name(self) -> str:
        return "mock_whisper"

    def is_available(self) -> bool:
        return True

    def supported_formats(self) -> list[str]:
        return [".mp3", ".wav"]


class FakeMediaConverter(IMediaConverter):
    """Creates placeholder files instead of running ffmpeg."""

    def __init__(self, duration: float = 1800.0, fail_extract: bool = False) -> None:
        self.duration = duration
        self.fail_extract = fail_extract
        self.created: list[Path] = []
        self.extract_calls: list[Path] = []
        self.segment_calls: list[tuple[Path, int]] = []

    async def extract_audio(self, video_path: Path) -> Path:
        self.extract_calls.append(Path(video_path))
        if self.fail_extract:
            raise ConversionError(message="ffmpeg exited with 1", provider_name="ffmpeg")
        out = Path(video_path).with_suffix(".mp3")
        out.write_bytes(b"ID3 fake audio")
        self.created.append(out)
        return out

    async def probe_duration(self, path: Path) -> float:
        return self.duration

    async def segment(self, video_path: Path, window_minutes: int) -> list[MediaSegment]:
        video_path = Path(video_path)
        self.segment_calls.append((video_path, window_minutes))
        window = window_minutes * 60
        count = math.ceil(self.duration / window)
        segments = []
        for i in range(count):
            out = video_path.with_name(f"{video_path.stem}_segment_{i + 1}{video_path.suffix}")
            out.write_bytes(b"segment")
            self.created.append(out)
            start = i * window
            segments.append(
                MediaSegment(
                    index=i,
                    path=str(out),
                    start_seconds=start,
                    duration_seconds=min(window, self.duration - start),
                )
            )
        return segments

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def settings(tmp_path: Path, upload_dir: Path) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        temp_dir=str(upload_dir),
        chromadb_persist_dir=str(tmp_path / "chroma"),
        embedding_dimension=TEST_DIMENSION,
        embedding_batch_size=3,
        remote_retry_attempts=1,
    )


@pytest.fixture
def embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def vector_store() -> MockVectorStore:
    return MockVectorStore()


@pytest.fixture
def transcriber() -> MockTranscriber:
    return MockTranscriber()


@pytest.fixture
def media_converter() -> FakeMediaConverter:
    return FakeMediaConverter()


@pytest.fixture
def progress_tracker() -> ProgressTracker:
    return ProgressTracker()


@pytest.fixture
def components(
    settings: Settings,
    embedding_provider: MockEmbeddingProvider,
    vector_store: MockVectorStore,
    transcriber: MockTranscriber,
    media_converter: FakeMediaConverter,
    progress_tracker: ProgressTracker,
) -> dict[str, Any]:
    """The same component dict ``build_components`` returns, backed by mocks."""
    from ragloader.main import build_pipeline

    pipeline = build_pipeline(
        settings,
        embedding_provider=embedding_provider,
        transcriber=transcriber,
        vector_store=vector_store,
        media_converter=media_converter,
        progress_tracker=progress_tracker,
    )
    return {
        "settings": settings,
        "embedding_provider": embedding_provider,
        "transcriber": transcriber,
        "vector_store": vector_store,
        "media_converter": media_converter,
        "progress_tracker": progress_tracker,
        "pipeline": pipeline,
    }


@pytest.fixture
def pipeline(components: dict[str, Any]) -> IngestionPipeline:
    return components["pipeline"]


@pytest.fixture
def sentence_text() -> str:
    """About 25,000 characters of short sentences."""
    sentence = "Lavender essence calms the nervous system and supports restful sleep."
    count = 25_000 // (len(sentence) + 1) + 1
    return " ".join(f"{sentence[:-1]} number {i}." for i in range(count))
