"""Orchestrator for the upload ingestion pipeline.

Pipeline stages: **classify -> convert -> extract -> chunk -> embed -> store**.

:class:`IngestionPipeline` coordinates the classifier, text extractor,
chunker, embedding scheduler, vector store and media converter without any
of them knowing about each other.  Every :meth:`IngestionPipeline.process`
call owns one :class:`ProcessingJob`; jobs share no mutable state, so any
number of them can run concurrently.

Stage code raises typed :class:`RagLoaderError` subclasses.  The
orchestrator is the only place that catches them: it converts the
exception into an :class:`IngestionFailure` value on the returned
:class:`IngestionOutcome`, and removes every temp artifact the job
registered, on success and failure alike.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import structlog

from ragloader.config.settings import Settings
from ragloader.interfaces.media_converter import IMediaConverter
from ragloader.interfaces.vector_store_provider import IVectorStoreProvider
from ragloader.models.ingestion import (
    Chunk,
    Document,
    FileCategory,
    GenericMetadata,
    IngestionFailure,
    IngestionOutcome,
    JobStage,
    RawUpload,
)
from ragloader.models.vector import VectorRecord
from ragloader.pipeline.job import ProcessingJob
from ragloader.pipeline.progress_tracker import ProgressTracker
from ragloader.services.chunker import TextChunker
from ragloader.services.classifier import FileClassifier
from ragloader.services.embedding_scheduler import EmbeddingBatchScheduler
from ragloader.services.source_processors.base import TabularProcessor, read_csv
from ragloader.services.source_processors.csv_rows_processor import CsvRowProcessor
from ragloader.services.source_processors.shopify_processor import ShopifyProductProcessor
from ragloader.services.source_processors.webpage_processor import WebpageExportProcessor
from ragloader.services.text_extractor import TextExtractor
from ragloader.utils.concurrency import throttled_gather
from ragloader.utils.errors import (
    ErrorKind,
    RagLoaderError,
    TranscriptionError,
    UnsupportedFormatError,
)

logger = structlog.get_logger(logger_name=__name__)

ProgressCallback = Callable[[str, float], Any]

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# Percent reached when each stage finishes.  Embedding fills the gap
# between CHUNKED and EMBEDDED batch by batch.
_STAGE_PERCENT: dict[JobStage, float] = {
    JobStage.UPLOADED: 0.0,
    JobStage.CLASSIFIED: 10.0,
    JobStage.CONVERTED: 20.0,
    JobStage.EXTRACTED: 45.0,
    JobStage.CHUNKED: 50.0,
    JobStage.EMBEDDED: 90.0,
    JobStage.STORED: 97.0,
    JobStage.COMPLETE: 100.0,
}


def content_id(data: bytes) -> str:
    """Return the document id for an upload: 32 hex chars of its SHA-256."""
    return hashlib.sha256(data).hexdigest()[:32]


def safe_filename(filename: str) -> str:
    """Reduce a client-supplied filename to a safe basename."""
    name = Path(filename.replace("\\", "/")).name
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return cleaned or "upload"


def default_tabular_processors(settings: Settings) -> list[TabularProcessor]:
    """Processors tried in order for CSV uploads; the generic row importer is last."""
    return [
        ShopifyProductProcessor(default_vendor=settings.default_vendor),
        WebpageExportProcessor(),
        CsvRowProcessor(),
    ]


class IngestionPipeline:
    """Runs uploads through classify -> convert -> extract -> chunk -> embed -> store.

    Parameters
    ----------
    classifier:
        Maps filenames to categories and size ceilings.
    extractor:
        Produces text from text, audio and video uploads.
    chunker:
        Splits text longer than ``max_embedding_chars``.
    scheduler:
        Embeds texts with bounded concurrency.
    vector_store:
        Destination for vector records.
    media_converter:
        Used to probe audio/video duration.
    settings:
        Supplies ``temp_dir``, ``max_embedding_chars``,
        ``metadata_content_chars`` and ``vector_metric``.
    progress_tracker:
        Optional shared tracker that receives every progress update.
    tabular_processors:
        CSV importers, tried in order; defaults to
        :func:`default_tabular_processors`.
    """

    def __init__(
        self,
        classifier: FileClassifier,
        extractor: TextExtractor,
        chunker: TextChunker,
        scheduler: EmbeddingBatchScheduler,
        vector_store: IVectorStoreProvider,
        media_converter: IMediaConverter,
        settings: Settings,
        progress_tracker: ProgressTracker | None = None,
        tabular_processors: list[TabularProcessor] | None = None,
    ) -> None:
        self._classifier = classifier
        self._extractor = extractor
        self._chunker = chunker
        self._scheduler = scheduler
        self._store = vector_store
        self._converter = media_converter
        self._tracker = progress_tracker
        self._tabular = (
            tabular_processors if tabular_processors is not None else default_tabular_processors(settings)
        )
        self._temp_dir = Path(settings.temp_dir)
        self._max_embedding_chars = settings.max_embedding_chars
        self._content_chars = settings.metadata_content_chars
        self._metric = settings.vector_metric
        self._index_ready = False
        self._index_lock = asyncio.Lock()

    @property
    def classifier(self) -> FileClassifier:
        return self._classifier

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process(
        self,
        upload: RawUpload,
        on_progress: ProgressCallback | None = None,
    ) -> IngestionOutcome:
        """Ingest one upload and report how it ended.

        Never raises for a pipeline failure; the failure is carried on the
        returned outcome.  ``on_progress(stage_label, percent)`` receives a
        non-decreasing percentage.
        """
        job = ProcessingJob(upload=upload)
        log = logger.bind(job_id=job.job_id, filename=upload.filename)
        log.info("ingestion_started", size=upload.size)

        try:
            document = await self._run(job, on_progress)
        except Exception as exc:
            failure = self._to_failure(exc, job)
            job.error = exc
            job.advance(JobStage.FAILED)
            await self._report(job, on_progress, "failed", job.percent)
            log.warning(
                "ingestion_failed",
                kind=failure.kind.value,
                stage=failure.failed_stage.value if failure.failed_stage else None,
                error=failure.message,
                records_written=job.records_written,
            )
            return IngestionOutcome(
                job_id=job.job_id,
                filename=upload.filename,
                stage=JobStage.FAILED,
                failure=failure,
                records_written=job.records_written,
                elapsed_seconds=job.elapsed_seconds,
            )
        finally:
            job.cleanup()
            if self._tracker is not None:
                self._tracker.forget(job.job_id)

        log.info(
            "ingestion_complete",
            document_id=document.id,
            records_written=job.records_written,
            elapsed_s=round(job.elapsed_seconds, 2),
        )
        return IngestionOutcome(
            job_id=job.job_id,
            filename=upload.filename,
            stage=JobStage.COMPLETE,
            document=document,
            records_written=job.records_written,
            elapsed_seconds=job.elapsed_seconds,
        )

    async def process_many(self, uploads: list[RawUpload], concurrency: int = 3) -> list[IngestionOutcome]:
        """Process several uploads as isolated jobs, at most *concurrency* at once."""
        semaphore = asyncio.Semaphore(max(1, concurrency))
        results = await throttled_gather([self.process(u) for u in uploads], semaphore)
        return list(results)  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    # Stage flow
    # ------------------------------------------------------------------

    async def _run(self, job: ProcessingJob, on_progress: ProgressCallback | None) -> Document:
        upload = job.upload

        classification = self._classifier.classify(upload.filename)
        self._classifier.check_size(classification, upload.size)
        job.classification = classification
        await self._advance(job, JobStage.CLASSIFIED, on_progress)

        doc_id = content_id(upload.data)
        category = classification.category
        if category is FileCategory.TABULAR:
            return await self._run_tabular(job, doc_id, on_progress)

        if category is FileCategory.TEXT:
            await self._advance(job, JobStage.CONVERTED, on_progress)
            content = self._extractor.extract_text_file(upload.data, upload.filename)
            job.add_step("text_extracted")
        else:
            media_path = self._write_temp(job)
            job.add_step("saved_to_temp")
            await self._advance(job, JobStage.CONVERTED, on_progress)

            duration = await self._converter.probe_duration(media_path)
            job.duration_seconds = duration or None
            if category is FileCategory.AUDIO:
                content = await self._extractor.transcribe_audio(media_path, upload.filename)
                job.add_step("audio_transcribed")
            else:
                content = await self._extractor.transcribe_video(
                    media_path, upload.filename, upload.size, job
                )
                job.add_step("video_transcribed")

        if not content.strip():
            raise TranscriptionError(message=f"No text could be extracted from {upload.filename}")
        job.content = content
        await self._advance(job, JobStage.EXTRACTED, on_progress)

        if len(content) > self._max_embedding_chars:
            job.chunks = self._chunker.chunk(content)
            job.add_step(f"chunked_{len(job.chunks)}")
        else:
            job.chunks = [Chunk(index=0, text=content)]
        await self._advance(job, JobStage.CHUNKED, on_progress)

        job.vectors = await self._embed(job, [c.text for c in job.chunks], on_progress)
        job.add_step("embedded")
        await self._advance(job, JobStage.EMBEDDED, on_progress)

        document = Document(
            id=doc_id,
            filename=upload.filename,
            content=content,
            metadata=GenericMetadata(
                source=category.value,
                original_format=classification.extension,
                processing_steps=list(job.processing_steps),
                duration_seconds=job.duration_seconds,
            ),
        )
        if len(job.chunks) == 1:
            records = [VectorRecord.from_document(document, job.vectors[0], self._content_chars)]
        else:
            count = len(job.chunks)
            records = [
                VectorRecord.from_document(
                    document.with_chunk(chunk.index, count, chunk.text),
                    vector,
                    self._content_chars,
                )
                for chunk, vector in zip(job.chunks, job.vectors, strict=True)
            ]
        await self._store_records(job, records)
        await self._advance(job, JobStage.STORED, on_progress)
        await self._advance(job, JobStage.COMPLETE, on_progress)
        return document

    async def _run_tabular(
        self,
        job: ProcessingJob,
        doc_id: str,
        on_progress: ProgressCallback | None,
    ) -> Document:
        upload = job.upload
        text = upload.data.decode("utf-8", errors="replace")
        await self._advance(job, JobStage.CONVERTED, on_progress)

        headers, rows = read_csv(text)
        processor = next((p for p in self._tabular if p.accepts(upload.filename, headers)), None)
        if processor is None:
            raise UnsupportedFormatError(message=f"No importer recognises the columns of {upload.filename}")
        documents = processor.process(rows, upload.filename, doc_id)
        if not documents:
            raise TranscriptionError(
                message=f"{upload.filename} has no importable rows",
                provider_name=processor.kind,
            )
        job.add_step(f"{processor.kind}_csv_import")
        await self._advance(job, JobStage.EXTRACTED, on_progress)

        # Each record is embedded whole; the scheduler truncates oversized ones.
        job.chunks = [Chunk(index=i, text=d.content) for i, d in enumerate(documents)]
        await self._advance(job, JobStage.CHUNKED, on_progress)

        job.vectors = await self._embed(job, [c.text for c in job.chunks], on_progress)
        await self._advance(job, JobStage.EMBEDDED, on_progress)

        records = [
            VectorRecord.from_document(d, v, self._content_chars)
            for d, v in zip(documents, job.vectors, strict=True)
        ]
        await self._store_records(job, records)
        await self._advance(job, JobStage.STORED, on_progress)

        summary = Document(
            id=f"{processor.kind}-batch-{doc_id}",
            filename=upload.filename,
            content=f"Processed {len(documents)} {processor.kind} records from CSV",
            metadata=GenericMetadata(
                source=processor.kind,
                original_format="csv",
                processing_steps=[f"{processor.kind}_csv_import", f"processed_{len(documents)}_records"],
            ),
        )
        await self._advance(job, JobStage.COMPLETE, on_progress)
        return summary

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _write_temp(self, job: ProcessingJob) -> Path:
        self._temp_dir.mkdir(parents=True, exist_ok=True)
        name = f"{int(time.time() * 1000)}-{job.job_id[:8]}-{safe_filename(job.upload.filename)}"
        path = job.register_temp(self._temp_dir / name)
        path.write_bytes(job.upload.data)
        return path

    async def _embed(
        self,
        job: ProcessingJob,
        texts: list[str],
        on_progress: ProgressCallback | None,
    ) -> list[list[float]]:
        start = _STAGE_PERCENT[JobStage.CHUNKED]
        span = _STAGE_PERCENT[JobStage.EMBEDDED] - start

        async def _on_batch(done: int, total: int) -> None:
            await self._report(job, on_progress, "embedding", start + span * done / total)

        return await self._scheduler.embed_all(texts, on_batch_done=_on_batch)

    async def _store_records(self, job: ProcessingJob, records: list[VectorRecord]) -> None:
        await self._ensure_index()
        for record in records:
            await self._store.upsert(record)
            job.records_written += 1
        job.add_step("stored")

    async def _ensure_index(self) -> None:
        if self._index_ready:
            return
        async with self._index_lock:
            if not self._index_ready:
                await self._store.ensure_index(self._scheduler.dimension, self._metric)
                self._index_ready = True

    async def _advance(
        self,
        job: ProcessingJob,
        stage: JobStage,
        on_progress: ProgressCallback | None,
    ) -> None:
        job.advance(stage)
        await self._report(job, on_progress, stage.value, _STAGE_PERCENT[stage])

    async def _report(
        self,
        job: ProcessingJob,
        on_progress: ProgressCallback | None,
        label: str,
        percent: float,
    ) -> None:
        job.percent = max(job.percent, percent)
        if self._tracker is not None:
            await self._tracker.update(job.job_id, label, job.percent)
        if on_progress is None:
            return
        try:
            result = on_progress(label, job.percent)
            if isinstance(result, Awaitable):
                await result
        except Exception as exc:
            logger.warning("progress_callback_error", job_id=job.job_id, error=str(exc))

    @staticmethod
    def _to_failure(exc: Exception, job: ProcessingJob) -> IngestionFailure:
        if isinstance(exc, RagLoaderError):
            return IngestionFailure(
                kind=exc.kind,
                message=exc.message,
                provider_name=exc.provider_name,
                failed_stage=job.last_stage,
            )
        logger.exception("ingestion_internal_error", job_id=job.job_id)
        return IngestionFailure(
            kind=ErrorKind.INTERNAL,
            message=f"{type(exc).__name__}: {exc}",
            failed_stage=job.last_stage,
        )
