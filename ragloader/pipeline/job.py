"""Per-upload processing job state.

A :class:`ProcessingJob` is the mutable working state of one ingestion run.
It is a plain dataclass, not a pydantic model, because it never leaves the
orchestrator: callers only ever see the frozen
:class:`~ragloader.models.ingestion.IngestionOutcome` built from it.

Stage changes go through :meth:`ProcessingJob.advance`, which enforces the
linear state machine

    UPLOADED → CLASSIFIED → CONVERTED → EXTRACTED → CHUNKED → EMBEDDED →
    STORED → COMPLETE

with FAILED reachable from every non-terminal stage.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ragloader.models.ingestion import Chunk, Classification, JobStage, RawUpload
from ragloader.utils.errors import PipelineError

logger = structlog.get_logger(logger_name=__name__)

_ORDER: list[JobStage] = [
    JobStage.UPLOADED,
    JobStage.CLASSIFIED,
    JobStage.CONVERTED,
    JobStage.EXTRACTED,
    JobStage.CHUNKED,
    JobStage.EMBEDDED,
    JobStage.STORED,
    JobStage.COMPLETE,
]
_TERMINAL = frozenset({JobStage.COMPLETE, JobStage.FAILED})


def _next_stage(stage: JobStage) -> JobStage | None:
    if stage in _TERMINAL:
        return None
    return _ORDER[_ORDER.index(stage) + 1]


@dataclass
class ProcessingJob:
    """Mutable state of a single upload's trip through the pipeline."""

    upload: RawUpload
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    stage: JobStage = JobStage.UPLOADED
    classification: Classification | None = None
    temp_paths: list[Path] = field(default_factory=list)
    processing_steps: list[str] = field(default_factory=list)
    content: str = ""
    duration_seconds: float | None = None
    chunks: list[Chunk] = field(default_factory=list)
    vectors: list[list[float]] = field(default_factory=list)
    records_written: int = 0
    percent: float = 0.0
    error: Exception | None = None
    last_stage: JobStage = JobStage.UPLOADED
    started_at: float = field(default_factory=time.monotonic)

    def advance(self, stage: JobStage) -> None:
        """Move to *stage*; raises :class:`PipelineError` on an illegal transition."""
        if stage is JobStage.FAILED:
            if self.stage in _TERMINAL:
                raise PipelineError(message=f"Job {self.job_id} already ended in {self.stage.value}")
        elif stage is not _next_stage(self.stage):
            raise PipelineError(
                message=f"Illegal transition {self.stage.value} -> {stage.value} for job {self.job_id}"
            )
        if stage is not JobStage.FAILED:
            self.last_stage = stage
        logger.debug("job_stage", job_id=self.job_id, stage=stage.value, previous=self.stage.value)
        self.stage = stage

    def register_temp(self, path: Path | str) -> Path:
        """Record a temp artifact for cleanup; returns it as a :class:`Path`."""
        path = Path(path)
        self.temp_paths.append(path)
        return path

    def add_step(self, step: str) -> None:
        self.processing_steps.append(step)

    def cleanup(self) -> int:
        """Delete registered temp artifacts in registration order, best-effort.

        Returns the number of files removed.  Failures are logged and never
        raised, and the registry is emptied either way.
        """
        removed = 0
        for path in self.temp_paths:
            try:
                if path.exists():
                    path.unlink()
                    removed += 1
            except OSError as exc:
                logger.warning("temp_cleanup_failed", job_id=self.job_id, path=str(path), error=str(exc))
        self.temp_paths.clear()
        if removed:
            logger.debug("temp_cleanup", job_id=self.job_id, removed=removed)
        return removed

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.started_at
