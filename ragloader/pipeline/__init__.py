"""Ingestion pipeline orchestration: job state, progress and the orchestrator."""

from ragloader.pipeline.job import ProcessingJob
from ragloader.pipeline.orchestrator import IngestionPipeline, content_id
from ragloader.pipeline.progress_tracker import ProgressTracker

__all__ = ["IngestionPipeline", "ProcessingJob", "ProgressTracker", "content_id"]
