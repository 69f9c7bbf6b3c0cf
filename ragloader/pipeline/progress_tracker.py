"""Ingestion progress tracking with callback-based listener notification.

Tracks the current stage and completion percentage of each job and
broadcasts updates to listener callbacks registered for that job.  The
percentage reported for a job never decreases: an update lower than the
last one is clamped up to it.

Listener errors are logged and skipped, so a broken listener can never
fail an ingestion.  Both sync and async callbacks are supported.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from ragloader.utils.logging import get_logger


@dataclass
class _JobStatus:
    stage: str = "uploaded"
    percent: float = 0.0
    message: str = ""


class ProgressTracker:
    """Tracks and broadcasts per-job progress via callbacks.

    Listeners are keyed by ``job_id`` so concurrent jobs never see each
    other's updates.  A listener is called as
    ``callback(job_id, stage, percent, message)``.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, _JobStatus] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def update(self, job_id: str, stage: str, percent: float, message: str = "") -> float:
        """Record an update, notify listeners, and return the percentage stored."""
        percent = max(0.0, min(100.0, percent))
        previous = self._statuses.get(job_id)
        if previous is not None:
            percent = max(percent, previous.percent)

        self._statuses[job_id] = _JobStatus(stage=stage, percent=percent, message=message)
        self._logger.debug(
            "progress_update",
            job_id=job_id,
            stage=stage,
            percent=round(percent, 1),
            message=message,
        )
        await self._notify_listeners(job_id, stage, percent, message)
        return percent

    def register_listener(self, job_id: str, callback: Callable) -> None:
        listeners = self._listeners.setdefault(job_id, [])
        if callback not in listeners:
            listeners.append(callback)

    def unregister_listener(self, job_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(job_id, [])
        if callback in listeners:
            listeners.remove(callback)

    def get_status(self, job_id: str) -> dict:
        """Return ``{"stage", "percent", "message"}`` for a job (zeroed if unknown)."""
        status = self._statuses.get(job_id, _JobStatus())
        return {"stage": status.stage, "percent": status.percent, "message": status.message}

    def forget(self, job_id: str) -> None:
        """Drop a finished job's status and listeners."""
        self._statuses.pop(job_id, None)
        self._listeners.pop(job_id, None)

    async def _notify_listeners(self, job_id: str, stage: str, percent: float, message: str) -> None:
        for callback in list(self._listeners.get(job_id, [])):
            try:
                result = callback(job_id, stage, percent, message)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    job_id=job_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
