"""Abstract base class for media conversion backends.

The pipeline only needs three media operations: pull the audio track out
of a video, probe a file's duration, and cut a long video into fixed-length
parts.  Keeping them behind this interface lets the external-process
implementation be replaced by an in-process codec library without touching
the orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from ragloader.models.ingestion import MediaSegment


# Concrete implementation: FFmpegMediaConverter (ragloader/providers/media/)
class IMediaConverter(ABC):
    """Contract for media conversion backends."""

    @abstractmethod
    async def extract_audio(self, video_path: Path) -> Path:
        """Write the audio track of *video_path* to a new file and return its path.

        Raises
        ------
        ragloader.utils.errors.ConversionError
            With ``tool_missing=True`` when the conversion tool is not
            installed, otherwise when the conversion itself fails.
        """

    @abstractmethod
    async def probe_duration(self, path: Path) -> float:
        """Return the media duration in seconds, or ``0.0`` when unknown.

        ``0.0`` means the probe failed, not that the media is empty.
        """

    @abstractmethod
    async def segment(self, video_path: Path, window_minutes: int) -> list[MediaSegment]:
        """Cut *video_path* into consecutive parts of at most *window_minutes*.

        Returns segments ordered by start time.  If any cut fails, every
        segment file created so far is removed before the error propagates.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the conversion tools are installed."""
