"""Abstract base class for audio transcription providers.

Concrete implementations wrap a specific transcription backend behind this
common interface so the text extractor doesn't need to know which backend
is in use.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ITranscriptionProvider(ABC):
    """Contract for audio transcription backends."""

    @abstractmethod
    async def transcribe(self, audio_path: str, mime_hint: str | None = None) -> str:
        """Transcribe an audio file to text.

        Parameters
        ----------
        audio_path:
            Path to the audio file on disk.
        mime_hint:
            Optional MIME type (e.g. ``"audio/mpeg"``).  When omitted the
            provider derives it from the file extension.

        Returns
        -------
        str
            The full transcript.

        Raises
        ------
        ragloader.utils.errors.TranscriptionError
            On an unsupported format, an API failure, or an empty result.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the provider is ready to accept transcription requests."""

    @abstractmethod
    def supported_formats(self) -> list[str]:
        """Return list of supported audio file extensions (e.g. ['.wav', '.mp3'])."""
