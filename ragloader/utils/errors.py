"""Custom exception hierarchy for ragloader.

All application exceptions inherit from :class:`RagLoaderError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "ffmpeg", "chromadb") caused the failure,
and a class-level :class:`ErrorKind` used when the orchestrator converts an
exception into a structured :class:`~ragloader.models.ingestion.IngestionFailure`.

The hierarchy follows the ingestion stages:

    RagLoaderError  (base -- catch-all for any ragloader error)
    +-- UnsupportedFormatError   (classification: unknown extension)
    +-- SizeLimitExceededError   (classification: upload above category ceiling)
    +-- ConversionError          (ffmpeg / ffprobe missing or failed)
    +-- TranscriptionError       (empty transcript, unreadable PDF, no rows)
    +-- EmbeddingError           (provider rejection, dimension mismatch)
    +-- StoreError               (index shape mismatch, write rejection)
    +-- PipelineError            (illegal job state transition)
    +-- ConfigurationError       (startup / missing config)
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):  # noqa: UP042
    """Error kinds surfaced to callers of the ingestion pipeline."""

    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    SIZE_LIMIT_EXCEEDED = "SizeLimitExceeded"
    CONVERSION_FAILURE = "ConversionFailure"
    TRANSCRIPTION_FAILURE = "TranscriptionFailure"
    EMBEDDING_FAILURE = "EmbeddingFailure"
    STORE_FAILURE = "StoreFailure"
    PIPELINE_FAILURE = "PipelineFailure"
    CONFIGURATION = "Configuration"
    INTERNAL = "Internal"


class RagLoaderError(Exception):
    """Base exception for all ragloader errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[openai] Rate limit exceeded``.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Classification errors
# ---------------------------------------------------------------------------

class UnsupportedFormatError(RagLoaderError):
    """Raised when an upload's extension is on none of the allow-lists."""

    kind = ErrorKind.UNSUPPORTED_FORMAT

    def __init__(
        self,
        message: str = "Unsupported file format",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SizeLimitExceededError(RagLoaderError):
    """Raised when an upload is larger than its category's size ceiling."""

    kind = ErrorKind.SIZE_LIMIT_EXCEEDED

    def __init__(
        self,
        message: str = "File size exceeds the allowed maximum",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Conversion / extraction errors
# ---------------------------------------------------------------------------

class ConversionError(RagLoaderError):
    """Raised when media conversion fails.

    ``tool_missing`` is ``True`` when the conversion binary itself could not
    be found, so callers can show an install hint instead of a generic
    processing failure.
    """

    kind = ErrorKind.CONVERSION_FAILURE

    def __init__(
        self,
        message: str = "Media conversion failed",
        provider_name: str | None = None,
        tool_missing: bool = False,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._tool_missing = tool_missing

    @property
    def tool_missing(self) -> bool:
        return self._tool_missing


class TranscriptionError(RagLoaderError):
    """Raised when no text could be produced from an upload.

    Covers empty or failed audio transcription, PDFs with no extractable
    text, and tabular files with no importable rows.
    """

    kind = ErrorKind.TRANSCRIPTION_FAILURE

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding / vector-store errors
# ---------------------------------------------------------------------------

class EmbeddingError(RagLoaderError):
    """Raised when the embedding provider rejects input or returns bad vectors."""

    kind = ErrorKind.EMBEDDING_FAILURE

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoreError(RagLoaderError):
    """Raised when a vector-store operation fails."""

    kind = ErrorKind.STORE_FAILURE

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class PipelineError(RagLoaderError):
    """Raised when pipeline orchestration fails (invalid state transition, etc.)."""

    kind = ErrorKind.PIPELINE_FAILURE

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(RagLoaderError):
    """Raised when configuration is invalid or missing at startup."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
