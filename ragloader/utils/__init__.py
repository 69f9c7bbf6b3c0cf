"""Utility modules for ragloader.

- **errors** -- exception hierarchy rooted at RagLoaderError; each stage
  raises its own subclass carrying an ErrorKind.
- **logging** -- structlog setup with console output in development and
  JSON in production.
- **concurrency** -- semaphore-throttled gather for bounded remote calls.
- **retry** -- tenacity backoff for transient provider errors.
"""

from ragloader.utils.errors import (
    ConfigurationError,
    ConversionError,
    EmbeddingError,
    ErrorKind,
    PipelineError,
    RagLoaderError,
    SizeLimitExceededError,
    StoreError,
    TranscriptionError,
    UnsupportedFormatError,
)
from ragloader.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "ConversionError",
    "EmbeddingError",
    "ErrorKind",
    "PipelineError",
    "RagLoaderError",
    "SizeLimitExceededError",
    "StoreError",
    "TranscriptionError",
    "UnsupportedFormatError",
    "configure_logging",
    "get_logger",
]
