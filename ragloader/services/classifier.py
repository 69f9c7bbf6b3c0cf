"""Upload classification by filename extension.

Maps an upload's extension onto one of the four content categories and
the size ceiling that applies to it.  Classification never touches the
file content and never calls a remote service.
"""

from __future__ import annotations

import structlog

from ragloader.config.settings import Settings
from ragloader.models.ingestion import Classification, FileCategory
from ragloader.utils.errors import SizeLimitExceededError, UnsupportedFormatError

logger = structlog.get_logger(logger_name=__name__)


def _format_bytes(size: int) -> str:
    return f"{size / (1024 * 1024):.1f} MiB"


class FileClassifier:
    """Classifies uploads into text, tabular, audio, or video.

    The allow-lists come from settings and must be disjoint; an extension
    listed under two categories is a configuration error detected at
    construction time.
    """

    def __init__(self, settings: Settings) -> None:
        self._limits: dict[FileCategory, int] = {
            FileCategory.TEXT: settings.max_file_size,
            FileCategory.TABULAR: settings.max_file_size,
            FileCategory.AUDIO: settings.max_audio_file_size,
            FileCategory.VIDEO: settings.max_video_file_size,
        }
        lists: dict[FileCategory, list[str]] = {
            FileCategory.TEXT: settings.allowed_text_formats,
            FileCategory.TABULAR: settings.allowed_tabular_formats,
            FileCategory.AUDIO: settings.allowed_audio_formats,
            FileCategory.VIDEO: settings.allowed_video_formats,
        }
        self._by_extension: dict[str, FileCategory] = {}
        for category, extensions in lists.items():
            for ext in extensions:
                ext = ext.lower().lstrip(".")
                if ext in self._by_extension:
                    raise ValueError(
                        f"Extension '{ext}' listed for both "
                        f"{self._by_extension[ext].value} and {category.value}"
                    )
                self._by_extension[ext] = category

    def classify(self, filename: str) -> Classification:
        """Return the category and size ceiling for *filename*.

        Raises
        ------
        UnsupportedFormatError
            If the extension is missing or on none of the allow-lists.
        """
        _, dot, ext = filename.rpartition(".")
        ext = ext.lower() if dot else ""
        category = self._by_extension.get(ext)
        if category is None:
            raise UnsupportedFormatError(
                message=(
                    f"Unsupported file type '{ext or filename}'. "
                    f"Supported: {', '.join(self.allowed_extensions())}"
                ),
            )
        return Classification(category=category, extension=ext, max_bytes=self._limits[category])

    def check_size(self, classification: Classification, size: int) -> None:
        """Raise :class:`SizeLimitExceededError` if *size* exceeds the category ceiling."""
        if size > classification.max_bytes:
            logger.info(
                "upload_rejected_size",
                category=classification.category.value,
                size=size,
                limit=classification.max_bytes,
            )
            raise SizeLimitExceededError(
                message=(
                    f"{classification.category.value.capitalize()} file is "
                    f"{_format_bytes(size)}; limit is {_format_bytes(classification.max_bytes)}"
                ),
            )

    def allowed_extensions(self) -> list[str]:
        return sorted(self._by_extension)
