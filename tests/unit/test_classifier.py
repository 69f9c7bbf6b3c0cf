"""Unit tests for FileClassifier extension mapping and size ceilings."""

from __future__ import annotations

import pytest

from ragloader.config.settings import Settings
from ragloader.models.ingestion import FileCategory
from ragloader.services.classifier import FileClassifier
from ragloader.utils.errors import ErrorKind, SizeLimitExceededError, UnsupportedFormatError

_MIB = 1024 * 1024


@pytest.fixture
def classifier(settings: Settings) -> FileClassifier:
    return FileClassifier(settings)


class TestClassify:
    @pytest.mark.parametrize(
        ("filename", "category"),
        [
            ("notes.txt", FileCategory.TEXT),
            ("README.MD", FileCategory.TEXT),
            ("paper.pdf", FileCategory.TEXT),
            ("products_export.csv", FileCategory.TABULAR),
            ("episode.MP3", FileCategory.AUDIO),
            ("voice.m4a", FileCategory.AUDIO),
            ("talk.mp4", FileCategory.VIDEO),
            ("clip.final.webm", FileCategory.VIDEO),
        ],
    )
    def test_known_extensions(self, classifier: FileClassifier, filename: str, category: FileCategory) -> None:
        result = classifier.classify(filename)

        assert result.category is category
        assert result.extension == filename.rsplit(".", 1)[1].lower()

    def test_size_ceiling_follows_category(self, classifier: FileClassifier) -> None:
        assert classifier.classify("a.txt").max_bytes == 100 * _MIB
        assert classifier.classify("a.csv").max_bytes == 100 * _MIB
        assert classifier.classify("a.wav").max_bytes == 200 * _MIB
        assert classifier.classify("a.mkv").max_bytes == 1024 * _MIB

    def test_unknown_extension_rejected(self, classifier: FileClassifier) -> None:
        with pytest.raises(UnsupportedFormatError) as exc_info:
            classifier.classify("installer.exe")

        assert exc_info.value.kind is ErrorKind.UNSUPPORTED_FORMAT
        assert "exe" in exc_info.value.message
        assert "mp3" in exc_info.value.message

    def test_missing_extension_rejected(self, classifier: FileClassifier) -> None:
        with pytest.raises(UnsupportedFormatError):
            classifier.classify("Makefile")

    def test_allowed_extensions_sorted(self, classifier: FileClassifier) -> None:
        allowed = classifier.allowed_extensions()

        assert allowed == sorted(allowed)
        assert {"txt", "csv", "mp3", "mp4"} <= set(allowed)


class TestCheckSize:
    def test_within_limit_passes(self, classifier: FileClassifier) -> None:
        classification = classifier.classify("a.txt")
        classifier.check_size(classification, classification.max_bytes)

    def test_over_limit_raises(self, classifier: FileClassifier) -> None:
        classification = classifier.classify("a.txt")

        with pytest.raises(SizeLimitExceededError) as exc_info:
            classifier.check_size(classification, classification.max_bytes + 1)

        assert exc_info.value.kind is ErrorKind.SIZE_LIMIT_EXCEEDED


def test_overlapping_allow_lists_rejected() -> None:
    overlapping = Settings(
        _env_file=None,
        allowed_text_formats=["txt", "mp3"],
        allowed_audio_formats=["mp3"],
    )

    with pytest.raises(ValueError, match="mp3"):
        FileClassifier(overlapping)
