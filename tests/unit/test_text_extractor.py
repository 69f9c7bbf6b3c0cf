"""Unit tests for TextExtractor dispatch and video segmentation."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ragloader.config.settings import Settings
from ragloader.models.ingestion import RawUpload
from ragloader.pipeline.job import ProcessingJob
from ragloader.services.text_extractor import TextExtractor
from ragloader.utils.errors import TranscriptionError
from tests.conftest import FakeMediaConverter, MockTranscriber

_MIB = 1024 * 1024


def _extractor(
    settings: Settings,
    transcriber: MockTranscriber | None = None,
    converter: FakeMediaConverter | None = None,
) -> TextExtractor:
    return TextExtractor(transcriber or MockTranscriber(), converter or FakeMediaConverter(), settings)


def _video_job(tmp_path: Path) -> tuple[ProcessingJob, Path]:
    path = tmp_path / "talk.mp4"
    path.write_bytes(b"video")
    job = ProcessingJob(upload=RawUpload(filename="talk.mp4", data=b"video"))
    job.register_temp(path)
    return job, path


class TestTextFiles:
    def test_utf8_text_decoded(self, settings: Settings) -> None:
        text = _extractor(settings).extract_text_file("Rosé petals".encode(), "notes.md")

        assert text == "Rosé petals"

    def test_invalid_bytes_replaced(self, settings: Settings) -> None:
        text = _extractor(settings).extract_text_file(b"ok \xff\xfe end", "notes.txt")

        assert text.startswith("ok ")
        assert text.endswith(" end")

    def test_pdf_routed_to_pdf_processor(self, settings: Settings) -> None:
        pdf = MagicMock()
        pdf.extract.return_value = "\n--- Page 1 ---\nhello"
        extractor = TextExtractor(MockTranscriber(), FakeMediaConverter(), settings, pdf_processor=pdf)

        assert extractor.extract_text_file(b"%PDF", "Guide.PDF") == "\n--- Page 1 ---\nhello"
        pdf.extract.assert_called_once_with(b"%PDF", "Guide.PDF")


class TestAudio:
    @pytest.mark.asyncio
    async def test_empty_transcript_rejected(self, settings: Settings, tmp_path: Path) -> None:
        audio = tmp_path / "silence.mp3"
        audio.write_bytes(b"a")

        with pytest.raises(TranscriptionError, match="no text"):
            await _extractor(settings, transcriber=MockTranscriber(empty=True)).transcribe_audio(audio, "silence.mp3")


class TestVideo:
    @pytest.mark.asyncio
    async def test_small_video_transcribed_whole(self, settings: Settings, tmp_path: Path) -> None:
        converter = FakeMediaConverter()
        job, path = _video_job(tmp_path)

        text = await _extractor(settings, converter=converter).transcribe_video(path, "talk.mp4", 10 * _MIB, job)

        assert "[Segment" not in text
        assert converter.segment_calls == []
        assert path.with_suffix(".mp3") in job.temp_paths
        assert "audio_extracted" in job.processing_steps

    @pytest.mark.asyncio
    async def test_large_video_segmented(self, settings: Settings, tmp_path: Path) -> None:
        converter = FakeMediaConverter(duration=1800.0)
        transcriber = MockTranscriber(text="part")
        job, path = _video_job(tmp_path)

        text = await _extractor(settings, transcriber, converter).transcribe_video(
            path, "talk.mp4", settings.max_file_size + 1, job
        )

        pieces = text.split("\n\n")
        assert [p.splitlines()[0] for p in pieces] == ["[Segment 1/3]", "[Segment 2/3]", "[Segment 3/3]"]
        assert converter.segment_calls == [(path, 10)]
        assert len(transcriber.paths) == 3
        # Per-segment audio is removed as soon as it has been transcribed.
        assert not any(Path(p).exists() for p in transcriber.paths)
        assert "video_segmented_3_parts" in job.processing_steps
        assert len(job.temp_paths) == 1 + 3 + 3

    @pytest.mark.asyncio
    async def test_segment_failure_leaves_files_registered(self, settings: Settings, tmp_path: Path) -> None:
        converter = FakeMediaConverter(duration=1200.0)
        job, path = _video_job(tmp_path)

        with pytest.raises(TranscriptionError):
            await _extractor(settings, MockTranscriber(empty=True), converter).transcribe_video(
                path, "talk.mp4", settings.max_file_size + 1, job
            )

        job.cleanup()
        assert list(tmp_path.iterdir()) == []
