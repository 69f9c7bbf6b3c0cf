"""Text extraction for text, audio, and video uploads.

Text files are decoded directly (PDFs go through :class:`PDFProcessor`).
Audio is transcribed by the injected transcription provider.  Video is
reduced to audio first; videos above ``max_file_size`` are cut into
fixed-length segments and each segment is transcribed on its own, so no
single transcription request has to carry the whole file.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from ragloader.config.settings import Settings
from ragloader.interfaces.media_converter import IMediaConverter
from ragloader.interfaces.transcription_provider import ITranscriptionProvider
from ragloader.services.source_processors.pdf_processor import PDFProcessor
from ragloader.utils.errors import TranscriptionError

if TYPE_CHECKING:
    from ragloader.pipeline.job import ProcessingJob

logger = structlog.get_logger(logger_name=__name__)


class TextExtractor:
    """Produces plain text from an upload according to its category.

    Parameters
    ----------
    transcriber:
        Speech-to-text backend for audio and extracted video audio.
    media_converter:
        Audio extraction and segmentation backend for video.
    settings:
        Supplies ``max_file_size`` (segmentation threshold) and
        ``video_segment_minutes``.
    pdf_processor:
        Optional override, mainly for tests.
    """

    def __init__(
        self,
        transcriber: ITranscriptionProvider,
        media_converter: IMediaConverter,
        settings: Settings,
        pdf_processor: PDFProcessor | None = None,
    ) -> None:
        self._transcriber = transcriber
        self._converter = media_converter
        self._segment_threshold = settings.max_file_size
        self._segment_minutes = settings.video_segment_minutes
        self._pdf = pdf_processor or PDFProcessor()

    def extract_text_file(self, data: bytes, filename: str) -> str:
        """Decode a text upload; PDFs are parsed for their text layer."""
        if filename.lower().endswith(".pdf"):
            return self._pdf.extract(data, filename)
        text = data.decode("utf-8", errors="replace")
        logger.debug("text_decoded", filename=filename, chars=len(text))
        return text

    async def transcribe_audio(self, path: Path, filename: str) -> str:
        """Transcribe an audio file; an empty transcript is an error."""
        text = await self._transcriber.transcribe(str(path))
        if not text or not text.strip():
            raise TranscriptionError(
                message=f"Audio transcription produced no text for {filename}",
                provider_name=self._transcriber.get_provider_name(),
            )
        return text.strip()

    async def transcribe_video(self, path: Path, filename: str, size: int, job: ProcessingJob) -> str:
        """Transcribe a video, segmenting it first when it exceeds the threshold.

        Every file this method creates is registered with *job* as soon as
        it exists, so the orchestrator removes it on every exit path.
        Per-segment audio is also deleted right after it is transcribed.
        """
        if size <= self._segment_threshold:
            audio = job.register_temp(await self._converter.extract_audio(path))
            job.add_step("audio_extracted")
            text = await self.transcribe_audio(audio, filename)
            job.add_step("audio_transcribed")
            return text

        segments = await self._converter.segment(path, self._segment_minutes)
        for seg in segments:
            job.register_temp(seg.path)
        job.add_step(f"video_segmented_{len(segments)}_parts")
        logger.info("video_segmented_for_transcription", filename=filename, segments=len(segments))

        pieces: list[str] = []
        total = len(segments)
        for seg in segments:
            audio = job.register_temp(await self._converter.extract_audio(Path(seg.path)))
            try:
                text = await self.transcribe_audio(audio, f"{filename} segment {seg.index + 1}")
            finally:
                audio.unlink(missing_ok=True)
            pieces.append(f"[Segment {seg.index + 1}/{total}]\n{text}")
            logger.debug("segment_transcribed", filename=filename, segment=seg.index + 1, total=total)

        job.add_step("segments_transcribed")
        return "\n\n".join(pieces)
