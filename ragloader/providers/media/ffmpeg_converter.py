"""ffmpeg / ffprobe media conversion backend.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# Three operations, each one external process:
#   extract_audio   video → stereo 48 kHz 192 kbps MP3   (ffmpeg)
#   probe_duration  container duration in seconds        (ffprobe)
#   segment         stream-copy cuts of W minutes each   (ffmpeg)
#
# Tool detection happens at call time, not at init, so a host without
# ffmpeg can still ingest text and audio; only video uploads fail, with
# ConversionError(tool_missing=True) and an install hint.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import math
import shutil
from pathlib import Path

import structlog

from ragloader.interfaces.media_converter import IMediaConverter
from ragloader.models.ingestion import MediaSegment
from ragloader.utils.errors import ConversionError

logger = structlog.get_logger(logger_name=__name__)

_INSTALL_HINT = "Install via: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)"
_STDERR_TAIL = 500


class FFmpegMediaConverter(IMediaConverter):
    """Media converter that shells out to ``ffmpeg`` and ``ffprobe``.

    Parameters
    ----------
    ffmpeg_bin / ffprobe_bin:
        Executable names or absolute paths.
    """

    def __init__(self, ffmpeg_bin: str = "ffmpeg", ffprobe_bin: str = "ffprobe") -> None:
        self._ffmpeg = ffmpeg_bin
        self._ffprobe = ffprobe_bin

    async def extract_audio(self, video_path: Path) -> Path:
        video_path = Path(video_path)
        output_path = video_path.with_suffix(".mp3")
        returncode, _, stderr = await self._run(
            self._ffmpeg,
            "-i", str(video_path),
            "-vn",
            "-acodec", "libmp3lame",
            "-ac", "2",
            "-ab", "192k",
            "-ar", "48000",
            str(output_path),
            "-y",
        )
        if returncode != 0 or not output_path.exists():
            output_path.unlink(missing_ok=True)
            raise ConversionError(
                message=f"Audio extraction failed for {video_path.name}: {stderr[-_STDERR_TAIL:]}",
                provider_name="ffmpeg",
            )

        logger.info("audio_extracted", source=video_path.name, output=output_path.name)
        return output_path

    async def probe_duration(self, path: Path) -> float:
        try:
            returncode, stdout, stderr = await self._run(
                self._ffprobe,
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                str(path),
            )
        except ConversionError as exc:
            logger.warning("duration_probe_failed", path=str(path), error=str(exc))
            return 0.0

        if returncode != 0:
            logger.warning("duration_probe_failed", path=str(path), error=stderr[-_STDERR_TAIL:])
            return 0.0
        try:
            duration = float(stdout.strip())
        except ValueError:
            logger.warning("duration_probe_unparsable", path=str(path), output=stdout[:100])
            return 0.0
        if not math.isfinite(duration) or duration < 0:
            return 0.0
        return duration

    async def segment(self, video_path: Path, window_minutes: int) -> list[MediaSegment]:
        """Cut *video_path* into ``ceil(duration / window)`` stream-copied parts."""
        video_path = Path(video_path)
        if window_minutes <= 0:
            raise ConversionError(
                message=f"Segment window must be positive, got {window_minutes}",
                provider_name="ffmpeg",
            )

        duration = await self.probe_duration(video_path)
        if duration <= 0:
            raise ConversionError(
                message=f"Could not determine duration of {video_path.name}; refusing to segment",
                provider_name="ffprobe",
            )

        window = window_minutes * 60
        count = math.ceil(duration / window)
        segments: list[MediaSegment] = []
        try:
            for i in range(count):
                start = i * window
                out = video_path.with_name(f"{video_path.stem}_segment_{i + 1}{video_path.suffix}")
                returncode, _, stderr = await self._run(
                    self._ffmpeg,
                    "-i", str(video_path),
                    "-ss", str(start),
                    "-t", str(window),
                    "-c", "copy",
                    str(out),
                    "-y",
                )
                if returncode != 0 or not out.exists():
                    out.unlink(missing_ok=True)
                    raise ConversionError(
                        message=(
                            f"Segment {i + 1}/{count} of {video_path.name} failed: "
                            f"{stderr[-_STDERR_TAIL:]}"
                        ),
                        provider_name="ffmpeg",
                    )
                segments.append(
                    MediaSegment(
                        index=i,
                        path=str(out),
                        start_seconds=float(start),
                        duration_seconds=float(min(window, duration - start)),
                    )
                )
        except BaseException:
            for seg in segments:
                Path(seg.path).unlink(missing_ok=True)
            logger.warning("segmentation_rolled_back", source=video_path.name, removed=len(segments))
            raise

        logger.info(
            "video_segmented",
            source=video_path.name,
            duration=duration,
            segments=count,
            window_minutes=window_minutes,
        )
        return segments

    def is_available(self) -> bool:
        return bool(shutil.which(self._ffmpeg) and shutil.which(self._ffprobe))

    async def _run(self, binary: str, *args: str) -> tuple[int, str, str]:
        """Run *binary* with *args*; returns ``(returncode, stdout, stderr)``."""
        if not shutil.which(binary):
            raise ConversionError(
                message=f"{binary} not installed. {_INSTALL_HINT}",
                provider_name=binary,
                tool_missing=True,
            )
        proc = await asyncio.create_subprocess_exec(
            binary, *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        return (
            proc.returncode if proc.returncode is not None else -1,
            stdout.decode(errors="replace"),
            stderr.decode(errors="replace"),
        )
