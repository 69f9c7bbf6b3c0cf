"""OpenAI Whisper API transcription provider.

# ─── CLOUD TRANSCRIPTION ────────────────────────────────────────────
#
# Audio uploads and the audio tracks extracted from videos are sent to
# the Whisper API as-is.  Long videos are cut into ten-minute segments
# before extraction, which keeps each request under the 25 MB limit.
#
# Supported formats: mp3, wav, m4a, ogg, flac.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path

import openai
import structlog

from ragloader.config.settings import Settings
from ragloader.interfaces.transcription_provider import ITranscriptionProvider
from ragloader.utils.errors import ConfigurationError, TranscriptionError
from ragloader.utils.retry import call_with_retry

logger = structlog.get_logger(logger_name=__name__)

_MIME_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
}
_DEFAULT_MIME = "audio/mpeg"


def mime_type_for(path: str | Path) -> str:
    """Return the MIME type sent with an audio file, defaulting to ``audio/mpeg``."""
    return _MIME_TYPES.get(Path(path).suffix.lower(), _DEFAULT_MIME)


class WhisperAPIProvider(ITranscriptionProvider):
    """Transcription via the OpenAI Whisper API.

    Parameters
    ----------
    settings:
        Supplies the API key, optional base URL, the Whisper model name and
        the retry budget for transient API errors.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_whisper_model
        self._attempts = settings.remote_retry_attempts

        self._base_url = settings.openai_base_url
        self._client: openai.AsyncOpenAI | None = None

    async def transcribe(self, audio_path: str, mime_hint: str | None = None) -> str:
        """Transcribe audio using the OpenAI Whisper API."""
        audio_file = Path(audio_path)
        if audio_file.suffix.lower() not in _MIME_TYPES:
            raise TranscriptionError(
                message=f"Unsupported audio format for transcription: {audio_file.suffix or '(none)'}",
                provider_name=self.get_provider_name(),
            )

        mime = mime_hint or mime_type_for(audio_file)
        data = audio_file.read_bytes()

        try:
            response = await call_with_retry(
                self._get_client().audio.transcriptions.create,
                attempts=self._attempts,
                operation="transcription",
                model=self._model,
                file=(audio_file.name, data, mime),
                response_format="text",
            )
        except openai.APIError as exc:
            raise TranscriptionError(
                message=f"Whisper API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        # response_format="text" returns a bare string; older SDKs wrap it.
        text = response if isinstance(response, str) else getattr(response, "text", "")
        text = (text or "").strip()
        if not text:
            raise TranscriptionError(
                message=f"Whisper returned an empty transcript for {audio_file.name}",
                provider_name=self.get_provider_name(),
            )

        logger.info(
            "whisper_api_transcription_complete",
            file=audio_file.name,
            mime=mime,
            chars=len(text),
        )
        return text

    def get_provider_name(self) -> str:
        return "whisper_api"

    def is_available(self) -> bool:
        """Available if an API key is set."""
        return bool(self._api_key)

    def supported_formats(self) -> list[str]:
        return list(_MIME_TYPES)

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError(
                    message="OPENAI_API_KEY is required for transcription",
                    provider_name=self.get_provider_name(),
                )
            self._client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url or None)
        return self._client
