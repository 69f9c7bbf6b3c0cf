"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources, in priority order:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. A ``.env`` file in the working directory (local development)

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``; defaults apply
when neither source defines a value.  List fields accept JSON in the
environment, e.g. ``ALLOWED_AUDIO_FORMATS='["mp3","wav"]'``.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

_MIB = 1024 * 1024


class Settings(BaseSettings):
    """ragloader settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === OpenAI (embeddings + Whisper transcription) ===
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_embedding_model: str = "text-embedding-3-large"
    openai_whisper_model: str = "whisper-1"

    # === Vector store ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "ragloader_documents"
    embedding_dimension: int = 1024
    vector_metric: str = "cosine"
    # Characters of document content copied into each vector record.
    metadata_content_chars: int = 1000

    # === Upload policy ===
    max_file_size: int = 100 * _MIB
    max_audio_file_size: int = 200 * _MIB
    max_video_file_size: int = 1024 * _MIB
    allowed_text_formats: list[str] = ["txt", "md", "markdown", "pdf", "json"]
    allowed_tabular_formats: list[str] = ["csv"]
    allowed_audio_formats: list[str] = ["mp3", "wav", "m4a", "ogg", "flac", "aac", "wma"]
    allowed_video_formats: list[str] = ["mp4", "avi", "mov", "mkv", "webm", "flv", "wmv"]
    temp_dir: str = "/tmp/uploads"

    # === Processing ===
    chunk_size: int = 8000
    chunk_overlap: int = 200
    # Per-call text ceiling of the embedding service (characters).
    max_embedding_chars: int = 8000
    embedding_batch_size: int = 5
    embedding_cross_batch_overlap: bool = False
    video_segment_minutes: int = 10
    remote_retry_attempts: int = 3

    # === Tabular imports ===
    default_vendor: str = "Lotus Wei"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
