"""ragloader FastAPI application entry point.

Wires together all providers, services, and routes via dependency
injection.  Loads configuration from the environment and ``.env``,
configures structured logging, and builds every component once in the
application lifespan.

Also exposes :func:`build_components` for the CLI and for scripting use
outside the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from ragloader import __version__
from ragloader.api.routes import router as api_router
from ragloader.config.settings import Settings
from ragloader.interfaces.embedding_provider import IEmbeddingProvider
from ragloader.interfaces.media_converter import IMediaConverter
from ragloader.interfaces.transcription_provider import ITranscriptionProvider
from ragloader.interfaces.vector_store_provider import IVectorStoreProvider
from ragloader.pipeline.orchestrator import IngestionPipeline
from ragloader.pipeline.progress_tracker import ProgressTracker
from ragloader.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from ragloader.providers.media.ffmpeg_converter import FFmpegMediaConverter
from ragloader.providers.transcription.whisper_api_provider import WhisperAPIProvider
from ragloader.providers.vector_store.chromadb_provider import ChromaDBProvider
from ragloader.services.chunker import TextChunker
from ragloader.services.classifier import FileClassifier
from ragloader.services.embedding_scheduler import EmbeddingBatchScheduler
from ragloader.services.text_extractor import TextExtractor
from ragloader.utils.errors import ConfigurationError
from ragloader.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component assembly
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    if not app_settings.openai_api_key:
        raise ConfigurationError(
            message="OPENAI_API_KEY is required for embeddings",
            provider_name="openai_embedding",
        )
    return OpenAIEmbeddingProvider(settings=app_settings)


def _build_transcriber(app_settings: Settings) -> ITranscriptionProvider:
    if not app_settings.openai_api_key:
        raise ConfigurationError(
            message="OPENAI_API_KEY is required for transcription",
            provider_name="whisper_api",
        )
    return WhisperAPIProvider(settings=app_settings)


def _build_vector_store(app_settings: Settings) -> IVectorStoreProvider:
    return ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
    )


def _build_media_converter(app_settings: Settings) -> IMediaConverter:
    return FFmpegMediaConverter()


def build_pipeline(
    app_settings: Settings,
    embedding_provider: IEmbeddingProvider,
    transcriber: ITranscriptionProvider,
    vector_store: IVectorStoreProvider,
    media_converter: IMediaConverter,
    progress_tracker: ProgressTracker | None = None,
) -> IngestionPipeline:
    """Assemble an :class:`IngestionPipeline` around the given providers."""
    scheduler = EmbeddingBatchScheduler(
        provider=embedding_provider,
        batch_size=app_settings.embedding_batch_size,
        max_input_chars=app_settings.max_embedding_chars,
        expected_dimension=app_settings.embedding_dimension,
        cross_batch_overlap=app_settings.embedding_cross_batch_overlap,
    )
    return IngestionPipeline(
        classifier=FileClassifier(app_settings),
        extractor=TextExtractor(transcriber, media_converter, app_settings),
        chunker=TextChunker(
            chunk_size=app_settings.chunk_size,
            overlap=app_settings.chunk_overlap,
            max_chunk_size=app_settings.max_embedding_chars,
        ),
        scheduler=scheduler,
        vector_store=vector_store,
        media_converter=media_converter,
        settings=app_settings,
        progress_tracker=progress_tracker,
    )


def build_components(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    embedding_provider = _build_embedding_provider(app_settings)
    transcriber = _build_transcriber(app_settings)
    vector_store = _build_vector_store(app_settings)
    media_converter = _build_media_converter(app_settings)
    progress_tracker = ProgressTracker()

    pipeline = build_pipeline(
        app_settings,
        embedding_provider=embedding_provider,
        transcriber=transcriber,
        vector_store=vector_store,
        media_converter=media_converter,
        progress_tracker=progress_tracker,
    )

    if not media_converter.is_available():
        _logger.warning("ffmpeg_unavailable", msg="Video uploads will fail until ffmpeg is installed.")

    return {
        "settings": app_settings,
        "embedding_provider": embedding_provider,
        "transcriber": transcriber,
        "vector_store": vector_store,
        "media_converter": media_converter,
        "progress_tracker": progress_tracker,
        "pipeline": pipeline,
    }


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    *components* replaces :func:`build_components` (used by tests to inject
    in-memory providers).
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        built = components if components is not None else build_components(app_settings)
        for key, value in built.items():
            setattr(application.state, key, value)

        await built["vector_store"].ensure_index(
            app_settings.embedding_dimension, app_settings.vector_metric
        )
        _logger.info(
            "app_startup",
            version=__version__,
            environment=app_settings.app_env,
            embedding=built["embedding_provider"].get_provider_name(),
            vector_store=built["vector_store"].get_provider_name(),
        )
        yield
        _logger.info("app_shutdown")

    application = FastAPI(
        title="ragloader API",
        version=__version__,
        description=(
            "Upload text, PDF, audio, video or CSV files; ragloader extracts their "
            "text, embeds it and stores the vectors for retrieval."
        ),
        lifespan=_lifespan,
    )
    application.include_router(api_router)
    return application


# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "ragloader.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
