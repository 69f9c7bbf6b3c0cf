"""Provider interfaces (ABCs) for the external collaborators of the pipeline."""

from ragloader.interfaces.embedding_provider import IEmbeddingProvider
from ragloader.interfaces.media_converter import IMediaConverter
from ragloader.interfaces.transcription_provider import ITranscriptionProvider
from ragloader.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "IMediaConverter",
    "ITranscriptionProvider",
    "IVectorStoreProvider",
]
