"""Ingestion services: classification, extraction, chunking and embedding scheduling."""

from ragloader.services.chunker import TextChunker
from ragloader.services.classifier import FileClassifier
from ragloader.services.embedding_scheduler import EmbeddingBatchScheduler
from ragloader.services.text_extractor import TextExtractor

__all__ = ["EmbeddingBatchScheduler", "FileClassifier", "TextChunker", "TextExtractor"]
