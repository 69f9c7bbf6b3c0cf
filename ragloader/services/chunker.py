"""Sentence-packing text chunker with word-level overlap.

Splits extracted text into :class:`~ragloader.models.ingestion.Chunk`
objects no longer than the embedding service's per-call ceiling.

Sentences (terminated by ``.``, ``!`` or ``?`` followed by whitespace) are
packed greedily into a buffer.  When the next sentence would overflow the
buffer, the buffer is emitted and the next one is seeded with the last
``max(1, overlap // 10)`` words of the emitted chunk, so a concept that
straddles a boundary survives in at least one chunk.

A sentence that alone exceeds the ceiling is hard-split on word boundaries
(character boundaries for a single oversized word), so every chunk this
module returns satisfies ``len(chunk.text) <= size``.
"""

from __future__ import annotations

import re

import structlog

from ragloader.models.ingestion import Chunk

logger = structlog.get_logger(logger_name=__name__)

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class TextChunker:
    """Splits text into bounded, overlapping chunks.

    Parameters
    ----------
    chunk_size:
        Target maximum characters per chunk (default 8000).
    overlap:
        Overlap budget in characters; converted to ``max(1, overlap // 10)``
        words carried into the next chunk.  ``0`` disables overlap.
    max_chunk_size:
        Hard ceiling; the effective size is ``min(chunk_size, max_chunk_size)``.
    """

    def __init__(self, chunk_size: int = 8000, overlap: int = 200, max_chunk_size: int = 8000) -> None:
        if chunk_size <= 0 or max_chunk_size <= 0:
            raise ValueError("chunk_size and max_chunk_size must be positive")
        self._size = min(chunk_size, max_chunk_size)
        self._overlap_words = max(1, overlap // 10) if overlap > 0 else 0

    @property
    def size(self) -> int:
        return self._size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str) -> list[Chunk]:
        """Split *text* into chunks of at most :attr:`size` characters.

        Empty or whitespace-only input returns ``[]``; input that already
        fits returns a single chunk equal to the trimmed text.
        """
        if not text or not text.strip():
            return []

        stripped = text.strip()
        if len(stripped) <= self._size:
            return [Chunk(index=0, text=stripped)]

        units: list[str] = []
        for sentence in self._split_sentences(stripped):
            if len(sentence) > self._size:
                units.extend(self._hard_split(sentence))
            else:
                units.append(sentence)

        chunks = self._pack(units)
        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            input_chars=len(stripped),
            max_chunk_chars=max(len(c.text) for c in chunks),
        )
        return chunks

    # ------------------------------------------------------------------
    # Splitting
    # ------------------------------------------------------------------

    @staticmethod
    def _split_sentences(text: str) -> list[str]:
        """Split on terminal punctuation followed by whitespace; keep the remainder."""
        return [s.strip() for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]

    def _hard_split(self, sentence: str) -> list[str]:
        """Break an oversized sentence into pieces no longer than the ceiling."""
        pieces: list[str] = []
        current = ""
        for word in sentence.split():
            if len(word) > self._size:
                if current:
                    pieces.append(current)
                    current = ""
                pieces.extend(word[i : i + self._size] for i in range(0, len(word), self._size))
                continue
            candidate = f"{current} {word}" if current else word
            if len(candidate) > self._size:
                pieces.append(current)
                current = word
            else:
                current = candidate
        if current:
            pieces.append(current)
        return pieces

    # ------------------------------------------------------------------
    # Packing
    # ------------------------------------------------------------------

    def _pack(self, units: list[str]) -> list[Chunk]:
        chunks: list[Chunk] = []
        buffer = ""
        seed_len = 0  # leading chars of buffer carried over from the previous chunk

        for unit in units:
            candidate = f"{buffer} {unit}" if buffer else unit
            if len(candidate) <= self._size:
                buffer = candidate
                continue

            if len(buffer) > seed_len:
                chunks.append(Chunk(index=len(chunks), text=buffer, overlap_chars=seed_len))
                seed = self._tail_words(buffer)
                # Drop the seed if it cannot share a chunk with the next unit.
                if seed and len(seed) + 1 + len(unit) <= self._size:
                    buffer = f"{seed} {unit}"
                    seed_len = len(seed)
                else:
                    buffer = unit
                    seed_len = 0
            else:
                buffer = unit
                seed_len = 0

        if len(buffer) > seed_len:
            chunks.append(Chunk(index=len(chunks), text=buffer, overlap_chars=seed_len))
        return chunks

    def _tail_words(self, text: str) -> str:
        if self._overlap_words == 0:
            return ""
        return " ".join(text.split()[-self._overlap_words :])
