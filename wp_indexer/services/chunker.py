"""Deterministic character-window chunking.

Splits a document's text into overlapping windows of at most
``chunk_size`` characters.  Vector ids are derived from chunk positions,
so identical input must always produce identical boundaries: the
splitter is a pure function of ``(text, chunk_size, overlap)``.

Boundary selection, for each window whose naive end falls before the end
of the text, searches the last 20% of the window for:

1. the last sentence end (``.``, ``!`` or ``?`` followed by whitespace),
   cutting just after the punctuation;
2. failing that, the last whitespace character;
3. failing both, the naive end.

The next window starts ``overlap`` characters before the previous end,
but never at or before the previous start.
"""

from __future__ import annotations

import re

import structlog

from wp_indexer.models.document import Chunk, ChunkStats
from wp_indexer.utils.text_normalizer import normalize_whitespace

logger = structlog.get_logger(logger_name=__name__)

_SENTENCE_END_RE = re.compile(r"[.!?]\s")
_WHITESPACE_RE = re.compile(r"\s")

# Fraction of the window, measured back from its naive end, searched for a break.
_BREAK_SEARCH_FRACTION = 0.2


def _find_break_point(text: str, start: int, ideal_end: int, chunk_size: int) -> int:
    search_start = max(start, ideal_end - int(chunk_size * _BREAK_SEARCH_FRACTION))
    region = text[search_start:ideal_end]

    sentence_ends = list(_SENTENCE_END_RE.finditer(region))
    if sentence_ends:
        position = search_start + sentence_ends[-1].start() + 1
        if position > start:
            return position

    spaces = list(_WHITESPACE_RE.finditer(region))
    if spaces:
        position = search_start + spaces[-1].start()
        if position > start:
            return position

    return ideal_end


def split_text(text: str, chunk_size: int, overlap: int) -> list[Chunk]:
    """Split *text* into ordered, overlapping :class:`Chunk` objects.

    Parameters
    ----------
    text:
        Raw text; whitespace is normalized before splitting.
    chunk_size:
        Maximum characters per chunk.
    overlap:
        Characters shared between consecutive windows; must be smaller
        than *chunk_size*.

    Returns
    -------
    list[Chunk]
        Chunks indexed contiguously from 0.  Empty input yields no chunks.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")
    if not 0 <= overlap < chunk_size:
        raise ValueError("overlap must satisfy 0 <= overlap < chunk_size")

    normalized = normalize_whitespace(text)
    length = len(normalized)
    if not normalized:
        return []
    if length <= chunk_size:
        return [Chunk(text=normalized, sequence_index=0, start=0, end=length)]

    chunks: list[Chunk] = []
    start = 0
    while start < length:
        ideal_end = start + chunk_size
        if ideal_end < length:
            end = _find_break_point(normalized, start, ideal_end, chunk_size)
        else:
            end = length

        piece = normalized[start:end].strip()
        if piece:
            chunks.append(
                Chunk(text=piece, sequence_index=len(chunks), start=start, end=end)
            )

        if end >= length:
            break

        next_start = end - overlap
        if next_start <= start:
            next_start = end
        start = next_start

    return chunks


def chunk_stats(chunks: list[Chunk]) -> ChunkStats:
    """Summarize chunk lengths."""
    if not chunks:
        return ChunkStats()
    lengths = [len(chunk.text) for chunk in chunks]
    return ChunkStats(
        count=len(lengths),
        average_length=round(sum(lengths) / len(lengths), 1),
        min_length=min(lengths),
        max_length=max(lengths),
    )


class TextChunker:
    """Holds one run's chunking parameters.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk.
    overlap:
        Characters of overlap between consecutive chunks.
    """

    def __init__(self, chunk_size: int, overlap: int) -> None:
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must satisfy 0 <= overlap < chunk_size")
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    def split(self, text: str) -> list[Chunk]:
        chunks = split_text(text, self._chunk_size, self._overlap)
        if chunks:
            stats = chunk_stats(chunks)
            logger.debug(
                "chunking_complete",
                num_chunks=stats.count,
                avg_length=stats.average_length,
                max_length=stats.max_length,
            )
        return chunks
