"""Source-side models: WordPress documents and the chunks derived from them.

A :class:`Document` is produced by the content fetcher after markup has
been stripped.  Its identity within one WordPress site is the pair
``(category, id)``; the vector id scheme uses ``id`` alone, which is
unique across post types in WordPress itself.

A :class:`Chunk` lives only for the duration of one document's
processing.  ``start``/``end`` record the span of the chunk within the
whitespace-normalized document text.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """One published WordPress post of any post type."""

    model_config = ConfigDict(frozen=True)

    id: int
    category: str
    title: str = ""
    body: str = ""
    url: str = ""
    created_at: datetime | None = None
    modified_at: datetime | None = None
    author_id: int = 0
    category_ids: tuple[int, ...] = ()
    tag_ids: tuple[int, ...] = ()

    @property
    def taxonomy_refs(self) -> frozenset[int]:
        return frozenset(self.category_ids) | frozenset(self.tag_ids)

    @property
    def full_text(self) -> str:
        """Title and body joined the way they are chunked and hashed."""
        return f"{self.title}\n\n{self.body}"


class Chunk(BaseModel):
    """A bounded span of a document's normalized text."""

    model_config = ConfigDict(frozen=True)

    text: str
    sequence_index: int = Field(ge=0)
    start: int = Field(default=0, ge=0)
    end: int = Field(default=0, ge=0)


class ChunkStats(BaseModel):
    """Length summary of one document's chunks, logged at debug level."""

    model_config = ConfigDict(frozen=True)

    count: int = 0
    average_length: float = 0.0
    min_length: int = 0
    max_length: int = 0
