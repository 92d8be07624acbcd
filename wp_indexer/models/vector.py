"""Vector-side models and the versioned vector id scheme.

Vector ids are the only identity that survives between runs, and
reconciliation parses them back into document ids.  The format is
therefore owned by a registry keyed on the settings ``schema_version``:
a future schema may register a new scheme without invalidating vectors
written under an older one.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from wp_indexer.utils.errors import SettingsError


class Vector(BaseModel):
    """One embedded chunk as written to the vector store."""

    model_config = ConfigDict(frozen=True)

    id: str
    values: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)


class VectorIdPage(BaseModel):
    """One page of bare vector ids from a list call."""

    model_config = ConfigDict(frozen=True)

    ids: list[str] = Field(default_factory=list)
    next_token: str | None = None


class IndexStats(BaseModel):
    """Summary returned by the store's describe-stats call."""

    model_config = ConfigDict(frozen=True)

    total_vector_count: int = 0
    dimension: int = 0
    namespaces: dict[str, int] = Field(default_factory=dict)


class QueryMatch(BaseModel):
    """A similarity-search hit."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Vector id schemes
# ---------------------------------------------------------------------------

class VectorIdScheme:
    """Formats and parses vector ids for one schema version."""

    def __init__(self, version: int, template: str, pattern: str) -> None:
        self._version = version
        self._template = template
        self._pattern = re.compile(pattern)

    @property
    def version(self) -> int:
        return self._version

    def format(self, document_id: int, chunk_index: int) -> str:
        return self._template.format(document_id=document_id, chunk_index=chunk_index)

    def parse(self, vector_id: str) -> tuple[int, int] | None:
        """Return ``(document_id, chunk_index)``, or ``None`` for a foreign id."""
        match = self._pattern.fullmatch(vector_id)
        if match is None:
            return None
        return int(match.group("document_id")), int(match.group("chunk_index"))

    def document_id(self, vector_id: str) -> int | None:
        parsed = self.parse(vector_id)
        return parsed[0] if parsed is not None else None


_ID_SCHEMES: dict[int, VectorIdScheme] = {
    1: VectorIdScheme(
        version=1,
        template="doc-{document_id}-chunk-{chunk_index}",
        pattern=r"doc-(?P<document_id>\d+)-chunk-(?P<chunk_index>\d+)",
    ),
}

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset(_ID_SCHEMES)


def id_scheme_for(schema_version: int) -> VectorIdScheme:
    """Look up the id scheme registered for *schema_version*."""
    try:
        return _ID_SCHEMES[schema_version]
    except KeyError:
        raise SettingsError(
            f"Unsupported schema version {schema_version}; "
            f"supported: {sorted(SUPPORTED_SCHEMA_VERSIONS)}"
        ) from None
