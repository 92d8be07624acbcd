"""Indexer settings served by the WordPress plugin.

The settings document is fetched once per run and then treated as
immutable.  The WordPress plugin serves snake_case keys; the camelCase
spellings and the older ``pinecone_index_*`` names are accepted as
aliases.  Values are coerced the way a form-backed options page needs
(``"500"`` becomes ``500``, ``"1"`` becomes ``True``).
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from wp_indexer.models.vector import SUPPORTED_SCHEMA_VERSIONS

MIN_CHUNK_SIZE = 100
MAX_CHUNK_SIZE = 10000
MAX_EMBEDDING_DIMENSION = 10000

DEFAULT_BATCH_SIZE = 500

# Fields a settings document must provide.
REQUIRED_FIELDS: tuple[str, ...] = (
    "schema_version",
    "post_types",
    "embedding_model",
    "embedding_dimension",
    "chunk_size",
    "chunk_overlap",
    "vector_index_host",
    "vector_index_name",
)


class IndexerSettings(BaseModel):
    """Validated, type-coerced indexer settings for one run."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    schema_version: int = Field(validation_alias=AliasChoices("schema_version", "schemaVersion"))
    post_types: list[str] = Field(validation_alias=AliasChoices("post_types", "postTypes"))
    post_types_exclude: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("post_types_exclude", "postTypesExclude"),
    )
    auto_discover: bool = Field(
        default=False, validation_alias=AliasChoices("auto_discover", "autoDiscover")
    )
    clean_deleted: bool = Field(
        default=False, validation_alias=AliasChoices("clean_deleted", "cleanDeleted")
    )
    embedding_model: str = Field(
        min_length=1, validation_alias=AliasChoices("embedding_model", "embeddingModel")
    )
    embedding_dimension: int = Field(
        ge=1,
        le=MAX_EMBEDDING_DIMENSION,
        validation_alias=AliasChoices("embedding_dimension", "embeddingDimension"),
    )
    chunk_size: int = Field(
        ge=MIN_CHUNK_SIZE,
        le=MAX_CHUNK_SIZE,
        validation_alias=AliasChoices("chunk_size", "chunkSize"),
    )
    chunk_overlap: int = Field(ge=0, validation_alias=AliasChoices("chunk_overlap", "chunkOverlap"))
    vector_index_host: str = Field(
        validation_alias=AliasChoices(
            "vector_index_host", "vectorIndexHost", "pinecone_index_host"
        ),
    )
    vector_index_name: str = Field(
        min_length=1,
        validation_alias=AliasChoices(
            "vector_index_name", "vectorIndexName", "pinecone_index_name"
        ),
    )
    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        ge=1,
        le=2048,
        validation_alias=AliasChoices("batch_size", "batchSize"),
    )
    domain: str = ""

    @field_validator("post_types", "post_types_exclude", mode="before")
    @classmethod
    def _coerce_type_list(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple)):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    @field_validator("schema_version")
    @classmethod
    def _check_schema_version(cls, value: int) -> int:
        if value not in SUPPORTED_SCHEMA_VERSIONS:
            raise ValueError(
                f"unsupported schema version {value}; "
                f"supported: {sorted(SUPPORTED_SCHEMA_VERSIONS)}"
            )
        return value

    @model_validator(mode="after")
    def _check_overlap(self) -> IndexerSettings:
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self
