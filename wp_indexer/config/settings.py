"""Environment settings loaded via pydantic-settings.

Field names map to upper-cased environment variables (``wp_api_base`` is
read from ``WP_API_BASE``).  A ``.env`` file in the working directory is
read as a lower-priority source.

These are the operator-controlled knobs: where WordPress lives, API keys,
timeouts and concurrency.  Everything that governs *what* gets indexed
(post types, chunking, embedding model, index identity) comes from the
remote indexer settings document instead -- see
:mod:`wp_indexer.config.loader`.
"""

from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SETTINGS_PATH = "/wp-json/semantic-knowledge/v1/indexer-settings"

# (variable name, is secret)
ENVIRONMENT_VARIABLES: tuple[tuple[str, bool], ...] = (
    ("WP_API_BASE", False),
    ("WP_API_USERNAME", False),
    ("WP_API_PASSWORD", True),
    ("WP_AI_SETTINGS_URL", False),
    ("WP_AI_SETTINGS_FILE", False),
    ("WP_AI_INDEXER_KEY", True),
    ("OPENAI_API_KEY", True),
    ("PINECONE_API_KEY", True),
    ("WP_AI_DEBUG", False),
    ("WP_AI_TIMEOUT_MS", False),
    ("WP_AI_CONCURRENCY", False),
    ("WP_AI_NAMESPACE", False),
    ("WP_AI_EMBEDDING_RPS", False),
    ("WP_AI_VECTOR_STORE_RPS", False),
    ("VECTOR_STORE_BACKEND", False),
    ("CHROMADB_PERSIST_DIR", False),
    ("LOG_LEVEL", False),
    ("APP_ENV", False),
)


class Settings(BaseSettings):
    """Indexer process settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === WordPress ===
    wp_api_base: str = ""
    wp_api_username: str = ""
    wp_api_password: str = ""
    wp_ai_settings_url: str = ""
    wp_ai_settings_file: str = ""  # local YAML/JSON settings document, skips the HTTP fetch
    wp_ai_indexer_key: str = ""

    # === API keys ===
    openai_api_key: str = ""
    pinecone_api_key: str = ""

    # === Run behaviour ===
    wp_ai_debug: bool = False
    wp_ai_timeout_ms: int = Field(default=30000, ge=1000)
    wp_ai_concurrency: int = Field(default=2, ge=1, le=50)
    wp_ai_namespace: str = ""
    wp_ai_embedding_rps: float = Field(default=50.0, gt=0)
    wp_ai_vector_store_rps: float = Field(default=100.0, gt=0)

    # === Vector store backend ===
    vector_store_backend: str = "pinecone"  # "pinecone" | "chromadb"
    chromadb_persist_dir: str = "./data/chromadb"

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    @field_validator("wp_api_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("vector_store_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        backend = value.strip().lower()
        if backend not in ("pinecone", "chromadb"):
            raise ValueError("VECTOR_STORE_BACKEND must be 'pinecone' or 'chromadb'")
        return backend

    @property
    def domain(self) -> str:
        """Hostname of the WordPress site; scopes every vector in the store."""
        return urlparse(self.wp_api_base).hostname or ""

    @property
    def settings_url(self) -> str:
        return self.wp_ai_settings_url or f"{self.wp_api_base}{_SETTINGS_PATH}"

    @property
    def timeout_seconds(self) -> float:
        return self.wp_ai_timeout_ms / 1000.0

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.wp_ai_debug else self.log_level.upper()

    def missing_required(self) -> list[str]:
        """Names of required environment variables that are not set."""
        missing: list[str] = []
        if not self.wp_api_base:
            missing.append("WP_API_BASE")
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if self.vector_store_backend == "pinecone" and not self.pinecone_api_key:
            missing.append("PINECONE_API_KEY")
        return missing
