"""Indexer settings loader.

# ─── WHERE SETTINGS COME FROM ──────────────────────────────────────────
#
# The WordPress plugin owns the indexer settings (post types, chunking,
# embedding model, index identity) and serves them as JSON:
#
#   GET {WP_API_BASE}/wp-json/semantic-knowledge/v1/indexer-settings
#   X-WP-Indexer-Key: {WP_AI_INDEXER_KEY}
#
# WP_AI_SETTINGS_URL overrides the URL.  For offline runs,
# WP_AI_SETTINGS_FILE points at a local YAML (or JSON) document with the
# same keys and the HTTP request is skipped.
#
# The document is validated into an IndexerSettings model once per run
# and cached on the loader.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
import yaml
from pydantic import ValidationError

from wp_indexer.config.settings import Settings
from wp_indexer.models.settings import REQUIRED_FIELDS, IndexerSettings
from wp_indexer.utils.errors import SettingsError
from wp_indexer.utils.logging import get_logger

_INDEXER_KEY_HEADER = "X-WP-Indexer-Key"


class SettingsLoader:
    """Fetches, validates and caches the indexer settings for one run.

    Parameters
    ----------
    app_settings:
        Environment settings (URL, credentials, timeout, domain).
    http_client:
        Shared ``httpx.AsyncClient``.  Not needed when a settings file is used.
    """

    def __init__(
        self, app_settings: Settings, http_client: httpx.AsyncClient | None = None
    ) -> None:
        self._app_settings = app_settings
        self._http = http_client
        self._cached: IndexerSettings | None = None
        self._logger = get_logger(__name__)

    @property
    def cached(self) -> IndexerSettings | None:
        return self._cached

    def clear_cache(self) -> None:
        self._cached = None

    async def load(self) -> IndexerSettings:
        """Return the validated settings, fetching them on first use.

        Raises
        ------
        SettingsError
            If the document cannot be retrieved or fails validation.
        """
        if self._cached is not None:
            return self._cached

        if self._app_settings.wp_ai_settings_file:
            document = load_settings_file(self._app_settings.wp_ai_settings_file)
            source = self._app_settings.wp_ai_settings_file
        else:
            document = await self._fetch_remote()
            source = self._app_settings.settings_url

        settings = parse_settings(document, domain=self._app_settings.domain)
        self._cached = settings
        self._logger.info(
            "indexer_settings_loaded",
            source=source,
            schema_version=settings.schema_version,
            post_types=settings.post_types,
            embedding_model=settings.embedding_model,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            index=settings.vector_index_name,
        )
        return settings

    async def _fetch_remote(self) -> dict[str, Any]:
        url = self._app_settings.settings_url
        if self._http is None:
            raise SettingsError(f"No HTTP client available to fetch settings from {url}")

        headers: dict[str, str] = {}
        if self._app_settings.wp_ai_indexer_key:
            headers[_INDEXER_KEY_HEADER] = self._app_settings.wp_ai_indexer_key

        try:
            response = await self._http.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise SettingsError(f"Failed to connect to settings endpoint {url}: {exc}") from exc

        if response.status_code != 200:
            raise SettingsError(
                f"Failed to fetch settings from {url}: "
                f"{response.status_code} {response.reason_phrase}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise SettingsError(f"Settings endpoint {url} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise SettingsError(f"Settings endpoint {url} returned a non-object document")
        return payload


def load_settings_file(path: str) -> dict[str, Any]:
    """Read a settings document from a local YAML or JSON file."""
    settings_path = Path(path)
    if not settings_path.exists():
        raise SettingsError(f"Settings file not found: {path}")
    try:
        with open(settings_path, encoding="utf-8") as f:
            document = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise SettingsError(f"Settings file {path} is not valid YAML/JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise SettingsError(f"Settings file {path} must contain a mapping")
    return document


def parse_settings(document: dict[str, Any], domain: str = "") -> IndexerSettings:
    """Validate a raw settings document into :class:`IndexerSettings`.

    Raises
    ------
    SettingsError
        Listing missing required fields or the first validation failures.
    """
    try:
        return IndexerSettings.model_validate({**document, "domain": domain})
    except ValidationError as exc:
        missing = [
            str(error["loc"][0])
            for error in exc.errors()
            if error["type"] == "missing" and error["loc"]
        ]
        if missing:
            raise SettingsError(
                f"Missing required settings fields: {', '.join(missing)} "
                f"(required: {', '.join(REQUIRED_FIELDS)})"
            ) from exc
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in exc.errors()[:5]
        )
        raise SettingsError(f"Invalid indexer settings: {problems}") from exc
