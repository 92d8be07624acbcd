"""WordPress REST API content fetcher.

Pages through ``/wp-json/wp/v2/{post_type}`` for every configured post
type and yields normalized :class:`Document` objects.  Page 1 of each
post type reveals the page count (``X-WP-TotalPages``); the remaining
pages are fetched concurrently through :func:`run_bounded` and yielded in
page order.

Status handling follows WordPress semantics: 400 and 404 mean "no more
data" (WordPress answers 400 for a page past the end), anything else is
logged and ends that post type without touching documents already
yielded.  Such post types are recorded in ``incomplete_post_types``, and
:meth:`WordPressContentFetcher.live_document_ids` refuses to return a
partial set.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, AsyncIterator

import httpx

from wp_indexer.models.document import Document
from wp_indexer.utils.concurrency import run_bounded
from wp_indexer.utils.errors import ContentSourceError, PermanentError
from wp_indexer.utils.logging import get_logger
from wp_indexer.utils.text_normalizer import strip_html

if TYPE_CHECKING:
    from wp_indexer.models.settings import IndexerSettings

_PER_PAGE = 100
_PAGE_CONCURRENCY = 3
_END_OF_DATA_STATUSES = frozenset({400, 404})

# Built-in post types that are never content, even when discoverable.
SYSTEM_POST_TYPES = frozenset(
    {
        "attachment",
        "revision",
        "nav_menu_item",
        "custom_css",
        "customize_changeset",
        "oembed_cache",
        "user_request",
        "wp_block",
        "wp_template",
        "wp_template_part",
        "wp_navigation",
        "wp_global_styles",
        "wp_font_family",
        "wp_font_face",
    }
)


class WordPressContentFetcher:
    """Retrieves published documents from one WordPress site.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``; carries auth, headers and timeout.
    api_base:
        Site root, e.g. ``https://example.com`` (no trailing slash).
    settings:
        Indexer settings for the run (post types, auto-discovery).
    modified_after:
        When set, only documents modified after this instant are fetched.
    page_concurrency:
        Maximum concurrent page requests per post type.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_base: str,
        settings: IndexerSettings,
        modified_after: datetime | None = None,
        page_concurrency: int = _PAGE_CONCURRENCY,
    ) -> None:
        self._http = http_client
        self._api_base = api_base.rstrip("/")
        self._settings = settings
        self._modified_after = modified_after
        self._page_concurrency = page_concurrency
        self._incomplete_post_types: list[str] = []
        self._logger = get_logger(__name__)

    @property
    def incomplete_post_types(self) -> list[str]:
        """Post types the last :meth:`fetch_all` could not read to the end."""
        return list(self._incomplete_post_types)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_all(self) -> AsyncIterator[Document]:
        """Yield every publishable document, post type by post type.

        Each call performs fresh requests; the iterator is not restartable.
        """
        self._incomplete_post_types = []
        for post_type in await self.resolve_post_types():
            async for document in self._fetch_post_type(post_type):
                yield document

    async def live_document_ids(self) -> set[int]:
        """Drain :meth:`fetch_all` into the set of current document ids.

        Raises
        ------
        ContentSourceError
            If any post type stopped on an error other than end of data;
            a partial set would make existing documents look deleted.
        """
        live_ids = {document.id async for document in self.fetch_all()}
        if self._incomplete_post_types:
            raise ContentSourceError(
                message=(
                    "Live document set is incomplete; failed post types: "
                    + ", ".join(self._incomplete_post_types)
                ),
            )
        return live_ids

    async def resolve_post_types(self) -> list[str]:
        """Configured post types, plus discovered ones, minus exclusions.

        Order follows configuration, then discovery; duplicates are dropped.
        """
        candidates = list(self._settings.post_types)
        if self._settings.auto_discover:
            candidates.extend(await self.discover_post_types())

        excluded = set(self._settings.post_types_exclude)
        resolved: list[str] = []
        for post_type in candidates:
            if post_type in excluded or post_type in resolved:
                continue
            resolved.append(post_type)

        self._logger.info("post_types_resolved", post_types=resolved)
        return resolved

    async def discover_post_types(self) -> list[str]:
        """Ask WordPress for viewable, REST-enabled post types.

        Returns REST bases (``posts`` for ``post``).  Failures are logged and
        yield an empty list so a run can proceed with configured types.
        """
        url = f"{self._api_base}/wp-json/wp/v2/types"
        try:
            response = await self._http.get(url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.warning("post_type_discovery_failed", url=url, error=str(exc))
            return []

        if not isinstance(payload, dict):
            self._logger.warning("post_type_discovery_unexpected_payload", url=url)
            return []

        excluded = set(self._settings.post_types_exclude)
        discovered: list[str] = []
        for slug, info in payload.items():
            if not isinstance(info, dict) or slug in SYSTEM_POST_TYPES or slug in excluded:
                continue
            if not info.get("viewable") or not info.get("show_in_rest", True):
                continue
            discovered.append(info.get("rest_base") or slug)

        self._logger.info("post_types_discovered", post_types=discovered)
        return discovered

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    async def _fetch_post_type(self, post_type: str) -> AsyncIterator[Document]:
        try:
            records, total_pages = await self._fetch_page(post_type, 1)
        except ContentSourceError as exc:
            if exc.status_code in _END_OF_DATA_STATUSES:
                self._logger.info(
                    "post_type_unavailable", post_type=post_type, status=exc.status_code
                )
            else:
                self._incomplete_post_types.append(post_type)
                self._logger.error("post_type_fetch_failed", post_type=post_type, error=str(exc))
            return

        if not records:
            self._logger.info("post_type_empty", post_type=post_type)
            return

        self._logger.info("post_type_fetch_started", post_type=post_type, total_pages=total_pages)
        for document in self._normalize_records(records, post_type):
            yield document

        if total_pages <= 1:
            return

        pages = list(range(2, total_pages + 1))

        async def _fetch(page: int) -> list[dict[str, Any]]:
            page_records, _ = await self._fetch_page(post_type, page)
            return page_records

        outcomes = await run_bounded(pages, _fetch, self._page_concurrency)
        for page, outcome in zip(pages, outcomes):
            if not outcome.ok:
                status = getattr(outcome.error, "status_code", None)
                if status in _END_OF_DATA_STATUSES:
                    self._logger.debug("post_type_end_of_data", post_type=post_type, page=page)
                else:
                    self._incomplete_post_types.append(post_type)
                    self._logger.error(
                        "post_type_page_failed",
                        post_type=post_type,
                        page=page,
                        error=str(outcome.error),
                    )
                return
            for document in self._normalize_records(outcome.value or [], post_type):
                yield document

    async def _fetch_page(self, post_type: str, page: int) -> tuple[list[dict[str, Any]], int]:
        """GET one page; returns the records and the reported page count."""
        url = f"{self._api_base}/wp-json/wp/v2/{post_type}"
        params: dict[str, Any] = {"page": page, "per_page": _PER_PAGE, "status": "publish"}
        if self._modified_after is not None:
            params["modified_after"] = self._modified_after.isoformat()

        try:
            response = await self._http.get(url, params=params)
        except httpx.HTTPError as exc:
            raise ContentSourceError(
                message=f"Request for {post_type} page {page} failed: {exc}",
            ) from exc

        if response.status_code >= 400:
            raise ContentSourceError(
                message=(
                    f"{post_type} page {page} returned "
                    f"{response.status_code} {response.reason_phrase}"
                ),
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ContentSourceError(
                message=f"{post_type} page {page} returned invalid JSON",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, list):
            raise ContentSourceError(
                message=f"{post_type} page {page} returned a non-list payload",
                status_code=response.status_code,
            )

        total_pages = _int_or(response.headers.get("X-WP-TotalPages"), 1)
        self._logger.debug(
            "page_fetched", post_type=post_type, page=page, records=len(payload)
        )
        return payload, total_pages

    # ------------------------------------------------------------------
    # Record normalization
    # ------------------------------------------------------------------

    def _normalize_records(self, records: list[dict[str, Any]], post_type: str) -> list[Document]:
        documents: list[Document] = []
        for raw in records:
            try:
                document = normalize_record(raw, post_type)
            except PermanentError as exc:
                self._logger.warning("record_skipped", post_type=post_type, error=str(exc))
                continue
            if document is None:
                self._logger.debug("record_empty", post_type=post_type, record_id=raw.get("id"))
                continue
            documents.append(document)
        return documents


def normalize_record(raw: dict[str, Any], post_type: str) -> Document | None:
    """Build a :class:`Document` from one REST API record.

    Returns ``None`` when both title and body are empty after stripping
    markup.  Raises :class:`PermanentError` when the record has no usable id.
    """
    if not isinstance(raw, dict):
        raise PermanentError(message=f"Record is not an object: {raw!r:.80}")
    raw_id = raw.get("id")
    if isinstance(raw_id, bool) or not isinstance(raw_id, int):
        raise PermanentError(message=f"Record has no integer id: {raw_id!r}")

    title = strip_html(_rendered(raw.get("title")))
    body = strip_html(_rendered(raw.get("content")))
    if not title and not body:
        return None

    return Document(
        id=raw_id,
        category=str(raw.get("type") or post_type),
        title=title,
        body=body,
        url=str(raw.get("link") or ""),
        created_at=_parse_datetime(raw.get("date_gmt") or raw.get("date")),
        modified_at=_parse_datetime(raw.get("modified_gmt") or raw.get("modified")),
        author_id=_int_or(raw.get("author"), 0),
        category_ids=_int_tuple(raw.get("categories")),
        tag_ids=_int_tuple(raw.get("tags")),
    )


def _rendered(field: Any) -> str:
    if isinstance(field, dict):
        return str(field.get("rendered") or "")
    return str(field or "")


def _parse_datetime(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _int_or(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _int_tuple(values: Any) -> tuple[int, ...]:
    if not isinstance(values, list):
        return ()
    return tuple(
        value for value in values if isinstance(value, int) and not isinstance(value, bool)
    )
