"""Text normalization for WordPress content.

Three concerns, applied in this order by the content fetcher:

1. **Markup stripping** -- rendered post HTML is parsed with BeautifulSoup
   and reduced to its visible text.  Script and style blocks are dropped
   entirely; block-level tags become word boundaries so that
   ``<p>One</p><p>Two</p>`` does not fuse into ``OneTwo``.

2. **Entity decoding** -- BeautifulSoup decodes entities while parsing;
   a second :func:`html.unescape` pass catches double-encoded entities
   that WordPress sometimes emits in titles (``&amp;#8217;``).

3. **Whitespace collapsing** -- runs of any whitespace become one space
   and the ends are trimmed.  The chunker relies on this form.
"""

import hashlib
import html
import re

from bs4 import BeautifulSoup

_WHITESPACE_RE = re.compile(r"\s+")

_INVISIBLE_TAGS = ("script", "style", "noscript", "template")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_html(markup: str | None) -> str:
    """Return the visible text of an HTML fragment, whitespace-normalized.

    Args:
        markup: Rendered HTML (may be ``None`` or empty).

    Returns:
        Plain text with entities decoded and whitespace collapsed.
    """
    if not markup:
        return ""

    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup(_INVISIBLE_TAGS):
        tag.decompose()

    text = soup.get_text(separator=" ")
    return normalize_whitespace(html.unescape(text))


def content_hash(text: str) -> str:
    """SHA-256 hex digest of *text*, used for change detection in metadata."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
