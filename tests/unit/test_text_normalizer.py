"""Unit tests for text normalization utilities."""

from __future__ import annotations

import hashlib

from wp_indexer.utils.text_normalizer import content_hash, normalize_whitespace, strip_html


# ======================================================================
# normalize_whitespace
# ======================================================================


class TestNormalizeWhitespace:
    def test_collapses_runs(self) -> None:
        assert normalize_whitespace("a  b\n\nc\t d") == "a b c d"

    def test_trims_ends(self) -> None:
        assert normalize_whitespace("  padded \n") == "padded"

    def test_empty(self) -> None:
        assert normalize_whitespace("") == ""


# ======================================================================
# strip_html
# ======================================================================


class TestStripHtml:
    def test_none_and_empty(self) -> None:
        assert strip_html(None) == ""
        assert strip_html("") == ""

    def test_removes_tags(self) -> None:
        assert strip_html("<p>Hello <strong>world</strong></p>") == "Hello world"

    def test_block_elements_do_not_glue_words(self) -> None:
        assert strip_html("<p>One</p><p>Two</p>") == "One Two"

    def test_decodes_entities(self) -> None:
        html = "<p>Fish &amp; Chips &#8211; &quot;fresh&quot;</p>"
        assert strip_html(html) == 'Fish & Chips \u2013 "fresh"'

    def test_drops_script_and_style(self) -> None:
        markup = "<style>p{color:red}</style><p>Visible</p><script>alert(1)</script>"
        assert strip_html(markup) == "Visible"

    def test_plain_text_passes_through(self) -> None:
        assert strip_html("no markup here") == "no markup here"


# ======================================================================
# content_hash
# ======================================================================


class TestContentHash:
    def test_is_sha256_hex(self) -> None:
        assert content_hash("abc") == hashlib.sha256(b"abc").hexdigest()

    def test_differs_for_different_text(self) -> None:
        assert content_hash("a") != content_hash("b")
