"""
Tests for the HTML passthrough merger.
"""

from __future__ import annotations

from code_bridge.merger import HTMLPassthroughMerger


class TestHTMLMerge:
    """Tests for HTMLPassthroughMerger."""

    def test_snippet_wins(self):
        result = HTMLPassthroughMerger().merge_documents("<p>old</p>", "<p>new</p>").text
        assert result == "<p>new</p>"

    def test_document_snippet(self):
        snippet = "<!DOCTYPE html>\n<html><head><title>T</title></head><body><p class=x>hi</p></body></html>\n"
        result = HTMLPassthroughMerger().merge_documents("<p>old</p>", snippet).text

        assert result.startswith("<!DOCTYPE html>")
        assert "<title>T</title>" in result
        assert '<p class="x">hi</p>' in result
        assert "old" not in result

    def test_malformed_markup_is_repaired(self):
        result = HTMLPassthroughMerger().merge_documents("", "<ul><li>one<li>two</ul>").text
        assert result == "<ul><li>one</li><li>two</li></ul>"

    def test_empty_snippet_is_identity(self):
        original = "<div>\n  <p>keep</p>\n</div>\n"
        assert HTMLPassthroughMerger().merge_documents(original, "").text == original
