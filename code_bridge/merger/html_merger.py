"""
HTML passthrough merger.

Markup has no unit model: the snippet document replaces the original. Both
documents still go through html5lib so that the output is well-formed.
"""

from __future__ import annotations

import html5lib

from ..config import Notation
from .base import MergeResult, NotationMerger


class HTMLPassthroughMerger(NotationMerger):
    """Merger for HTML documents; the snippet wins."""

    notation = Notation.MARKUP_PASSTHROUGH
    supported_directives = frozenset()

    def parse(self, code: str):
        # html5lib recovers from any input the way browsers do
        return html5lib.parse(code, treebuilder="etree", namespaceHTMLElements=False)

    def normalize_snippet(self, code: str) -> str:
        return code

    def merge(self, original_code: str, snippet_code: str) -> MergeResult:
        self.parse(original_code)
        if not snippet_code.strip():
            return MergeResult(original_code, self.notation)

        snippet_text = self.normalize_snippet(snippet_code)
        if "<html" in snippet_text.lower():
            document = self.parse(snippet_text)
        else:
            # fragment: keep it a fragment
            document = html5lib.parseFragment(snippet_text, treebuilder="etree", namespaceHTMLElements=False)
        text = html5lib.serialize(document, tree="etree", omit_optional_tags=False, quote_attr_values="always")
        if snippet_text.lstrip().lower().startswith("<!doctype") and not text.lower().startswith("<!doctype"):
            text = "<!DOCTYPE html>" + text
        if snippet_text.endswith("\n") and not text.endswith("\n"):
            text += "\n"
        return MergeResult(text, self.notation)
