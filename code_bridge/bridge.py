"""
Merge entry points.

Dispatches a merge request to the merger registered for its notation.
The set of notations is closed: anything else raises UnsupportedNotation.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .config import MergeConfig, Notation, notation_for_path, resolve_notation
from .merger import (
    CSSRuleMerger,
    HTMLPassthroughMerger,
    MergeResult,
    NotationMerger,
    PythonClassMerger,
    RustFunctionMerger,
    TypeScriptClassMerger,
    UnsupportedNotation,
)

logger = logging.getLogger(__name__)

MERGERS: dict[Notation, type[NotationMerger]] = {
    Notation.STRUCTURAL_CLASS: TypeScriptClassMerger,
    Notation.PYTHON_CLASS: PythonClassMerger,
    Notation.FUNCTION_UNIT: RustFunctionMerger,
    Notation.STYLE_RULE: CSSRuleMerger,
    Notation.MARKUP_PASSTHROUGH: HTMLPassthroughMerger,
}


def get_merger(notation: Notation | str, config: MergeConfig | None = None) -> NotationMerger:
    """Instantiate the merger for a notation tag or file-type alias.

    Raises:
        UnsupportedNotation: If the tag is not one of the supported notations
    """
    resolved = resolve_notation(notation)
    if resolved is None:
        raise UnsupportedNotation(notation)
    return MERGERS[resolved](config)


def merge_with_report(original_text: str, snippet_text: str, notation: Notation | str, config: MergeConfig | None = None) -> MergeResult:
    """Merge a snippet into an original document.

    Args:
        original_text: The complete original document
        snippet_text: Partial code, possibly carrying directive comments
        notation: Notation tag (or file-type alias) of both documents
        config: Merge options

    Returns:
        MergeResult with the merged text and the warnings collected

    Raises:
        UnsupportedNotation: If no merger exists for the notation
        ParseError: If either document cannot be parsed
        CodeMergeError: If the merged document fails validation
    """
    merger = get_merger(notation, config)
    logger.info("Merging %d-character snippet as %s", len(snippet_text), merger.notation.value)
    return merger.merge_documents(original_text, snippet_text)


def merge(original_text: str, snippet_text: str, notation: Notation | str, config: MergeConfig | None = None) -> str:
    """Merge a snippet into an original document and return the merged text."""
    return merge_with_report(original_text, snippet_text, notation, config).text


class CodeBridge:
    """Object-style entry point bound to a merge configuration."""

    def __init__(self, config: MergeConfig | None = None):
        self.config = config or MergeConfig()

    def process(self, original: str, snippet: str, file_type: Notation | str) -> str:
        """Merge snippet into original; file_type is a notation tag or a file type like "ts"."""
        return merge(original, snippet, file_type, self.config)

    def process_file(self, path: str | Path, snippet: str) -> MergeResult:
        """Merge snippet into the file at path, choosing the notation from its suffix."""
        notation = notation_for_path(path)
        if notation is None:
            raise UnsupportedNotation(Path(path).suffix)
        with open(path, encoding="utf-8") as f:
            original = f.read()
        return merge_with_report(original, snippet, notation, self.config)
