"""Code Bridge

A Python package for merging partial code snippets into existing source
files. Supports TypeScript/JavaScript and Python classes, Rust functions,
CSS rules and HTML documents, with comment directives controlling renames,
deletions, visibility, decorators and parameters.
"""

__version__ = "1.0.0"

from .bridge import CodeBridge, get_merger, merge, merge_with_report
from .config import MergeConfig, Notation, Placement, notation_for_path
from .merger import AtomicWriter, CodeMergeError, DirectiveError, MergeResult, ParseError, UnsupportedNotation
from .response_cleaner import clean_response

__all__ = [
    "CodeBridge",
    "merge",
    "merge_with_report",
    "get_merger",
    "MergeConfig",
    "Notation",
    "Placement",
    "notation_for_path",
    "MergeResult",
    "CodeMergeError",
    "ParseError",
    "UnsupportedNotation",
    "DirectiveError",
    "AtomicWriter",
    "clean_response",
]
