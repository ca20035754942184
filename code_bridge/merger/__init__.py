"""
Merger module.

Provides notation-specific merging of a code snippet into an original
document, preserving every unit the snippet does not mention.
"""

from __future__ import annotations

from .atomic_writer import AtomicWriter
from .base import CodeMergeError, DirectiveError, MergeResult, NotationMerger, ParseError, Unit, UnitOrigin, UnitTable, UnsupportedNotation
from .css_merger import CSSRuleMerger
from .html_merger import HTMLPassthroughMerger
from .python_merger import PythonClassMerger
from .reconciler import Reconciler, Reconciliation
from .rust_merger import RustFunctionMerger
from .typescript_merger import TypeScriptClassMerger

__all__ = [
    "NotationMerger",
    "CodeMergeError",
    "ParseError",
    "UnsupportedNotation",
    "DirectiveError",
    "MergeResult",
    "Unit",
    "UnitOrigin",
    "UnitTable",
    "Reconciler",
    "Reconciliation",
    "TypeScriptClassMerger",
    "PythonClassMerger",
    "RustFunctionMerger",
    "CSSRuleMerger",
    "HTMLPassthroughMerger",
    "AtomicWriter",
]
