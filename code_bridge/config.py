"""
Configuration for the merge engine.

Holds the closed set of supported source notations and the options that
control how a snippet is reconciled with an original document.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Notation(str, Enum):
    """Source notation of the documents being merged.

    Each notation is handled by exactly one merger implementation.
    """

    STRUCTURAL_CLASS = "structural-class"  # JavaScript / TypeScript classes
    PYTHON_CLASS = "python-class"  # Python classes
    FUNCTION_UNIT = "function-unit"  # Rust functions, merged textually
    STYLE_RULE = "style-rule"  # CSS rules keyed by selector
    MARKUP_PASSTHROUGH = "markup-passthrough"  # HTML, snippet wins


class Placement(str, Enum):
    """Where a unit modified by the snippet ends up in the merged output."""

    MOVE_TO_END = "move-to-end"  # remove, then re-insert at the end of the container
    IN_PLACE = "in-place"  # keep the slot of the unit it replaces


# File types accepted by CodeBridge.process() and suffixes known to notation_for_path()
FILE_TYPE_ALIASES: dict[str, Notation] = {
    "js": Notation.STRUCTURAL_CLASS,
    "jsx": Notation.STRUCTURAL_CLASS,
    "mjs": Notation.STRUCTURAL_CLASS,
    "cjs": Notation.STRUCTURAL_CLASS,
    "ts": Notation.STRUCTURAL_CLASS,
    "tsx": Notation.STRUCTURAL_CLASS,
    "py": Notation.PYTHON_CLASS,
    "rs": Notation.FUNCTION_UNIT,
    "css": Notation.STYLE_RULE,
    "html": Notation.MARKUP_PASSTHROUGH,
    "htm": Notation.MARKUP_PASSTHROUGH,
}


def resolve_notation(tag: Notation | str) -> Notation | None:
    """Resolve a notation tag or file-type alias, None if it is unknown."""
    if isinstance(tag, Notation):
        return tag
    key = str(tag).strip().lower()
    try:
        return Notation(key)
    except ValueError:
        return FILE_TYPE_ALIASES.get(key.lstrip("."))


@dataclass
class MergeConfig:
    """Options for a merge invocation.

    Attributes:
        placement: Where modified units go; None selects the merger's default
        sentinel_container: Name of the synthetic container wrapping bare snippets
        strict_directives: Raise DirectiveError instead of warning on ignored directives
        validate_output: Re-parse the merged document with the notation's parser
    """

    placement: Placement | None = None
    sentinel_container: str = "__CodeBridgeSnippet__"
    strict_directives: bool = False
    validate_output: bool = True

    @staticmethod
    def from_dict(d: dict) -> MergeConfig:
        """Create a config from a dictionary."""
        config = MergeConfig()
        for k, v in d.items():
            if not hasattr(config, k):
                continue
            if k == "placement" and v is not None:
                v = Placement(v)
            setattr(config, k, v)
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "placement": self.placement.value if self.placement else None,
            "sentinel_container": self.sentinel_container,
            "strict_directives": self.strict_directives,
            "validate_output": self.validate_output,
        }


def notation_for_path(path: str | Path) -> Notation | None:
    """Guess the notation of a file from its suffix."""
    return FILE_TYPE_ALIASES.get(Path(path).suffix.lower().lstrip("."))
