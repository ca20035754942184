"""
Base classes for snippet merging.

Provides the unit model shared by every notation, the error hierarchy and
the abstract interface for notation-specific mergers.
"""

from __future__ import annotations

import copy
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..commands import CommandSet
from ..config import MergeConfig, Notation, Placement

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_$][\w$]*$")


class CodeMergeError(Exception):
    """Raised when code merging fails.

    This can happen when:
    - The original document or the snippet cannot be parsed
    - The notation is not supported
    - The merged document does not parse anymore
    """

    pass


class ParseError(CodeMergeError):
    """Raised when a document does not parse under its notation's grammar.

    Attributes:
        line: 1-based line of the offending text, if known
        column: 1-based column of the offending text, if known
        offending_text: The source text around the error
    """

    def __init__(self, message: str, line: int | None = None, column: int | None = None, offending_text: str = ""):
        location = f" at line {line}, column {column}" if line is not None else ""
        excerpt = f": near '{offending_text[:50]}'" if offending_text else ""
        super().__init__(f"{message}{location}{excerpt}")
        self.line = line
        self.column = column
        self.offending_text = offending_text


class UnsupportedNotation(CodeMergeError):
    """Raised when no merger exists for the requested notation tag."""

    def __init__(self, notation: Any):
        supported = ", ".join(n.value for n in Notation)
        super().__init__(f"Unsupported notation: {notation!r} (supported: {supported})")
        self.notation = notation


class DirectiveError(CodeMergeError):
    """Raised in strict mode when a directive cannot be applied."""

    pass


class UnitOrigin(str, Enum):
    """Which document a unit was taken from."""

    ORIGINAL = "original"
    SNIPPET = "snippet"


@dataclass
class Unit:
    """A named piece of code being merged (method, function, field, rule).

    Attributes:
        name: Identifier, unique within its container
        kind: Notation-specific kind (method, field, fn, rule, ...)
        origin: Document the unit comes from
        visibility: Visibility keyword, if the notation has one
        decorators: Decorators / attributes, without their sigil
        parameters: Parameter list, one entry per parameter
        parameters_text: Verbatim parameter list; None once parameters were overridden
        body: Notation payload (AST node or body text)
        text: Verbatim source text, used when the unit is carried over unchanged
        start: Start offset in the source document (textual strategies)
        end: End offset in the source document (textual strategies)
        comments: Leading comments kept with the unit (directives excluded)
        details: Notation-specific signature parts
        anonymous: True for units without a derivable name, carried through as-is
        replaces: Original unit this unit was derived from
    """

    name: str
    kind: str = "member"
    origin: UnitOrigin = UnitOrigin.ORIGINAL
    visibility: str | None = None
    decorators: list[str] = field(default_factory=list)
    parameters: list[str] = field(default_factory=list)
    parameters_text: str | None = None
    body: Any = None
    text: str = ""
    start: int = -1
    end: int = -1
    comments: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)
    anonymous: bool = False
    replaces: Unit | None = field(default=None, repr=False, compare=False)


class UnitTable(dict[str, Unit]):
    """Ordered name -> Unit mapping. Insertion order is the output order."""

    def add(self, unit: Unit) -> None:
        """Insert a unit; a repeated name keeps its first slot and takes the later unit."""
        self[unit.name] = unit

    def put_last(self, name: str, unit: Unit) -> None:
        """Insert a unit at the end, dropping any previous entry with that name."""
        self.pop(name, None)
        self[name] = unit

    def put_in_place(self, old_name: str, new_name: str, unit: Unit) -> None:
        """Replace the entry old_name by new_name -> unit, keeping its slot."""
        items = list(self.items())
        self.clear()
        for name, existing in items:
            if name == old_name:
                self[new_name] = unit
            elif name != new_name:
                self[name] = existing


@dataclass
class MergeResult:
    """Outcome of a merge.

    Attributes:
        text: The merged document
        notation: Notation the merge ran under
        warnings: Ignored directives and skipped units
    """

    text: str
    notation: Notation
    warnings: list[str] = field(default_factory=list)


class NotationMerger(ABC):
    """Abstract base class for notation-specific mergers.

    Subclasses implement the notation-specific logic for:
    1. Normalizing a bare snippet into a parseable document
    2. Parsing both documents and extracting their units
    3. Reassembling the merged document

    The unit mutation hooks (apply_*) are called by the Reconciler; each
    returns False when the directive cannot be applied to the unit.
    """

    notation: Notation
    default_placement: Placement = Placement.MOVE_TO_END
    supported_directives: frozenset[str] = frozenset({"access", "decorators", "rename", "delete", "params"})
    visibility_keywords: frozenset[str] = frozenset()
    private_marker: str | None = None

    def __init__(self, config: MergeConfig | None = None):
        self.config = config or MergeConfig()

    @property
    def placement(self) -> Placement:
        return self.config.placement or self.default_placement

    @abstractmethod
    def parse(self, code: str) -> Any:
        """Parse source code with the notation's parser.

        Args:
            code: Source code string

        Returns:
            Notation-specific document representation

        Raises:
            ParseError: If the code cannot be parsed
        """
        pass

    @abstractmethod
    def normalize_snippet(self, code: str) -> str:
        """Make a snippet parse as a complete document.

        Bare units are wrapped in a synthetic container named after
        config.sentinel_container. Text of unknown shape is returned as-is.
        """
        pass

    @abstractmethod
    def merge(self, original_code: str, snippet_code: str) -> MergeResult:
        """Merge the snippet's units into the original document.

        Raises:
            ParseError: If either document cannot be parsed
        """
        pass

    def validate(self, code: str) -> None:
        """Validate that merged code still parses.

        Raises:
            CodeMergeError: If validation fails
        """
        try:
            self.parse(code)
        except ParseError as e:
            raise CodeMergeError(f"Merged {self.notation.value} document is not valid: {e}") from e

    def merge_documents(self, original_code: str, snippet_code: str) -> MergeResult:
        """High-level merge operation: merge, then validate the result if configured."""
        result = self.merge(original_code, snippet_code)
        if self.config.validate_output:
            self.validate(result.text)
        for warning in result.warnings:
            logger.debug("%s merge: %s", self.notation.value, warning)
        return result

    def clone_unit(self, unit: Unit) -> Unit:
        """Structural copy of a unit; the original is never mutated."""
        clone = copy.deepcopy(unit)
        clone.replaces = None
        return clone

    def is_valid_name(self, name: str) -> bool:
        return bool(IDENTIFIER_PATTERN.match(name))

    def is_valid_parameter(self, parameter: str) -> bool:
        return bool(IDENTIFIER_PATTERN.match(parameter))

    def is_valid_decorator(self, decorator: str) -> bool:
        return bool(decorator)

    def apply_rename(self, unit: Unit, new_name: str) -> bool:
        if "rename" not in self.supported_directives or not self.is_valid_name(new_name):
            return False
        unit.name = new_name
        return True

    def apply_access(self, unit: Unit, value: str) -> bool:
        if "access" not in self.supported_directives:
            return False
        keyword = value.strip().lower()
        if keyword == "private":
            return self.make_private(unit)
        if keyword in self.visibility_keywords:
            unit.visibility = keyword
            return True
        return False

    def make_private(self, unit: Unit) -> bool:
        """Identifier-based privacy: prefix the name with the private marker."""
        if self.private_marker is None:
            return False
        if not unit.name.startswith(self.private_marker):
            unit.name = self.private_marker + unit.name
        return True

    def apply_decorators(self, unit: Unit, decorators: list[str]) -> bool:
        if "decorators" not in self.supported_directives:
            return False
        cleaned = [d.strip().removeprefix("@").strip() for d in decorators]
        if not all(self.is_valid_decorator(d) for d in cleaned):
            return False
        unit.decorators = cleaned
        return True

    def apply_parameters(self, unit: Unit, parameters: list[str]) -> bool:
        if "params" not in self.supported_directives:
            return False
        if not all(self.is_valid_parameter(p) for p in parameters):
            return False
        unit.parameters = parameters
        unit.parameters_text = None
        return True

    def apply_extensions(self, unit: Unit, commands: CommandSet) -> list[str]:
        """Apply notation-specific directives.

        Returns:
            Names of the directives that were present but could not be applied
        """
        return [name for name in ("is_async", "is_unsafe", "return_type") if name in commands.seen]
