"""
Comment directive grammar.

A snippet unit carries its merge instructions in the comments directly
preceding it, one directive per comment line::

    // @access private
    // @decorator cached
    // @rename total
    // @delete
    // @params a, b
    method() { ... }

The parser is a pure left-to-right scan: list directives accumulate, scalar
directives are overwritten (last one wins) and unknown directives are ignored.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

DIRECTIVE_PATTERN = re.compile(r"^@([A-Za-z][\w-]*)(?:\s+(.*))?$")

# Comment markers stripped from each line before matching a directive
_LINE_PREFIX = re.compile(r"^\s*(?:///?|/\*+|\*+(?!/)|#+|<!--)\s*")
_LINE_SUFFIX = re.compile(r"\s*(?:\*+/|-->)\s*$")

# Directive name -> canonical field name
DIRECTIVE_ALIASES = {
    "access": "access",
    "visibility": "access",
    "decorator": "decorators",
    "decorators": "decorators",
    "attribute": "decorators",
    "attributes": "decorators",
    "rename": "rename",
    "delete": "delete",
    "params": "params",
    "parameters": "params",
    "async": "is_async",
    "unsafe": "is_unsafe",
    "returns": "return_type",
    "return": "return_type",
}


@dataclass
class CommandSet:
    """Directives parsed from the comments attached to one unit.

    Attributes:
        access: Requested visibility (public, private, protected, pub, ...)
        decorators: Decorators/attributes, in the order seen
        rename: New name for the unit
        delete: Whether the unit must be removed
        params: Raw comma separated parameter list, split by split_params()
        is_async: Mark a function async (function-unit notation)
        is_unsafe: Mark a function unsafe (function-unit notation)
        return_type: Replacement return type (function-unit notation)
        seen: Canonical names of the directives that carried a usable value
    """

    access: str | None = None
    decorators: list[str] = field(default_factory=list)
    rename: str | None = None
    delete: bool = False
    params: str | None = None
    is_async: bool = False
    is_unsafe: bool = False
    return_type: str | None = None
    seen: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Check if no directive was found."""
        return not self.seen


def _strip_comment_markers(line: str) -> str:
    line = _LINE_PREFIX.sub("", line, count=1)
    return _LINE_SUFFIX.sub("", line).strip()


def parse_directives(comments: Iterable[str]) -> CommandSet:
    """Parse the comment block preceding a unit into a CommandSet.

    Args:
        comments: Raw comment texts, markers included. A block comment may
            span several lines; every line is scanned.

    Returns:
        The parsed CommandSet. Fields without a directive keep their defaults.
    """
    commands = CommandSet()
    for comment in comments:
        for raw_line in comment.splitlines():
            match = DIRECTIVE_PATTERN.match(_strip_comment_markers(raw_line))
            if not match:
                continue
            name = DIRECTIVE_ALIASES.get(match.group(1).lower())
            if name is None:
                continue
            value = (match.group(2) or "").strip()

            if name == "delete":
                commands.delete = True
            elif name == "is_async":
                commands.is_async = True
            elif name == "is_unsafe":
                commands.is_unsafe = True
            elif not value:
                # empty value: no-op for this field
                continue
            elif name == "decorators":
                commands.decorators.append(value)
            else:
                setattr(commands, name, value)

            if name not in commands.seen:
                commands.seen.append(name)
    return commands


def is_directive_comment(comment: str) -> bool:
    """Check if a comment holds at least one recognized directive."""
    return not parse_directives([comment]).is_empty()


def split_params(raw: str) -> list[str]:
    """Split a raw @params value on commas, trimming and dropping empty tokens."""
    return [param.strip() for param in raw.split(",") if param.strip()]
