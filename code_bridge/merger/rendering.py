"""
Unit printers and indentation helpers.

Units rebuilt from their parts are rendered through the jinja2 templates in
code_bridge/templates/<language>/. Rendered text always starts at column 0;
callers indent it for its target container.
"""

from __future__ import annotations

import re
from collections.abc import Collection
from functools import lru_cache
from pathlib import Path

import jinja2

CURRENT_DIR = Path(__file__).parent.parent

_ENV = jinja2.Environment(lstrip_blocks=True, trim_blocks=True, keep_trailing_newline=False)

_LEADING_WHITESPACE = re.compile(r"[ \t]*")


@lru_cache(maxsize=None)
def load_template(language: str, name: str) -> jinja2.Template:
    """Load templates/<language>/<name> from the package."""
    with open(CURRENT_DIR / "templates" / language / name, encoding="utf-8") as f:
        return _ENV.from_string(f.read())


def render_template(language: str, template_name: str, /, **context) -> str:
    """Render a unit template; every keyword, `name` included, is a template variable."""
    return load_template(language, template_name).render(**context).rstrip("\n")


def line_indent(source: str, offset: int) -> str:
    """Leading whitespace of the line containing offset."""
    line_start = source.rfind("\n", 0, offset) + 1
    return _LEADING_WHITESPACE.match(source, line_start).group(0)


def dedent_tail(text: str, indent: str) -> str:
    """Remove indent from every line but the first.

    The first line of a unit starts at the unit itself; the following lines
    carry the indentation of the container the unit was written in.
    """
    lines = text.split("\n")
    width = len(indent)
    for i in range(1, len(lines)):
        line = lines[i]
        leading = len(_LEADING_WHITESPACE.match(line).group(0))
        lines[i] = line[min(width, leading) :]
    return "\n".join(lines)


def dedent_lines(text: str, width: int, verbatim: Collection[int] = ()) -> str:
    """Remove up to width leading blanks from each line.

    Lines whose index is in verbatim (continuation lines of a multi-line
    string literal) are left untouched.
    """
    lines = text.split("\n")
    for i, line in enumerate(lines):
        if i in verbatim:
            continue
        if not line.strip():
            lines[i] = ""
            continue
        leading = len(_LEADING_WHITESPACE.match(line).group(0))
        lines[i] = line[min(width, leading) :]
    return "\n".join(lines)


def indent_lines(text: str, indent: str, verbatim: Collection[int] = ()) -> str:
    """Indent every non-blank line whose index is not in verbatim."""
    if not indent:
        return text
    return "\n".join(indent + line if line.strip() and i not in verbatim else line for i, line in enumerate(text.split("\n")))
