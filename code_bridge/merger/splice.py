"""
Span-level reassembly for the textual merge strategies.

The merged unit table is turned into a list of edits against the original
text, which are then applied in a single left-to-right pass so that offsets
never point into text already rewritten by an earlier edit.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from ..config import Placement
from .base import Unit, UnitOrigin, UnitTable

_LINE_END = re.compile(r"[ \t]*\r?\n")


@dataclass
class TextEdit:
    """Replace source[start:end] by text; text None deletes, start == end inserts."""

    start: int
    end: int
    text: str | None


def plan_edits(
    original: UnitTable,
    merged: UnitTable,
    placement: Placement,
    render: Callable[[Unit, Unit | None], str],
    insert_at: int | Callable[[Unit], int],
) -> list[TextEdit]:
    """Compute the edits turning the original units into the merged ones.

    Args:
        original: Units of the original document, with their spans
        merged: Reconciled unit table
        placement: IN_PLACE splices modified units over the span they replace,
            MOVE_TO_END deletes that span and appends the unit
        render: Renders a snippet unit, given the original unit it replaces
        insert_at: Offset where new units are inserted, or a function giving it per unit

    Returns:
        Edits in no particular order
    """
    kept = {id(unit) for unit in merged.values() if unit.origin is UnitOrigin.ORIGINAL}
    replacements: dict[int, Unit] = {}
    appended: list[Unit] = []
    for unit in merged.values():
        if unit.origin is UnitOrigin.ORIGINAL:
            continue
        target = unit.replaces
        if target is not None and placement is Placement.IN_PLACE and id(target) not in replacements:
            replacements[id(target)] = unit
        else:
            appended.append(unit)

    edits = []
    for unit in original.values():
        if id(unit) in kept:
            continue
        replacement = replacements.get(id(unit))
        edits.append(TextEdit(unit.start, unit.end, render(replacement, unit) if replacement else None))
    for unit in appended:
        offset = insert_at(unit) if callable(insert_at) else insert_at
        edits.append(TextEdit(offset, offset, render(unit, None)))
    return edits


def _ends_with_blank_line(text: str) -> bool:
    return not text.strip() or text.rstrip(" \t").endswith("\n\n")


def apply_edits(source: str, edits: list[TextEdit]) -> str:
    """Apply edits to source in one pass, sorted by start offset.

    Deleting a span also removes the rest of its last line and one blank
    line left behind. Inserted units are separated by a blank line.
    """
    out = ""
    cursor = 0
    for edit in sorted(edits, key=lambda e: (e.start, e.end)):
        start = max(edit.start, cursor)
        out += source[cursor:start]

        if edit.text is None:
            position = max(edit.end, cursor)
            match = _LINE_END.match(source, position)
            if match:
                position = match.end()
                out = out.rstrip(" \t")
                blank = _LINE_END.match(source, position)
                if blank and _ends_with_blank_line(out):
                    position = blank.end()
            if not source[position:].strip():
                # nothing but whitespace follows the last unit
                out = out.rstrip()
                position = len(source)
            cursor = position
        elif edit.start == edit.end:
            head = out.rstrip()
            # no blank line right after the brace opening an empty block
            out = (head + ("\n" if head.endswith("{") else "\n\n") if head else "") + edit.text
            cursor = start
            if cursor < len(source) and not source.startswith("\n", cursor):
                out += "\n"
        else:
            out += edit.text
            cursor = max(edit.end, cursor)

    out += source[cursor:]
    if source.endswith("\n") and not out.endswith("\n"):
        out += "\n"
    return out
