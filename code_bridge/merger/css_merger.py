"""
CSS rule merger.

Uses tinycss2 to split a stylesheet into top-level rules keyed by their
normalized selector (or `@keyword prelude` for at-rules). Snippet rules
overwrite the same-keyed original rule in place; the rest of the original
text is left untouched.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import tinycss2

from ..commands import CommandSet, is_directive_comment, parse_directives
from ..config import Notation, Placement
from .base import MergeResult, NotationMerger, ParseError, Unit, UnitTable
from .reconciler import Reconciler
from .splice import apply_edits, plan_edits

logger = logging.getLogger(__name__)

_COMMA = re.compile(r"\s*,\s*")
_BLANK_LINE = re.compile(r"\n[ \t]*\n")


def normalize_selector(prelude: list[Any]) -> str:
    """Canonical text of a selector list: single spaces, `, ` between selectors."""
    text = " ".join(tinycss2.serialize(prelude).split())
    return _COMMA.sub(", ", text)


class CSSRuleMerger(NotationMerger):
    """Merger for CSS stylesheets, one unit per top-level rule."""

    notation = Notation.STYLE_RULE
    default_placement = Placement.IN_PLACE
    supported_directives = frozenset({"rename", "delete"})

    def parse(self, code: str) -> list[Any]:
        """Parse a stylesheet into tinycss2 nodes.

        Raises:
            ParseError: If tinycss2 reports a parse error
        """
        nodes = tinycss2.parse_stylesheet(code, skip_comments=False, skip_whitespace=False)
        for node in nodes:
            if node.type == "error":
                lines = code.split("\n")
                offending = lines[node.source_line - 1].strip() if node.source_line <= len(lines) else ""
                raise ParseError(f"Failed to parse CSS: {node.message}", line=node.source_line, column=node.source_column, offending_text=offending)
        return nodes

    def normalize_snippet(self, code: str) -> str:
        # a stylesheet needs no container
        return code

    def merge(self, original_code: str, snippet_code: str) -> MergeResult:
        original_nodes = self.parse(original_code)
        if not snippet_code.strip():
            return MergeResult(original_code, self.notation)
        snippet_text = self.normalize_snippet(snippet_code)
        snippet_nodes = self.parse(snippet_text)

        original_units, _ = self._extract_units(original_nodes, original_code)
        snippet_units, commands = self._extract_units(snippet_nodes, snippet_text)
        if not snippet_units:
            return MergeResult(original_code, self.notation, ["UnitNameUnresolvable: the snippet contains no rule"])

        reconciliation = Reconciler(self).reconcile(original_units, snippet_units, commands)
        edits = plan_edits(original_units, reconciliation.table, self.placement, self._render, len(original_code))
        return MergeResult(apply_edits(original_code, edits), self.notation, reconciliation.warnings)

    def is_valid_name(self, name: str) -> bool:
        nodes = [n for n in tinycss2.parse_stylesheet(f"{name} {{}}", skip_comments=True, skip_whitespace=True)]
        return len(nodes) == 1 and nodes[0].type == "qualified-rule"

    def apply_rename(self, unit: Unit, new_name: str) -> bool:
        if unit.kind != "rule" or not self.is_valid_name(new_name):
            return False
        rule = tinycss2.parse_stylesheet(f"{new_name} {{}}", skip_comments=True, skip_whitespace=True)[0]
        unit.name = normalize_selector(rule.prelude)
        unit.details["selector"] = new_name.strip()
        return True

    def _extract_units(self, nodes: list[Any], source: str) -> tuple[UnitTable, dict[str, CommandSet]]:
        """One unit per rule, spanning its directly preceding comments."""
        offsets = _line_offsets(source)
        table = UnitTable()
        commands: dict[str, CommandSet] = {}
        leading: list[tuple[int, str]] = []

        for index, node in enumerate(nodes):
            start = offsets[node.source_line - 1] + node.source_column - 1
            end = offsets[nodes[index + 1].source_line - 1] + nodes[index + 1].source_column - 1 if index + 1 < len(nodes) else len(source)

            if node.type == "comment":
                leading.append((start, source[start:end]))
                continue
            if node.type == "whitespace":
                if _BLANK_LINE.search(node.value):
                    leading = []
                continue

            if node.type == "qualified-rule":
                name, kind = normalize_selector(node.prelude), "rule"
            elif node.type == "at-rule":
                name, kind = f"@{node.lower_at_keyword} {normalize_selector(node.prelude)}".strip(), "at-rule"
            else:
                leading = []
                continue

            comments = [text for _, text in leading]
            directives = [text for text in comments if is_directive_comment(text)]
            rule_text = source[start:end].rstrip()
            brace = rule_text.find("{")
            unit = Unit(
                name=name,
                kind=kind,
                text=rule_text,
                start=leading[0][0] if leading else start,
                end=start + len(rule_text),
                comments=[text for text in comments if text not in directives],
                details={"selector": rule_text[:brace].strip(), "block": rule_text[brace:]} if kind == "rule" and brace >= 0 else {},
            )
            table.add(unit)
            unit_commands = parse_directives(directives)
            if not unit_commands.is_empty():
                commands[name] = unit_commands
            leading = []
        return table, commands

    def _render(self, unit: Unit, target: Unit | None) -> str:
        text = unit.text
        if "block" in unit.details:
            text = unit.details["selector"] + " " + unit.details["block"]
        return "\n".join(unit.comments + [text])


def _line_offsets(source: str) -> list[int]:
    offsets = [0]
    for line in source.splitlines(keepends=True):
        offsets.append(offsets[-1] + len(line))
    return offsets
