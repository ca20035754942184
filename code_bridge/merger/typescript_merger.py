"""
TypeScript / JavaScript class merger.

Uses tree-sitter and tree-sitter-typescript to parse both documents, maps
class members by name and splices the reconciled class bodies back into
the original text. Members the snippet does not touch keep their exact
original text; rebuilt members are printed from the member template.
"""

from __future__ import annotations

import logging
import re
import textwrap
from dataclasses import dataclass
from typing import Any

from ..commands import CommandSet, is_directive_comment, parse_directives
from ..config import Notation
from .base import IDENTIFIER_PATTERN, CodeMergeError, MergeResult, NotationMerger, ParseError, Unit, UnitOrigin, UnitTable
from .reconciler import Reconciler
from .rendering import dedent_tail, indent_lines, render_template

# Try to import tree-sitter
try:
    import tree_sitter_typescript as ts_typescript
    from tree_sitter import Language, Node, Parser

    TREE_SITTER_AVAILABLE = True
except ImportError:
    TREE_SITTER_AVAILABLE = False
    Language = None
    Parser = None
    Node = None

logger = logging.getLogger(__name__)

_LEADING_WHITESPACE = re.compile(rb"[ \t]*")
_BLANK_LINE = re.compile(r"\n[ \t]*\n")
_MEMBER_NAME = re.compile(r"^#?[A-Za-z_$][\w$]*$")
_PARAMETER = re.compile(r"^(?:\.\.\.)?[A-Za-z_$][\w$]*\??(?:\s*:\s*[^=]+?)?(?:\s*=\s*.+)?$")


@dataclass
class _ClassInfo:
    name: str
    outer: Any  # export_statement or the declaration itself
    node: Any
    body: Any


@dataclass
class _MemberSpan:
    leading: list[Any]  # comment and decorator nodes preceding the member
    node: Any  # None for comments dangling at the end of the body
    end: int
    end_row: int


class TypeScriptClassMerger(NotationMerger):
    """Merger for JavaScript / TypeScript classes using tree-sitter.

    Requires tree-sitter and tree-sitter-typescript packages.
    """

    notation = Notation.STRUCTURAL_CLASS
    visibility_keywords = frozenset({"public", "protected"})
    private_marker = "#"

    # Indentation for members of classes written on a single line
    INDENT_UNIT = "    "

    CLASS_TYPES = ("class_declaration", "abstract_class_declaration")

    _COMPLETE_DOCUMENT = re.compile(r"^[ \t]*(?:export\s+(?:default\s+)?)?(?:abstract\s+)?class\s+[A-Za-z_$]", re.MULTILINE)
    _BARE_MEMBER = re.compile(
        r"^(?:(?:public|private|protected|static|async|get|set|readonly|override)\s+)*"
        r"(?:function\b\s*)?\*?\s*#?[A-Za-z_$][\w$]*\s*(?:<[^>]*>)?\s*\("
    )
    _FUNCTION_KEYWORD = re.compile(r"^(async\s+)?function\b\s*(\*?)\s*")

    def __init__(self, config=None):
        """Initialize the TypeScript merger.

        Raises:
            CodeMergeError: If tree-sitter is not available
        """
        super().__init__(config)
        if not TREE_SITTER_AVAILABLE:
            raise CodeMergeError("tree-sitter and tree-sitter-typescript are required for class merging. Install with: pip install tree-sitter tree-sitter-typescript")

        self._parser = Parser(Language(ts_typescript.language_typescript()))

    def parse(self, code: str) -> Any:
        """Parse TypeScript source code into a tree-sitter tree.

        Raises:
            ParseError: If the code contains syntax errors
        """
        tree = self._parser.parse(bytes(code, "utf8"))

        if tree.root_node.has_error:
            error = self._find_error(tree.root_node) or tree.root_node
            row, column = error.start_point[0], error.start_point[1]
            lines = code.split("\n")
            offending = lines[row].strip() if row < len(lines) else ""
            raise ParseError("Failed to parse TypeScript code", line=row + 1, column=column + 1, offending_text=offending)

        return tree

    def normalize_snippet(self, code: str) -> str:
        if self._COMPLETE_DOCUMENT.search(code):
            return code

        head = self._first_code_line(code)
        if not self._BARE_MEMBER.match(head) or "{" not in code:
            return code

        lines = textwrap.dedent(code).strip("\n").split("\n")
        # `function name() {}` is not a class member: drop the keyword
        lines = [self._FUNCTION_KEYWORD.sub(r"\1\2", line) if line[:1] not in (" ", "\t") else line for line in lines]
        body = "\n".join(lines)
        return f"class {self.config.sentinel_container} {{\n{body}\n}}\n"

    def merge(self, original_code: str, snippet_code: str) -> MergeResult:
        original_tree = self.parse(original_code)
        if not snippet_code.strip():
            return MergeResult(original_code, self.notation)

        snippet_text = self.normalize_snippet(snippet_code)
        snippet_tree = self.parse(snippet_text)

        original_source = bytes(original_code, "utf8")
        snippet_source = bytes(snippet_text, "utf8")
        original_classes = self._find_classes(original_tree.root_node, original_source)
        snippet_classes = self._find_classes(snippet_tree.root_node, snippet_source)
        by_name = {info.name: index for index, info in enumerate(original_classes)}

        warnings: list[str] = []
        if not snippet_classes:
            warnings.append("UnitNameUnresolvable: the snippet contains no class member to merge")

        reconciler = Reconciler(self)
        tables: dict[int, UnitTable] = {}
        appended: list[str] = []

        for snippet_class in snippet_classes:
            if snippet_class.name == self.config.sentinel_container:
                if not original_classes:
                    warnings.append("UnitNameUnresolvable: the original has no class to merge the snippet members into")
                    continue
                index = 0
            elif snippet_class.name in by_name:
                index = by_name[snippet_class.name]
            else:
                outer = snippet_class.outer
                appended.append(dedent_tail(_slice(snippet_source, outer.start_byte, outer.end_byte), _line_indent(snippet_source, outer.start_byte)))
                logger.debug("Added class '%s'", snippet_class.name)
                continue

            if index not in tables:
                tables[index] = self._extract_units(original_classes[index], original_source)[0]
            snippet_units, commands = self._extract_units(snippet_class, snippet_source)
            reconciliation = reconciler.reconcile(tables[index], snippet_units, commands)
            tables[index] = reconciliation.table
            warnings.extend(reconciliation.warnings)

        if not tables and not appended:
            return MergeResult(original_code, self.notation, warnings)

        pieces = []
        cursor = 0
        for index in sorted(tables, key=lambda i: original_classes[i].body.start_byte):
            info = original_classes[index]
            pieces.append(_slice(original_source, cursor, info.body.start_byte))
            pieces.append(self._render_body(info, tables[index], original_source))
            cursor = info.body.end_byte
        pieces.append(_slice(original_source, cursor, len(original_source)))

        text = "".join(pieces)
        for class_text in appended:
            text = text.rstrip() + "\n\n" + class_text + "\n"
        return MergeResult(text, self.notation, warnings)

    def is_valid_name(self, name: str) -> bool:
        return bool(_MEMBER_NAME.match(name))

    def is_valid_parameter(self, parameter: str) -> bool:
        return bool(_PARAMETER.match(parameter))

    def is_valid_decorator(self, decorator: str) -> bool:
        return bool(decorator) and "\n" not in decorator

    def apply_rename(self, unit: Unit, new_name: str) -> bool:
        if unit.kind != "method" or not super().apply_rename(unit, new_name):
            return False
        unit.details["name_text"] = unit.name
        return True

    def make_private(self, unit: Unit) -> bool:
        if unit.kind != "method" or not IDENTIFIER_PATTERN.match(unit.name.removeprefix("#")):
            return False
        super().make_private(unit)
        unit.details["name_text"] = unit.name
        # accessibility modifiers are not allowed on #names
        unit.visibility = None
        return True

    def apply_access(self, unit: Unit, value: str) -> bool:
        return unit.kind == "method" and super().apply_access(unit, value)

    def apply_decorators(self, unit: Unit, decorators: list[str]) -> bool:
        return unit.kind == "method" and super().apply_decorators(unit, decorators)

    def apply_parameters(self, unit: Unit, parameters: list[str]) -> bool:
        return unit.kind == "method" and super().apply_parameters(unit, parameters)

    def _find_error(self, node: Any) -> Any:
        """Find the first ERROR or missing node in the tree."""
        if node.type == "ERROR" or node.is_missing:
            return node
        for child in node.children:
            if child.has_error or child.is_missing:
                found = self._find_error(child)
                if found is not None:
                    return found
        return None

    def _find_classes(self, root: Any, source: bytes) -> list[_ClassInfo]:
        """Find top-level class declarations, exported or not."""
        classes = []
        for child in root.named_children:
            candidates = child.named_children if child.type == "export_statement" else [child]
            for node in candidates:
                if node.type not in self.CLASS_TYPES:
                    continue
                name_node = node.child_by_field_name("name")
                body = node.child_by_field_name("body")
                if name_node is None or body is None:
                    continue
                classes.append(_ClassInfo(_slice(source, name_node.start_byte, name_node.end_byte), child, node, body))
        return classes

    def _member_spans(self, body: Any) -> list[_MemberSpan]:
        """Group class body children into members with their leading comments and decorators."""
        spans: list[_MemberSpan] = []
        pending: list[Any] = []
        for child in body.children:
            kind = child.type
            if kind in ("{", "}"):
                continue
            trails_previous = not pending and spans and spans[-1].node is not None
            if kind in (";", ",") and trails_previous:
                spans[-1].end, spans[-1].end_row = child.end_byte, child.end_point[0]
                continue
            if kind == "comment" and trails_previous and child.start_point[0] == spans[-1].end_row:
                spans[-1].end, spans[-1].end_row = child.end_byte, child.end_point[0]
                continue
            if kind in ("comment", "decorator"):
                pending.append(child)
                continue
            if kind in (";", ","):
                continue
            spans.append(_MemberSpan(pending, child, child.end_byte, child.end_point[0]))
            pending = []
        if pending:
            spans.append(_MemberSpan(pending, None, pending[-1].end_byte, pending[-1].end_point[0]))
        return spans

    def _extract_units(self, info: _ClassInfo, source: bytes) -> tuple[UnitTable, dict[str, CommandSet]]:
        """Build the member table of a class and the directives of each member."""
        table = UnitTable()
        commands: dict[str, CommandSet] = {}
        for index, span in enumerate(self._member_spans(info.body)):
            unit, unit_commands = self._member_unit(span, source, index)
            table.add(unit)
            if not unit_commands.is_empty():
                commands[unit.name] = unit_commands
        return table, commands

    def _member_unit(self, span: _MemberSpan, source: bytes, index: int) -> tuple[Unit, CommandSet]:
        start = span.leading[0].start_byte if span.leading else span.node.start_byte
        indent = _line_indent(source, start)
        text = dedent_tail(_slice(source, start, span.end), indent)
        node = span.node

        if node is None:
            return Unit(name=f"<comment:{index}>", kind="comment", text=text, anonymous=True), CommandSet()

        comment_nodes = [n for n in span.leading if n.type == "comment"]
        decorator_nodes = [n for n in span.leading if n.type == "decorator"]
        name_node = self._name_node(node)
        if node.type == "method_definition" and name_node is not None:
            inner = [c for c in node.children if c.end_byte <= name_node.start_byte]
            comment_nodes += [c for c in inner if c.type == "comment"]
            decorator_nodes += [c for c in inner if c.type == "decorator"]

        comments = [dedent_tail(_slice(source, n.start_byte, n.end_byte), indent) for n in comment_nodes]
        unit_commands = parse_directives(c for c in comments if is_directive_comment(c))

        name = self._member_name(name_node, source)
        if name is None:
            return Unit(name=f"<{node.type}:{index}>", kind=node.type, text=text, anonymous=True), unit_commands

        unit = Unit(
            name=name,
            kind="field",
            text=text,
            comments=[c for c in comments if not is_directive_comment(c)],
            decorators=[_slice(source, n.start_byte, n.end_byte).removeprefix("@").strip() for n in decorator_nodes],
            details={"name_text": _slice(source, name_node.start_byte, name_node.end_byte)},
        )

        parameters = node.child_by_field_name("parameters")
        body = node.child_by_field_name("body")
        if node.type != "method_definition" or parameters is None or body is None:
            unit.details["declaration"] = dedent_tail(_slice(source, node.start_byte, span.end), indent)
            return unit, unit_commands

        modifiers = []
        for child in node.children:
            if child.start_byte >= name_node.start_byte:
                break
            if child.type == "accessibility_modifier":
                unit.visibility = _slice(source, child.start_byte, child.end_byte)
            elif child.type not in ("comment", "decorator"):
                modifiers.append(_slice(source, child.start_byte, child.end_byte))

        unit.kind = "method"
        unit.parameters = [_slice(source, p.start_byte, p.end_byte) for p in parameters.named_children if p.type != "comment"]
        unit.parameters_text = dedent_tail(_slice(source, parameters.start_byte + 1, parameters.end_byte - 1), indent)
        unit.body = dedent_tail(_slice(source, body.start_byte, body.end_byte), indent)
        unit.details.update(
            modifiers="".join(m + " " for m in modifiers),
            after_name=_slice(source, name_node.end_byte, parameters.start_byte),
            signature_suffix=dedent_tail(_slice(source, parameters.end_byte, body.start_byte), indent),
        )
        return unit, unit_commands

    def _name_node(self, node: Any) -> Any:
        if node.type in ("method_definition", "public_field_definition"):
            return node.child_by_field_name("name")
        if node.type == "field_definition":
            return node.child_by_field_name("property")
        # signatures, index signatures and static blocks are carried through unnamed
        return None

    def _member_name(self, name_node: Any, source: bytes) -> str | None:
        """Get a member name from its name node (identifier or string literal key)."""
        if name_node is None:
            return None
        text = _slice(source, name_node.start_byte, name_node.end_byte)
        if name_node.type in ("property_identifier", "private_property_identifier", "identifier", "number"):
            return text
        if name_node.type == "string":
            return text[1:-1]
        return None

    def _first_code_line(self, code: str) -> str:
        """First line that is not blank, a comment or a decorator."""
        for line in code.split("\n"):
            stripped = line.strip()
            if not stripped or stripped.startswith(("//", "/*", "*", "@")):
                continue
            return stripped
        return ""

    def _member_text(self, unit: Unit) -> str:
        if unit.origin is UnitOrigin.ORIGINAL or unit.anonymous:
            return unit.text
        details = unit.details
        parameters = unit.parameters_text if unit.parameters_text is not None else ", ".join(unit.parameters)
        return render_template(
            "typescript",
            "member.ts.jinja2",
            comments=unit.comments,
            decorators=unit.decorators,
            declaration=details.get("declaration"),
            accessibility=unit.visibility or "",
            modifiers=details.get("modifiers", ""),
            name=details.get("name_text", unit.name),
            after_name=details.get("after_name", ""),
            parameters=parameters,
            signature_suffix=details.get("signature_suffix", " "),
            body=unit.body or "{}",
        )

    def _render_body(self, info: _ClassInfo, table: UnitTable, source: bytes) -> str:
        """Print a class body from the reconciled member table."""
        class_indent = _line_indent(source, info.node.start_byte)
        spans = self._member_spans(info.body)

        member_indent = class_indent + self.INDENT_UNIT
        separator = "\n"
        if spans:
            first_start = spans[0].leading[0].start_byte if spans[0].leading else spans[0].node.start_byte
            line_start = source.rfind(b"\n", 0, first_start) + 1
            if not source[line_start:first_start].strip():
                member_indent = _slice(source, line_start, first_start)
            for previous, current in zip(spans, spans[1:]):
                current_start = current.leading[0].start_byte if current.leading else current.node.start_byte
                if _BLANK_LINE.search(_slice(source, previous.end, current_start)):
                    separator = "\n\n"
                    break

        members = [indent_lines(self._member_text(unit), member_indent) for unit in table.values()]
        if not members:
            return "{}"
        return "{\n" + separator.join(members) + "\n" + class_indent + "}"


def _slice(source: bytes, start: int, end: int) -> str:
    return source[start:end].decode("utf8")


def _line_indent(source: bytes, offset: int) -> str:
    line_start = source.rfind(b"\n", 0, offset) + 1
    return _LEADING_WHITESPACE.match(source, line_start).group(0).decode("utf8")
