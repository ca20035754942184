"""
Rust function merger.

Rust functions are merged textually: a scanner that knows about comments,
string, raw string and char literals locates every `fn` item and its body,
and the merged document is produced by splicing unit spans in the original
text. Functions the snippet does not mention are never re-printed.
"""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass, field

from ..commands import CommandSet, is_directive_comment, parse_directives
from ..config import Notation, Placement
from .base import MergeResult, NotationMerger, ParseError, Unit, UnitOrigin, UnitTable
from .reconciler import Reconciler
from .rendering import dedent_tail, indent_lines, line_indent, render_template
from .splice import apply_edits, plan_edits

logger = logging.getLogger(__name__)

_FN_SIGNATURE = re.compile(
    r"(?<![\w:])"
    r"(?P<visibility>pub(?:\s*\([^()]*\))?\s+)?"
    r"(?P<qualifiers>(?:(?:default|const|async|unsafe)\s+)*)"
    r"(?P<abi>extern(?:\s+\"[^\"]*\")?\s+)?"
    r"fn\s+(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
)
_RAW_STRING = re.compile(r'b?r(#*)"')
_CHAR_LITERAL = re.compile(r"b?'(?:\\(?:x[0-9A-Fa-f]{2}|u\{[0-9A-Fa-f]{1,6}\}|.)|[^\\'\n])'")
_VISIBILITY = re.compile(r"^pub(?:\s*\(\s*(?:crate|self|super|in\s+[\w:]+)\s*\))?$")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_PARAMETER = re.compile(r"^(?:&\s*(?:'\w+\s+)?(?:mut\s+)?self|(?:mut\s+)?self(?:\s*:.+)?|(?:mut\s+)?[A-Za-z_]\w*\s*:\s*\S.*)$")
_RETURN_TYPE = re.compile(r"^\s*(?:->\s*(?:(?!\bwhere\b).)*?)?(?P<where>\s*\bwhere\b.*?)?\s*$", re.DOTALL)
_ATTRIBUTE_LINE = re.compile(r"^#!?\[(?P<body>.*)\]$")
_IMPL_KEYWORD = re.compile(r"(?<![\w:])impl\b")
_FN_KEYWORD = re.compile(r"(?<![\w:])fn\b")
_WHERE_CLAUSE = re.compile(r"\bwhere\b")

_BRACKETS = {"}": "{", ")": "("}
_QUALIFIER_ORDER = ("default", "const", "async", "unsafe")


@dataclass
class RustDocument:
    """Scanned Rust source: structural tokens outside comments and literals."""

    source: str
    tokens: list[tuple[str, int]] = field(default_factory=list)
    partners: dict[int, int] = field(default_factory=dict)
    opaque: list[tuple[int, int]] = field(default_factory=list)

    def is_opaque(self, offset: int) -> bool:
        """Check if offset falls inside a comment or a literal."""
        return self.opaque_span(offset) is not None

    def opaque_span(self, offset: int) -> tuple[int, int] | None:
        """The comment or literal span containing offset, if any."""
        index = bisect.bisect_right(self.opaque, (offset, float("inf"))) - 1
        if index >= 0 and self.opaque[index][0] <= offset < self.opaque[index][1]:
            return self.opaque[index]
        return None

    def next_token(self, offset: int, kinds: str) -> tuple[str, int] | None:
        """First token of one of the given kinds at or after offset."""
        index = bisect.bisect_left(self.tokens, (offset,), key=lambda token: (token[1],))
        for kind, position in self.tokens[index:]:
            if kind in kinds:
                return kind, position
        return None


def _position(source: str, offset: int) -> tuple[int, int]:
    line = source.count("\n", 0, offset) + 1
    column = offset - (source.rfind("\n", 0, offset) + 1) + 1
    return line, column


def _scan_error(source: str, message: str, offset: int) -> ParseError:
    line, column = _position(source, offset)
    offending = source[offset:].split("\n", 1)[0]
    return ParseError(message, line=line, column=column, offending_text=offending)


def scan(source: str) -> RustDocument:
    """Tokenize braces, parentheses and semicolons, skipping comments and literals.

    Raises:
        ParseError: On an unterminated comment, string or unbalanced bracket
    """
    document = RustDocument(source)
    stack: list[tuple[str, int]] = []
    i = 0
    n = len(source)
    while i < n:
        c = source[i]
        if source.startswith("//", i):
            end = source.find("\n", i)
            end = n if end < 0 else end
            document.opaque.append((i, end))
            i = end
            continue
        if source.startswith("/*", i):
            depth, j = 1, i + 2
            while j < n and depth:
                if source.startswith("/*", j):
                    depth, j = depth + 1, j + 2
                elif source.startswith("*/", j):
                    depth, j = depth - 1, j + 2
                else:
                    j += 1
            if depth:
                raise _scan_error(source, "Unterminated block comment", i)
            document.opaque.append((i, j))
            i = j
            continue

        starts_word = i == 0 or not (source[i - 1].isalnum() or source[i - 1] == "_")
        raw = _RAW_STRING.match(source, i) if c in "br" and starts_word else None
        if raw:
            terminator = '"' + raw.group(1)
            end = source.find(terminator, raw.end())
            if end < 0:
                raise _scan_error(source, "Unterminated raw string literal", i)
            document.opaque.append((i, end + len(terminator)))
            i = end + len(terminator)
            continue
        if c == '"':
            j = i + 1
            while j < n and source[j] != '"':
                j += 2 if source[j] == "\\" else 1
            if j >= n:
                raise _scan_error(source, "Unterminated string literal", i)
            document.opaque.append((i, j + 1))
            i = j + 1
            continue
        if c == "'" or (c == "b" and starts_word and source.startswith("b'", i)):
            char = _CHAR_LITERAL.match(source, i)
            if char:
                document.opaque.append((i, char.end()))
                i = char.end()
                continue
            # a lifetime or a loop label
            i += 1
            continue

        if c in "{(":
            stack.append((c, i))
            document.tokens.append((c, i))
        elif c in "})":
            if not stack or stack[-1][0] != _BRACKETS[c]:
                raise _scan_error(source, f"Unbalanced '{c}'", i)
            _, opened = stack.pop()
            document.partners[opened] = i
            document.tokens.append((c, i))
        elif c == ";":
            document.tokens.append((c, i))
        i += 1

    if stack:
        kind, opened = stack[-1]
        raise _scan_error(source, f"Unclosed '{kind}'", opened)
    return document


class RustFunctionMerger(NotationMerger):
    """Merger for Rust `fn` items, keyed by function name."""

    notation = Notation.FUNCTION_UNIT
    default_placement = Placement.IN_PLACE
    private_marker = None

    def parse(self, code: str) -> RustDocument:
        return scan(code)

    def normalize_snippet(self, code: str) -> str:
        # fn items need no container
        return code

    def merge(self, original_code: str, snippet_code: str) -> MergeResult:
        original = self.parse(original_code)
        if not snippet_code.strip():
            return MergeResult(original_code, self.notation)
        snippet = self.parse(self.normalize_snippet(snippet_code))

        original_units, _ = self._extract_units(original, keep_directives=True)
        snippet_units, commands = self._extract_units(snippet)
        if not snippet_units:
            return MergeResult(original_code, self.notation, ["UnitNameUnresolvable: the snippet contains no fn item"])

        reconciliation = Reconciler(self).reconcile(original_units, snippet_units, commands)
        impls: dict[str, int] = {}
        for brace, target in self._impl_bodies(original).items():
            impls.setdefault(target, brace)
        for unit in reconciliation.table.values():
            if unit.origin is UnitOrigin.SNIPPET:
                unit.details["insert_at"], unit.details["insert_indent"] = self._insertion_point(unit, original, original_units, impls)

        edits = plan_edits(original_units, reconciliation.table, self.placement, self._render, lambda unit: unit.details["insert_at"])
        return MergeResult(apply_edits(original_code, edits), self.notation, reconciliation.warnings)

    def is_valid_name(self, name: str) -> bool:
        return bool(_IDENTIFIER.match(name))

    def is_valid_parameter(self, parameter: str) -> bool:
        return bool(_PARAMETER.match(parameter))

    def is_valid_decorator(self, decorator: str) -> bool:
        return bool(decorator) and "\n" not in decorator

    def apply_access(self, unit: Unit, value: str) -> bool:
        keyword = " ".join(value.split())
        if keyword.lower() == "private":
            unit.visibility = None
            return True
        if keyword.lower() == "public":
            keyword = "pub"
        if not _VISIBILITY.match(keyword):
            return False
        unit.visibility = keyword
        return True

    def apply_decorators(self, unit: Unit, decorators: list[str]) -> bool:
        cleaned = []
        for decorator in decorators:
            decorator = decorator.strip().removeprefix("@").strip()
            match = _ATTRIBUTE_LINE.match(decorator)
            cleaned.append(match.group("body").strip() if match else decorator)
        return super().apply_decorators(unit, cleaned)

    def apply_extensions(self, unit: Unit, commands: CommandSet) -> list[str]:
        qualifiers = unit.details["qualifiers"]
        if commands.is_async and "async" not in qualifiers:
            qualifiers.append("async")
        if commands.is_unsafe and "unsafe" not in qualifiers:
            qualifiers.append("unsafe")
        qualifiers.sort(key=_QUALIFIER_ORDER.index)

        if commands.return_type is not None:
            match = _RETURN_TYPE.match(unit.details["signature_suffix"])
            where = (match.group("where") or "") if match else ""
            unit.details["signature_suffix"] = f" -> {commands.return_type.strip()}{where} "
        return []

    def _extract_units(self, document: RustDocument, keep_directives: bool = False) -> tuple[UnitTable, dict[str, CommandSet]]:
        """Locate every fn item with a body, outermost first."""
        source = document.source
        table = UnitTable()
        commands: dict[str, CommandSet] = {}
        claimed: list[tuple[int, int]] = []
        impl_bodies = self._impl_bodies(document)

        position = 0
        while (match := _FN_SIGNATURE.search(source, position)) is not None:
            start = match.start()
            position = match.end()
            opaque = document.opaque_span(start)
            if opaque is not None:
                # a comment ending in a qualifier, as in `// @visibility pub`, may run into the next fn
                position = opaque[1]
                continue
            if any(s <= start < e for s, e in claimed):
                continue
            line_start = source.rfind("\n", 0, start) + 1
            at_line_start = not source[line_start:start].strip()
            before = source[:start].rstrip()
            if not at_line_start and before and before[-1] not in "{};]":
                continue

            opening = document.next_token(match.end(), "({;")
            if opening is None or opening[0] != "(":
                continue
            close_paren = document.partners[opening[1]]
            body_token = document.next_token(close_paren + 1, "{;")
            if body_token is None or body_token[0] == ";":
                # declaration without a body (trait item, extern block)
                continue
            body_start = body_token[1]
            body_end = document.partners[body_start] + 1
            claimed.append((start, body_end))
            blocks = self._enclosing_blocks(document, start)

            indent = source[line_start:start] if at_line_start else ""
            span_start = line_start if at_line_start else start
            prelude = self._prelude(source, span_start) if at_line_start else []
            if prelude:
                span_start = prelude[0][0]

            comments = [text for _, text in prelude if not _ATTRIBUTE_LINE.match(text)]
            directives = [text for text in comments if is_directive_comment(text)]
            unit_commands = parse_directives(directives)
            text = source[span_start:body_end]
            if not keep_directives and directives:
                kept = [source[offset:source.index("\n", offset) + 1] for offset, line in prelude if line not in directives]
                text = "".join(kept) + source[line_start:body_end]

            unit = Unit(
                name=match.group("name"),
                kind="fn",
                visibility=" ".join(match.group("visibility").split()) if match.group("visibility") else None,
                decorators=[_ATTRIBUTE_LINE.match(line).group("body").strip() for _, line in prelude if _ATTRIBUTE_LINE.match(line)],
                parameters=[p.strip() for p in _split_top_level(source[opening[1] + 1 : close_paren])],
                parameters_text=dedent_tail(source[opening[1] + 1 : close_paren], indent),
                body=dedent_tail(source[body_start:body_end], indent),
                text=text,
                start=span_start,
                end=body_end,
                comments=[c for c in comments if c not in directives],
                details={
                    "block": blocks[-1] if blocks else None,
                    "impl": impl_bodies.get(blocks[-1]) if blocks else None,
                    "indent": indent,
                    "qualifiers": match.group("qualifiers").split(),
                    "abi": " ".join(match.group("abi").split()) if match.group("abi") else "",
                    "generics": source[match.end() : opening[1]],
                    "signature_suffix": dedent_tail(source[close_paren + 1 : body_start], indent),
                },
            )
            table.add(unit)
            if not unit_commands.is_empty():
                commands[unit.name] = unit_commands
        return table, commands

    def _prelude(self, source: str, line_start: int) -> list[tuple[int, str]]:
        """Attribute and comment lines directly above a fn line, as (offset, stripped text)."""
        prelude = []
        while line_start > 0:
            previous_start = source.rfind("\n", 0, line_start - 1) + 1
            line = source[previous_start : line_start - 1].strip()
            if not (_ATTRIBUTE_LINE.match(line) or line.startswith(("//", "/*", "*"))):
                break
            prelude.insert(0, (previous_start, line))
            line_start = previous_start
        return prelude

    def _enclosing_blocks(self, document: RustDocument, offset: int) -> list[int]:
        """Opening braces of the blocks containing offset, outermost first."""
        return [position for kind, position in document.tokens if kind == "{" and position < offset < document.partners[position]]

    def _impl_bodies(self, document: RustDocument) -> dict[int, str]:
        """Map the opening brace of every impl block to its target, e.g. `Display for Point`."""
        source = document.source
        bodies = {}
        header_start = 0
        for kind, position in document.tokens:
            if kind == "{":
                header = source[header_start:position]
                keywords = [m for m in _IMPL_KEYWORD.finditer(header) if not document.is_opaque(header_start + m.start())]
                # `fn f(x: impl Trait) {` is a fn body, not an impl block
                functions = [m for m in _FN_KEYWORD.finditer(header) if not document.is_opaque(header_start + m.start())]
                if keywords and not functions:
                    target = _impl_target(header[keywords[-1].end() :])
                    if target:
                        bodies[position] = target
            if kind in "{};":
                header_start = position + 1
        return bodies

    def _insertion_point(self, unit: Unit, original: RustDocument, original_units: UnitTable, impls: dict[str, int]) -> tuple[int, str]:
        """Offset and indentation for a fn that replaces no span in place.

        A fn written inside `impl X { ... }` goes into the original `impl X`,
        after its last fn or before its closing brace. Any other fn goes after
        the last fn of the original, or at the end of the document.
        """
        brace = impls.get(unit.details["impl"]) if unit.details["impl"] is not None else None
        if brace is not None:
            members = [u for u in original_units.values() if u.details["block"] == brace]
            if not members:
                return original.partners[brace], line_indent(original.source, brace) + "    "
        else:
            members = list(original_units.values())
        if not members:
            return len(original.source), ""
        last = max(members, key=lambda u: u.end)
        return last.end, last.details["indent"]

    def _render(self, unit: Unit, target: Unit | None) -> str:
        indent = target.details["indent"] if target is not None else unit.details.get("insert_indent", "")
        qualifiers = unit.details["qualifiers"]
        abi = unit.details["abi"]
        text = render_template(
            "rust",
            "function.rs.jinja2",
            comments=unit.comments,
            attributes=unit.decorators,
            visibility=unit.visibility or "",
            qualifiers="".join(q + " " for q in qualifiers) + (abi + " " if abi else ""),
            name=unit.name,
            generics=unit.details["generics"],
            parameters=unit.parameters_text if unit.parameters_text is not None else ", ".join(unit.parameters),
            signature_suffix=unit.details["signature_suffix"],
            body=unit.body,
        )
        return indent_lines(text, indent)


def _split_top_level(text: str) -> list[str]:
    """Split a parameter list on commas outside brackets."""
    parts, depth, current = [], 0, ""
    for c in text:
        if c in "<([{":
            depth += 1
        elif c in ")]}" or (c == ">" and not current.endswith("-")):
            depth -= 1
        if c == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += c
    if current.strip():
        parts.append(current)
    return parts


def _impl_target(header: str) -> str | None:
    """The `Type` or `Trait for Type` part of an impl header, whitespace normalized."""
    text = header.strip()
    if text.startswith("<"):
        depth = 0
        for i, c in enumerate(text):
            if c == "<":
                depth += 1
            elif c == ">" and text[i - 1] != "-":
                depth -= 1
                if depth == 0:
                    text = text[i + 1 :]
                    break
    text = _WHERE_CLAUSE.split(text, maxsplit=1)[0]
    return " ".join(text.split()) or None
