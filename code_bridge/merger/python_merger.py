"""
Python class merger.

Parses both documents with the standard library ast module and merges the
members of top-level classes. The class bodies touched by the snippet are
re-emitted line by line: members nobody changed keep their source lines,
members rewritten by a directive are printed with ast.unparse.
"""

from __future__ import annotations

import ast
import io
import keyword
import logging
import re
import tokenize

from ..commands import CommandSet, is_directive_comment, parse_directives
from ..config import Notation
from .base import MergeResult, NotationMerger, ParseError, Unit, UnitOrigin, UnitTable
from .reconciler import Reconciler
from .rendering import dedent_lines, indent_lines

logger = logging.getLogger(__name__)

_CLASS_LINE = re.compile(r"^class\s+[A-Za-z_]", re.MULTILINE)
_BARE_FUNCTION = re.compile(r"^(?:@|def\s|async\s+def\s)")
_ACCESS_LEVELS = ("public", "protected")
_BLANK_LINE = re.compile(r"\n[ \t]*\n")

# f-strings are tokenized in several pieces from Python 3.12 on
FSTRING_START = getattr(tokenize, "FSTRING_START", None)
FSTRING_END = getattr(tokenize, "FSTRING_END", None)


class PythonClassMerger(NotationMerger):
    """Merger for Python classes using the ast module."""

    notation = Notation.PYTHON_CLASS
    private_marker = "__"

    INDENT_UNIT = "    "

    def parse(self, code: str) -> ast.Module:
        """Parse Python source code into an AST.

        Raises:
            ParseError: If the code contains syntax errors
        """
        try:
            return ast.parse(code)
        except SyntaxError as e:
            raise ParseError(f"Failed to parse Python code: {e.msg}", line=e.lineno, column=e.offset, offending_text=(e.text or "").strip()) from e

    def normalize_snippet(self, code: str) -> str:
        if _CLASS_LINE.search(code):
            return code

        text = code.strip("\n")
        verbatim = _string_rows(text)
        margins = [len(line) - len(line.lstrip()) for i, line in enumerate(text.split("\n")) if i not in verbatim and line.strip()]
        text = dedent_lines(text, min(margins, default=0), verbatim)
        head = next((line for line in text.split("\n") if line.strip() and not line.startswith("#")), "")
        if not _BARE_FUNCTION.match(head):
            return code
        return f"class {self.config.sentinel_container}:\n{indent_lines(text, self.INDENT_UNIT, verbatim)}\n"

    def merge(self, original_code: str, snippet_code: str) -> MergeResult:
        original_tree = self.parse(original_code)
        if not snippet_code.strip():
            return MergeResult(original_code, self.notation)

        snippet_text = self.normalize_snippet(snippet_code)
        snippet_tree = self.parse(snippet_text)

        original_classes = [node for node in original_tree.body if isinstance(node, ast.ClassDef)]
        by_name = {node.name: index for index, node in enumerate(original_classes)}

        warnings: list[str] = []
        reconciler = Reconciler(self)
        tables: dict[int, UnitTable] = {}
        appended: list[str] = []
        snippet_lines = snippet_text.splitlines()
        snippet_strings = _string_rows(snippet_text)

        for node in snippet_tree.body:
            if not isinstance(node, ast.ClassDef):
                if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    warnings.append(f"UnitNameUnresolvable: skipped module-level function '{node.name}'")
                continue

            if node.name == self.config.sentinel_container:
                if not original_classes:
                    warnings.append("UnitNameUnresolvable: the original has no class to merge the snippet members into")
                    continue
                index = 0
            elif node.name in by_name:
                index = by_name[node.name]
            else:
                start = _first_line(node)
                verbatim = {i for i, row in enumerate(range(start, node.end_lineno + 1)) if row - 1 in snippet_strings}
                appended.append(dedent_lines("\n".join(snippet_lines[start - 1 : node.end_lineno]), node.col_offset, verbatim))
                logger.debug("Added class '%s'", node.name)
                continue

            if index not in tables:
                tables[index] = self._extract_units(original_classes[index], original_code, keep_directives=True)[0]
            snippet_units, commands = self._extract_units(node, snippet_text)
            reconciliation = reconciler.reconcile(tables[index], snippet_units, commands)
            tables[index] = reconciliation.table
            warnings.extend(reconciliation.warnings)

        if not tables and not appended:
            return MergeResult(original_code, self.notation, warnings)

        offsets = _line_offsets(original_code)
        pieces = []
        cursor = 0
        for index in sorted(tables):
            node = original_classes[index]
            start, end, body = self._render_body(node, tables[index], original_code, offsets)
            pieces.append(original_code[cursor:start])
            pieces.append(body)
            cursor = end
        pieces.append(original_code[cursor:])

        text = "".join(pieces)
        for class_text in appended:
            text = text.rstrip() + "\n\n\n" + class_text + "\n"
        return MergeResult(text, self.notation, warnings)

    def is_valid_name(self, name: str) -> bool:
        return name.isidentifier() and not keyword.iskeyword(name)

    def apply_rename(self, unit: Unit, new_name: str) -> bool:
        if unit.kind != "method" or not super().apply_rename(unit, new_name):
            return False
        unit.body.name = unit.name
        unit.details["modified"] = True
        return True

    def make_private(self, unit: Unit) -> bool:
        """Name-mangled privacy: __name. Dunder methods cannot be made private."""
        if unit.kind != "method" or _is_dunder(unit.name) or not unit.name.strip("_"):
            return False
        if not unit.name.startswith(self.private_marker):
            unit.name = self.private_marker + unit.name.lstrip("_")
            unit.body.name = unit.name
            unit.details["modified"] = True
        return True

    def apply_access(self, unit: Unit, value: str) -> bool:
        """Public and protected are recorded on the unit, but Python has no keyword to print them."""
        level = value.strip().lower()
        if level == "private":
            return self.make_private(unit)
        if level in _ACCESS_LEVELS:
            unit.visibility = level
        return False

    def apply_decorators(self, unit: Unit, decorators: list[str]) -> bool:
        if unit.kind != "method":
            return False
        expressions = []
        for decorator in decorators:
            try:
                expressions.append(ast.parse(decorator.strip().removeprefix("@").strip(), mode="eval").body)
            except SyntaxError:
                return False
        unit.body.decorator_list = expressions
        unit.decorators = [ast.unparse(expression) for expression in expressions]
        unit.details["modified"] = True
        return True

    def apply_parameters(self, unit: Unit, parameters: list[str]) -> bool:
        if unit.kind != "method":
            return False
        try:
            signature = ast.parse(f"def _({', '.join(parameters)}): pass").body[0]
        except SyntaxError:
            return False
        unit.body.args = signature.args
        unit.parameters = parameters
        unit.parameters_text = None
        unit.details["modified"] = True
        return True

    def apply_extensions(self, unit: Unit, commands: CommandSet) -> list[str]:
        ignored = [name for name in ("is_unsafe", "return_type") if name in commands.seen]
        if commands.is_async:
            if unit.kind == "method":
                unit.body = _make_async(unit.body)
                unit.details["modified"] = True
            else:
                ignored.insert(0, "is_async")
        return ignored

    def _extract_units(self, node: ast.ClassDef, source: str, keep_directives: bool = False) -> tuple[UnitTable, dict[str, CommandSet]]:
        """Build the member table of a class and the directives of each member."""
        lines = source.splitlines()
        comments = _comment_lines(source)
        strings = _string_rows(source)
        table = UnitTable()
        commands: dict[str, CommandSet] = {}
        previous_end = node.lineno

        for index, statement in enumerate(node.body):
            first = _first_line(statement)
            start = first
            while start - 1 > previous_end and start - 1 in comments:
                start -= 1
            previous_end = statement.end_lineno

            leading = [comments[row] for row in range(start, first)]
            directives = [c for c in leading if is_directive_comment(c)]
            unit_commands = parse_directives(directives)
            # directive comments are instructions, not code
            rows = [row for row in range(start, statement.end_lineno + 1) if keep_directives or row >= first or not is_directive_comment(comments[row])]
            source_lines = [lines[row - 1] for row in rows]
            if statement.lineno == node.lineno:
                # class A: x = 1
                source_lines[0] = source_lines[0].encode("utf8")[statement.col_offset :].decode("utf8")
                indent = ""
            else:
                head = lines[first - 1]
                indent = head[: len(head) - len(head.lstrip())]
            verbatim = {i for i, row in enumerate(rows) if row - 1 in strings}
            unit = self._statement_unit(statement, index, dedent_lines("\n".join(source_lines), len(indent), verbatim))
            if unit is None:
                continue
            unit.details.update(source="\n".join(source_lines), indent=indent, verbatim=verbatim)
            unit.comments = [c for c in leading if c not in directives]
            unit.start, unit.end = start, statement.end_lineno
            table.add(unit)
            if not unit_commands.is_empty() and not unit.anonymous:
                commands[unit.name] = unit_commands
        return table, commands

    def _statement_unit(self, statement: ast.stmt, index: int, text: str) -> Unit | None:
        if isinstance(statement, ast.Pass):
            return None
        if isinstance(statement, (ast.FunctionDef, ast.AsyncFunctionDef)):
            return Unit(
                name=statement.name,
                kind="method",
                decorators=[ast.unparse(d) for d in statement.decorator_list],
                parameters=[ast.unparse(a) for a in statement.args.posonlyargs + statement.args.args + statement.args.kwonlyargs],
                parameters_text=ast.unparse(statement.args),
                body=statement,
                text=text,
            )
        target = None
        if isinstance(statement, ast.AnnAssign):
            target = statement.target
        elif isinstance(statement, ast.Assign) and len(statement.targets) == 1:
            target = statement.targets[0]
        if isinstance(target, ast.Name):
            return Unit(name=target.id, kind="field", body=statement, text=text)
        return Unit(name=f"<{type(statement).__name__.lower()}:{index}>", kind="statement", body=statement, text=text, anonymous=True)

    def _member_text(self, unit: Unit, indent: str) -> str:
        """Text of a member at the given indentation; string literal contents are never re-indented."""
        if unit.origin is UnitOrigin.ORIGINAL or not unit.details.get("modified"):
            if unit.details.get("indent") == indent:
                return unit.details["source"]
            text, verbatim = unit.text, unit.details.get("verbatim", set())
        else:
            text = "\n".join(unit.comments + [ast.unparse(unit.body)])
            verbatim = _string_rows(text)
        return indent_lines(text, indent, verbatim)

    def _render_body(self, node: ast.ClassDef, table: UnitTable, source: str, offsets: list[int]) -> tuple[int, int, str]:
        """Print a class body; returns the replaced range and its new text."""
        lines = source.splitlines()
        first = node.body[0]
        comments = _comment_lines(source)
        start_row = _first_line(first)
        while start_row - 1 > node.lineno and start_row - 1 in comments:
            start_row -= 1

        header_row = _first_line(node)
        if first.lineno == node.lineno:
            # class A: pass
            class_indent = lines[header_row - 1][: len(lines[header_row - 1]) - len(lines[header_row - 1].lstrip())]
            member_indent = class_indent + self.INDENT_UNIT
            line = lines[first.lineno - 1]
            column = len(line.encode("utf8")[: first.col_offset].decode("utf8"))
            start = offsets[first.lineno - 1] + len(line[:column].rstrip())
            prefix = "\n"
        else:
            line = lines[start_row - 1]
            member_indent = line[: len(line) - len(line.lstrip())]
            start = offsets[start_row - 1]
            prefix = ""
        end = offsets[node.end_lineno - 1] + len(lines[node.end_lineno - 1])

        separator = "\n"
        for previous, current in zip(node.body, node.body[1:]):
            gap = "\n".join(lines[previous.end_lineno - 1 : _first_line(current)])
            if _BLANK_LINE.search(gap):
                separator = "\n\n"
                break

        members = [self._member_text(unit, member_indent) for unit in table.values()]
        if not members:
            members = [member_indent + "pass"]
        return start, end, prefix + separator.join(members)


def _first_line(node: ast.stmt) -> int:
    """First line of a statement, decorators included."""
    decorators = getattr(node, "decorator_list", None) or []
    return min([node.lineno] + [d.lineno for d in decorators])


def _comment_lines(source: str) -> dict[int, str]:
    """Map line number -> comment text for lines holding only a comment."""
    comments = {}
    tokens = tokenize.generate_tokens(io.StringIO(source).readline)
    try:
        for token in tokens:
            if token.type == tokenize.COMMENT and not token.line[: token.start[1]].strip():
                comments[token.start[0]] = token.string
    except tokenize.TokenError:
        # source already went through ast.parse; only a missing final newline ends up here
        pass
    return comments


def _string_rows(source: str) -> set[int]:
    """0-based indices of the lines that start inside a multi-line string literal."""
    rows = set()
    fstrings = []
    try:
        for token in tokenize.generate_tokens(io.StringIO(source).readline):
            if token.type == tokenize.STRING:
                rows.update(range(token.start[0], token.end[0]))
            elif token.type == FSTRING_START:
                fstrings.append(token.start[0])
            elif token.type == FSTRING_END and fstrings:
                rows.update(range(fstrings.pop(), token.end[0]))
    except (tokenize.TokenError, SyntaxError):
        # the text went through ast.parse; only a missing final newline ends up here
        pass
    return rows


def _line_offsets(source: str) -> list[int]:
    offsets = [0]
    for line in source.splitlines(keepends=True):
        offsets.append(offsets[-1] + len(line))
    return offsets


def _is_dunder(name: str) -> bool:
    return len(name) > 4 and name.startswith("__") and name.endswith("__")


def _make_async(node: ast.FunctionDef | ast.AsyncFunctionDef) -> ast.AsyncFunctionDef:
    if isinstance(node, ast.AsyncFunctionDef):
        return node
    async_node = ast.AsyncFunctionDef(**{name: getattr(node, name) for name in node._fields if hasattr(node, name)})
    return ast.copy_location(async_node, node)
