"""
Tests for the TypeScript / JavaScript class merger.
"""

from __future__ import annotations

import pytest

from code_bridge.config import MergeConfig, Placement
from code_bridge.merger import CodeMergeError, ParseError, TypeScriptClassMerger

EXAMPLE = """class Example {
    method1() { return 1; }
    method2() { return 2; }
}
"""


class TestTypeScriptParsing:
    """Tests for parsing and snippet normalization."""

    def test_parse_valid_code(self):
        tree = TypeScriptClassMerger().parse(EXAMPLE)
        assert tree.root_node.type == "program"

    def test_parse_error_has_position(self):
        with pytest.raises(ParseError) as info:
            TypeScriptClassMerger().parse("class Broken {\n    method( {\n}\n")
        assert info.value.line is not None
        assert info.value.column is not None

    def test_parse_error_is_a_merge_error(self):
        with pytest.raises(CodeMergeError):
            TypeScriptClassMerger().merge("class A {", "method() {}")

    def test_bare_method_is_wrapped(self):
        """Test that a bare method snippet is wrapped in the sentinel class."""
        merger = TypeScriptClassMerger()
        normalized = merger.normalize_snippet("// @delete\nmethod1() {}\n")
        assert normalized.startswith("class __CodeBridgeSnippet__ {\n")
        merger.parse(normalized)

    def test_function_keyword_is_dropped(self):
        normalized = TypeScriptClassMerger().normalize_snippet("async function load(url) {\n    return fetch(url);\n}")
        assert "async load(url) {" in normalized
        assert "function" not in normalized

    def test_complete_document_is_unchanged(self):
        merger = TypeScriptClassMerger()
        assert merger.normalize_snippet(EXAMPLE) == EXAMPLE

    def test_other_text_is_unchanged(self):
        assert TypeScriptClassMerger().normalize_snippet("const x = 1;") == "const x = 1;"


class TestTypeScriptMerge:
    """Tests for merging class members."""

    def merge(self, original: str, snippet: str, config: MergeConfig | None = None) -> str:
        return TypeScriptClassMerger(config).merge_documents(original, snippet).text

    def test_rename_directive(self):
        """Test that a renamed method replaces the original one."""
        result = self.merge(EXAMPLE, "// @rename updatedMethod\nmethod1() { return 10; }\n")

        assert result == "class Example {\n    method2() { return 2; }\n    updatedMethod() { return 10; }\n}\n"
        assert "method1" not in result

    def test_delete_directive(self):
        result = self.merge(EXAMPLE, "// @delete\nmethod2() {}\n")
        assert result == "class Example {\n    method1() { return 1; }\n}\n"

    def test_private_access(self):
        """Test that private access produces an ECMAScript private name."""
        result = self.merge(EXAMPLE, "// @access private\nmethod1() { return 1; }\n")

        assert "#method1() { return 1; }" in result
        assert "    method1()" not in result

    def test_public_access(self):
        result = self.merge(EXAMPLE, "// @access public\nmethod1() { return 1; }\n")
        assert "    public method1() { return 1; }" in result

    def test_empty_snippet_is_identity(self):
        assert self.merge(EXAMPLE, "") == EXAMPLE
        assert self.merge(EXAMPLE, "  \n") == EXAMPLE

    def test_merge_is_idempotent(self):
        """Test that merging the same directive-free snippet twice is stable."""
        snippet = "method1() { return 10; }\n"
        once = self.merge(EXAMPLE, snippet)
        assert self.merge(once, snippet) == once

    def test_untouched_members_keep_their_text(self):
        original = "class A {\n    // keep me\n    untouched( a,b ) {   return a+b }\n    other() {}\n}\n"
        result = self.merge(original, "other() { return 1; }")
        assert "    // keep me\n    untouched( a,b ) {   return a+b }\n" in result

    def test_new_method_is_appended(self):
        result = self.merge(EXAMPLE, "method3() { return 3; }")
        assert result == "class Example {\n    method1() { return 1; }\n    method2() { return 2; }\n    method3() { return 3; }\n}\n"

    def test_in_place_placement(self):
        result = self.merge(EXAMPLE, "method1() { return 10; }", MergeConfig(placement=Placement.IN_PLACE))
        assert result == "class Example {\n    method1() { return 10; }\n    method2() { return 2; }\n}\n"

    def test_decorators_replace_existing(self):
        """Test that decorator directives replace the snippet's own decorators."""
        snippet = "// @decorator log\n// @decorator memoize('x')\n@old\nmethod1() { return 1; }\n"
        result = self.merge(EXAMPLE, snippet)

        assert "    @log\n    @memoize('x')\n    method1() { return 1; }" in result
        assert "@old" not in result

    def test_params_directive(self):
        result = self.merge(EXAMPLE, "// @params a, b\nmethod1(x) { return x; }\n")
        assert "    method1(a, b) { return x; }" in result

    def test_invalid_params_are_ignored_with_warning(self):
        merged = TypeScriptClassMerger().merge_documents(EXAMPLE, "// @params a b c\nmethod1(x) { return x; }\n")

        assert "    method1(x) { return x; }" in merged.text
        assert merged.warnings == ["DirectiveIgnored: @params 'a b c' on method 'method1'"]

    def test_multiline_method_and_blank_line_layout(self):
        """Test that blank-line separated members stay separated and re-indented."""
        original = "class Counter {\n    count = 0;\n\n    increment() {\n        this.count += 1;\n    }\n}\n"
        result = self.merge(original, "increment() {\n    this.count += 2;\n}\n")
        assert result == "class Counter {\n    count = 0;\n\n    increment() {\n        this.count += 2;\n    }\n}\n"

    def test_named_class_snippet(self):
        """Test that a snippet class merges into the original class of the same name."""
        original = "class A {\n    run() { return 'a'; }\n}\n\nexport class B {\n    run() { return 'b'; }\n}\n"
        result = self.merge(original, "class B {\n    run() { return 'B'; }\n}\n")

        assert "class A {\n    run() { return 'a'; }\n}" in result
        assert "export class B {\n    run() { return 'B'; }\n}" in result

    def test_unknown_class_is_appended(self):
        result = self.merge(EXAMPLE, "class Other {\n    go() {}\n}\n")
        assert result == EXAMPLE + "\nclass Other {\n    go() {}\n}\n"

    def test_original_without_class_warns(self):
        merged = TypeScriptClassMerger().merge_documents("const x = 1;\n", "method() {}\n")
        assert merged.text == "const x = 1;\n"
        assert merged.warnings[0].startswith("UnitNameUnresolvable")

    def test_anonymous_members_are_carried(self):
        """Test that index signatures and dangling comments stay in place."""
        original = "class A {\n    [key: string]: unknown;\n    run() {}\n    // trailing note\n}\n"
        result = self.merge(original, "run() { return 1; }")
        assert result == "class A {\n    [key: string]: unknown;\n    // trailing note\n    run() { return 1; }\n}\n"

    def test_typescript_signature_parts(self):
        """Test that modifiers, generics and return types survive a rename."""
        original = "class Store {\n    read(key: string): number { return 0; }\n}\n"
        snippet = "// @rename fetch\nstatic async read<T>(key: string): Promise<T> {\n    return load(key);\n}\n"
        result = self.merge(original, snippet)
        assert "    static async fetch<T>(key: string): Promise<T> {\n        return load(key);\n    }" in result
