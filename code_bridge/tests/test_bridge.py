"""
Tests for the merge entry points and notation dispatch.
"""

from __future__ import annotations

import pytest

from code_bridge import CodeBridge, MergeConfig, Notation, UnsupportedNotation, get_merger, merge, merge_with_report
from code_bridge.merger import CodeMergeError, PythonClassMerger, RustFunctionMerger

RUST_ORIGINAL = 'fn main() {\n    println!("Hello");\n}\n'
RUST_SNIPPET = "pub fn calculate_sum(a: i32, b: i32) -> i32 {\n    a + b\n}\n"


class TestDispatch:
    """Tests for get_merger()."""

    def test_tags_and_aliases(self):
        assert isinstance(get_merger(Notation.PYTHON_CLASS), PythonClassMerger)
        assert isinstance(get_merger("function-unit"), RustFunctionMerger)
        assert isinstance(get_merger("rs"), RustFunctionMerger)

    def test_unsupported_notation(self):
        """Test that an unknown tag raises, listing the supported ones."""
        with pytest.raises(UnsupportedNotation) as info:
            get_merger("cobol")

        assert info.value.notation == "cobol"
        assert "structural-class" in str(info.value)
        assert isinstance(info.value, CodeMergeError)

    def test_config_is_passed_to_the_merger(self):
        config = MergeConfig(strict_directives=True)
        assert get_merger("py", config).config is config


class TestMerge:
    """Tests for merge(), merge_with_report() and CodeBridge."""

    def test_merge_returns_text(self):
        result = merge(RUST_ORIGINAL, RUST_SNIPPET, "function-unit")
        assert "fn main()" in result
        assert result.index("fn main()") < result.index("pub fn calculate_sum(a: i32, b: i32) -> i32")

    def test_merge_with_report(self):
        report = merge_with_report(RUST_ORIGINAL, "// @access nobody\n" + RUST_SNIPPET, Notation.FUNCTION_UNIT)

        assert report.notation is Notation.FUNCTION_UNIT
        assert report.warnings == ["DirectiveIgnored: @access 'nobody' on fn 'calculate_sum'"]

    def test_identity_for_every_textual_notation(self):
        for notation, original in [("function-unit", RUST_ORIGINAL), ("python-class", "class A:\n    x = 1\n")]:
            assert merge(original, "", notation) == original

    def test_code_bridge_process(self):
        bridge = CodeBridge()
        result = bridge.process("class A:\n    def run(self):\n        return 1\n", "# @rename go\ndef run(self):\n    return 1\n", "py")
        assert "def go(self):" in result
        assert "def run" not in result

    def test_code_bridge_process_file(self, tmp_path):
        path = tmp_path / "main.rs"
        path.write_text(RUST_ORIGINAL)

        report = CodeBridge().process_file(path, RUST_SNIPPET)
        assert report.notation is Notation.FUNCTION_UNIT
        assert "calculate_sum" in report.text

    def test_code_bridge_process_file_unknown_suffix(self, tmp_path):
        path = tmp_path / "main.cob"
        path.write_text("")
        with pytest.raises(UnsupportedNotation):
            CodeBridge().process_file(path, "")

    def test_strict_directives(self):
        from code_bridge import DirectiveError

        with pytest.raises(DirectiveError):
            merge(RUST_ORIGINAL, "// @access nobody\n" + RUST_SNIPPET, "rs", MergeConfig(strict_directives=True))


class TestStructuralScenarios:
    """End-to-end class merges through the public entry point."""

    def test_rename_scenario(self):
        original = "class Example {\n    method1() { return 1; }\n    method2() { return 2; }\n}\n"
        result = merge(original, "// @rename updatedMethod\nmethod1() { return 10; }\n", "js")

        assert "updatedMethod() { return 10; }" in result
        assert "method2() { return 2; }" in result
        assert "method1" not in result

    def test_private_scenario(self):
        original = "class Example {\n    method1() { return 1; }\n}\n"
        result = CodeBridge().process(original, "// @access private\nmethod1() { return 1; }\n", "ts")
        assert "#method1() { return 1; }" in result
