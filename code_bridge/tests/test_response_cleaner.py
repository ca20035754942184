"""
Tests for model response cleanup.
"""

from __future__ import annotations

from code_bridge.response_cleaner import clean_response, extract_code_block, is_code_line, remove_explanations


class TestExtractCodeBlock:
    """Tests for fenced code block extraction."""

    def test_longest_block_wins(self):
        text = "```\na()\n```\ntext\n```js\nlonger() { return 1; }\n```\n"
        assert extract_code_block(text) == "longer() { return 1; }\n"

    def test_requested_language_is_preferred(self):
        text = "```python\ndef a(): pass\n```\n```javascript\nfunction somethingLonger() { return 1; }\n```\n"
        assert extract_code_block(text, "python") == "def a(): pass\n"
        assert extract_code_block(text, "javascript") == "function somethingLonger() { return 1; }\n"

    def test_no_block(self):
        assert extract_code_block("no code here") is None


class TestCleanResponse:
    """Tests for clean_response()."""

    def test_fenced_response(self):
        text = "Here is the updated method:\n```javascript\nmethod1() {\n  return 1;\n}\n```\nHope this helps!"
        assert clean_response(text) == "method1() {\n  return 1;\n}\n"

    def test_unfenced_response_keeps_directives(self):
        """Test that prose around unfenced code is dropped."""
        text = "Sure! Here you go:\n// @rename foo\nmethod1() { return 1; }\n\nThe updated method now returns 1."
        assert clean_response(text) == "// @rename foo\nmethod1() { return 1; }\n"

    def test_special_characters(self):
        text = "```\nconst s = “hi” + ‘x’; // ok… – —\n```"
        assert clean_response(text) == "const s = \"hi\" + 'x'; // ok... - --\n"

    def test_indentation_is_normalized(self):
        text = "```\n    a() {\n      b();\n    }\n```"
        assert clean_response(text) == "a() {\n  b();\n}\n"

    def test_empty_response(self):
        assert clean_response("") == ""


class TestHelpers:
    """Tests for code line detection."""

    def test_is_code_line(self):
        assert is_code_line("function load(url) {")
        assert is_code_line("method1() {")
        assert is_code_line("pub fn calculate_sum(a: i32) -> i32 {")
        assert is_code_line("def run(self):")
        assert is_code_line("# @delete")
        assert is_code_line(".a {")
        assert not is_code_line("Here is the code you asked for.")

    def test_remove_explanations_without_code(self):
        assert remove_explanations("Nothing to see") == "Nothing to see"
