"""
Tests for the code-bridge command line interface.
"""

from __future__ import annotations

import json

from click.testing import CliRunner

from code_bridge.code_bridge import code_bridge

ORIGINAL = "class Greeter:\n    def hello(self):\n        return 1\n\n    def bye(self):\n        return 2\n"


def write_files(tmp_path, original=ORIGINAL, snippet="def hello(self):\n    return 10\n", suffix=".py"):
    original_path = tmp_path / f"greeter{suffix}"
    original_path.write_text(original)
    snippet_path = tmp_path / "snippet.txt"
    snippet_path.write_text(snippet)
    return original_path, snippet_path


class TestMergeCommand:
    """Tests for `code-bridge merge`."""

    def test_merge_to_stdout(self, tmp_path):
        original_path, snippet_path = write_files(tmp_path)
        result = CliRunner().invoke(code_bridge, ["merge", str(original_path), str(snippet_path)])

        assert result.exit_code == 0, result.output
        assert "    def hello(self):\n        return 10\n" in result.output
        assert original_path.read_text() == ORIGINAL

    def test_merge_to_output_file(self, tmp_path):
        """Test that --output writes the merged document."""
        original_path, snippet_path = write_files(tmp_path)
        result = CliRunner().invoke(code_bridge, ["merge", str(original_path), str(snippet_path), "--output", str(original_path)])

        assert result.exit_code == 0, result.output
        assert "return 10" in original_path.read_text()
        assert [p.name for p in tmp_path.iterdir() if p.name.endswith(".tmp")] == []

    def test_snippet_from_stdin(self, tmp_path):
        original_path, _ = write_files(tmp_path)
        result = CliRunner().invoke(code_bridge, ["merge", str(original_path), "-"], input="# @delete\ndef bye(self):\n    pass\n")

        assert result.exit_code == 0, result.output
        assert "def bye" not in result.output

    def test_explicit_notation(self, tmp_path):
        original_path, snippet_path = write_files(tmp_path, "fn a() {}\n", "fn b() {}\n", suffix=".txt")
        result = CliRunner().invoke(code_bridge, ["merge", str(original_path), str(snippet_path), "--notation", "rs"])

        assert result.exit_code == 0, result.output
        assert "fn a() {}\n\nfn b() {}\n" in result.output

    def test_unknown_suffix_needs_notation(self, tmp_path):
        original_path, snippet_path = write_files(tmp_path, suffix=".txt")
        result = CliRunner().invoke(code_bridge, ["merge", str(original_path), str(snippet_path)])
        assert result.exit_code == 2

    def test_parse_error_exits_with_status_1(self, tmp_path):
        """Test that parse errors are reported with their position."""
        original_path, snippet_path = write_files(tmp_path, original="class Broken(:\n    pass\n")
        result = CliRunner().invoke(code_bridge, ["merge", str(original_path), str(snippet_path)])

        assert result.exit_code == 1
        assert "Error: 1:" in result.output

    def test_clean_response(self, tmp_path):
        response = "Here is the fix:\n```python\ndef hello(self):\n    return “x”\n```\n"
        original_path, snippet_path = write_files(tmp_path, snippet=response)
        result = CliRunner().invoke(code_bridge, ["merge", str(original_path), str(snippet_path), "--clean-response", "--language", "python"])

        assert result.exit_code == 0, result.output
        assert 'return "x"' in result.output

    def test_config_file(self, tmp_path):
        """Test that placement can be set from a JSON config."""
        original_path, snippet_path = write_files(tmp_path)
        config_path = tmp_path / "merge.json"
        config_path.write_text(json.dumps({"placement": "in-place"}))

        result = CliRunner().invoke(code_bridge, ["merge", str(original_path), str(snippet_path), "--config", str(config_path)])

        assert result.exit_code == 0, result.output
        assert result.output.index("def hello") < result.output.index("def bye")

    def test_warnings_are_reported(self, tmp_path):
        original_path, snippet_path = write_files(tmp_path, snippet="# @decorator not valid(\ndef hello(self):\n    return 1\n")
        result = CliRunner().invoke(code_bridge, ["merge", str(original_path), str(snippet_path)])

        assert result.exit_code == 0
        assert "Warning: DirectiveIgnored" in result.output


class TestNotationsCommand:
    """Tests for `code-bridge notations`."""

    def test_lists_every_notation(self):
        result = CliRunner().invoke(code_bridge, ["notations"])

        assert result.exit_code == 0
        for tag in ("structural-class", "python-class", "function-unit", "style-rule", "markup-passthrough"):
            assert tag in result.output
        assert "py" in result.output
