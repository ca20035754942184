"""
Tests for atomic, validated writes of merged documents.
"""

from __future__ import annotations

import pytest

from code_bridge.config import Notation
from code_bridge.merger import AtomicWriter, CodeMergeError


def leftover_temp_files(directory):
    return [p.name for p in directory.iterdir() if p.name.endswith(".tmp")]


class TestAtomicWriter:
    """Tests for AtomicWriter.write()."""

    def test_valid_content_is_written(self, tmp_path):
        target = tmp_path / "greeter.py"
        AtomicWriter().write(target, "class Greeter:\n    pass\n", Notation.PYTHON_CLASS)

        assert target.read_text() == "class Greeter:\n    pass\n"
        assert leftover_temp_files(tmp_path) == []

    def test_invalid_content_is_rejected(self, tmp_path):
        """Test that the target is untouched when validation fails."""
        target = tmp_path / "greeter.py"
        target.write_text("class Greeter:\n    pass\n")

        with pytest.raises(CodeMergeError):
            AtomicWriter().write(target, "class Greeter(:\n", Notation.PYTHON_CLASS)

        assert target.read_text() == "class Greeter:\n    pass\n"
        assert leftover_temp_files(tmp_path) == []

    def test_new_file_is_not_created_on_failure(self, tmp_path):
        target = tmp_path / "main.rs"
        with pytest.raises(CodeMergeError):
            AtomicWriter().write(target, "fn main() {\n", Notation.FUNCTION_UNIT)

        assert not target.exists()
        assert leftover_temp_files(tmp_path) == []

    def test_validation_can_be_skipped(self, tmp_path):
        target = tmp_path / "main.rs"
        AtomicWriter().write(target, "fn main() {\n", Notation.FUNCTION_UNIT, validate=False)
        assert target.read_text() == "fn main() {\n"

    def test_custom_validator(self, tmp_path):
        """Test that a supplied validator replaces the merger's."""
        calls = []
        writer = AtomicWriter({Notation.PYTHON_CLASS: calls.append})
        writer.write(tmp_path / "a.py", "not python (", Notation.PYTHON_CLASS)

        assert calls == ["not python ("]

    def test_parent_directories_are_created(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "style.css"
        AtomicWriter().write(target, ".a { color: red; }\n")
        assert target.read_text() == ".a { color: red; }\n"
