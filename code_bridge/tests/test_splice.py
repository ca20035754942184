"""
Tests for span-level reassembly.
"""

from __future__ import annotations

from code_bridge.config import Placement
from code_bridge.merger import Unit, UnitOrigin, UnitTable
from code_bridge.merger.splice import TextEdit, apply_edits, plan_edits

SOURCE = "fn a() {}\n\nfn b() {}\n\nfn c() {}\n"


def original_table() -> UnitTable:
    table = UnitTable()
    table.add(Unit(name="a", start=0, end=9))
    table.add(Unit(name="b", start=11, end=20))
    table.add(Unit(name="c", start=22, end=31))
    return table


class TestApplyEdits:
    """Tests for apply_edits()."""

    def test_replace(self):
        assert apply_edits("aaa\nbbb\nccc\n", [TextEdit(4, 7, "BBB")]) == "aaa\nBBB\nccc\n"

    def test_delete_removes_the_line(self):
        assert apply_edits("aaa\nbbb\nccc\n", [TextEdit(4, 7, None)]) == "aaa\nccc\n"

    def test_delete_collapses_blank_lines(self):
        """Test that deleting a unit between blank lines leaves a single blank line."""
        assert apply_edits(SOURCE, [TextEdit(11, 20, None)]) == "fn a() {}\n\nfn c() {}\n"

    def test_delete_first_and_last(self):
        assert apply_edits(SOURCE, [TextEdit(0, 9, None)]) == "fn b() {}\n\nfn c() {}\n"
        assert apply_edits(SOURCE, [TextEdit(22, 31, None)]) == "fn a() {}\n\nfn b() {}\n"

    def test_insert_after_unit(self):
        assert apply_edits("fn a() {}\n", [TextEdit(9, 9, "fn b() {}")]) == "fn a() {}\n\nfn b() {}\n"

    def test_insert_into_empty_block(self):
        """Test that no blank line opens a block that was empty."""
        assert apply_edits("impl S {}\n", [TextEdit(8, 8, "    fn a() {}")]) == "impl S {\n    fn a() {}\n}\n"

    def test_edits_apply_left_to_right(self):
        """Test that unsorted edits compose against the original offsets."""
        edits = [TextEdit(22, 31, "fn c2() {}"), TextEdit(0, 9, "fn a2() {}")]
        assert apply_edits(SOURCE, edits) == "fn a2() {}\n\nfn b() {}\n\nfn c2() {}\n"

    def test_no_edits(self):
        assert apply_edits(SOURCE, []) == SOURCE


class TestPlanEdits:
    """Tests for plan_edits()."""

    def merged_table(self, original: UnitTable) -> UnitTable:
        merged = UnitTable(original)
        replacement = Unit(name="b", origin=UnitOrigin.SNIPPET, replaces=original["b"])
        merged.put_in_place("b", "b", replacement)
        return merged

    def test_in_place_replacement(self):
        original = original_table()
        edits = plan_edits(original, self.merged_table(original), Placement.IN_PLACE, lambda unit, target: "NEW", 31)
        assert edits == [TextEdit(11, 20, "NEW")]

    def test_move_to_end_deletes_and_appends(self):
        original = original_table()
        edits = plan_edits(original, self.merged_table(original), Placement.MOVE_TO_END, lambda unit, target: "NEW", 31)
        assert edits == [TextEdit(11, 20, None), TextEdit(31, 31, "NEW")]

    def test_render_receives_the_replaced_unit(self):
        original = original_table()
        seen = []
        plan_edits(original, self.merged_table(original), Placement.IN_PLACE, lambda unit, target: seen.append(target) or "", 31)
        assert seen == [original["b"]]

    def test_deleted_unit(self):
        original = original_table()
        merged = UnitTable(original)
        merged.pop("a")
        assert plan_edits(original, merged, Placement.IN_PLACE, lambda unit, target: "", 31) == [TextEdit(0, 9, None)]

    def test_insertion_offset_per_unit(self):
        original = original_table()
        merged = UnitTable(original)
        merged.add(Unit(name="d", origin=UnitOrigin.SNIPPET))
        merged.add(Unit(name="e", origin=UnitOrigin.SNIPPET))
        offsets = {"d": 9, "e": 31}
        edits = plan_edits(original, merged, Placement.IN_PLACE, lambda unit, target: unit.name, lambda unit: offsets[unit.name])
        assert edits == [TextEdit(9, 9, "d"), TextEdit(31, 31, "e")]
