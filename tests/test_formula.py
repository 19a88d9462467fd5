"""Tests for formula reference adjustment."""

import logging

import pytest

from xlsxcore.engine import (
    Direction,
    adjust_formula,
    adjust_formula_text,
    adjust_range_ref,
    adjust_reference,
    shift_boundaries,
    shift_point,
)
from xlsxcore.sheets import CellFormula, FormulaType

ROWS = Direction.ROWS
COLUMNS = Direction.COLUMNS


class TestShiftArithmetic:
    """Test pivot arithmetic."""

    def test_shift_point(self):
        """Test that only coordinates at or after the pivot move."""
        assert shift_point(1, 2, 1) == 1
        assert shift_point(2, 2, 1) == 3
        assert shift_point(5, 2, -1) == 4

    def test_insert_before_span_moves_it(self):
        """Test insertion at or before the first boundary."""
        assert shift_boundaries(3, 5, 3, 2) == (5, 7)

    def test_insert_inside_span_grows_it(self):
        """Test insertion inside the span."""
        assert shift_boundaries(3, 5, 4, 1) == (3, 6)
        assert shift_boundaries(3, 5, 5, 1) == (3, 6)

    def test_insert_after_span_keeps_it(self):
        """Test insertion after the span."""
        assert shift_boundaries(3, 5, 6, 1) == (3, 5)

    def test_delete_inside_span_shrinks_it(self):
        """Test deletion inside or at the start of the span."""
        assert shift_boundaries(3, 5, 4, -1) == (3, 4)
        assert shift_boundaries(3, 5, 3, -1) == (3, 4)

    def test_delete_before_span_moves_it(self):
        """Test deletion before the span."""
        assert shift_boundaries(3, 5, 2, -1) == (2, 4)

    def test_reversed_boundaries_are_sorted(self):
        """Test that reversed input is normalized."""
        assert shift_boundaries(5, 3, 4, 1) == (3, 6)


class TestAdjustReference:
    """Test single operand adjustment."""

    def test_cell_after_pivot(self):
        """Test a cell at or after the pivot row moves."""
        assert adjust_reference("A5", "Sheet1", ROWS, 2, 1) == "A6"
        assert adjust_reference("A1", "Sheet1", ROWS, 2, 1) == "A1"

    def test_absolute_markers_are_kept(self):
        """Test that $ markers survive the shift."""
        assert adjust_reference("$B$7", "Sheet1", ROWS, 2, 1) == "$B$8"
        assert adjust_reference("$B7", "Sheet1", COLUMNS, 1, 1) == "$C7"

    def test_whole_columns_and_rows(self):
        """Test column-only and row-only ranges."""
        assert adjust_reference("B:C", "Sheet1", COLUMNS, 2, 1) == "C:D"
        assert adjust_reference("3:5", "Sheet1", ROWS, 4, 1) == "3:6"
        assert adjust_reference("3:5", "Sheet1", COLUMNS, 1, 1) == "3:5"
        assert adjust_reference("B:C", "Sheet1", ROWS, 1, 1) == "B:C"

    def test_same_sheet_qualifier(self):
        """Test references qualified with the current sheet name."""
        assert adjust_reference("Sheet1!A5", "Sheet1", ROWS, 2, 1) == "Sheet1!A6"
        assert adjust_reference("'My Sheet'!A5", "My Sheet", ROWS, 2, 1) == "'My Sheet'!A6"

    def test_other_sheet_is_untouched(self):
        """Test references to other sheets are left alone."""
        assert adjust_reference("Sheet2!A5", "Sheet1", ROWS, 2, 1) is None

    def test_external_and_structured_references_are_untouched(self):
        """Test references containing brackets are left alone."""
        assert adjust_reference("[1]Sheet1!A5", "Sheet1", ROWS, 2, 1) is None
        assert adjust_reference("Table1[Score]", "Sheet1", ROWS, 2, 1) is None

    def test_non_references(self):
        """Test names that are not references."""
        assert adjust_reference("Total", "Sheet1", ROWS, 1, 1) is None
        assert adjust_reference("Tax", "Sheet1", COLUMNS, 1, 1) is None

    def test_deleted_past_first_row_becomes_ref_error(self):
        """Test a reference pushed below row 1 turns into #REF!."""
        assert adjust_reference("A1", "Sheet1", ROWS, 1, -1) == "#REF!"
        assert adjust_reference("Sheet1!A1", "Sheet1", ROWS, 1, -1) == "Sheet1!#REF!"

    def test_reference_pushed_past_last_row_becomes_ref_error(self):
        """Test a reference pushed past the grid turns into #REF!."""
        assert adjust_reference("A1048576", "Sheet1", ROWS, 2, 1) == "#REF!"


class TestAdjustFormulaText:
    """Test adjustment of whole formula bodies."""

    def test_range_grows_on_insert(self):
        """Test a range containing the pivot is extended."""
        assert adjust_formula_text("SUM(A1:A2)", "Sheet1", [], ROWS, 2, 1) == "SUM(A1:A3)"

    def test_range_shrinks_on_delete(self):
        """Test a range containing the deleted row is shrunk."""
        assert adjust_formula_text("SUM(A1:A3)", "Sheet1", [], ROWS, 2, -1) == "SUM(A1:A2)"

    def test_mixed_operands(self):
        """Test only references move in a formula with several operand kinds."""
        text = 'IF(A5>0,"A5",Sheet2!A5+$B$9*2)'
        expected = 'IF(A6>0,"A5",Sheet2!A5+$B$10*2)'
        assert adjust_formula_text(text, "Sheet1", [], ROWS, 3, 1) == expected

    def test_defined_names_are_untouched(self):
        """Test defined names visible from the sheet are copied verbatim."""
        text = "SUM(Revenue)+A5"
        result = adjust_formula_text(text, "Sheet1", ["REVENUE"], ROWS, 1, 1)
        assert result == "SUM(Revenue)+A6"

    def test_unchanged_formula_is_returned_verbatim(self):
        """Test formulas without affected references keep their text."""
        text = "SUM( A1 , B1 )"
        assert adjust_formula_text(text, "Sheet1", [], ROWS, 5, 1) == text

    def test_column_shift(self):
        """Test column insertion rewrites column letters."""
        assert adjust_formula_text("SUM(A1:C1)*D2", "Sheet1", [], COLUMNS, 2, 1) == "SUM(A1:D1)*E2"

    def test_unparsable_formula_is_left_untouched(self, caplog):
        """Test tokenizer failures leave the text unchanged with a warning."""
        with caplog.at_level(logging.WARNING, logger="xlsxcore.engine.formula"):
            assert adjust_formula_text('"A1', "Sheet1", [], ROWS, 1, 1) == '"A1'
        assert "unparsable" in caplog.text

    def test_empty_formula(self):
        """Test that empty text is returned as is."""
        assert adjust_formula_text("", "Sheet1", [], ROWS, 1, 1) == ""


class TestAdjustFormula:
    """Test adjustment of cell formula objects."""

    def test_range_ref(self):
        """Test attribute ranges keep single cells as single cells."""
        assert adjust_range_ref("A2", ROWS, 1, 1) == "A3"
        assert adjust_range_ref("A2:C4", ROWS, 3, 1) == "A2:C5"

    def test_shared_formula(self):
        """Test the defining range and the body of a shared formula move."""
        formula = CellFormula(content="A2*2", type=FormulaType.SHARED, si=0, ref="B2:B4")
        adjust_formula(formula, "Sheet1", [], ROWS, 1, 1)
        assert formula.ref == "B3:B5"
        assert formula.content == "A3*2"
        assert formula.si == 0

    def test_shared_index_bump(self):
        """Test the shared group index is incremented on request."""
        formula = CellFormula(content="A2*2", type=FormulaType.SHARED, si=3, ref="B2:B4")
        adjust_formula(formula, "Sheet1", [], ROWS, 1, 1, bump_shared_index=True)
        assert formula.si == 4

    def test_array_formula_only_moves_its_range(self):
        """Test array formulas have only their range shifted."""
        formula = CellFormula(content="A1:A3*2", type=FormulaType.ARRAY, ref="C1:C3")
        adjust_formula(formula, "Sheet1", [], ROWS, 1, 1)
        assert formula.ref == "C2:C4"
        assert formula.content == "A1:A3*2"

    def test_none_formula(self):
        """Test that a missing formula is ignored."""
        assert adjust_formula(None, "Sheet1", [], ROWS, 1, 1) is None

    @pytest.mark.parametrize("offset", [1, 3])
    def test_normal_formula(self, offset):
        """Test a normal formula body is rewritten."""
        formula = CellFormula(content="A2+A1")
        adjust_formula(formula, "Sheet1", [], ROWS, 2, offset)
        assert formula.content == f"A{2 + offset}+A1"
