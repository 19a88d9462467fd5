"""Rewrite formula references after rows or columns are inserted or deleted."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from openpyxl.formula.tokenizer import Token, Tokenizer, TokenizerError

from ..cells import (
    column_name_to_number,
    column_number_to_name,
    coordinates_to_cell,
    coordinates_to_range,
    range_to_coordinates,
)
from ..config import settings
from ..errors import InvalidCellReferenceError
from ..sheets.models import CellFormula, FormulaType
from .shift import Direction, shift_boundaries, shift_point, shift_rect

logger = logging.getLogger(__name__)

REF_ERROR = "#REF!"

_CELL_RE = re.compile(r"^(\$?)([A-Za-z]{1,3})(\$?)([0-9]+)$")
_COLUMN_RE = re.compile(r"^(\$?)([A-Za-z]{1,3})$")
_ROW_RE = re.compile(r"^(\$?)([0-9]+)$")


class ReferenceKind(str, Enum):
    """Shapes a reference corner can take."""

    CELL = "cell"  # B7
    COLUMN = "column"  # B (only inside B:D)
    ROW = "row"  # 7 (only inside 7:9)


@dataclass
class ReferencePart:
    """One corner of a reference with its absolute markers."""

    kind: ReferenceKind
    col: int = 0
    row: int = 0
    col_absolute: bool = False
    row_absolute: bool = False

    def get(self, direction: Direction) -> int:
        return self.row if direction == Direction.ROWS else self.col

    def set(self, direction: Direction, value: int):
        if direction == Direction.ROWS:
            self.row = value
        else:
            self.col = value

    def render(self) -> str:
        col_mark = "$" if self.col_absolute else ""
        row_mark = "$" if self.row_absolute else ""
        if self.kind == ReferenceKind.CELL:
            return f"{col_mark}{column_number_to_name(self.col)}{row_mark}{self.row}"
        if self.kind == ReferenceKind.COLUMN:
            return f"{col_mark}{column_number_to_name(self.col)}"
        return f"{row_mark}{self.row}"


def _parse_part(text: str) -> Optional[ReferencePart]:
    """Parse one corner; None when the text is not a reference in the grid."""
    try:
        match = _CELL_RE.match(text)
        if match:
            col_mark, letters, row_mark, digits = match.groups()
            row = int(digits)
            if row < 1 or row > settings.total_rows:
                return None
            return ReferencePart(
                ReferenceKind.CELL,
                col=column_name_to_number(letters),
                row=row,
                col_absolute=bool(col_mark),
                row_absolute=bool(row_mark),
            )
        match = _COLUMN_RE.match(text)
        if match:
            col_mark, letters = match.groups()
            return ReferencePart(
                ReferenceKind.COLUMN,
                col=column_name_to_number(letters),
                col_absolute=bool(col_mark),
            )
    except InvalidCellReferenceError:
        return None
    match = _ROW_RE.match(text)
    if match:
        row_mark, digits = match.groups()
        row = int(digits)
        if row < 1 or row > settings.total_rows:
            return None
        return ReferencePart(ReferenceKind.ROW, row=row, row_absolute=bool(row_mark))
    return None


def _split_sheet(operand: str) -> tuple[str, str]:
    """Split ``'My Sheet'!A1`` into ``("'My Sheet'!", "A1")``."""
    idx = operand.rfind("!")
    if idx == -1:
        return "", operand
    return operand[: idx + 1], operand[idx + 1 :]


def _sheet_name(prefix: str) -> str:
    name = prefix[:-1]
    if len(name) >= 2 and name[0] == "'" and name[-1] == "'":
        name = name[1:-1].replace("''", "'")
    return name


def _axis_limit(direction: Direction) -> int:
    return settings.total_rows if direction == Direction.ROWS else settings.max_columns


def _shift_parts(
    parts: list[ReferencePart], direction: Direction, num: int, offset: int
) -> bool:
    """Shift reference corners in place; False when they leave the grid."""
    kind = parts[0].kind
    if (kind == ReferenceKind.COLUMN and direction == Direction.ROWS) or (
        kind == ReferenceKind.ROW and direction == Direction.COLUMNS
    ):
        return True

    if len(parts) == 1:
        parts[0].set(direction, shift_point(parts[0].get(direction), num, offset))
    else:
        first, last = parts[0].get(direction), parts[1].get(direction)
        p1, p2 = shift_boundaries(first, last, num, offset)
        if first > last:
            p1, p2 = p2, p1
        parts[0].set(direction, p1)
        parts[1].set(direction, p2)

    limit = _axis_limit(direction)
    return all(1 <= part.get(direction) <= limit for part in parts)


def adjust_reference(
    operand: str, sheet: str, direction: Direction, num: int, offset: int
) -> Optional[str]:
    """Shift a single reference operand such as ``$B$7``, ``A1:C3`` or ``Sheet1!2:4``.

    Returns None when the operand is not a plain same-sheet reference, so the
    caller keeps it verbatim. A reference pushed off the grid becomes ``#REF!``.
    """
    if "[" in operand:
        return None
    prefix, body = _split_sheet(operand)
    if prefix and _sheet_name(prefix).lower() != sheet.lower():
        return None

    texts = body.split(":")
    if len(texts) > 2:
        return None
    parts = [_parse_part(text) for text in texts]
    if any(part is None for part in parts):
        return None
    if len(parts) == 1 and parts[0].kind != ReferenceKind.CELL:
        return None
    if len(parts) == 2 and parts[0].kind != parts[1].kind:
        return None

    if not _shift_parts(parts, direction, num, offset):
        return f"{prefix}{REF_ERROR}"
    return prefix + ":".join(part.render() for part in parts)


def _is_range_operand(token: Token) -> bool:
    return token.type == Token.OPERAND and token.subtype == Token.RANGE


def adjust_formula_text(
    text: str,
    sheet: str,
    defined_names: Iterable[str],
    direction: Direction,
    num: int,
    offset: int,
) -> str:
    """Rewrite the references of a formula body (without the leading ``=``).

    Only same-sheet cell, range, column and row references move. String
    literals, functions, operators, defined names, external and structured
    references are copied verbatim.
    """
    if not text:
        return text
    try:
        tokenizer = Tokenizer(f"={text}")
    except TokenizerError as e:
        logger.warning(f"Leaving unparsable formula untouched: {text!r} ({e})")
        return text

    names = {name.lower() for name in defined_names}
    changed = False
    pieces = []
    for token in tokenizer.items:
        value = token.value
        if _is_range_operand(token) and value.lower() not in names:
            adjusted = adjust_reference(value, sheet, direction, num, offset)
            if adjusted is not None and adjusted != value:
                value = adjusted
                changed = True
        pieces.append(value)

    if not changed:
        return text
    return "".join(pieces)


def adjust_range_ref(ref: str, direction: Direction, num: int, offset: int) -> str:
    """Shift an ``A1`` or ``A1:C3`` range reference stored in an attribute."""
    coordinates = shift_rect(range_to_coordinates(ref), direction, num, offset)
    x1, y1, x2, y2 = coordinates
    if ":" not in ref and x1 == x2 and y1 == y2:
        return coordinates_to_cell(x1, y1)
    return coordinates_to_range(coordinates)


def adjust_formula(
    formula: Optional[CellFormula],
    sheet: str,
    defined_names: Iterable[str],
    direction: Direction,
    num: int,
    offset: int,
    bump_shared_index: bool = False,
):
    """Adjust a cell formula in place.

    The defining range of shared and array formulas is shifted, and with
    ``bump_shared_index`` the shared group index is incremented. Array
    formulas keep their body; other bodies go through the token pass.
    """
    if formula is None:
        return
    if formula.ref:
        formula.ref = adjust_range_ref(formula.ref, direction, num, offset)
        if bump_shared_index and formula.si is not None:
            formula.si += 1
    if formula.type == FormulaType.ARRAY:
        return
    if formula.content:
        formula.content = adjust_formula_text(
            formula.content, sheet, defined_names, direction, num, offset
        )
