"""Conversion between A1 references and numeric (column, row) coordinates.

All coordinates are 1-based. Limits come from ``settings.max_columns`` and
``settings.total_rows`` so a workbook never grows past the Excel grid.
"""

from openpyxl.utils.cell import (
    column_index_from_string,
    coordinate_from_string,
    get_column_letter,
)
from openpyxl.utils.exceptions import CellCoordinatesException

from ..config import settings
from ..errors import InvalidCellReferenceError, InvalidCoordinatesError


def column_name_to_number(name: str) -> int:
    """Convert a column name such as ``"AK"`` or ``"$ak"`` to its number."""
    letters = name.replace("$", "").upper()
    if not letters.isalpha():
        raise InvalidCellReferenceError(name, "column name must be letters")
    try:
        number = column_index_from_string(letters)
    except ValueError as e:
        raise InvalidCellReferenceError(name, str(e)) from e
    if number > settings.max_columns:
        raise InvalidCellReferenceError(
            name, f"column number exceeds maximum limit {settings.max_columns}"
        )
    return number


def column_number_to_name(number: int) -> str:
    """Convert a column number to its letters, e.g. ``37 -> "AK"``."""
    if number < 1 or number > settings.max_columns:
        raise InvalidCoordinatesError(number, 1)
    return get_column_letter(number)


def split_cell_name(ref: str) -> tuple[str, int]:
    """Split a cell reference into its column name and row number.

    ``"$B$7"`` gives ``("B", 7)``.
    """
    if not isinstance(ref, str) or not ref:
        raise InvalidCellReferenceError(str(ref), "empty reference")
    try:
        column, row = coordinate_from_string(ref)
    except CellCoordinatesException as e:
        raise InvalidCellReferenceError(ref, str(e)) from e
    return column.upper(), row


def join_cell_name(column: str, row: int) -> str:
    """Join a column name and row number into a cell reference."""
    return coordinates_to_cell(column_name_to_number(column), row)


def cell_to_coordinates(ref: str) -> tuple[int, int]:
    """Convert a cell reference to ``(col, row)``.

    Raises:
        InvalidCellReferenceError: for empty or malformed references and for
            references beyond the sheet limits.
    """
    column, row = split_cell_name(ref)
    col = column_name_to_number(column)
    if row > settings.total_rows:
        raise InvalidCellReferenceError(
            ref, f"row number exceeds maximum limit {settings.total_rows}"
        )
    return col, row


def coordinates_to_cell(col: int, row: int, absolute: bool = False) -> str:
    """Convert ``(col, row)`` to a cell reference.

    With ``absolute`` the result carries ``$`` markers, e.g. ``$B$7``.
    """
    if col < 1 or row < 1 or col > settings.max_columns or row > settings.total_rows:
        raise InvalidCoordinatesError(col, row)
    name = get_column_letter(col)
    if absolute:
        return f"${name}${row}"
    return f"{name}{row}"


def sort_coordinates(coordinates: list[int]) -> list[int]:
    """Order a ``[x1, y1, x2, y2]`` rectangle as top-left / bottom-right."""
    if len(coordinates) != 4:
        raise ValueError("coordinates length must be 4")
    x1, y1, x2, y2 = coordinates
    return [min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2)]


def range_to_coordinates(ref: str, sort: bool = True) -> list[int]:
    """Convert ``"A1:C3"`` to ``[1, 1, 3, 3]``.

    A single cell is read as a zero-area range. Pass ``sort=False`` to keep
    the corners in the order they were written.
    """
    if not isinstance(ref, str) or not ref:
        raise InvalidCellReferenceError(str(ref), "empty range")
    parts = ref.split(":")
    if len(parts) == 1:
        parts = [parts[0], parts[0]]
    if len(parts) != 2:
        raise InvalidCellReferenceError(ref, "range must have two corners")
    x1, y1 = cell_to_coordinates(parts[0])
    x2, y2 = cell_to_coordinates(parts[1])
    coordinates = [x1, y1, x2, y2]
    if sort:
        return sort_coordinates(coordinates)
    return coordinates


def coordinates_to_range(coordinates: list[int], absolute: bool = False) -> str:
    """Convert ``[x1, y1, x2, y2]`` to ``"A1:C3"``, normalizing corner order."""
    x1, y1, x2, y2 = sort_coordinates(coordinates)
    first = coordinates_to_cell(x1, y1, absolute)
    last = coordinates_to_cell(x2, y2, absolute)
    return f"{first}:{last}"
