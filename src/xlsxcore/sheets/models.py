"""Data models for the in-memory worksheet snapshot."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..cells import (
    cell_to_coordinates,
    coordinates_to_cell,
    coordinates_to_range,
    range_to_coordinates,
)


class FormulaType(str, Enum):
    """Cell formula kinds (``t`` attribute of ``<f>``)."""

    NORMAL = "normal"
    SHARED = "shared"
    ARRAY = "array"
    DATA_TABLE = "dataTable"


class CellFormula(BaseModel):
    """Formula stored in a cell, without the leading ``=``."""

    content: str = ""
    type: FormulaType = FormulaType.NORMAL
    si: Optional[int] = None  # Shared formula group index
    ref: Optional[str] = None  # Range covered by a shared/array formula


class Cell(BaseModel):
    """A single cell inside a row."""

    r: str  # A1 notation
    value: Optional[str] = None
    data_type: Optional[str] = None  # "s", "str", "inlineStr", "n", ...
    style: Optional[int] = None
    formula: Optional[CellFormula] = None


class Row(BaseModel):
    """A sheet row; ``r`` is the 1-based row number."""

    r: int
    cells: list[Cell] = Field(default_factory=list)
    hidden: bool = False
    height: Optional[float] = None
    spans: Optional[str] = None


class ColumnRange(BaseModel):
    """Column width definition covering ``min..max``."""

    min: int
    max: int
    width: Optional[float] = None
    style: Optional[int] = None
    hidden: bool = False
    custom_width: bool = False


class MergeCell(BaseModel):
    """A merged region such as ``"A1:B3"``."""

    ref: str

    @property
    def rect(self) -> list[int]:
        ref = self.ref if ":" in self.ref else f"{self.ref}:{self.ref}"
        return range_to_coordinates(ref)


class Hyperlink(BaseModel):
    """A hyperlink anchored on a cell or range."""

    ref: str
    rid: Optional[str] = None  # Relationship id for external targets
    location: Optional[str] = None  # Internal target, e.g. "Sheet2!A1"
    display: Optional[str] = None
    tooltip: Optional[str] = None


class TablePart(BaseModel):
    """Link from a worksheet to a table part through a relationship."""

    rid: str


class AutoFilter(BaseModel):
    """Worksheet level autofilter range."""

    ref: str


class Worksheet(BaseModel):
    """Structural snapshot of one worksheet."""

    name: str
    sheet_id: int
    dimension: Optional[str] = None
    rows: list[Row] = Field(default_factory=list)
    cols: Optional[list[ColumnRange]] = None
    merge_cells: Optional[list[MergeCell]] = None
    hyperlinks: Optional[list[Hyperlink]] = None
    table_parts: list[TablePart] = Field(default_factory=list)
    auto_filter: Optional[AutoFilter] = None

    def get_row(self, number: int) -> Optional[Row]:
        """Return the row with the given number, if present."""
        for row in self.rows:
            if row.r == number:
                return row
        return None

    def find_cell(self, ref: str) -> Optional[Cell]:
        """Return the cell at ``ref``, if present."""
        col, row_number = cell_to_coordinates(ref)
        row = self.get_row(row_number)
        if row is None:
            return None
        for cell in row.cells:
            if cell_to_coordinates(cell.r)[0] == col:
                return cell
        return None

    def get_cell_value(self, ref: str) -> str:
        """Return the stored value of a cell, or an empty string."""
        cell = self.find_cell(ref)
        if cell is None or cell.value is None:
            return ""
        return cell.value

    def set_cell_str(self, ref: str, value: str):
        """Store an inline string in a cell, creating the row/cell if needed."""
        col, row_number = cell_to_coordinates(ref)
        row = self.get_row(row_number)
        if row is None:
            row = Row(r=row_number)
            self.rows.append(row)
            self.rows.sort(key=lambda r: r.r)
        cell = self.find_cell(ref)
        if cell is None:
            cell = Cell(r=coordinates_to_cell(col, row_number))
            row.cells.append(cell)
            row.cells.sort(key=lambda c: cell_to_coordinates(c.r)[0])
        cell.value = value
        cell.data_type = "inlineStr"
        cell.formula = None

    def normalize(self):
        """Recompute derived bookkeeping after a structural change.

        Rows are ordered by number, cells by column, ``spans`` and the sheet
        ``dimension`` are recomputed, and empty merge/hyperlink collections
        are dropped.
        """
        self.rows.sort(key=lambda r: r.r)
        min_col = min_row = max_col = max_row = None
        for row in self.rows:
            row.cells.sort(key=lambda c: cell_to_coordinates(c.r)[0])
            if not row.cells:
                continue
            first = cell_to_coordinates(row.cells[0].r)[0]
            last = cell_to_coordinates(row.cells[-1].r)[0]
            if row.spans is not None:
                row.spans = f"{first}:{last}"
            min_col = first if min_col is None else min(min_col, first)
            max_col = last if max_col is None else max(max_col, last)
            min_row = row.r if min_row is None else min(min_row, row.r)
            max_row = row.r if max_row is None else max(max_row, row.r)

        if min_col is None:
            self.dimension = "A1"
        elif (min_col, min_row) == (max_col, max_row):
            self.dimension = coordinates_to_cell(min_col, min_row)
        else:
            self.dimension = coordinates_to_range([min_col, min_row, max_col, max_row])

        if self.merge_cells is not None and len(self.merge_cells) == 0:
            self.merge_cells = None
        if self.hyperlinks is not None and len(self.hyperlinks) == 0:
            self.hyperlinks = None
        if self.cols is not None and len(self.cols) == 0:
            self.cols = None


class CalcChainEntry(BaseModel):
    """One ``<c>`` entry of the calculation chain.

    ``i`` is the sheet id; zero means "same sheet as the previous entry".
    """

    r: str
    i: int = 0


class CalcChain(BaseModel):
    """Workbook calculation chain (``xl/calcChain.xml``)."""

    entries: list[CalcChainEntry] = Field(default_factory=list)


class DefinedName(BaseModel):
    """A defined name; ``scope`` is ``"Workbook"`` or a sheet name."""

    name: str
    refers_to: str
    scope: str = "Workbook"


class Relationship(BaseModel):
    """A package relationship of a worksheet part."""

    id: str
    type: str
    target: str
    target_mode: Optional[str] = None  # "External" for hyperlinks to URLs


class TableColumn(BaseModel):
    """A column of a table definition."""

    id: int
    name: str


class Table(BaseModel):
    """Table definition stored in ``xl/tables/tableN.xml``."""

    id: int
    name: str
    display_name: str
    ref: str
    auto_filter_ref: Optional[str] = None
    columns: list[TableColumn] = Field(default_factory=list)
    header_row_count: Optional[int] = None
    totals_row_count: Optional[int] = None
    totals_row_shown: Optional[bool] = None
    style_info: Optional[dict[str, str]] = None  # Raw <tableStyleInfo> attributes
