"""In-memory workbook document model consumed by the shift engine."""

import logging
from typing import Optional

from ..cells import column_name_to_number
from ..config import settings
from ..errors import InvalidCoordinatesError, SheetNotFoundError
from .models import CalcChain, DefinedName, Table, TablePart, Worksheet
from .package import (
    TABLE_RELATIONSHIP_TYPE,
    PackageStore,
    RelationshipRegistry,
    resolve_part_path,
)
from .tables import parse_table, render_table

logger = logging.getLogger(__name__)


class Workbook:
    """
    Workbook level state shared by all worksheets.

    Holds the worksheet snapshots, defined names, the calculation chain, the
    package parts and each sheet's relationships. Structural changes on one
    workbook must not run concurrently.
    """

    def __init__(
        self,
        sheets: Optional[list[Worksheet]] = None,
        defined_names: Optional[list[DefinedName]] = None,
        calc_chain: Optional[CalcChain] = None,
        package: Optional[PackageStore] = None,
        relationships: Optional[dict[str, RelationshipRegistry]] = None,
    ):
        self.sheets: dict[str, Worksheet] = {}
        for ws in sheets or []:
            self.sheets[ws.name] = ws
        self.defined_names = list(defined_names or [])
        self.calc_chain = calc_chain
        self.package = package or PackageStore()
        self.relationships: dict[str, RelationshipRegistry] = dict(relationships or {})

    # Sheets

    def add_sheet(self, name: str) -> Worksheet:
        """Create an empty worksheet with the next free sheet id."""
        sheet_id = max((ws.sheet_id for ws in self.sheets.values()), default=0) + 1
        ws = Worksheet(name=name, sheet_id=sheet_id)
        self.sheets[name] = ws
        return ws

    def get_sheet(self, name: str) -> Worksheet:
        ws = self.sheets.get(name)
        if ws is None:
            raise SheetNotFoundError(name)
        return ws

    def get_sheet_id(self, name: str) -> int:
        return self.get_sheet(name).sheet_id

    def get_cell_value(self, sheet: str, ref: str) -> str:
        return self.get_sheet(sheet).get_cell_value(ref)

    def set_cell_str(self, sheet: str, ref: str, value: str):
        self.get_sheet(sheet).set_cell_str(ref, value)

    # Collaborators

    def get_defined_names(self, sheet: Optional[str] = None) -> list[DefinedName]:
        """Defined names visible from ``sheet``: workbook scope plus its own."""
        if sheet is None:
            return list(self.defined_names)
        return [d for d in self.defined_names if d.scope in ("Workbook", sheet)]

    def get_relationships(self, sheet: str) -> RelationshipRegistry:
        self.get_sheet(sheet)
        if sheet not in self.relationships:
            self.relationships[sheet] = RelationshipRegistry()
        return self.relationships[sheet]

    # Tables

    def add_table(self, sheet: str, table: Table) -> str:
        """Store a table part, link it to ``sheet`` and return its path."""
        ws = self.get_sheet(sheet)
        path = f"xl/tables/table{table.id}.xml"
        self.package.save(path, render_table(table))
        rid = self.get_relationships(sheet).add(
            TABLE_RELATIONSHIP_TYPE, f"../tables/table{table.id}.xml"
        )
        ws.table_parts.append(TablePart(rid=rid))
        return path

    def get_tables(self, sheet: str) -> list[Table]:
        """Parse the table parts linked to ``sheet``."""
        ws = self.get_sheet(sheet)
        rels = self.get_relationships(sheet)
        tables = []
        for part in ws.table_parts:
            content = self.package.load(resolve_part_path(rels.get_target(part.rid)))
            if content is not None:
                tables.append(parse_table(content))
        return tables

    # Row and column operations

    def insert_rows(self, sheet: str, row: int, n: int = 1):
        """Insert ``n`` rows before ``row``."""
        if row < 1 or row > settings.total_rows:
            raise InvalidCoordinatesError(1, row)
        if n < 1 or n >= settings.total_rows:
            raise ValueError("parameter is invalid")
        self._adjust(sheet, "rows", row, n)

    def remove_row(self, sheet: str, row: int):
        """Delete row ``row`` and move the rows below it up."""
        if row < 1 or row > settings.total_rows:
            raise InvalidCoordinatesError(1, row)
        self._adjust(sheet, "rows", row, -1)

    def insert_cols(self, sheet: str, column: str, n: int = 1):
        """Insert ``n`` columns before ``column`` (a name such as ``"C"``)."""
        col = column_name_to_number(column)
        if n < 1 or n > settings.max_columns:
            raise ValueError("parameter is invalid")
        self._adjust(sheet, "columns", col, n)

    def remove_col(self, sheet: str, column: str):
        """Delete ``column`` and move the columns to its right left."""
        self._adjust(sheet, "columns", column_name_to_number(column), -1)

    def _adjust(self, sheet: str, direction: str, num: int, offset: int):
        from ..engine.adjust import ShiftEngine
        from ..engine.shift import Direction

        ShiftEngine(self).adjust(sheet, Direction(direction), num, offset)
