"""Worksheet snapshot models and the workbook collaborators."""

from .models import (
    AutoFilter,
    CalcChain,
    CalcChainEntry,
    Cell,
    CellFormula,
    ColumnRange,
    DefinedName,
    FormulaType,
    Hyperlink,
    MergeCell,
    Relationship,
    Row,
    Table,
    TableColumn,
    TablePart,
    Worksheet,
)
from .package import PackageStore, RelationshipRegistry, resolve_part_path
from .tables import parse_table, render_table, update_table_part
from .workbook import Workbook

__all__ = [
    "AutoFilter",
    "CalcChain",
    "CalcChainEntry",
    "Cell",
    "CellFormula",
    "ColumnRange",
    "DefinedName",
    "FormulaType",
    "Hyperlink",
    "MergeCell",
    "Relationship",
    "Row",
    "Table",
    "TableColumn",
    "TablePart",
    "Worksheet",
    "PackageStore",
    "RelationshipRegistry",
    "resolve_part_path",
    "parse_table",
    "render_table",
    "update_table_part",
    "Workbook",
]
