"""Structural shift engine.

Keeps a worksheet's cross-references consistent when rows or columns are
inserted or deleted: cell coordinates, formulas, column widths, hyperlinks,
tables, the autofilter, merged cells and the calculation chain.

Every shift runs against a staged deep copy of the affected state. The copy
replaces the workbook's state only after all steps succeeded, so a failure
never leaves a half-shifted sheet behind.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Iterator, Optional
from xml.etree import ElementTree as ET

from ..cells import (
    cell_to_coordinates,
    coordinates_to_cell,
    coordinates_to_range,
    range_to_coordinates,
    split_cell_name,
)
from ..config import settings
from ..errors import ColumnLimitExceededError, InvalidCoordinatesError, RowLimitExceededError
from ..sheets.models import CalcChain, ColumnRange, Table, Worksheet
from ..sheets.package import RelationshipRegistry, resolve_part_path
from ..sheets.tables import parse_table, update_table_part
from .formula import adjust_formula, adjust_range_ref
from .shift import Direction, shift_point, shift_rect

if TYPE_CHECKING:
    from ..sheets.workbook import Workbook

logger = logging.getLogger(__name__)


def _unique_name(candidates: Iterable[str], taken: set[str]) -> str:
    """First candidate not yet taken, compared case-insensitively."""
    for name in candidates:
        if name.lower() not in taken:
            taken.add(name.lower())
            return name
    raise ValueError("no unique name available")


@dataclass
class ShiftContext:
    """Staged state and parameters of one shift operation."""

    sheet: str
    sheet_id: int
    direction: Direction
    num: int
    offset: int
    worksheet: Worksheet
    relationships: RelationshipRegistry
    calc_chain: Optional[CalcChain]
    defined_names: list[str]
    part_writes: dict[str, Optional[bytes]] = field(default_factory=dict)  # None = delete

    @property
    def rows(self) -> bool:
        return self.direction == Direction.ROWS

    @property
    def deleting(self) -> bool:
        return self.offset < 0


class ShiftEngine:
    """Applies row/column insertions and deletions to a workbook."""

    def __init__(self, workbook: "Workbook"):
        self.workbook = workbook

    def adjust(self, sheet: str, direction: Direction, num: int, offset: int):
        """
        Shift the contents of ``sheet`` around the pivot ``num``.

        Args:
            sheet: Worksheet name
            direction: Direction.ROWS or Direction.COLUMNS
            num: 1-based row or column number the change happens before
            offset: Lines to insert (positive) or -1 to delete line ``num``

        Raises:
            SheetNotFoundError: if the sheet does not exist
            RowLimitExceededError / ColumnLimitExceededError: if content
                would move past the last row or column
        """
        worksheet = self.workbook.get_sheet(sheet)
        limit = settings.total_rows if direction == Direction.ROWS else settings.max_columns
        if num < 1 or num > limit:
            if direction == Direction.ROWS:
                raise InvalidCoordinatesError(1, num)
            raise InvalidCoordinatesError(num, 1)
        if offset < -1:
            raise ValueError("only a single row or column can be deleted at a time")
        if offset == 0:
            return

        logger.info(f"Adjusting {sheet}: {direction.value} at {num} by {offset}")
        self._check_limits(sheet, worksheet, direction, num, offset)

        calc_chain = self.workbook.calc_chain
        ctx = ShiftContext(
            sheet=sheet,
            sheet_id=self.workbook.get_sheet_id(sheet),
            direction=direction,
            num=num,
            offset=offset,
            worksheet=worksheet.model_copy(deep=True),
            relationships=self.workbook.get_relationships(sheet).model_copy(deep=True),
            calc_chain=calc_chain.model_copy(deep=True) if calc_chain else None,
            defined_names=[d.name for d in self.workbook.get_defined_names(sheet)],
        )

        if ctx.rows:
            self._adjust_row_dimensions(ctx)
        else:
            self._adjust_col_dimensions(ctx)
        self._adjust_hyperlinks(ctx)
        self._adjust_tables(ctx)
        self._adjust_auto_filter(ctx)
        self._adjust_merge_cells(ctx)
        self._adjust_calc_chain(ctx)
        ctx.worksheet.normalize()

        self._commit(ctx)

    # Validation

    def _check_limits(self, sheet: str, ws: Worksheet, direction: Direction, num: int, offset: int):
        """Dry pass: reject shifts that push content off the grid."""
        if offset <= 0:
            return
        rows = direction == Direction.ROWS
        moving = [edge for edge in self._far_edges(sheet, ws, rows) if edge >= num]
        limit = settings.total_rows if rows else settings.max_columns
        if not moving or max(moving) + offset <= limit:
            return
        if rows:
            raise RowLimitExceededError(f"row number exceeds maximum limit {limit}")
        raise ColumnLimitExceededError(f"column number exceeds maximum limit {limit}")

    def _far_edges(self, sheet: str, ws: Worksheet, rows: bool) -> Iterator[int]:
        """Last row (or column) of everything a shift moves."""
        axis = 3 if rows else 2
        refs = []
        for row in ws.rows:
            if rows:
                yield row.r
            for cell in row.cells:
                if not rows:
                    yield cell_to_coordinates(cell.r)[0]
                if cell.formula is not None and cell.formula.ref:
                    refs.append(cell.formula.ref)
        refs.extend(merge.ref for merge in ws.merge_cells or [])
        refs.extend(link.ref for link in ws.hyperlinks or [])
        if ws.auto_filter is not None:
            refs.append(ws.auto_filter.ref)
        refs.extend(self._table_refs(sheet, ws))
        for ref in refs:
            yield range_to_coordinates(ref)[axis]

        chain = self.workbook.calc_chain
        previous_id = 0
        for entry in chain.entries if chain else []:
            previous_id = entry.i or previous_id
            if previous_id == ws.sheet_id:
                col, row_number = cell_to_coordinates(entry.r)
                yield row_number if rows else col

    def _table_refs(self, sheet: str, ws: Worksheet) -> list[str]:
        if not ws.table_parts:
            return []
        relationships = self.workbook.get_relationships(sheet)
        refs = []
        for part in ws.table_parts:
            content = self.workbook.package.load(
                resolve_part_path(relationships.get_target(part.rid))
            )
            if content is None:
                continue
            try:
                refs.append(parse_table(content).ref)
            except (ET.ParseError, ValueError) as e:
                logger.debug(f"Ignoring unreadable table part {part.rid} in limit check: {e}")
        return [ref for ref in refs if ref]

    # Rows, cells and column widths

    def _adjust_formulas(self, ctx: ShiftContext):
        for row in ctx.worksheet.rows:
            for cell in row.cells:
                adjust_formula(
                    cell.formula,
                    ctx.sheet,
                    ctx.defined_names,
                    ctx.direction,
                    ctx.num,
                    ctx.offset,
                )

    def _adjust_row_dimensions(self, ctx: ShiftContext):
        ws = ctx.worksheet
        if ctx.deleting:
            ws.rows = [row for row in ws.rows if row.r != ctx.num]
        for row in ws.rows:
            if row.r < ctx.num:
                continue
            row.r += ctx.offset
            for cell in row.cells:
                column, _ = split_cell_name(cell.r)
                cell.r = f"{column}{row.r}"
        self._adjust_formulas(ctx)

    def _adjust_col_dimensions(self, ctx: ShiftContext):
        ws = ctx.worksheet
        for row in ws.rows:
            if ctx.deleting:
                row.cells = [c for c in row.cells if cell_to_coordinates(c.r)[0] != ctx.num]
            for cell in row.cells:
                col, row_number = cell_to_coordinates(cell.r)
                if col >= ctx.num:
                    cell.r = coordinates_to_cell(col + ctx.offset, row_number)
        self._adjust_formulas(ctx)
        self._adjust_cols(ctx)

    def _adjust_cols(self, ctx: ShiftContext):
        """Move, grow or shrink column width ranges."""
        ws = ctx.worksheet
        if ws.cols is None:
            return
        col, offset = ctx.num, ctx.offset
        adjusted: list[ColumnRange] = []
        for rng in ws.cols:
            if offset > 0:
                if rng.max + 1 == col:
                    rng.max += offset
                elif rng.min >= col:
                    rng.min += offset
                    rng.max += offset
                elif rng.min < col <= rng.max:
                    rng.max += offset
            else:
                if rng.min == col and rng.max == col:
                    continue
                if rng.min > col:
                    rng.min += offset
                    rng.max += offset
                elif rng.min <= col <= rng.max:
                    rng.max += offset
            if rng.min > settings.max_columns:
                continue
            rng.max = min(rng.max, settings.max_columns)
            adjusted.append(rng)
        ws.cols = adjusted or None

    # Hyperlinks

    def _on_deleted_line(self, ctx: ShiftContext, coordinates: list[int]) -> bool:
        x1, y1, x2, y2 = coordinates
        if not ctx.deleting:
            return False
        if ctx.rows:
            return y1 == ctx.num and y2 == ctx.num
        return x1 == ctx.num and x2 == ctx.num

    def _adjust_hyperlinks(self, ctx: ShiftContext):
        ws = ctx.worksheet
        if not ws.hyperlinks:
            return

        retained = []
        for link in ws.hyperlinks:
            if self._on_deleted_line(ctx, range_to_coordinates(link.ref)):
                logger.debug(f"Dropping hyperlink at {link.ref}")
                if link.rid:
                    ctx.relationships.remove(link.rid)
                continue
            retained.append(link)

        for link in retained:
            link.ref = adjust_range_ref(link.ref, ctx.direction, ctx.num, ctx.offset)
        ws.hyperlinks = retained or None

    # Tables

    def _set_table_header(self, ws: Worksheet, x1: int, y1: int, x2: int) -> list[str]:
        """Read column names from the header row, naming blank and repeated headers."""
        cells = [coordinates_to_cell(col, y1) for col in range(x1, x2 + 1)]
        values = [ws.get_cell_value(cell) for cell in cells]
        taken = {value.lower() for value in values if value}
        seen = set()
        names = []
        for idx, (cell, value) in enumerate(zip(cells, values), start=1):
            if not value:
                name = _unique_name((f"Column{n}" for n in itertools.count(idx)), taken)
            elif value.lower() in seen:
                name = _unique_name((f"{value}{n}" for n in itertools.count(2)), taken)
            else:
                name = value
            seen.add(name.lower())
            if name != value or name.isdigit():
                ws.set_cell_str(cell, name)
            names.append(name)
        return names

    def _headerless_names(self, table: Table, layout: list[Optional[int]]) -> list[str]:
        """Keep the names of a table without header row, naming inserted columns."""
        old = [col.name for col in table.columns]
        kept = [source for source in layout if source is not None and source < len(old)]
        taken = {old[source].lower() for source in kept}
        names = []
        for idx, source in enumerate(layout, start=1):
            if source is not None and source < len(old):
                names.append(old[source])
            else:
                names.append(_unique_name((f"Column{n}" for n in itertools.count(idx)), taken))
        return names

    def _column_layout(self, ctx: ShiftContext, old: list[int], new: list[int]) -> list[Optional[int]]:
        """Map each column of the shifted table to the column it came from."""
        width = new[2] - new[0] + 1
        if ctx.rows:
            return list(range(width))
        sources = {}
        for index, col in enumerate(range(old[0], old[2] + 1)):
            if ctx.deleting and col == ctx.num:
                continue
            sources[shift_point(col, ctx.num, ctx.offset)] = index
        return [sources.get(col) for col in range(new[0], new[2] + 1)]

    def _drop_table(self, ctx: ShiftContext, rid: str, path: str):
        ctx.relationships.remove(rid)
        ctx.part_writes[path] = None

    def _adjust_tables(self, ctx: ShiftContext):
        ws = ctx.worksheet
        if not ws.table_parts:
            return

        def shift_ref(value: str) -> str:
            return adjust_range_ref(value, ctx.direction, ctx.num, ctx.offset)

        retained = []
        for part in ws.table_parts:
            path = resolve_part_path(ctx.relationships.get_target(part.rid))
            content = self.workbook.package.load(path)
            if content is None:
                logger.warning(f"Table part {path} for {part.rid} not found, skipping")
                retained.append(part)
                continue
            try:
                table = parse_table(content)
            except (ET.ParseError, ValueError) as e:
                logger.warning(f"Table part {path} is unreadable, skipping: {e}")
                retained.append(part)
                continue

            has_header = table.header_row_count != 0
            coordinates = range_to_coordinates(table.ref)
            if self._on_deleted_line(ctx, coordinates):
                logger.debug(f"Dropping table {table.name}: deleted with its line")
                self._drop_table(ctx, part.rid, path)
                continue
            if has_header and ctx.rows and ctx.deleting and ctx.num == coordinates[1]:
                logger.debug(f"Dropping table {table.name}: header row deleted")
                self._drop_table(ctx, part.rid, path)
                continue

            x1, y1, x2, y2 = shift_rect(coordinates, ctx.direction, ctx.num, ctx.offset)
            if y2 - y1 < (1 if has_header else 0) or x2 - x1 < 0:
                logger.debug(f"Dropping table {table.name}: no data rows left")
                self._drop_table(ctx, part.rid, path)
                continue
            retained.append(part)

            ref = coordinates_to_range([x1, y1, x2, y2])
            layout = self._column_layout(ctx, coordinates, [x1, y1, x2, y2])
            if has_header:
                names = self._set_table_header(ws, x1, y1, x2)
            else:
                names = self._headerless_names(table, layout)
            if ref == table.ref and names == [col.name for col in table.columns]:
                continue

            try:
                ctx.part_writes[path] = update_table_part(content, shift_ref, names, layout)
            except (ET.ParseError, ValueError) as e:
                logger.warning(f"Table part {path} cannot be updated, skipping: {e}")

        ws.table_parts = retained

    # Autofilter

    def _adjust_auto_filter(self, ctx: ShiftContext):
        ws = ctx.worksheet
        if ws.auto_filter is None:
            return

        x1, y1, x2, y2 = range_to_coordinates(ws.auto_filter.ref)
        header_removed = ctx.rows and y1 == ctx.num
        only_column_removed = not ctx.rows and x1 == ctx.num and x2 == ctx.num
        if ctx.deleting and (header_removed or only_column_removed):
            logger.debug(f"Clearing autofilter {ws.auto_filter.ref}")
            ws.auto_filter = None
            # Rows are already shifted: the filtered rows now start at y1
            first, last = (y1, y2 - 1) if ctx.rows else (y1 + 1, y2)
            for row in ws.rows:
                if first <= row.r <= last:
                    row.hidden = False
            return

        coordinates = shift_rect([x1, y1, x2, y2], ctx.direction, ctx.num, ctx.offset)
        ws.auto_filter.ref = coordinates_to_range(coordinates)

    # Merged cells

    def _adjust_merge_cells(self, ctx: ShiftContext):
        ws = ctx.worksheet
        if ws.merge_cells is None:
            return

        retained = []
        for merge in ws.merge_cells:
            ref = merge.ref if ":" in merge.ref else f"{merge.ref}:{merge.ref}"
            coordinates = range_to_coordinates(ref, sort=False)
            if self._on_deleted_line(ctx, coordinates):
                logger.debug(f"Dropping merged cell {merge.ref}: line deleted")
                continue
            x1, y1, x2, y2 = shift_rect(coordinates, ctx.direction, ctx.num, ctx.offset)
            if x1 == x2 and y1 == y2:
                logger.debug(f"Dropping merged cell {merge.ref}: collapsed")
                continue
            merge.ref = coordinates_to_range([x1, y1, x2, y2])
            retained.append(merge)
        ws.merge_cells = retained

    # Calculation chain

    def _adjust_calc_chain(self, ctx: ShiftContext):
        chain = ctx.calc_chain
        if chain is None:
            return

        retained = []
        previous_id = 0  # Sheet id inherited by entries with i == 0
        last_retained_id = 0
        for entry in chain.entries:
            sheet_id = entry.i or previous_id
            previous_id = sheet_id

            if sheet_id == ctx.sheet_id:
                col, row = cell_to_coordinates(entry.r)
                position = row if ctx.rows else col
                if position >= ctx.num:
                    if ctx.deleting and position == ctx.num:
                        logger.debug(f"Pruning calc chain entry {entry.r}")
                        continue
                    new_position = shift_point(position, ctx.num, ctx.offset)
                    if ctx.rows:
                        entry.r = coordinates_to_cell(col, new_position)
                    else:
                        entry.r = coordinates_to_cell(new_position, row)

            if entry.i == 0 and last_retained_id != sheet_id:
                entry.i = sheet_id
            last_retained_id = sheet_id
            retained.append(entry)

        ctx.calc_chain = CalcChain(entries=retained) if retained else None

    # Commit

    def _commit(self, ctx: ShiftContext):
        wb = self.workbook
        wb.sheets[ctx.sheet] = ctx.worksheet
        wb.relationships[ctx.sheet] = ctx.relationships
        wb.calc_chain = ctx.calc_chain
        for path, content in ctx.part_writes.items():
            if content is None:
                wb.package.delete(path)
            else:
                wb.package.save(path, content)
        logger.info(f"Adjusted {ctx.sheet}: {len(ctx.part_writes)} table part(s) updated")
