"""Read and write table parts (``xl/tables/tableN.xml``)."""

import io
import logging
from typing import Callable, Optional
from xml.etree import ElementTree as ET

from .models import Table, TableColumn

logger = logging.getLogger(__name__)

SPREADSHEET_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"

# Strict OOXML namespaces and their transitional equivalents
STRICT_TO_TRANSITIONAL = {
    b"http://purl.oclc.org/ooxml/spreadsheetml/main": SPREADSHEET_NS.encode(),
    b"http://purl.oclc.org/ooxml/officeDocument/relationships": (
        b"http://schemas.openxmlformats.org/officeDocument/2006/relationships"
    ),
    b"http://purl.oclc.org/ooxml/drawingml/main": (
        b"http://schemas.openxmlformats.org/drawingml/2006/main"
    ),
    b"http://purl.oclc.org/ooxml/drawingml/chart": (
        b"http://schemas.openxmlformats.org/drawingml/2006/chart"
    ),
    b"http://purl.oclc.org/ooxml/drawingml/spreadsheetDrawing": (
        b"http://schemas.openxmlformats.org/drawingml/2006/spreadsheetDrawing"
    ),
}

ET.register_namespace("", SPREADSHEET_NS)


def _tag(name: str) -> str:
    return f"{{{SPREADSHEET_NS}}}{name}"


def namespace_strict_to_transitional(content: bytes) -> bytes:
    """Rewrite strict namespace URIs so one parser handles both flavours."""
    for strict, transitional in STRICT_TO_TRANSITIONAL.items():
        content = content.replace(strict, transitional)
    return content


def parse_table(content: bytes) -> Table:
    """Parse a table part into a ``Table``.

    Raises:
        ET.ParseError: if the part is not well-formed XML.
        ValueError: if the root element is not a table.
    """
    root = ET.fromstring(namespace_strict_to_transitional(content))
    if root.tag != _tag("table"):
        raise ValueError(f"unexpected table root element {root.tag}")

    auto_filter = root.find(_tag("autoFilter"))
    columns = []
    table_columns = root.find(_tag("tableColumns"))
    if table_columns is not None:
        for col in table_columns.findall(_tag("tableColumn")):
            columns.append(TableColumn(id=int(col.get("id", "0")), name=col.get("name", "")))

    style = root.find(_tag("tableStyleInfo"))
    header_row_count = root.get("headerRowCount")
    totals_row_count = root.get("totalsRowCount")
    totals_row_shown = root.get("totalsRowShown")

    return Table(
        id=int(root.get("id", "0")),
        name=root.get("name", ""),
        display_name=root.get("displayName", root.get("name", "")),
        ref=root.get("ref", ""),
        auto_filter_ref=auto_filter.get("ref") if auto_filter is not None else None,
        columns=columns,
        header_row_count=int(header_row_count) if header_row_count is not None else None,
        totals_row_count=int(totals_row_count) if totals_row_count is not None else None,
        totals_row_shown=totals_row_shown in ("1", "true") if totals_row_shown is not None else None,
        style_info=dict(style.attrib) if style is not None else None,
    )


def render_table(table: Table) -> bytes:
    """Serialize a ``Table`` back into table part XML."""
    root = ET.Element(_tag("table"))
    root.set("id", str(table.id))
    root.set("name", table.name)
    root.set("displayName", table.display_name)
    root.set("ref", table.ref)
    if table.header_row_count is not None:
        root.set("headerRowCount", str(table.header_row_count))
    if table.totals_row_count is not None:
        root.set("totalsRowCount", str(table.totals_row_count))
    if table.totals_row_shown is not None:
        root.set("totalsRowShown", "1" if table.totals_row_shown else "0")

    if table.auto_filter_ref is not None:
        ET.SubElement(root, _tag("autoFilter"), {"ref": table.auto_filter_ref})

    table_columns = ET.SubElement(root, _tag("tableColumns"), {"count": str(len(table.columns))})
    for col in table.columns:
        ET.SubElement(table_columns, _tag("tableColumn"), {"id": str(col.id), "name": col.name})

    if table.style_info is not None:
        ET.SubElement(root, _tag("tableStyleInfo"), table.style_info)

    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def _register_prefixes(content: bytes):
    """Reuse the part's own namespace prefixes when it is written back."""
    for _, (prefix, uri) in ET.iterparse(io.BytesIO(content), events=("start-ns",)):
        if not prefix or uri == SPREADSHEET_NS:
            continue
        try:
            ET.register_namespace(prefix, uri)
        except ValueError as e:
            logger.debug(f"Keeping generated prefix for {uri}: {e}")


def _remap_filter_columns(auto_filter: ET.Element, layout: list[Optional[int]]):
    """Point ``filterColumn/@colId`` at the new column positions."""
    for filter_column in auto_filter.findall(_tag("filterColumn")):
        col_id = int(filter_column.get("colId", "0"))
        if col_id in layout:
            filter_column.set("colId", str(layout.index(col_id)))
        else:
            auto_filter.remove(filter_column)


def update_table_part(
    content: bytes,
    adjust_ref: Callable[[str], str],
    names: list[str],
    layout: list[Optional[int]],
) -> bytes:
    """Rewrite the ranges and column names of a table part in place.

    Everything else in the part (totals row settings, filter criteria,
    calculated column formulas, styles, extensions) is kept as is.

    Args:
        content: The table part XML
        adjust_ref: Maps an old range reference to its shifted form
        names: Column names, one per column of the shifted table
        layout: For each new column, the index of the column it came from,
            or None for an inserted column

    Raises:
        ET.ParseError: if the part is not well-formed XML.
        ValueError: if the part is not a table or has no column list.
    """
    content = namespace_strict_to_transitional(content)
    root = ET.fromstring(content)
    if root.tag != _tag("table"):
        raise ValueError(f"unexpected table root element {root.tag}")
    table_columns = root.find(_tag("tableColumns"))
    if table_columns is None:
        raise ValueError("table part has no tableColumns element")
    _register_prefixes(content)

    root.set("ref", adjust_ref(root.get("ref", "")))
    auto_filter = root.find(_tag("autoFilter"))
    if auto_filter is not None:
        if auto_filter.get("ref"):
            auto_filter.set("ref", adjust_ref(auto_filter.get("ref")))
        _remap_filter_columns(auto_filter, layout)
    for element in root.iter():
        if element.tag in (_tag("sortState"), _tag("sortCondition")) and element.get("ref"):
            element.set("ref", adjust_ref(element.get("ref")))

    existing = table_columns.findall(_tag("tableColumn"))
    next_id = max((int(col.get("id", "0")) for col in existing), default=0) + 1
    for col in existing:
        table_columns.remove(col)
    for source, name in zip(layout, names):
        if source is not None and source < len(existing):
            col = existing[source]
        else:
            col = ET.Element(_tag("tableColumn"), {"id": str(next_id)})
            next_id += 1
        col.set("name", name)
        table_columns.append(col)
    table_columns.set("count", str(len(names)))

    return ET.tostring(root, encoding="utf-8", xml_declaration=True)
