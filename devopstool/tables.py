"""Plain-text tables aligned with tabs, and single-sheet spreadsheet files."""

from __future__ import annotations

import zipfile
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any
from xml.sax.saxutils import escape, quoteattr

_TABWIDTH = 8
_PADDING = 2
_MAX_SHEET_NAME = 31
_BAD_SHEET_CHARS = set(':\\/?*[]')


def _cell_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def format_table(rows: Iterable[Sequence[Any]]) -> str:
    """Lay rows out in tab-padded columns; the last cell of a row is left unpadded."""
    table = [[_cell_text(cell) for cell in row] for row in rows]
    widths: dict[int, int] = {}
    for row in table:
        for index, cell in enumerate(row[:-1]):
            widths[index] = max(widths.get(index, 0), len(cell))

    lines = []
    for row in table:
        parts = []
        for index, cell in enumerate(row[:-1]):
            column = widths[index] + _PADDING
            column = -(-column // _TABWIDTH) * _TABWIDTH
            parts.append(cell + "\t" * -(-(column - len(cell)) // _TABWIDTH))
        if row:
            parts.append(row[-1])
        lines.append("".join(parts) + "\n")
    return "".join(lines)


def _column_letters(index: int) -> str:
    number = index + 1
    letters = ""
    while number:
        number, remainder = divmod(number - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def _cell_xml(ref: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return f'<c r="{ref}" t="b"><v>{int(value)}</v></c>'
    if isinstance(value, (int, float)):
        return f'<c r="{ref}"><v>{value!r}</v></c>'
    text = escape(str(value))
    return f'<c r="{ref}" t="inlineStr"><is><t xml:space="preserve">{text}</t></is></c>'


_MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
_REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
_PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
_HEADER = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'

_CONTENT_TYPES = (
    _HEADER
    + '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/xl/workbook.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"/>'
    '<Override PartName="/xl/worksheets/sheet1.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/>'
    "</Types>"
)

_ROOT_RELS = (
    _HEADER
    + f'<Relationships xmlns="{_PKG_REL_NS}">'
    f'<Relationship Id="rId1" Type="{_REL_NS}/officeDocument" Target="xl/workbook.xml"/>'
    "</Relationships>"
)

_WORKBOOK_RELS = (
    _HEADER
    + f'<Relationships xmlns="{_PKG_REL_NS}">'
    f'<Relationship Id="rId1" Type="{_REL_NS}/worksheet" Target="worksheets/sheet1.xml"/>'
    "</Relationships>"
)


def _check_sheet_name(name: str) -> None:
    if not name or len(name) > _MAX_SHEET_NAME:
        raise ValueError(f"sheet name must be 1 to {_MAX_SHEET_NAME} characters: {name!r}")
    bad = _BAD_SHEET_CHARS.intersection(name)
    if bad:
        raise ValueError(f"sheet name {name!r} contains invalid characters: {''.join(sorted(bad))}")


def write_xlsx(path: str | Path, sheet_name: str, rows: Iterable[Sequence[Any]]) -> None:
    """Write rows to a workbook holding one sheet."""
    _check_sheet_name(sheet_name)
    row_xml = []
    for row_number, row in enumerate(rows, start=1):
        cells = "".join(
            _cell_xml(f"{_column_letters(col)}{row_number}", value) for col, value in enumerate(row)
        )
        row_xml.append(f'<row r="{row_number}">{cells}</row>')
    sheet = _HEADER + f'<worksheet xmlns="{_MAIN_NS}"><sheetData>{"".join(row_xml)}</sheetData></worksheet>'
    workbook = (
        _HEADER
        + f'<workbook xmlns="{_MAIN_NS}" xmlns:r="{_REL_NS}"><sheets>'
        f'<sheet name={quoteattr(sheet_name)} sheetId="1" r:id="rId1"/>'
        "</sheets></workbook>"
    )
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", _CONTENT_TYPES)
        archive.writestr("_rels/.rels", _ROOT_RELS)
        archive.writestr("xl/workbook.xml", workbook)
        archive.writestr("xl/_rels/workbook.xml.rels", _WORKBOOK_RELS)
        archive.writestr("xl/worksheets/sheet1.xml", sheet)