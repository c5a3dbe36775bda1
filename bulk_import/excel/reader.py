from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from openpyxl import load_workbook

from ..errors import EmptyFileError, ParseFailureError, UnsupportedFormatError
from ..models.field_spec import RawRecord

"""Spreadsheet / delimited-text reader.

Row 1 of the first sheet is the header; every later row becomes one RawRecord
keyed by the header of its own column position. The reader is schema-agnostic:
it knows nothing about the entity being imported.

Blank handling:
- columns with a blank header are ignored (drops trailing blank columns)
- trailing blank rows are dropped, interior blank rows are kept so that record
  index i still maps to file row i + 2
- a body whose rows are all blank yields a single all-blank record when a
  row was written with (empty) cells, as in an untouched template; bare empty
  lines and styled-but-empty rows are no data at all (EmptyFileError)
- rows longer than the header keep only the header positions
"""

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "ParsedTable",
    "normalize_extension",
    "ensure_supported_extension",
    "detect_format",
    "read_table",
    "parse_file",
]

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: tuple[str, ...] = ("xlsx", "xls", "csv")

XLSX_MAGIC = b"PK\x03\x04"
XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

CSV_DELIMITERS = ",;\t|"
CSV_SNIFF_BYTES = 8192

# openpyxl data types of text cells (shared string, inline string)
_TEXT_CELL_TYPES = ("s", "inlineStr")


@dataclass
class ParsedTable:
    source_format: str  # xlsx / xls / csv (detected, not declared)
    sheet_name: str | None
    columns: list[str]
    records: list[RawRecord] = field(default_factory=list)


def normalize_extension(name_or_extension: str) -> str:
    """Return the lower-case extension of a file name or bare extension ("Leads.XLSX" -> "xlsx")."""
    value = str(name_or_extension or "").strip().lower()
    if "." in value:
        value = value.rsplit(".", 1)[1]
    return value


def ensure_supported_extension(name_or_extension: str) -> str:
    """Reject extensions outside the allow-list before any content is read.

    Raises:
        UnsupportedFormatError: when the extension is not xlsx, xls or csv
    """
    extension = normalize_extension(name_or_extension)
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(extension, SUPPORTED_EXTENSIONS)
    return extension


def detect_format(content: bytes, declared_extension: str = "csv") -> str:
    """Detect the container from its leading bytes.

    ZIP -> xlsx, OLE2 compound document -> xls, anything else is delimited
    text. A .xls upload that is really .xlsx (or the reverse) is read by what
    it is. A workbook extension on non-workbook bytes is a ParseFailureError.
    """
    if content.startswith(XLSX_MAGIC):
        return "xlsx"
    if content.startswith(XLS_MAGIC):
        return "xls"
    if normalize_extension(declared_extension) in ("xlsx", "xls") and content:
        raise ParseFailureError("file is not a valid Excel workbook")
    return "csv"


def _xlsx_cell(cell: Any) -> Any:
    # the template's blank row is written as empty text cells; openpyxl reads
    # those back as None, keep them as "" so the row counts as present
    if cell.value is None and cell.data_type in _TEXT_CELL_TYPES:
        return ""
    return cell.value


def _read_xlsx(content: bytes) -> tuple[str | None, list[list[Any]]]:
    # pandas trims trailing empty rows itself, which would hide the blank body
    # row of a generated template; openpyxl reports every physical row
    try:
        wb = load_workbook(io.BytesIO(content), data_only=True)
    except Exception as e:
        raise ParseFailureError(f"unable to read workbook: {e}") from e
    try:
        if not wb.worksheets:
            raise ParseFailureError("workbook contains no worksheet")
        ws = wb.worksheets[0]
        rows = [[_xlsx_cell(c) for c in r] for r in ws.iter_rows()]
        return ws.title, rows
    finally:
        wb.close()


def _read_xls(content: bytes) -> tuple[str | None, list[list[Any]]]:
    try:
        xls = pd.ExcelFile(io.BytesIO(content), engine="xlrd")
        sheet_name = xls.sheet_names[0] if xls.sheet_names else None
        if sheet_name is None:
            raise ParseFailureError("workbook contains no worksheet")
        df = pd.read_excel(
            xls,
            sheet_name=sheet_name,
            header=None,
            dtype=object,
            keep_default_na=False,
            na_values=[],
        )
    except ParseFailureError:
        raise
    except Exception as e:
        raise ParseFailureError(f"unable to read workbook: {e}") from e
    # xlrd reports empty cells as ""; they are absent, not written
    rows = [[None if isinstance(v, str) and v == "" else v for v in r] for r in df.values.tolist()]
    return str(sheet_name), rows


def _decode_text(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def _sniff_delimiter(text: str) -> str:
    sample = text[:CSV_SNIFF_BYTES]
    try:
        return csv.Sniffer().sniff(sample, delimiters=CSV_DELIMITERS).delimiter
    except csv.Error:
        return ","


def _read_csv(content: bytes) -> tuple[str | None, list[list[Any]]]:
    if b"\x00" in content:
        raise ParseFailureError("file is not delimited text (binary content)")
    text = _decode_text(content)
    if not text.strip():
        return None, []
    delimiter = _sniff_delimiter(text)
    logger.debug("csv delimiter=%r", delimiter)
    # row by row: lines may be shorter or longer than the header, and a bare
    # empty line comes back as [] (no cells) while ",," keeps its empty cells
    try:
        rows = list(csv.reader(io.StringIO(text, newline=""), delimiter=delimiter))
    except csv.Error as e:
        raise ParseFailureError(f"unable to read delimited text: {e}") from e
    return None, rows


_READERS = {
    "xlsx": _read_xlsx,
    "xls": _read_xls,
    "csv": _read_csv,
}


def _normalize_cell(value: Any) -> Any:
    """Convert a raw cell into a CellValue (None for blanks)."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer() and abs(value) < 2**53:
            return int(value)
        return value
    return value


def _header_text(value: Any) -> str | None:
    cell = _normalize_cell(value)
    if cell is None:
        return None
    return str(cell).strip() or None


def _build_records(grid: list[list[Any]]) -> tuple[list[str], list[RawRecord]]:
    if not grid:
        raise EmptyFileError()

    keyed: list[tuple[int, str]] = []  # (column position, header)
    seen: set[str] = set()
    for pos, raw in enumerate(grid[0]):
        header = _header_text(raw)
        if header is None:
            continue
        if header in seen:
            logger.warning("duplicate header '%s' in column %d ignored", header, pos + 1)
            continue
        seen.add(header)
        keyed.append((pos, header))
    if not keyed:
        raise ParseFailureError("the first row must contain the column headers")

    body: list[list[Any]] = []
    has_cells = False  # any body row written with explicit (possibly empty) cells
    for raw_row in grid[1:]:
        row = list(raw_row)
        cells = [row[pos] if pos < len(row) else None for pos, _ in keyed]
        has_cells = has_cells or any(c is not None for c in cells)
        body.append([_normalize_cell(c) for c in cells])

    last_filled = -1
    for idx, cells in enumerate(body):
        if any(c is not None for c in cells):
            last_filled = idx
    if last_filled >= 0:
        body = body[: last_filled + 1]
    elif has_cells:
        # untouched template: keep exactly one all-blank record
        body = body[:1]
    else:
        # bare empty lines and styled-but-empty rows are not data
        raise EmptyFileError()

    columns = [header for _, header in keyed]
    records = [dict(zip(columns, cells)) for cells in body]
    return columns, records


def read_table(content: bytes, declared_extension: str) -> ParsedTable:
    """Read the first sheet/table of an uploaded file.

    Args:
        content: Raw file bytes
        declared_extension: Extension (or file name) the file was uploaded with

    Returns:
        ParsedTable with the header columns and one record per data row

    Raises:
        UnsupportedFormatError: extension outside the allow-list (nothing is read)
        ParseFailureError: unreadable/corrupt container or missing header row
        EmptyFileError: no data rows below the header
    """
    extension = ensure_supported_extension(declared_extension)
    source_format = detect_format(content, extension)
    logger.debug(
        "read_table declared=%s detected=%s bytes=%d",
        extension,
        source_format,
        len(content),
    )
    sheet_name, grid = _READERS[source_format](content)
    columns, records = _build_records(grid)
    return ParsedTable(
        source_format=source_format,
        sheet_name=sheet_name,
        columns=columns,
        records=records,
    )


def parse_file(content: bytes, declared_extension: str) -> list[RawRecord]:
    """Parse file bytes into header-keyed records in file order."""
    return read_table(content, declared_extension).records
