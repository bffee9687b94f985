"""
Spreadsheet reading and row normalization for bulk product import.

Workbooks (.xlsx via openpyxl, .xls via xlrd) and CSV files are read into
plain rows; the first non-empty row is the header. Row numbers are the
spreadsheet's own 1-based row numbers, so with the header on row 1 the
first data row is row 2.
"""

import csv
import io
import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import openpyxl
import xlrd

from ..core.exceptions import EmptyFileError, SchemaError, UnreadableFileError, UnsupportedFileError
from .identifiers import IDENTIFIER_LENGTH

# Canonical field -> accepted header spellings after normalize_header()
COLUMN_ALIASES = {
    "identifier": ("productid", "pid", "identifier"),
    "name": ("productname", "name"),
}

SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")

_HEADER_NOISE = re.compile(r"[\s_\-.]+")
_NON_DIGITS = re.compile(r"\D")
_EXPONENTIAL = re.compile(r"^[+-]?\d+(\.\d+)?[eE][+-]?\d+$")


@dataclass(frozen=True)
class ColumnMapping:
    """Positions of the identifier and name columns in the header row."""
    identifier_index: int
    name_index: int
    identifier_header: str
    name_header: str


@dataclass(frozen=True)
class ProductRow:
    """One normalized, non-blank data row."""
    row_number: int
    identifier: str
    name: str


def normalize_header(value: Any) -> str:
    """Lowercase a header and drop spaces, underscores, hyphens and dots."""
    if value is None:
        return ""
    return _HEADER_NOISE.sub("", str(value).strip().lower())


def match_columns(headers: Sequence[Any]) -> ColumnMapping:
    """
    Locate the identifier and name columns in a header row.

    Matching is case-insensitive and ignores separators, so "Product ID",
    "product_id" and "productId" all resolve to the identifier column.
    The first matching column wins.

    Raises:
        SchemaError: A required column is missing
    """
    found = {}
    for index, header in enumerate(headers):
        key = normalize_header(header)
        for field_name, aliases in COLUMN_ALIASES.items():
            if field_name not in found and key in aliases:
                found[field_name] = (index, str(header).strip())

    if "identifier" not in found:
        raise SchemaError('Column "product_id" or "productId" not found in file')
    if "name" not in found:
        raise SchemaError('Column "product_name" or "productName" not found in file')

    return ColumnMapping(
        identifier_index=found["identifier"][0],
        name_index=found["name"][0],
        identifier_header=found["identifier"][1],
        name_header=found["name"][1],
    )


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def normalize_identifier_cell(value: Any) -> str:
    """
    Turn an identifier cell into a digit string.

    Spreadsheets store long numbers as floats, so a cell may come back as
    "1234567812345678.0" or "1.234567812345678E+15". Exponential notation
    is expanded to a plain integer, any fractional part dropped and every
    remaining non-digit removed. Exponents outside the identifier range
    are not expanded; only the mantissa digits are returned. Leading zeros
    lost by numeric storage cannot be recovered.
    """
    if _is_missing(value):
        return ""

    text = str(value).strip()
    if _EXPONENTIAL.match(text):
        try:
            number = Decimal(text)
        except InvalidOperation:
            return ""
        # Out-of-range magnitudes are never valid identifiers; keep the mantissa digits only
        if not 0 <= number.adjusted() < IDENTIFIER_LENGTH:
            return _NON_DIGITS.sub("", re.split("[eE]", text, maxsplit=1)[0])
        text = format(number, "f")

    if "." in text:
        text = text.split(".", 1)[0]

    return _NON_DIGITS.sub("", text)


def normalize_name_cell(value: Any) -> str:
    """Coerce a name cell to a trimmed string."""
    if _is_missing(value):
        return ""
    return str(value).strip()


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def _is_blank_row(row: Sequence[Any]) -> bool:
    return all(_is_missing(cell) or str(cell).strip() == "" for cell in row)


def _read_xlsx(content: bytes) -> Optional[List[Tuple[Any, ...]]]:
    workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        if not workbook.worksheets:
            return None
        return [tuple(row) for row in workbook.worksheets[0].iter_rows(values_only=True)]
    finally:
        workbook.close()


def _read_xls(content: bytes) -> Optional[List[Tuple[Any, ...]]]:
    workbook = xlrd.open_workbook(file_contents=content)
    if workbook.nsheets == 0:
        return None
    sheet = workbook.sheet_by_index(0)
    return [tuple(sheet.row_values(index)) for index in range(sheet.nrows)]


def _read_csv(content: bytes) -> List[Tuple[Any, ...]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    return [tuple(row) for row in csv.reader(io.StringIO(text))]


def read_table(filename: str, content: bytes) -> Optional[List[Tuple[Any, ...]]]:
    """
    Read the first sheet of a spreadsheet into raw rows.

    Returns:
        Rows in sheet order, or None if the workbook has no sheet

    Raises:
        UnsupportedFileError: Extension is not a spreadsheet format
        UnreadableFileError: Content does not parse as that format
    """
    extension = Path(filename or "").suffix.lower()
    readers = {".xlsx": _read_xlsx, ".xls": _read_xls, ".csv": _read_csv}
    reader = readers.get(extension)
    if reader is None:
        raise UnsupportedFileError(
            "Invalid file type. Please upload a spreadsheet (.xlsx, .xls or .csv)"
        )

    try:
        return reader(content)
    except Exception as e:
        raise UnreadableFileError(
            f"Failed to parse {extension} file. Please check the file format."
        ) from e


def parse_product_rows(filename: str, content: bytes) -> List[ProductRow]:
    """
    Read a spreadsheet and return its normalized, non-blank product rows.

    Raises:
        EmptyFileError: No sheet, no header or no data rows
        SchemaError: Identifier or name column missing
        UnsupportedFileError: Unknown extension
        UnreadableFileError: Corrupt content
    """
    table = read_table(filename, content)
    if table is None:
        raise EmptyFileError("File has no sheets")

    numbered = [
        (row_number, row)
        for row_number, row in enumerate(table, start=1)
        if not _is_blank_row(row)
    ]
    if not numbered:
        raise EmptyFileError("File is empty")

    (_, header), data_rows = numbered[0], numbered[1:]
    if not data_rows:
        raise EmptyFileError("File has no data rows")

    mapping = match_columns(header)

    rows = []
    for row_number, raw in data_rows:
        identifier = normalize_identifier_cell(_cell(raw, mapping.identifier_index))
        name = normalize_name_cell(_cell(raw, mapping.name_index))
        # Rows with content only in unrelated columns count as blank
        if not identifier and not name:
            continue
        rows.append(ProductRow(row_number=row_number, identifier=identifier, name=name))

    if not rows:
        raise EmptyFileError("File has no valid data rows")

    return rows
