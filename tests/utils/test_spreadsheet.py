"""
Tests for spreadsheet reading, header matching and cell normalization.
"""

import io

import pytest
from openpyxl import Workbook

from product_verification.core.exceptions import (
    EmptyFileError,
    SchemaError,
    UnreadableFileError,
    UnsupportedFileError,
)
from product_verification.utils.spreadsheet import (
    ColumnMapping,
    ProductRow,
    match_columns,
    normalize_header,
    normalize_identifier_cell,
    normalize_name_cell,
    parse_product_rows,
)


def build_xlsx(rows) -> bytes:
    """Write rows to the first sheet of an in-memory workbook."""
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestHeaderMatching:
    """Test column detection."""

    @pytest.mark.parametrize("header", ["product_id", "Product ID", "productId", "PRODUCT-ID", "pid"])
    def test_identifier_header_variants(self, header):
        mapping = match_columns([header, "product_name"])
        assert mapping.identifier_index == 0
        assert mapping.name_index == 1

    def test_mapping_keeps_original_headers(self):
        mapping = match_columns(["Notes", " Product Name ", "Product_Id"])
        assert mapping == ColumnMapping(
            identifier_index=2,
            name_index=1,
            identifier_header="Product_Id",
            name_header="Product Name"
        )

    def test_missing_identifier_column(self):
        with pytest.raises(SchemaError, match="product_id"):
            match_columns(["sku", "product_name"])

    def test_missing_name_column(self):
        with pytest.raises(SchemaError, match="product_name"):
            match_columns(["product_id", "description"])

    def test_none_headers_are_ignored(self):
        mapping = match_columns([None, "productid", "productname"])
        assert (mapping.identifier_index, mapping.name_index) == (1, 2)

    def test_normalize_header(self):
        assert normalize_header("  Product_Name ") == "productname"
        assert normalize_header(None) == ""


class TestCellNormalization:
    """Test identifier and name cell normalization."""

    @pytest.mark.parametrize("raw, expected", [
        ("1234567812345678", "1234567812345678"),
        (1234567812345678, "1234567812345678"),
        (1234567812345678.0, "1234567812345678"),
        ("1234567812345678.0", "1234567812345678"),
        ("1.234567812345678E+15", "1234567812345678"),
        ("1.234567812345678e15", "1234567812345678"),
        ("1234-5678-1234-5678", "1234567812345678"),
        (" 1234 5678 1234 5678 ", "1234567812345678"),
        ("abc", ""),
        (None, ""),
        (float("nan"), ""),
        ("", ""),
    ])
    def test_identifier_cell(self, raw, expected):
        assert normalize_identifier_cell(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("1E+999999999", "1"),
        ("1.5E+50000000", "15"),
        ("1.2345678123456789E+16", "12345678123456789"),
        ("1E-999999999", "1"),
    ])
    def test_out_of_range_exponent_is_not_expanded(self, raw, expected):
        assert normalize_identifier_cell(raw) == expected

    def test_name_cell(self):
        assert normalize_name_cell("  Widget  ") == "Widget"
        assert normalize_name_cell(42) == "42"
        assert normalize_name_cell(None) == ""


class TestParseProductRows:
    """Test end-to-end row parsing."""

    def test_xlsx_rows_are_numbered_from_two(self):
        content = build_xlsx([
            ("product_id", "product_name"),
            ("1234567812345678", "Alpha"),
            (8765432187654321, "Beta"),
        ])

        rows = parse_product_rows("products.xlsx", content)

        assert rows == [
            ProductRow(row_number=2, identifier="1234567812345678", name="Alpha"),
            ProductRow(row_number=3, identifier="8765432187654321", name="Beta"),
        ]

    def test_blank_rows_are_dropped_but_numbering_is_kept(self):
        content = build_xlsx([
            ("product_id", "product_name"),
            ("1234567812345678", "Alpha"),
            (None, None),
            ("", "Gamma"),
        ])

        rows = parse_product_rows("products.xlsx", content)

        assert [row.row_number for row in rows] == [2, 4]
        assert rows[1].identifier == ""
        assert rows[1].name == "Gamma"

    def test_csv_file(self):
        content = "Product ID,Product Name\n1234567812345678,Alpha\n,\nbad,Beta\n".encode("utf-8")

        rows = parse_product_rows("products.csv", content)

        assert rows == [
            ProductRow(row_number=2, identifier="1234567812345678", name="Alpha"),
            ProductRow(row_number=4, identifier="", name="Beta"),
        ]

    def test_csv_with_byte_order_mark(self):
        content = "\ufeffproduct_id,product_name\n1234567812345678,Alpha\n".encode("utf-8")

        rows = parse_product_rows("products.csv", content)

        assert rows[0].identifier == "1234567812345678"

    def test_header_only_file_is_empty(self):
        content = build_xlsx([("product_id", "product_name")])

        with pytest.raises(EmptyFileError):
            parse_product_rows("products.xlsx", content)

    def test_empty_workbook_is_empty(self):
        with pytest.raises(EmptyFileError):
            parse_product_rows("products.xlsx", build_xlsx([]))

    def test_empty_csv_is_empty(self):
        with pytest.raises(EmptyFileError):
            parse_product_rows("products.csv", b"")

    def test_only_blank_data_rows_is_empty(self):
        content = build_xlsx([
            ("product_id", "product_name", "notes"),
            (None, None, "ignored"),
        ])

        with pytest.raises(EmptyFileError):
            parse_product_rows("products.xlsx", content)

    def test_missing_column_is_schema_error(self):
        content = build_xlsx([("sku", "product_name"), ("1", "Alpha")])

        with pytest.raises(SchemaError):
            parse_product_rows("products.xlsx", content)

    def test_corrupt_workbook_is_unreadable(self):
        with pytest.raises(UnreadableFileError):
            parse_product_rows("products.xlsx", b"definitely not a zip archive")

    def test_unknown_extension(self):
        with pytest.raises(UnsupportedFileError):
            parse_product_rows("products.pdf", b"%PDF-1.4")
