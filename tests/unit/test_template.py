from __future__ import annotations

import io

import pandas as pd
import pytest
from openpyxl import load_workbook

from bulk_import.excel.template import (
    TEMPLATE_COLUMN_WIDTH,
    generate_template,
    sheet_title,
    template_file_name,
    template_rows,
)
from bulk_import.models.field_spec import FieldSpec


def _sheet(content: bytes):
    return load_workbook(io.BytesIO(content)).worksheets[0]


def test_xlsx_header_is_field_names_in_order(product_fields):
    artifact = generate_template(product_fields, entity_name="Products")
    ws = _sheet(artifact.content)
    assert [c.value for c in ws[1]] == ["name", "price", "category"]
    assert all(c.font.bold for c in ws[1])
    assert ws.freeze_panes == "A2"
    assert ws.title == "Products"
    assert ws.column_dimensions["A"].width == TEMPLATE_COLUMN_WIDTH


def test_xlsx_sample_rows_form_the_body(product_fields):
    samples = [
        {"name": "Widget", "price": 9.5, "category": "hardware"},
        {"name": "Gadget", "price": 12},
    ]
    artifact = generate_template(product_fields, samples, entity_name="Products")
    ws = _sheet(artifact.content)
    rows = [list(r) for r in ws.iter_rows(min_row=2, values_only=True)]
    assert rows[0] == ["Widget", 9.5, "hardware"]
    # missing sample keys are left blank
    assert rows[1][:2] == ["Gadget", 12]
    assert rows[1][2] in (None, "")
    assert len(rows) == 2


def test_sample_row_keys_outside_fields_are_ignored(product_fields):
    body = template_rows(product_fields, [{"name": "W", "unknown": "x"}])
    assert body == [["W", "", ""]]


def test_no_samples_gives_one_blank_row(product_fields):
    assert template_rows(product_fields, []) == [["", "", ""]]
    assert template_rows(product_fields, None) == [["", "", ""]]


def test_artifact_metadata(product_fields):
    artifact = generate_template(product_fields, entity_name="Sales Proposal")
    assert artifact.file_name == "sales_proposal_bulk_upload_template.xlsx"
    assert artifact.file_format == "xlsx"
    assert artifact.media_type.endswith("spreadsheetml.sheet")
    assert artifact.sheet_name == "Sales Proposal"


def test_csv_template(product_fields):
    artifact = generate_template(
        product_fields, [{"name": "Widget", "price": 1}], entity_name="Products", file_format="csv"
    )
    assert artifact.file_name == "products_bulk_upload_template.csv"
    assert artifact.media_type == "text/csv"
    assert artifact.content.startswith(b"\xef\xbb\xbf")
    df = pd.read_csv(io.BytesIO(artifact.content), encoding="utf-8-sig", dtype=str, keep_default_na=False)
    assert list(df.columns) == ["name", "price", "category"]
    assert df.values.tolist() == [["Widget", "1", ""]]


def test_generation_is_deterministic(product_fields):
    first = generate_template(product_fields, entity_name="Products", file_format="csv")
    second = generate_template(product_fields, entity_name="Products", file_format="csv")
    assert first.content == second.content
    assert first.file_name == second.file_name


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Leads", "leads_bulk_upload_template.xlsx"),
        ("  Client  Master ", "client_master_bulk_upload_template.xlsx"),
        ("", "records_bulk_upload_template.xlsx"),
    ],
)
def test_template_file_name(name, expected):
    assert template_file_name(name) == expected


def test_sheet_title_sanitised():
    assert sheet_title("Q1/Q2 [draft]") == "Q1_Q2 _draft_"
    assert len(sheet_title("x" * 40)) == 31
    assert sheet_title("") == "Sheet1"


def test_empty_fields_rejected():
    with pytest.raises(ValueError):
        generate_template([], entity_name="Nothing")


def test_unknown_format_rejected(product_fields):
    with pytest.raises(ValueError):
        generate_template(product_fields, file_format="xls")


def test_template_uses_names_not_labels():
    fields = [FieldSpec("contactName", label="Contact Name", required=True)]
    ws = _sheet(generate_template(fields, entity_name="Leads").content)
    assert ws["A1"].value == "contactName"
