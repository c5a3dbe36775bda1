from __future__ import annotations

import json

import pytest

from bulk_import.errors import (
    EmptyFileError,
    ParseFailureError,
    TooManyRowsError,
    UnsupportedFormatError,
)
from bulk_import.logging.error_log import ErrorLogBuffer
from bulk_import.models.config_models import EntityConfig
from bulk_import.models.error_record import FILE_LEVEL_ROW
from bulk_import.models.field_spec import FieldSpec
from bulk_import.services.pipeline import as_field_specs, build_template, import_entity, run_import


class Recorder:
    def __init__(self, fail_on=()):
        self.created = []
        self.fail_on = set(fail_on)

    def __call__(self, record):
        if record.get("name") in self.fail_on:
            raise RuntimeError("unique constraint violated")
        self.created.append(record)
        return f"id-{len(self.created)}"


def test_builtin_rules_derived_from_fields(product_fields, make_csv):
    content = make_csv(
        [
            ["name", "price", "category"],
            ["Widget", "9.5", "hardware"],
            ["", "abc", "food"],
            ["Gadget", "3", ""],
        ]
    )
    store = Recorder()
    summary = run_import(content, "csv", product_fields, store, show_progress=False)
    assert summary.succeeded == 2
    assert summary.failed == 1
    assert summary.errors == (
        "Row 3: Product Name is required",
        "Row 3: Must be a number",
        "Row 3: Invalid option selected",
    )
    assert summary.created_ids == ("id-1", "id-2")
    assert [r["name"] for r in store.created] == ["Widget", "Gadget"]


def test_explicit_rules_replace_builtins(make_csv):
    content = make_csv([["name", "price"], ["", "1"]])
    summary = run_import(
        content, "csv", ["name", "price"], Recorder(), rules={"price": lambda v: True}, show_progress=False
    )
    assert (summary.succeeded, summary.failed) == (1, 0)


def test_create_failures_reported_with_row(make_csv, product_fields):
    content = make_csv([["name", "price"], ["A", "1"], ["B", "2"], ["C", "3"]])
    summary = run_import(content, "csv", product_fields, Recorder(fail_on={"B"}), show_progress=False)
    assert (summary.succeeded, summary.failed) == (2, 1)
    assert summary.errors == ("Row 3: unique constraint violated",)


def test_labelled_headers_resolved_before_validation(make_csv, product_fields):
    content = make_csv([["Product Name *", "Price *"], ["Widget", "2"]])
    store = Recorder()
    summary = run_import(content, "csv", product_fields, store, show_progress=False)
    assert summary.succeeded == 1
    assert store.created == [{"name": "Widget", "price": "2"}]


def test_max_rows(make_csv, product_fields):
    rows = [["name", "price"]] + [[f"n{i}", "1"] for i in range(4)]
    store = Recorder()
    with pytest.raises(TooManyRowsError) as e:
        run_import(make_csv(rows), "csv", product_fields, store, max_rows=3, show_progress=False)
    assert str(e.value) == "Maximum 3 rows allowed. Your file has 4 rows."
    assert store.created == []
    summary = run_import(make_csv(rows), "csv", product_fields, store, max_rows=None, show_progress=False)
    assert summary.succeeded == 4


def test_header_with_trailing_empty_line_is_empty_not_failed(product_fields):
    store = Recorder()
    with pytest.raises(EmptyFileError):
        run_import(b"name,price\n\n", "csv", product_fields, store, show_progress=False)
    assert store.created == []


def test_ragged_rows_do_not_abort_the_batch(product_fields):
    store = Recorder()
    summary = run_import(b"name,price\nA,1\nB,2,\nC,3\n", "csv", product_fields, store, show_progress=False)
    assert (summary.succeeded, summary.failed) == (3, 0)
    assert [r["name"] for r in store.created] == ["A", "B", "C"]


def test_terminal_errors_raised_and_logged(temp_workdir, product_fields, make_csv):
    log = ErrorLogBuffer(temp_workdir / "logs")
    with pytest.raises(UnsupportedFormatError):
        run_import(b"whatever", "notes.txt", product_fields, Recorder(), error_log=log, entity_name="Products")
    with pytest.raises(ParseFailureError):
        run_import(b"PK\x03\x04junk", "p.xlsx", product_fields, Recorder(), error_log=log)
    with pytest.raises(EmptyFileError):
        run_import(make_csv([["name", "price"]]), "p.csv", product_fields, Recorder(), error_log=log)

    assert [r.error_type for r in log.records] == ["UNSUPPORTED_FORMAT", "PARSE_FAILURE", "EMPTY_FILE"]
    assert all(r.row == FILE_LEVEL_ROW for r in log.records)
    assert log.records[0].entity == "Products"
    assert log.records[1].file == "p.xlsx"


def test_row_errors_written_to_error_log(temp_workdir, product_fields, make_csv):
    log = ErrorLogBuffer(temp_workdir / "logs")
    content = make_csv([["name", "price"], ["", "1"], ["B", "2"]])
    run_import(
        content,
        "upload.csv",
        product_fields,
        Recorder(fail_on={"B"}),
        file_name="upload.csv",
        entity_name="Products",
        error_log=log,
        show_progress=False,
    )
    path = log.flush()
    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [(d["row"], d["error_type"]) for d in lines] == [(2, "VALIDATION_REJECTED"), (3, "CREATE_FAILED")]
    assert lines[0]["message"] == "Product Name is required"
    assert lines[1]["message"] == "Row 3: unique constraint violated"


def test_import_entity_uses_entity_settings(make_csv):
    entity = EntityConfig(
        key="contacts",
        name="Contacts",
        fields=(FieldSpec("email", type="email", required=True),),
        max_rows=5,
        error_display_limit=1,
    )
    content = make_csv([["email"], ["bad"], ["also bad"], ["ok@example.com"]])
    summary = import_entity(
        entity, content, "contacts.csv", Recorder(), show_progress=False
    )
    assert (summary.succeeded, summary.failed) == (1, 2)
    assert summary.errors == ("Row 2: Invalid email format", "...and 1 more")


def test_import_entity_custom_rules(make_csv):
    entity = EntityConfig(key="p", name="P", fields=(FieldSpec("price", type="number"),))
    content = make_csv([["price"], ["-1"]])
    summary = import_entity(
        entity,
        content,
        "p.csv",
        Recorder(),
        custom_rules={"price": lambda v: float(v) >= 0 or "Price cannot be negative"},
        show_progress=False,
    )
    assert summary.errors == ("Row 2: Price cannot be negative",)


def test_build_template_from_entity(product_fields):
    entity = EntityConfig(
        key="products",
        name="Products",
        fields=tuple(product_fields),
        sample_rows=({"name": "Widget", "price": 1},),
    )
    artifact = build_template(entity, "csv")
    assert artifact.file_name == "products_bulk_upload_template.csv"
    assert b"Widget" in artifact.content


def test_as_field_specs():
    specs = as_field_specs(["a", FieldSpec("b", required=True)])
    assert [s.name for s in specs] == ["a", "b"]
    assert specs[1].required
