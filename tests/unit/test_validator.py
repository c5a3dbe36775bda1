from __future__ import annotations

import pytest

from bulk_import.models.field_spec import FieldSpec
from bulk_import.validation.validator import evaluate_rule, validate_record, validate_rows


def name_required(value):
    return True if value not in (None, "") else "name required"


def price_numeric(value):
    try:
        float(value)
    except (TypeError, ValueError):
        return "price must be numeric"
    return True


RULES = {"name": name_required, "price": price_numeric}
FIELDS = [FieldSpec("name"), FieldSpec("price")]


def test_all_rules_evaluated_no_short_circuit():
    reasons = validate_record({"name": "", "price": "abc"}, FIELDS, RULES)
    assert reasons == ["name required", "price must be numeric"]


def test_absent_key_is_evaluated_as_none():
    seen = []

    def rule(value):
        seen.append(value)
        return "missing"

    assert validate_record({}, ["price"], {"price": rule}) == ["missing"]
    assert seen == [None]


def test_fields_without_rule_are_unconstrained():
    assert validate_record({"name": "x", "price": "junk"}, FIELDS, {"name": name_required}) == []


def test_plain_names_accepted_as_fields():
    assert validate_record({"name": None}, ["name"], RULES) == ["name required"]


def test_validate_rows_partition_and_numbering():
    records = [
        {"name": "A", "price": "1"},
        {"name": "", "price": "2"},
        {"name": "C", "price": "x"},
        {"name": "D", "price": "4"},
    ]
    result = validate_rows(records, FIELDS, RULES)
    assert result.valid == [records[0], records[3]]
    assert [o.row_number for o in result.outcomes] == [2, 3, 4, 5]
    assert [o.accepted for o in result.outcomes] == [True, False, False, True]
    assert result.outcomes[1].reasons == ("name required",)
    assert result.accepted_row_numbers == [2, 5]
    assert [o.row_number for o in result.rejected] == [3, 4]


def test_rule_order_does_not_matter():
    records = [{"name": "", "price": "x"}, {"name": "ok", "price": "1"}]
    forward = validate_rows(records, FIELDS, {"name": name_required, "price": price_numeric})
    backward = validate_rows(records, FIELDS, {"price": price_numeric, "name": name_required})
    assert [o.accepted for o in forward.outcomes] == [o.accepted for o in backward.outcomes]
    assert [set(o.reasons) for o in forward.outcomes] == [set(o.reasons) for o in backward.outcomes]


def test_raising_rule_is_recorded_not_propagated():
    def boom(value):
        raise RuntimeError("lookup service down")

    result = validate_rows([{"sku": "A"}, {"sku": "B"}], ["sku"], {"sku": boom})
    assert result.valid == []
    assert [o.reasons for o in result.outcomes] == [
        ("sku: lookup service down",),
        ("sku: lookup service down",),
    ]


@pytest.mark.parametrize(
    "result, expected",
    [
        (True, None),
        ("bad value", "bad value"),
        (False, "Invalid sku"),
        (None, "Invalid sku"),
        (1, "Invalid sku"),
        ("", "Invalid sku"),
    ],
)
def test_evaluate_rule_contract(result, expected):
    assert evaluate_rule(lambda v: result, "x", "sku") == expected


def test_evaluate_rule_empty_exception_message_uses_class_name():
    def rule(value):
        raise ValueError()

    assert evaluate_rule(rule, "x", "sku") == "sku: ValueError"


def test_validation_does_not_modify_records():
    record = {"name": "A", "price": "1"}
    validate_rows([record], FIELDS, RULES)
    assert record == {"name": "A", "price": "1"}
