from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..models.field_spec import FieldSpec, RawRecord, ValidationRule
from ..models.outcomes import RowOutcome, ValidationResult, row_number_for_index

"""Row validation.

Every rule registered for a field is evaluated against every record; nothing
short-circuits, so a rejected row carries its complete list of reasons. Rows
are independent of each other and outcomes are keyed only by record index.
"""

__all__ = [
    "evaluate_rule",
    "validate_record",
    "validate_rows",
]

logger = logging.getLogger(__name__)


def _names(fields: Sequence[FieldSpec | str]) -> list[str]:
    return [f if isinstance(f, str) else f.name for f in fields]


def evaluate_rule(rule: ValidationRule, value: Any, field_name: str) -> str | None:
    """Run one rule; return the rejection reason or None when it passed.

    Only a literal True passes. A non-empty string is the reason as given; any
    other return value breaks the rule contract and is reported as
    "Invalid <field>". A rule that raises is reported as "<field>: <error>".
    """
    try:
        result = rule(value)
    except Exception as e:
        logger.debug("rule for field=%s raised %r", field_name, e)
        return f"{field_name}: {str(e).strip() or type(e).__name__}"
    if result is True:
        return None
    if isinstance(result, str) and result:
        return result
    return f"Invalid {field_name}"


def validate_record(
    record: RawRecord,
    fields: Sequence[FieldSpec | str],
    rules: Mapping[str, ValidationRule],
) -> list[str]:
    """Return every rejection reason for one record, in field order."""
    reasons: list[str] = []
    for name in _names(fields):
        rule = rules.get(name)
        if rule is None:
            continue
        # absent column is evaluated as a blank cell
        reason = evaluate_rule(rule, record.get(name), name)
        if reason is not None:
            reasons.append(reason)
    return reasons


def validate_rows(
    records: Sequence[RawRecord],
    fields: Sequence[FieldSpec | str],
    rules: Mapping[str, ValidationRule],
) -> ValidationResult:
    """Partition parsed records into valid records and per-row outcomes.

    Args:
        records: Parsed records in file order
        fields: Fields whose rules apply (FieldSpec or plain names)
        rules: Field name -> ValidationRule; fields without a rule are unconstrained

    Returns:
        ValidationResult with the valid records (file order) and one RowOutcome
        per record numbered from row 2
    """
    valid: list[RawRecord] = []
    outcomes: list[RowOutcome] = []
    for index, record in enumerate(records):
        reasons = validate_record(record, fields, rules)
        accepted = not reasons
        outcomes.append(
            RowOutcome(
                row_number=row_number_for_index(index),
                record=record,
                accepted=accepted,
                reasons=tuple(reasons),
            )
        )
        if accepted:
            valid.append(record)
    logger.debug("validated rows=%d valid=%d rejected=%d", len(records), len(valid), len(records) - len(valid))
    return ValidationResult(valid=valid, outcomes=outcomes)
