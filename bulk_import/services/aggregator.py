from __future__ import annotations

from collections.abc import Sequence

from ..models.import_summary import ImportSummary
from ..models.outcomes import ExecutionOutcome, RowOutcome
from .executor import format_row_error

"""Result aggregation into the ImportSummary shown to the end user."""

__all__ = [
    "DEFAULT_ERROR_DISPLAY_LIMIT",
    "collect_errors",
    "truncate_errors",
    "aggregate",
]

DEFAULT_ERROR_DISPLAY_LIMIT = 10


def collect_errors(
    row_outcomes: Sequence[RowOutcome], execution_outcomes: Sequence[ExecutionOutcome]
) -> list[str]:
    """Validation reasons ("Row n: reason", file order) followed by create() errors."""
    errors = [
        format_row_error(outcome.row_number, reason)
        for outcome in row_outcomes
        if not outcome.accepted
        for reason in outcome.reasons
    ]
    errors.extend(o.error or "create failed" for o in execution_outcomes if not o.succeeded)
    return errors


def truncate_errors(errors: Sequence[str], limit: int) -> list[str]:
    """Keep the first ``limit`` errors and state how many were omitted."""
    if limit < 0:
        raise ValueError("error display limit must be >= 0")
    if len(errors) <= limit:
        return list(errors)
    omitted = len(errors) - limit
    return [*errors[:limit], f"...and {omitted} more"]


def aggregate(
    row_outcomes: Sequence[RowOutcome],
    execution_outcomes: Sequence[ExecutionOutcome],
    error_display_limit: int = DEFAULT_ERROR_DISPLAY_LIMIT,
) -> ImportSummary:
    """Combine validation and execution outcomes into one ImportSummary.

    succeeded counts successful create() calls; failed counts rejected rows
    plus failed create() calls, so succeeded + failed equals the number of
    parsed records.
    """
    succeeded = sum(1 for o in execution_outcomes if o.succeeded)
    rejected = sum(1 for o in row_outcomes if not o.accepted)
    execution_failed = sum(1 for o in execution_outcomes if not o.succeeded)
    errors = truncate_errors(collect_errors(row_outcomes, execution_outcomes), error_display_limit)
    created_ids = tuple(
        o.created_id for o in execution_outcomes if o.succeeded and o.created_id is not None
    )
    return ImportSummary(
        succeeded=succeeded,
        failed=rejected + execution_failed,
        errors=tuple(errors),
        created_ids=created_ids,
    )
