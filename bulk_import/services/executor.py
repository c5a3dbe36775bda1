from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, TypeAlias

from ..models.field_spec import RawRecord
from ..models.outcomes import ExecutionOutcome
from .progress import RecordProgress

"""Batch execution: one create() call per valid record, continue-on-error.

create() is the caller's persistence capability (HTTP call, database insert,
...). Any exception it raises is caught and recorded for that record only;
the remaining records are still executed. Calls are sequential and in file
order, so the outcome list lines up with the input list.

Retries and timeouts belong inside create(); the executor never retries.
"""

__all__ = [
    "CreateFn",
    "describe_exception",
    "format_row_error",
    "execute_batch",
]

logger = logging.getLogger(__name__)

# Raises on failure; a non-None return value is kept as the created id
CreateFn: TypeAlias = Callable[[RawRecord], Any]


def format_row_error(row_number: int | None, message: str) -> str:
    if row_number is None:
        return message
    return f"Row {row_number}: {message}"


def describe_exception(exc: BaseException) -> str:
    """Human-readable one-liner for an exception (class name when the message is empty)."""
    message = str(exc).strip()
    if not message:
        return type(exc).__name__
    # first line only; multi-line driver messages carry context we do not show users
    return message.splitlines()[0]


def execute_batch(
    valid_records: Sequence[RawRecord],
    create: CreateFn,
    *,
    row_numbers: Sequence[int] | None = None,
    show_progress: bool | None = None,
) -> list[ExecutionOutcome]:
    """Invoke create() once per record, isolating failures.

    Args:
        valid_records: Records that passed validation, in file order
        create: Persistence callback; raise to signal failure
        row_numbers: File row number of each record, used to prefix errors
        show_progress: Force the tqdm bar on/off (None: TTY detection)

    Returns:
        One ExecutionOutcome per record, in input order
    """
    if row_numbers is not None and len(row_numbers) != len(valid_records):
        raise ValueError(
            f"row_numbers has {len(row_numbers)} entries for {len(valid_records)} records"
        )

    outcomes: list[ExecutionOutcome] = []
    with RecordProgress(len(valid_records), enabled=show_progress) as progress:
        for index, record in enumerate(valid_records):
            row_number = row_numbers[index] if row_numbers is not None else None
            try:
                # create() gets its own copy so the outcome keeps the parsed values
                created_id = create(dict(record))
            except Exception as e:
                message = describe_exception(e)
                logger.debug("create failed row=%s error=%s", row_number, message)
                outcomes.append(
                    ExecutionOutcome(
                        record=record,
                        succeeded=False,
                        error=format_row_error(row_number, message),
                        row_number=row_number,
                    )
                )
                progress.advance(succeeded=False)
                continue
            outcomes.append(
                ExecutionOutcome(
                    record=record,
                    succeeded=True,
                    row_number=row_number,
                    created_id=created_id,
                )
            )
            progress.advance(succeeded=True)
    return outcomes
