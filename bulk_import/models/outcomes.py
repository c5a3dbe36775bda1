from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .field_spec import RawRecord

"""Per-row outcome models produced by the validator and the executor.

Both are frozen and created once per pipeline run. ``row_number`` is the
spreadsheet row the record came from: the header occupies row 1, so the first
data record is row 2.
"""

__all__ = [
    "HEADER_ROW_OFFSET",
    "row_number_for_index",
    "RowOutcome",
    "ExecutionOutcome",
    "ValidationResult",
]

# 0-based record index -> 1-based file row, skipping the header row
HEADER_ROW_OFFSET = 2


def row_number_for_index(index: int) -> int:
    return index + HEADER_ROW_OFFSET


@dataclass(frozen=True)
class RowOutcome:
    """Validation verdict for one parsed record."""
    row_number: int
    record: RawRecord
    accepted: bool
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExecutionOutcome:
    """Result of one create() call for an accepted record."""
    record: RawRecord
    succeeded: bool
    error: str | None = None
    row_number: int | None = None
    created_id: Any = None


@dataclass(frozen=True)
class ValidationResult:
    """Partition of parsed records into valid records and per-row outcomes."""
    valid: list[RawRecord] = field(default_factory=list)
    outcomes: list[RowOutcome] = field(default_factory=list)

    @property
    def rejected(self) -> list[RowOutcome]:
        return [o for o in self.outcomes if not o.accepted]

    @property
    def accepted_row_numbers(self) -> list[int]:
        return [o.row_number for o in self.outcomes if o.accepted]
