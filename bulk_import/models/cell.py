from __future__ import annotations

import math
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, TypeAlias

"""Cell value model shared by the parser, the validator and rule authors.

A parsed cell is always one of the Python types in CellValue. Rule authors
dispatch on cell_kind(value) rather than coercing values ad hoc:

    def price_rule(value):
        match cell_kind(value):
            case CellKind.NUMBER:
                return True
            case CellKind.TEXT if is_number_text(value):
                return True
            case _:
                return "price must be numeric"
"""

__all__ = [
    "CellValue",
    "CellKind",
    "cell_kind",
    "is_blank",
    "is_number_text",
    "cell_text",
]

CellValue: TypeAlias = str | int | float | Decimal | bool | date | datetime | time | None


class CellKind(Enum):
    """Discriminator for CellValue."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    EMPTY = "empty"


def cell_kind(value: Any) -> CellKind:
    if value is None:
        return CellKind.EMPTY
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return CellKind.BOOLEAN
    if isinstance(value, (int, Decimal)):
        return CellKind.NUMBER
    if isinstance(value, float):
        return CellKind.EMPTY if math.isnan(value) else CellKind.NUMBER
    if isinstance(value, (date, datetime, time)):
        return CellKind.DATE
    if isinstance(value, str):
        return CellKind.EMPTY if value.strip() == "" else CellKind.TEXT
    return CellKind.TEXT


def is_blank(value: Any) -> bool:
    """True for None, NaN and whitespace-only text."""
    return cell_kind(value) is CellKind.EMPTY


def is_number_text(value: Any) -> bool:
    """True when value is text that reads as a finite number ("100", " -2.5 ", "1e3")."""
    if not isinstance(value, str):
        return False
    try:
        number = float(value.strip().replace(",", ""))
    except ValueError:
        return False
    return math.isfinite(number)


def cell_text(value: Any) -> str:
    """Render a cell as text for messages and text-based checks ("" for blanks)."""
    kind = cell_kind(value)
    if kind is CellKind.EMPTY:
        return ""
    if kind is CellKind.DATE:
        return value.isoformat()
    return str(value).strip()
