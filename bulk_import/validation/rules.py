from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any

from ..models.cell import CellKind, cell_kind, cell_text, is_blank, is_number_text
from ..models.field_spec import FieldSpec, RuleResult, ValidationRule

"""Built-in validation rules derived from FieldSpec attributes.

Every field gets exactly one rule, so a row reports at most one reason per
field: "required" wins over the type check, and a custom rule only runs once
the built-in checks pass. Blank values of optional fields are accepted.
"""

__all__ = [
    "DATE_FORMATS",
    "build_rules",
    "field_rule",
]

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")
PHONE_SEPARATORS = re.compile(r"[\s\-]")

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)

BOOLEAN_TEXT = {"true", "false", "yes", "no", "y", "n", "1", "0"}


def _check_number(spec: FieldSpec, value: Any) -> str | None:
    kind = cell_kind(value)
    if kind is CellKind.NUMBER or (kind is CellKind.TEXT and is_number_text(value)):
        return None
    return "Must be a number"


def _check_email(spec: FieldSpec, value: Any) -> str | None:
    if EMAIL_PATTERN.match(cell_text(value)):
        return None
    return "Invalid email format"


def _check_phone(spec: FieldSpec, value: Any) -> str | None:
    if cell_kind(value) not in (CellKind.TEXT, CellKind.NUMBER):
        return "Invalid phone number"
    if PHONE_PATTERN.match(PHONE_SEPARATORS.sub("", cell_text(value))):
        return None
    return "Invalid phone number"


def _parses_as_date(text: str) -> bool:
    try:
        datetime.fromisoformat(text)
        return True
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            datetime.strptime(text, fmt)
            return True
        except ValueError:
            continue
    return False


def _check_date(spec: FieldSpec, value: Any) -> str | None:
    kind = cell_kind(value)
    if kind is CellKind.DATE:
        return None
    if kind is CellKind.TEXT and _parses_as_date(cell_text(value)):
        return None
    return "Invalid date format"


def _check_select(spec: FieldSpec, value: Any) -> str | None:
    if cell_text(value) in spec.options:
        return None
    return "Invalid option selected"


def _check_boolean(spec: FieldSpec, value: Any) -> str | None:
    kind = cell_kind(value)
    if kind is CellKind.BOOLEAN:
        return None
    if kind is CellKind.NUMBER and value in (0, 1):
        return None
    if kind is CellKind.TEXT and cell_text(value).lower() in BOOLEAN_TEXT:
        return None
    return "Must be true or false"


_TYPE_CHECKS: dict[str, Callable[[FieldSpec, Any], str | None]] = {
    "number": _check_number,
    "email": _check_email,
    "phone": _check_phone,
    "date": _check_date,
    "select": _check_select,
    "boolean": _check_boolean,
}


def field_rule(spec: FieldSpec, custom: ValidationRule | None = None) -> ValidationRule:
    """Combine required/type checks and an optional custom rule into one ValidationRule."""
    type_check = _TYPE_CHECKS.get(spec.type)
    label = spec.display_label
    pattern = re.compile(spec.pattern) if spec.pattern else None

    def rule(value: Any) -> RuleResult:
        if is_blank(value):
            return f"{label} is required" if spec.required else True
        if type_check is not None:
            message = type_check(spec, value)
            if message is not None:
                return message
        if pattern is not None and not pattern.fullmatch(cell_text(value)):
            return spec.pattern_message or f"Invalid {label}"
        if custom is None:
            return True
        result = custom(value)
        if result is True:
            return True
        return result if isinstance(result, str) and result else f"Invalid {label}"

    rule.__name__ = f"{spec.name}_rule"
    return rule


def build_rules(
    fields: Sequence[FieldSpec],
    custom: Mapping[str, ValidationRule] | None = None,
) -> dict[str, ValidationRule]:
    """Derive the rule map for a field list.

    Args:
        fields: Entity fields
        custom: Extra per-field predicates (field name -> rule) run after the
            built-in checks

    Returns:
        Mapping of field name -> ValidationRule, one entry per field
    """
    custom = custom or {}
    known = {f.name for f in fields}
    for name in custom:
        if name not in known:
            logger.warning("custom rule for unknown field '%s' ignored", name)
    return {f.name: field_rule(f, custom.get(f.name)) for f in fields}
