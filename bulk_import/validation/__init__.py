from .headers import resolve_headers
from .rules import build_rules, field_rule
from .validator import evaluate_rule, validate_record, validate_rows

__all__ = [
    "build_rules",
    "evaluate_rule",
    "field_rule",
    "resolve_headers",
    "validate_record",
    "validate_rows",
]
