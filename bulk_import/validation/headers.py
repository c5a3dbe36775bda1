from __future__ import annotations

import re
from collections.abc import Sequence

from ..models.field_spec import FieldSpec, RawRecord

"""Header resolution for hand-edited templates.

Users often relabel headers with the field's display label, and mark required
columns with a trailing "*". Those headers are mapped back to field names
before validation so the rules still find their values.
"""

__all__ = [
    "REQUIRED_MARKER",
    "header_mapping",
    "resolve_headers",
]

REQUIRED_MARKER = re.compile(r"\s*\*$")


def _clean(header: str) -> str:
    return REQUIRED_MARKER.sub("", header).strip()


def header_mapping(headers: Sequence[str], fields: Sequence[FieldSpec]) -> dict[str, str]:
    """Map file headers to field names (only headers that need renaming are returned)."""
    by_name = {f.name: f.name for f in fields}
    by_label = {f.label: f.name for f in fields if f.label}
    by_folded = {key.casefold(): name for key, name in {**by_label, **by_name}.items()}

    mapping: dict[str, str] = {}
    claimed = {h for h in headers if h in by_name}
    for header in headers:
        if header in by_name:
            continue
        cleaned = _clean(header)
        target = by_name.get(cleaned) or by_label.get(cleaned) or by_folded.get(cleaned.casefold())
        # never let a relabelled column shadow a column already named correctly
        if target is None or target in claimed:
            continue
        claimed.add(target)
        mapping[header] = target
    return mapping


def resolve_headers(records: list[RawRecord], fields: Sequence[FieldSpec]) -> list[RawRecord]:
    """Return records whose keys use field names wherever a header could be resolved."""
    if not records:
        return records
    headers: list[str] = []
    for record in records:
        for key in record:
            if key not in headers:
                headers.append(key)
    mapping = header_mapping(headers, fields)
    if not mapping:
        return records
    return [{mapping.get(k, k): v for k, v in record.items()} for record in records]
