from __future__ import annotations

import io
import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ..models.field_spec import FieldSpec, field_names
from ..models.import_summary import TemplateArtifact

"""Template generation.

The template's header row is exactly the field names in order, so a filled-in
template goes straight back through excel.reader without edits.
"""

__all__ = [
    "TEMPLATE_FORMATS",
    "TEMPLATE_COLUMN_WIDTH",
    "template_file_name",
    "sheet_title",
    "template_rows",
    "generate_template",
]

logger = logging.getLogger(__name__)

TEMPLATE_FORMATS: tuple[str, ...] = ("xlsx", "csv")
TEMPLATE_COLUMN_WIDTH = 20

MEDIA_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
}

# Excel sheet titles: max 31 chars, none of []:*?/\
_SHEET_TITLE_MAX = 31
_INVALID_TITLE_CHARS = re.compile(r"[\[\]:*?/\\]")

_HEADER_FONT = Font(bold=True)


def template_file_name(entity_name: str, file_format: str = "xlsx") -> str:
    """Deterministic download name, e.g. "Sales Proposal" -> sales_proposal_bulk_upload_template.xlsx."""
    slug = re.sub(r"\s+", "_", entity_name.strip().lower()) or "records"
    return f"{slug}_bulk_upload_template.{file_format}"


def sheet_title(entity_name: str) -> str:
    title = _INVALID_TITLE_CHARS.sub("_", entity_name).strip()
    return title[:_SHEET_TITLE_MAX] or "Sheet1"


def template_rows(
    fields: Sequence[FieldSpec], sample_rows: Sequence[Mapping[str, Any]] | None = None
) -> list[list[Any]]:
    """Body rows: the sample rows projected onto the fields, or one blank row."""
    names = field_names(fields)
    if sample_rows:
        return [["" if row.get(n) is None else row.get(n) for n in names] for row in sample_rows]
    return [["" for _ in names]]


def _render_xlsx(title: str, header: list[str], body: list[list[Any]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    ws.append(header)
    for cell in ws[1]:
        cell.font = _HEADER_FONT
    ws.freeze_panes = "A2"
    for row in body:
        ws.append(row)
    for idx in range(1, len(header) + 1):
        ws.column_dimensions[get_column_letter(idx)].width = TEMPLATE_COLUMN_WIDTH
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _render_csv(header: list[str], body: list[list[Any]]) -> bytes:
    df = pd.DataFrame(body, columns=header)
    # BOM so Excel opens non-ASCII headers correctly; the reader strips it
    return df.to_csv(index=False, lineterminator="\n").encode("utf-8-sig")


def generate_template(
    fields: Sequence[FieldSpec],
    sample_rows: Sequence[Mapping[str, Any]] | None = None,
    *,
    entity_name: str = "Records",
    file_format: str = "xlsx",
) -> TemplateArtifact:
    """Build a downloadable template for an entity.

    Args:
        fields: Template columns, in order
        sample_rows: Example rows written below the header; one blank row if empty
        entity_name: Names the sheet and the downloaded file
        file_format: "xlsx" or "csv"

    Returns:
        TemplateArtifact holding the file bytes

    Raises:
        ValueError: when fields is empty or file_format is not a template format
    """
    if not fields:
        raise ValueError("a template needs at least one field")
    if file_format not in TEMPLATE_FORMATS:
        raise ValueError(
            f"unsupported template format '{file_format}' (expected one of {', '.join(TEMPLATE_FORMATS)})"
        )

    header = field_names(fields)
    body = template_rows(fields, sample_rows)
    title = sheet_title(entity_name)

    if file_format == "xlsx":
        content = _render_xlsx(title, header, body)
    else:
        content = _render_csv(header, body)

    logger.debug(
        "template entity=%s format=%s columns=%d body_rows=%d", entity_name, file_format, len(header), len(body)
    )
    return TemplateArtifact(
        file_name=template_file_name(entity_name, file_format),
        content=content,
        media_type=MEDIA_TYPES[file_format],
        sheet_name=title,
        file_format=file_format,
    )
