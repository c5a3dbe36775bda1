"""Tabular bulk-upload engine.

Generate a template for an entity, then parse an uploaded xlsx/xls/csv file,
validate every row, create each valid record through a caller-supplied
callback and report what happened:

    >>> from bulk_import import FieldSpec, generate_template, run_import
    >>> fields = [FieldSpec("name", required=True), FieldSpec("price", type="number")]
    >>> artifact = generate_template(fields, entity_name="Products")
    >>> artifact.file_name
    'products_bulk_upload_template.xlsx'
"""

from .errors import (
    BulkImportError,
    EmptyFileError,
    ParseFailureError,
    TooManyRowsError,
    UnsupportedFormatError,
)
from .excel import ensure_supported_extension, generate_template, parse_file
from .models import (
    ExecutionOutcome,
    FieldSpec,
    ImportSummary,
    RowOutcome,
    TemplateArtifact,
    ValidationResult,
)
from .services import aggregate, execute_batch, run_import
from .validation import build_rules, validate_rows

__all__ = [
    "BulkImportError",
    "EmptyFileError",
    "ExecutionOutcome",
    "FieldSpec",
    "ImportSummary",
    "ParseFailureError",
    "RowOutcome",
    "TemplateArtifact",
    "TooManyRowsError",
    "UnsupportedFormatError",
    "ValidationResult",
    "aggregate",
    "build_rules",
    "ensure_supported_extension",
    "execute_batch",
    "generate_template",
    "parse_file",
    "run_import",
    "validate_rows",
]
