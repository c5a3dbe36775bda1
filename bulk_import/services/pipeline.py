from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from ..errors import BulkImportError, TooManyRowsError
from ..excel.reader import ensure_supported_extension, read_table
from ..excel.template import generate_template
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import DEFAULT_MAX_ROWS, EntityConfig
from ..models.error_record import FILE_LEVEL_ROW, ErrorRecord
from ..models.field_spec import FieldSpec, ValidationRule
from ..models.import_summary import ImportSummary, TemplateArtifact
from ..models.outcomes import ExecutionOutcome, ValidationResult
from ..validation import build_rules, resolve_headers, validate_rows
from .aggregator import DEFAULT_ERROR_DISPLAY_LIMIT, aggregate
from .executor import CreateFn, execute_batch

"""Import pipeline: parse -> validate -> execute -> aggregate.

One invocation runs the stages strictly in order, each consuming the full
output of the previous one. Nothing is kept between invocations. Terminal
conditions (unsupported format, unreadable file, empty file, too many rows)
are raised to the caller; per-row problems end up in ImportSummary.errors.
"""

__all__ = [
    "as_field_specs",
    "run_import",
    "import_entity",
    "build_template",
]

logger = logging.getLogger(__name__)

VALIDATION_REJECTED = "VALIDATION_REJECTED"
CREATE_FAILED = "CREATE_FAILED"


def as_field_specs(fields: Sequence[FieldSpec | str]) -> list[FieldSpec]:
    """Accept bare field names wherever a FieldSpec is expected."""
    return [f if isinstance(f, FieldSpec) else FieldSpec(name=f) for f in fields]


def _log_row_errors(
    error_log: ErrorLogBuffer,
    file_name: str,
    entity_name: str,
    validation: ValidationResult,
    executions: Sequence[ExecutionOutcome],
) -> None:
    for outcome in validation.rejected:
        for reason in outcome.reasons:
            error_log.append(
                ErrorRecord.create(
                    file=file_name,
                    entity=entity_name,
                    row=outcome.row_number,
                    error_type=VALIDATION_REJECTED,
                    message=reason,
                )
            )
    for execution in executions:
        if execution.succeeded:
            continue
        error_log.append(
            ErrorRecord.create(
                file=file_name,
                entity=entity_name,
                row=execution.row_number if execution.row_number is not None else FILE_LEVEL_ROW,
                error_type=CREATE_FAILED,
                message=execution.error or "create failed",
            )
        )


def run_import(
    content: bytes,
    declared_extension: str,
    fields: Sequence[FieldSpec | str],
    create: CreateFn,
    *,
    rules: Mapping[str, ValidationRule] | None = None,
    error_display_limit: int = DEFAULT_ERROR_DISPLAY_LIMIT,
    max_rows: int | None = DEFAULT_MAX_ROWS,
    file_name: str | None = None,
    entity_name: str | None = None,
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool | None = None,
) -> ImportSummary:
    """Run one bulk import over an uploaded file.

    Args:
        content: Raw file bytes
        declared_extension: Extension or file name the file was uploaded with
        fields: Entity fields (FieldSpec or plain names)
        create: Persistence callback, called once per valid record
        rules: Field name -> ValidationRule; derived from the fields when None
        error_display_limit: Maximum number of error lines kept in the summary
        max_rows: Reject files with more data rows than this (None: unlimited)
        file_name: Name recorded in the error log (defaults to declared_extension)
        entity_name: Entity recorded in the error log
        error_log: Buffer receiving one ErrorRecord per problem, if given
        show_progress: Force the progress bar on/off (None: TTY detection)

    Returns:
        ImportSummary for the run

    Raises:
        UnsupportedFormatError: extension outside the allow-list
        ParseFailureError: the file could not be read
        EmptyFileError: the file has no data rows
        TooManyRowsError: more data rows than max_rows
    """
    specs = as_field_specs(fields)
    source = file_name or declared_extension
    entity = entity_name or "-"
    started = time.perf_counter()

    try:
        ensure_supported_extension(declared_extension)
        table = read_table(content, declared_extension)
        if max_rows is not None and len(table.records) > max_rows:
            raise TooManyRowsError(len(table.records), max_rows)
    except BulkImportError as e:
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    file=source,
                    entity=entity,
                    row=FILE_LEVEL_ROW,
                    error_type=e.error_type,
                    message=str(e),
                )
            )
        raise

    records = resolve_headers(table.records, specs)
    active_rules = build_rules(specs) if rules is None else rules

    validation = validate_rows(records, specs, active_rules)
    executions = execute_batch(
        validation.valid,
        create,
        row_numbers=validation.accepted_row_numbers,
        show_progress=show_progress,
    )
    summary = aggregate(validation.outcomes, executions, error_display_limit)

    if error_log is not None:
        _log_row_errors(error_log, source, entity, validation, executions)

    logger.debug(
        "import file=%s format=%s rows=%d succeeded=%d failed=%d elapsed=%.3f",
        source,
        table.source_format,
        len(records),
        summary.succeeded,
        summary.failed,
        time.perf_counter() - started,
    )
    return summary


def import_entity(
    entity: EntityConfig,
    content: bytes,
    file_name: str,
    create: CreateFn,
    *,
    custom_rules: Mapping[str, ValidationRule] | None = None,
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool | None = None,
) -> ImportSummary:
    """Import a file for a configured entity (rules derived from its columns)."""
    return run_import(
        content,
        file_name,
        entity.fields,
        create,
        rules=build_rules(entity.fields, custom_rules),
        error_display_limit=entity.error_display_limit,
        max_rows=entity.max_rows,
        file_name=file_name,
        entity_name=entity.name,
        error_log=error_log,
        show_progress=show_progress,
    )


def build_template(entity: EntityConfig, file_format: str = "xlsx") -> TemplateArtifact:
    sample_rows: list[Mapping[str, Any]] = list(entity.sample_rows)
    return generate_template(
        entity.fields,
        sample_rows,
        entity_name=entity.name,
        file_format=file_format,
    )
