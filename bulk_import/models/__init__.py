"""Domain models for the bulk import engine.

This package contains the value types shared by the parser, validator, executor
and aggregator, plus the configuration dataclasses built from
config/entities.yml.
"""

from .cell import CellKind, CellValue, cell_kind, cell_text, is_blank, is_number_text
from .config_models import DatabaseConfig, EntityConfig, ImportConfig
from .error_record import FILE_LEVEL_ROW, ErrorRecord
from .field_spec import FIELD_TYPES, FieldSpec, RawRecord, RuleResult, ValidationRule, field_names
from .import_summary import ImportSummary, TemplateArtifact
from .outcomes import ExecutionOutcome, RowOutcome, ValidationResult, row_number_for_index

__all__ = [
    # Cell values
    "CellKind",
    "CellValue",
    "cell_kind",
    "cell_text",
    "is_blank",
    "is_number_text",
    # Configuration models
    "DatabaseConfig",
    "EntityConfig",
    "ImportConfig",
    # Fields and rules
    "FIELD_TYPES",
    "FieldSpec",
    "RawRecord",
    "RuleResult",
    "ValidationRule",
    "field_names",
    # Outcomes and results
    "ErrorRecord",
    "FILE_LEVEL_ROW",
    "ExecutionOutcome",
    "ImportSummary",
    "RowOutcome",
    "TemplateArtifact",
    "ValidationResult",
    "row_number_for_index",
]
