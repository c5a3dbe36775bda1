from .aggregator import aggregate, truncate_errors
from .executor import execute_batch
from .pipeline import build_template, import_entity, run_import
from .summary import render_summary_line

__all__ = [
    "aggregate",
    "build_template",
    "execute_batch",
    "import_entity",
    "render_summary_line",
    "run_import",
    "truncate_errors",
]
