from .reader import (
    SUPPORTED_EXTENSIONS,
    ParsedTable,
    detect_format,
    ensure_supported_extension,
    parse_file,
    read_table,
)
from .template import TEMPLATE_FORMATS, generate_template, template_file_name

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "TEMPLATE_FORMATS",
    "ParsedTable",
    "detect_format",
    "ensure_supported_extension",
    "generate_template",
    "parse_file",
    "read_table",
    "template_file_name",
]
