from __future__ import annotations

"""Exception hierarchy for the bulk import engine.

Only the terminal conditions are exceptions. Per-row validation rejections and
per-row create failures are recovered inside the pipeline and reported through
ImportSummary.errors instead.
"""

__all__ = [
    "BulkImportError",
    "UnsupportedFormatError",
    "ParseFailureError",
    "EmptyFileError",
    "TooManyRowsError",
]


class BulkImportError(Exception):
    """Base class for errors that abort a whole import invocation."""

    error_type = "IMPORT_ERROR"


class UnsupportedFormatError(BulkImportError):
    """Raised when a file extension is outside the allow-list (checked before reading)."""

    error_type = "UNSUPPORTED_FORMAT"

    def __init__(self, extension: str, allowed: tuple[str, ...]) -> None:
        self.extension = extension
        self.allowed = allowed
        shown = extension or "<none>"
        super().__init__(
            f"unsupported file type '{shown}': please upload only "
            + ", ".join(f".{ext}" for ext in allowed)
            + " files"
        )


class ParseFailureError(BulkImportError):
    """Raised when the container cannot be read (corrupt workbook, undecodable text)."""

    error_type = "PARSE_FAILURE"


class EmptyFileError(BulkImportError):
    """Raised when the file parses but holds no data rows below the header."""

    error_type = "EMPTY_FILE"

    def __init__(self, message: str = "The uploaded file contains no data") -> None:
        super().__init__(message)


class TooManyRowsError(BulkImportError):
    """Raised when the parsed row count exceeds the configured maximum."""

    error_type = "TOO_MANY_ROWS"

    def __init__(self, row_count: int, max_rows: int) -> None:
        self.row_count = row_count
        self.max_rows = max_rows
        super().__init__(f"Maximum {max_rows} rows allowed. Your file has {row_count} rows.")
