from __future__ import annotations

from ..models.import_summary import ImportSummary

"""SUMMARY line rendering.

Format:
SUMMARY entity={name} rows={total} succeeded={s} failed={f} elapsed_sec={t}
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
]


def format_seconds(seconds: float) -> str:
    """Render seconds without scientific notation or a trailing '.0'."""
    if seconds <= 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(entity: str, summary: ImportSummary, elapsed_seconds: float) -> str:
    """Render the SUMMARY line for one import run.

    Args:
        entity: Entity display name; whitespace is replaced so the line stays key=value
        summary: Result of the import
        elapsed_seconds: Wall time of the run

    Returns:
        SUMMARY line string

    Examples:
        >>> render_summary_line("Leads", ImportSummary(succeeded=3, failed=1), 2.0)
        'SUMMARY entity=Leads rows=4 succeeded=3 failed=1 elapsed_sec=2'
    """
    entity_token = "_".join(entity.split()) or "-"
    return (
        f"SUMMARY entity={entity_token} "
        f"rows={summary.total} "
        f"succeeded={summary.succeeded} "
        f"failed={summary.failed} "
        f"elapsed_sec={format_seconds(elapsed_seconds)}"
    )
