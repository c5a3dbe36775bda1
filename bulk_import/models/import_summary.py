from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""ImportSummary and TemplateArtifact: the two outward-facing results.

ImportSummary is the only externally observable result of an import run;
TemplateArtifact is the downloadable file produced by the template generator.
"""

__all__ = [
    "ImportSummary",
    "TemplateArtifact",
]


@dataclass(frozen=True)
class ImportSummary:
    """Aggregated outcome of one import invocation.

    Attributes:
        succeeded: Records whose create() call succeeded
        failed: Records rejected by validation plus records whose create() failed
        errors: Display-bounded, row-prefixed messages; ends with "...and N more"
            when entries were omitted
        created_ids: Non-None values returned by create(), in file order
    """
    succeeded: int = 0
    failed: int = 0
    errors: tuple[str, ...] = ()
    created_ids: tuple[Any, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": list(self.errors),
            "created_ids": list(self.created_ids),
        }


@dataclass(frozen=True)
class TemplateArtifact:
    """A generated template file ready to be written or streamed."""
    file_name: str
    content: bytes
    media_type: str
    sheet_name: str
    file_format: str
