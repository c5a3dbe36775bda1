from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

One bar per batch, advanced once per create() call. In non-TTY environments
(CI, piped output) the bar is disabled to avoid ANSI control sequence spam.
"""

__all__ = [
    "RecordProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class RecordProgress:
    """Progress bar over the records of one batch."""

    def __init__(
        self,
        total_records: int,
        *,
        description: str = "Creating records",
        enabled: bool | None = None,
    ) -> None:
        """Initialize the progress bar.

        Args:
            total_records: Number of create() calls the batch will make
            description: Label shown in front of the bar
            enabled: Force the bar on/off; None follows TTY detection
        """
        self.total_records = total_records
        self.description = description
        self.succeeded = 0
        self.failed = 0

        self.enabled = is_tty_enabled() if enabled is None else enabled
        self.pbar: TqdmType[Any] | None
        if self.enabled and total_records > 0:
            self.pbar = tqdm(
                total=total_records,
                desc=description,
                unit="row",
                leave=True,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, succeeded: bool = True) -> None:
        """Record one finished create() call."""
        if succeeded:
            self.succeeded += 1
        else:
            self.failed += 1
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(ok=self.succeeded, failed=self.failed)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> RecordProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
