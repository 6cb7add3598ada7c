"""Logging helpers for consistent instrumentation."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "INFO", rich_tracebacks: bool = True) -> None:
    """Configure the root logger with optional rich tracebacks."""

    console = Console(stderr=True)
    handler = RichHandler(console=console, rich_tracebacks=rich_tracebacks)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


@dataclass
class WorkUnitLogger:
    """Count the work performed by row-modification calls.

    ``leading_columns`` counts entries of row ``k`` corrected in the leading
    block, ``trailing_entries`` the corrected entries of ``l32`` and the
    rotation counters the half-steps applied to the trailing block.
    """

    kernel_calls: int = 0
    leading_columns: int = 0
    trailing_entries: int = 0
    update_rotations: int = 0
    downdate_rotations: int = 0
    skipped_rows: int = 0
    extras: Dict[str, int] = field(default_factory=dict)

    def incr(self, **kwargs: int) -> None:
        for key, value in kwargs.items():
            if key != "extras" and hasattr(self, key):
                setattr(self, key, getattr(self, key) + int(value))
            else:
                self.extras[key] = self.extras.get(key, 0) + int(value)

    def as_dict(self) -> Dict[str, int]:
        counts = asdict(self)
        extras = counts.pop("extras")
        counts.update(extras)
        return counts


__all__ = ["setup_logging", "WorkUnitLogger"]
