"""Exception hierarchy for the row-modification kernel."""

from __future__ import annotations


class RowModifyError(Exception):
    """Base class for every failure raised by :mod:`ldlmod`."""


class ShapeError(RowModifyError, ValueError):
    """Raised when inputs have the wrong dimensions, dtype or storage layout."""


class PatternViolationError(RowModifyError, KeyError):
    """Raised when an update column has no explicit entry at the pivot row."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class PatternMismatchError(RowModifyError, ValueError):
    """Raised when the sparsity patterns of ``L`` and the update columns disagree."""


class PivotError(RowModifyError, ArithmeticError):
    """Raised when a pivot is zero where it divides, or not positive where the
    trailing rotation takes its square root."""

    def __init__(self, index: int, value: float, reason: str = "is zero") -> None:
        super().__init__(f"pivot {index} {reason} (value {value!r})")
        self.index = index
        self.value = value


__all__ = [
    "RowModifyError",
    "ShapeError",
    "PatternViolationError",
    "PatternMismatchError",
    "PivotError",
]
