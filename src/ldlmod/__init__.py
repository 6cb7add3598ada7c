"""ldlmod
=======

Row/column modification of sparse LDLᵀ factorizations: when one row and the
matching column of ``C = L·D·Lᵀ`` change without changing the sparsity
pattern, :func:`ldl_rowmodify` returns the corrected factor without
refactorizing ``C``.
"""

from .errors import (
    PatternMismatchError,
    PatternViolationError,
    PivotError,
    RowModifyError,
    ShapeError,
)
from .rowmodify import RowModifyWorkspace, ldl_rowmodify
from .sparse import Factorization, SparseColumnMatrix, UpdateColumns

__version__ = "0.1.0"

__all__ = [
    "ldl_rowmodify",
    "RowModifyWorkspace",
    "SparseColumnMatrix",
    "Factorization",
    "UpdateColumns",
    "RowModifyError",
    "ShapeError",
    "PatternViolationError",
    "PatternMismatchError",
    "PivotError",
]
