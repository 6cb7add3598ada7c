"""Conversion between :mod:`scipy.sparse` matrices and :class:`SparseColumnMatrix`."""

from __future__ import annotations

import operator
from typing import Any, Optional

import numpy as np
import scipy.sparse as sp

from .errors import ShapeError
from .rowmodify import RowModifyWorkspace, ldl_rowmodify
from .sparse import SparseColumnMatrix
from .utils.logging import WorkUnitLogger
from .utils.timers import TimerRegistry


def _require_sparse(name: str, A: Any) -> None:
    if not sp.issparse(A):
        raise ShapeError(f"{name} must be a scipy.sparse matrix, got {type(A).__name__}")
    if np.issubdtype(A.dtype, np.complexfloating):
        raise ShapeError(f"{name} must be real-valued, got dtype {A.dtype}")


def from_scipy(A: Any, name: str = "A") -> SparseColumnMatrix:
    """Copy a scipy sparse matrix into compressed-column storage.

    Explicitly stored zeros are kept: they are part of the pattern.
    """

    _require_sparse(name, A)
    csc = sp.csc_matrix(A, dtype=np.float64, copy=True)
    csc.sum_duplicates()
    return SparseColumnMatrix(csc.shape, csc.indptr, csc.indices, csc.data)


def column_from_scipy(c: Any, n: int, name: str = "c") -> SparseColumnMatrix:
    """Copy an ``n x 1`` scipy sparse column."""

    _require_sparse(name, c)
    if c.shape != (n, 1):
        raise ShapeError(f"{name} must have shape {(n, 1)}, got {c.shape}")
    return from_scipy(c, name)


def to_scipy(M: SparseColumnMatrix) -> sp.csc_matrix:
    """Return a ``csc_matrix`` holding copies of the arrays of ``M``."""

    return sp.csc_matrix((M.values.copy(), M.rowind.copy(), M.colptr.copy()), shape=M.shape)


def ldlrowmodify(
    L: Any,
    c: Any,
    c2: Any,
    k: int,
    *,
    one_based: bool = False,
    workspace: Optional[RowModifyWorkspace] = None,
    timers: Optional[TimerRegistry] = None,
    work: Optional[WorkUnitLogger] = None,
) -> sp.csc_matrix:
    """Modify the LDLᵀ factor ``L`` when column ``k`` of ``C`` changes from ``c`` to ``c2``.

    ``L`` stores the pivots on its diagonal. ``c`` and ``c2`` are ``n x 1``
    sparse columns sharing a pattern that contains ``k``. With
    ``one_based=True``, ``k`` counts from 1.
    """

    L_csc = from_scipy(L, "L")
    if L_csc.nrows != L_csc.ncols:
        raise ShapeError(f"L must be square, got shape {L_csc.shape}")
    n = L_csc.ncols
    before = column_from_scipy(c, n, "c")
    after = column_from_scipy(c2, n, "c2")
    try:
        k = operator.index(k)
    except TypeError as exc:
        raise ShapeError(f"k must be an integer, got {type(k).__name__}") from exc
    if one_based:
        k -= 1
    result = ldl_rowmodify(L_csc, before, after, k, workspace=workspace, timers=timers, work=work)
    return to_scipy(result)


__all__ = ["from_scipy", "column_from_scipy", "to_scipy", "ldlrowmodify"]
