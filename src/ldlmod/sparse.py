"""Compressed-column storage for LDLᵀ factors and update columns.

A :class:`SparseColumnMatrix` owns three numpy arrays (``colptr``, ``rowind``,
``values``) and validates them on construction. Factors follow the storage
convention used throughout :mod:`ldlmod`: the diagonal entry of column ``j``
holds the pivot ``D_jj`` rather than the implicit unit diagonal of ``L``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from .errors import PatternMismatchError, ShapeError

INDEX_DTYPE = np.int64


def _index_array(name: str, data) -> np.ndarray:
    arr = np.array(data, dtype=INDEX_DTYPE, copy=True)
    if arr.ndim != 1:
        raise ShapeError(f"{name} must be one-dimensional, got shape {arr.shape}")
    return arr


def _value_array(data) -> np.ndarray:
    if np.iscomplexobj(data):
        raise ShapeError("values must be real-valued, got complex input")
    arr = np.array(data, dtype=np.float64, copy=True)
    if arr.ndim != 1:
        raise ShapeError(f"values must be one-dimensional, got shape {arr.shape}")
    return arr


def _read_only(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.flags.writeable = False
    return view


@dataclass(eq=False)
class SparseColumnMatrix:
    """Real matrix stored in compressed-column (CSC) form.

    Parameters
    ----------
    shape:
        ``(nrows, ncols)``.
    colptr:
        Column pointers of length ``ncols + 1``; ``colptr[0] == 0`` and the
        array is non-decreasing.
    rowind:
        Row indices, strictly increasing within each column.
    values:
        Stored values, one per row index.

    The arrays are copied on construction, so the matrix never aliases the
    caller's buffers.
    """

    shape: Tuple[int, int]
    colptr: np.ndarray
    rowind: np.ndarray
    values: np.ndarray

    def __post_init__(self) -> None:
        if len(self.shape) != 2:
            raise ShapeError(f"shape must have two entries, got {self.shape!r}")
        nrows, ncols = int(self.shape[0]), int(self.shape[1])
        if nrows < 0 or ncols < 0:
            raise ShapeError(f"shape must be non-negative, got {self.shape!r}")
        self.shape = (nrows, ncols)
        self.colptr = _index_array("colptr", self.colptr)
        self.rowind = _index_array("rowind", self.rowind)
        self.values = _value_array(self.values)
        self._check_structure()

    def _check_structure(self) -> None:
        nrows, ncols = self.shape
        colptr, rowind = self.colptr, self.rowind
        if colptr.size != ncols + 1:
            raise ShapeError(f"colptr must have length {ncols + 1}, got {colptr.size}")
        if colptr[0] != 0:
            raise ShapeError("colptr[0] must be 0")
        if np.any(np.diff(colptr) < 0):
            raise ShapeError("colptr must be non-decreasing")
        nnz = int(colptr[-1])
        if rowind.size != nnz or self.values.size != nnz:
            raise ShapeError(
                f"rowind and values must have length colptr[-1]={nnz}, "
                f"got {rowind.size} and {self.values.size}"
            )
        if nnz == 0:
            return
        if rowind.min() < 0 or rowind.max() >= nrows:
            raise ShapeError(f"row indices must lie in [0, {nrows})")
        increasing = np.ones(nnz - 1, dtype=bool)
        starts = colptr[1:-1]
        starts = starts[(starts > 0) & (starts < nnz)]
        increasing[starts - 1] = False
        if np.any(np.diff(rowind)[increasing] <= 0):
            raise ShapeError("row indices must be strictly increasing within each column")

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------
    @property
    def nrows(self) -> int:
        return self.shape[0]

    @property
    def ncols(self) -> int:
        return self.shape[1]

    @property
    def nnz(self) -> int:
        return int(self.colptr[-1])

    def _check_column(self, j: int) -> int:
        if not 0 <= j < self.ncols:
            raise IndexError(f"column {j} out of range for {self.ncols} columns")
        return int(j)

    def column_range(self, j: int) -> Tuple[int, int]:
        """Return the ``[start, stop)`` storage offsets of column ``j``."""

        j = self._check_column(j)
        return int(self.colptr[j]), int(self.colptr[j + 1])

    def column(self, j: int) -> Tuple[np.ndarray, np.ndarray]:
        """Return read-only views of the row indices and values of column ``j``."""

        start, stop = self.column_range(j)
        return _read_only(self.rowind[start:stop]), _read_only(self.values[start:stop])

    def find(self, i: int, j: int) -> Optional[int]:
        """Storage offset of entry ``(i, j)``, or ``None`` when it is not stored."""

        if not 0 <= i < self.nrows:
            raise IndexError(f"row {i} out of range for {self.nrows} rows")
        start, stop = self.column_range(j)
        pos = start + int(np.searchsorted(self.rowind[start:stop], i))
        if pos < stop and self.rowind[pos] == i:
            return pos
        return None

    def diagonal_offset(self, j: int) -> int:
        p = self.find(j, j)
        if p is None:
            raise PatternMismatchError(f"column {j} has no stored diagonal entry")
        return p

    def same_pattern(self, other: "SparseColumnMatrix") -> bool:
        return (
            self.shape == other.shape
            and np.array_equal(self.colptr, other.colptr)
            and np.array_equal(self.rowind, other.rowind)
        )

    def with_values(self, values: np.ndarray) -> "SparseColumnMatrix":
        """Return a new matrix with this pattern and the given values."""

        return SparseColumnMatrix(self.shape, self.colptr, self.rowind, values)

    def to_dense(self) -> np.ndarray:
        dense = np.zeros(self.shape, dtype=np.float64)
        cols = np.repeat(np.arange(self.ncols), np.diff(self.colptr))
        dense[self.rowind, cols] = self.values
        return dense

    # ------------------------------------------------------------------
    # constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_dense(cls, dense, pattern=None) -> "SparseColumnMatrix":
        """Build a matrix from a dense array.

        ``pattern`` is a boolean mask of the entries to store; by default the
        nonzeros of ``dense``. Masked entries are stored even when zero.
        """

        if np.iscomplexobj(dense):
            raise ShapeError("dense input must be real-valued")
        dense = np.asarray(dense, dtype=np.float64)
        if dense.ndim != 2:
            raise ShapeError(f"dense input must be two-dimensional, got shape {dense.shape}")
        mask = dense != 0 if pattern is None else np.asarray(pattern, dtype=bool)
        if mask.shape != dense.shape:
            raise ShapeError(f"pattern shape {mask.shape} does not match {dense.shape}")
        cols, rows = np.nonzero(mask.T)
        colptr = np.concatenate([[0], np.cumsum(mask.sum(axis=0))])
        return cls(dense.shape, colptr, rows, dense[rows, cols])

    @classmethod
    def from_column(cls, n: int, rows, values) -> "SparseColumnMatrix":
        """Build an ``n x 1`` column from its row indices and values."""

        rows = _index_array("rows", rows)
        return cls((n, 1), [0, rows.size], rows, values)

    def __repr__(self) -> str:
        return f"SparseColumnMatrix(shape={self.shape}, nnz={self.nnz})"


@dataclass(eq=False)
class Factorization:
    """An LDLᵀ factor ``L`` whose diagonal holds the pivots ``D``.

    ``L`` must be square and lower triangular with the diagonal stored as the
    first entry of every column.
    """

    L: SparseColumnMatrix
    _diag: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        L = self.L
        if not isinstance(L, SparseColumnMatrix):
            raise ShapeError(f"L must be a SparseColumnMatrix, got {type(L).__name__}")
        if L.nrows != L.ncols:
            raise ShapeError(f"L must be square, got shape {L.shape}")
        n = L.ncols
        cols = np.repeat(np.arange(n), np.diff(L.colptr))
        if np.any(L.rowind < cols):
            raise ShapeError("L must be lower triangular")
        counts = np.diff(L.colptr)
        empty = np.flatnonzero(counts == 0)
        if empty.size:
            raise PatternMismatchError(f"column {int(empty[0])} of L has no stored diagonal entry")
        first = L.rowind[L.colptr[:-1]]
        missing = np.flatnonzero(first != np.arange(n))
        if missing.size:
            raise PatternMismatchError(f"column {int(missing[0])} of L has no stored diagonal entry")
        self._diag = L.colptr[:-1].copy()

    @property
    def n(self) -> int:
        return self.L.ncols

    @property
    def pivots(self) -> np.ndarray:
        return self.L.values[self._diag].copy()

    def unit_lower(self) -> np.ndarray:
        dense = self.L.to_dense()
        np.fill_diagonal(dense, 1.0)
        return dense

    def reconstruct(self) -> np.ndarray:
        """Return the dense product ``L·D·Lᵀ``."""

        unit = self.unit_lower()
        return (unit * self.pivots) @ unit.T

    @classmethod
    def from_dense_factors(cls, unit_lower, pivots, pattern=None) -> "Factorization":
        """Pack dense unit-lower ``L`` and pivots ``D`` into compressed storage.

        ``pattern`` selects the stored lower-triangular entries; the diagonal
        is always stored.
        """

        unit_lower = np.asarray(unit_lower, dtype=np.float64)
        pivots = np.asarray(pivots, dtype=np.float64)
        n = pivots.size
        if unit_lower.shape != (n, n):
            raise ShapeError(f"unit_lower must have shape {(n, n)}, got {unit_lower.shape}")
        dense = np.tril(unit_lower, -1) + np.diag(pivots)
        mask = dense != 0 if pattern is None else np.asarray(pattern, dtype=bool)
        mask = np.tril(mask) | np.eye(n, dtype=bool)
        return cls(SparseColumnMatrix.from_dense(dense, mask))


@dataclass(eq=False)
class UpdateColumns:
    """The outgoing (``before``) and incoming (``after``) column ``k`` of ``C``."""

    before: SparseColumnMatrix
    after: SparseColumnMatrix

    def __post_init__(self) -> None:
        for name, col in (("before", self.before), ("after", self.after)):
            if not isinstance(col, SparseColumnMatrix):
                raise ShapeError(f"{name} must be a SparseColumnMatrix, got {type(col).__name__}")
            if col.ncols != 1:
                raise ShapeError(f"{name} must hold exactly one column, got shape {col.shape}")
        if self.before.nrows != self.after.nrows:
            raise ShapeError(
                f"before and after have different lengths ({self.before.nrows} != {self.after.nrows})"
            )

    @property
    def n(self) -> int:
        return self.before.nrows

    @property
    def rows(self) -> np.ndarray:
        return _read_only(self.before.rowind)

    def delta(self) -> np.ndarray:
        """Return ``after - before`` over the shared pattern."""

        if not self.before.same_pattern(self.after):
            raise PatternMismatchError("before and after do not share a sparsity pattern")
        return self.after.values - self.before.values

    def swapped(self) -> "UpdateColumns":
        return UpdateColumns(self.after, self.before)

    @classmethod
    def from_dense(cls, before, after, rows) -> "UpdateColumns":
        """Pick ``rows`` out of two dense columns."""

        before = np.asarray(before, dtype=np.float64)
        after = np.asarray(after, dtype=np.float64)
        if before.shape != after.shape or before.ndim != 1:
            raise ShapeError("before and after must be one-dimensional arrays of equal length")
        rows = np.unique(_index_array("rows", rows))
        n = before.size
        return cls(
            SparseColumnMatrix.from_column(n, rows, before[rows]),
            SparseColumnMatrix.from_column(n, rows, after[rows]),
        )


__all__ = ["INDEX_DTYPE", "SparseColumnMatrix", "Factorization", "UpdateColumns"]
