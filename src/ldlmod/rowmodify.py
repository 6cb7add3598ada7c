"""Row/column modification of a sparse LDLᵀ factorization.

When row and column ``k`` of ``C = L·D·Lᵀ`` change value without changing the
sparsity pattern, the factor can be corrected instead of recomputed (Davis &
Hager, "Row modification of a sparse Cholesky factorization", 2005, §4).
Partitioning around ``k``::

        [ L11          ]         [ D1        ]
    L = [ l12ᵀ  1      ]     D = [     d     ]
        [ L31  l32  L33]         [        D3 ]

``L11``, ``L31`` and ``D1`` are unchanged. The kernel runs four passes:

1. locate row ``k`` inside columns ``0..k-1`` (:func:`find_row_pattern`);
2. solve ``L11·D1·Δ = Δc12`` and derive the new pivot ``d``
   (:func:`solve_leading_block`);
3. recompute ``l32`` from the new pivot (:func:`correct_trailing_column`);
4. fold ``d·l32·l32ᵀ − d'·l32'·l32'ᵀ`` into ``L33·D3·L33ᵀ`` with one
   update/downdate pair per row (:func:`rotate_trailing_block`).

Inputs are never modified; the result is a new matrix with the same
pattern as ``L``.
"""

from __future__ import annotations

import contextlib
import logging
import math
import operator
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .errors import PatternMismatchError, PatternViolationError, PivotError, ShapeError
from .sparse import Factorization, SparseColumnMatrix, UpdateColumns
from .utils.logging import WorkUnitLogger
from .utils.timers import TimerRegistry

logger = logging.getLogger(__name__)

RowPattern = List[Tuple[int, int]]


@dataclass
class RowModifyWorkspace:
    """Dense scratch vectors for one call of :func:`ldl_rowmodify`.

    ``delta`` holds the leading-block correction (only ``[0, k)`` is used),
    ``w`` accumulates ``L31·D1·Δ`` and ``wu``/``wd`` are the update and
    downdate directions of the trailing rotation. A workspace can be passed
    to successive calls to reuse its buffers; the kernel zeroes it on entry
    and on exit.
    """

    n: int
    delta: np.ndarray = field(init=False, repr=False)
    w: np.ndarray = field(init=False, repr=False)
    wu: np.ndarray = field(init=False, repr=False)
    wd: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.n < 0:
            raise ShapeError(f"workspace size must be non-negative, got {self.n}")
        self._allocate()

    def _allocate(self) -> None:
        self.delta = np.zeros(self.n, dtype=np.float64)
        self.w = np.zeros(self.n, dtype=np.float64)
        self.wu = np.zeros(self.n, dtype=np.float64)
        self.wd = np.zeros(self.n, dtype=np.float64)

    @property
    def released(self) -> bool:
        return self.delta.size != self.n

    def reset(self) -> None:
        if self.released:
            self._allocate()
            return
        for buf in (self.delta, self.w, self.wu, self.wd):
            buf.fill(0.0)

    def release(self) -> None:
        empty = np.zeros(0, dtype=np.float64)
        self.delta = self.w = self.wu = self.wd = empty


@contextlib.contextmanager
def scratch(n: int, workspace: Optional[RowModifyWorkspace] = None) -> Iterator[RowModifyWorkspace]:
    """Yield a zeroed workspace of size ``n`` and clean it up on every exit path.

    A workspace created here is released afterwards; a caller's workspace is
    zeroed again so no values leak between calls.
    """

    if workspace is None:
        ws = RowModifyWorkspace(n)
        owned = True
    else:
        if workspace.n != n:
            raise ShapeError(f"workspace has size {workspace.n}, expected {n}")
        workspace.reset()
        ws = workspace
        owned = False
    try:
        yield ws
    finally:
        if owned:
            ws.release()
        else:
            ws.reset()


def _timed(timers: Optional[TimerRegistry], label: str):
    if timers is None:
        return contextlib.nullcontext()
    return timers.time(label)


def _nonzero(index: int, value: float) -> float:
    if value == 0.0 or not math.isfinite(value):
        raise PivotError(index, value, "is zero" if value == 0.0 else "is not finite")
    return value


# ----------------------------------------------------------------------
# phase 1: pattern indexer
# ----------------------------------------------------------------------
def find_row_pattern(L: SparseColumnMatrix, k: int) -> RowPattern:
    """Return ``(column, offset)`` for every stored entry of row ``k`` left of the diagonal."""

    row_k: RowPattern = []
    for j in range(k):
        p = L.find(k, j)
        if p is not None:
            row_k.append((j, p))
    return row_k


# ----------------------------------------------------------------------
# phase 2: leading-block solver
# ----------------------------------------------------------------------
def _pivot_position(updates: UpdateColumns, k: int) -> int:
    rows = updates.rows
    pos = int(np.searchsorted(rows, k))
    if pos >= rows.size or rows[pos] != k:
        raise PatternViolationError(f"the outgoing column must contain an entry at row {k}")
    return pos


def solve_leading_block(
    L: SparseColumnMatrix,
    values: np.ndarray,
    updates: UpdateColumns,
    k: int,
    row_k: RowPattern,
    delta: np.ndarray,
) -> Tuple[float, float]:
    """Correct ``l12`` in ``values`` and return ``(d_old, d_new)`` for pivot ``k``.

    ``values`` starts as a copy of ``L.values`` and is updated in place. On
    return ``delta[:k]`` holds ``D1·Δ``, the scaled correction consumed by
    :func:`correct_trailing_column`.
    """

    colptr, rowind, old = L.colptr, L.rowind, L.values
    dc = updates.delta()
    pos = _pivot_position(updates, k)

    diag_k = L.diagonal_offset(k)
    d_old = float(old[diag_k])
    d_new = d_old + float(dc[pos])

    if k > 0:
        delta[updates.rows[:pos]] = dc[:pos]

        # forward substitution with L11·D1, column by column
        for j in range(k):
            start, stop = int(colptr[j]), int(colptr[j + 1])
            dj = delta[j]
            if dj != 0.0:
                below = rowind[start + 1 : stop]
                m = int(np.searchsorted(below, k))
                delta[below[:m]] -= old[start + 1 : start + 1 + m] * dj
            delta[j] = dj / _nonzero(j, float(old[start]))

        for j, p in row_k:
            values[p] += delta[j]

        delta[:k] *= old[colptr[:k]]
        correction = 0.0
        for j, p in row_k:
            correction += delta[j] * (old[p] + values[p])
        d_new -= correction

    values[diag_k] = d_new
    logger.debug("leading block: k=%d, %d row entries, pivot %.6g -> %.6g", k, len(row_k), d_old, d_new)
    return d_old, d_new


# ----------------------------------------------------------------------
# phase 3: trailing-column corrector
# ----------------------------------------------------------------------
def correct_trailing_column(
    L: SparseColumnMatrix,
    values: np.ndarray,
    updates: UpdateColumns,
    k: int,
    d_old: float,
    d_new: float,
    delta: np.ndarray,
    w: np.ndarray,
) -> int:
    """Recompute ``l32`` in ``values``; return the number of corrected entries."""

    colptr, rowind, old = L.colptr, L.rowind, L.values
    start, stop = int(colptr[k]) + 1, int(colptr[k + 1])
    if start == stop:
        return 0
    _nonzero(k, d_new)

    if k > 0:
        # w = L31·D1·Δ
        for j in range(k):
            yj = delta[j]
            if yj == 0.0:
                continue
            p0, p1 = int(colptr[j]), int(colptr[j + 1])
            col_rows = rowind[p0:p1]
            m = int(np.searchsorted(col_rows, k, side="right"))
            w[col_rows[m:]] += old[p0 + m : p1] * yj

    trailing = rowind[start:stop]
    numer = old[start:stop] * d_old - w[trailing]

    pos = _pivot_position(updates, k)
    update_rows = updates.rows[pos + 1 :]
    if update_rows.size:
        numer[np.searchsorted(trailing, update_rows)] += updates.delta()[pos + 1 :]

    values[start:stop] = numer / d_new
    return stop - start


# ----------------------------------------------------------------------
# phase 4: trailing-block rotator
# ----------------------------------------------------------------------
def rotate_trailing_block(
    L: SparseColumnMatrix,
    values: np.ndarray,
    k: int,
    d_old: float,
    d_new: float,
    wu: np.ndarray,
    wd: np.ndarray,
    work: Optional[WorkUnitLogger] = None,
) -> None:
    """Apply the rank-1 update with the old ``l32`` and the downdate with the new one.

    Each row ``i > k`` is updated and then immediately downdated before the
    next row is touched; the pivot and directions carried from row to row
    make the loop strictly sequential.
    """

    colptr, rowind, old = L.colptr, L.rowind, L.values
    n = L.ncols
    start, stop = int(colptr[k]) + 1, int(colptr[k + 1])
    trailing = rowind[start:stop]
    if trailing.size == 0:
        return
    if d_old <= 0.0:
        raise PivotError(k, d_old, "must be positive before the trailing rotation")
    if d_new <= 0.0:
        raise PivotError(k, d_new, "must be positive after the trailing rotation")

    wu[trailing] = old[start:stop] * math.sqrt(d_old)
    wd[trailing] = values[start:stop] * math.sqrt(d_new)

    alpha = alpha2 = 1.0
    updates = downdates = skipped = 0
    for i in range(k + 1, n):
        wu_i = float(wu[i])
        wd_i = float(wd[i])
        if wu_i == 0.0 and wd_i == 0.0:
            skipped += 1
            continue

        p0, p1 = int(colptr[i]), int(colptr[i + 1])
        d_i = float(values[p0])
        gamma = gamma2 = 0.0

        if wu_i != 0.0:
            _nonzero(i, d_i)
            beta = alpha + wu_i * wu_i / d_i
            gamma = wu_i / (beta * d_i)
            d_i *= beta / alpha
            alpha = beta
            updates += 1

        if wd_i != 0.0:
            _nonzero(i, d_i)
            beta2 = _nonzero(i, alpha2 - wd_i * wd_i / d_i)
            gamma2 = wd_i / (beta2 * d_i)
            d_i *= beta2 / alpha2
            alpha2 = beta2
            downdates += 1

        values[p0] = d_i
        if p1 > p0 + 1:
            below = rowind[p0 + 1 : p1]
            wu[below] -= wu_i * values[p0 + 1 : p1]
            values[p0 + 1 : p1] += gamma * wu[below]
            wd[below] -= wd_i * values[p0 + 1 : p1]
            values[p0 + 1 : p1] -= gamma2 * wd[below]

    logger.debug(
        "trailing block: k=%d, %d updates, %d downdates, %d rows skipped", k, updates, downdates, skipped
    )
    if work is not None:
        work.incr(update_rotations=updates, downdate_rotations=downdates, skipped_rows=skipped)


# ----------------------------------------------------------------------
# validation and driver
# ----------------------------------------------------------------------
def check_update_pattern(L: SparseColumnMatrix, updates: UpdateColumns, k: int) -> None:
    """Verify that the update columns fit the pattern of ``L`` around pivot ``k``.

    Raises
    ------
    PatternViolationError
        If ``before`` or ``after`` has no entry at row ``k``.
    PatternMismatchError
        If ``before`` and ``after`` differ in pattern, or touch rows that
        row ``k`` or column ``k`` of ``L`` does not store.
    """

    for name, col in (("before", updates.before), ("after", updates.after)):
        if col.find(k, 0) is None:
            raise PatternViolationError(f"{name} must contain an entry at row {k}")
    if not updates.before.same_pattern(updates.after):
        raise PatternMismatchError("before and after do not share a sparsity pattern")

    rows = updates.rows
    for r in rows[rows < k]:
        if L.find(k, int(r)) is None:
            raise PatternMismatchError(f"update row {int(r)} is not stored in row {k} of L")
    below = rows[rows > k]
    if below.size:
        col_rows, _ = L.column(k)
        stored = np.isin(below, col_rows)
        if not np.all(stored):
            missing = int(below[~stored][0])
            raise PatternMismatchError(f"update row {missing} is not stored in column {k} of L")


def _validate(
    L: SparseColumnMatrix,
    before: SparseColumnMatrix,
    after: SparseColumnMatrix,
    k: int,
) -> Tuple[Factorization, UpdateColumns, int]:
    factor = Factorization(L)
    updates = UpdateColumns(before, after)
    n = factor.n
    if updates.n != n:
        raise ShapeError(f"update columns have length {updates.n}, expected {n}")
    try:
        k = operator.index(k)
    except TypeError as exc:
        raise ShapeError(f"k must be an integer, got {type(k).__name__}") from exc
    if not 0 <= k < n:
        raise PatternMismatchError(f"k={k} is outside [0, {n - 1}]")
    check_update_pattern(L, updates, k)
    return factor, updates, k


def ldl_rowmodify(
    L: SparseColumnMatrix,
    before: SparseColumnMatrix,
    after: SparseColumnMatrix,
    k: int,
    *,
    workspace: Optional[RowModifyWorkspace] = None,
    timers: Optional[TimerRegistry] = None,
    work: Optional[WorkUnitLogger] = None,
) -> SparseColumnMatrix:
    """Return the LDLᵀ factor of ``C`` after column/row ``k`` changes from ``before`` to ``after``.

    Parameters
    ----------
    L:
        Factor of ``C`` with the pivots stored on the diagonal.
    before, after:
        ``n x 1`` columns holding column ``k`` of ``C`` before and after the
        change. Both must share a pattern containing ``k``.
    k:
        Zero-based index of the modified row and column.
    workspace:
        Optional scratch buffers of size ``n`` reused across calls.
    timers, work:
        Optional phase timers and work counters updated by the call.

    Returns
    -------
    SparseColumnMatrix
        A new factor with the pattern of ``L``.
    """

    factor, updates, k = _validate(L, before, after, k)
    n = factor.n
    values = L.values.copy()

    with scratch(n, workspace) as ws:
        with _timed(timers, "row_pattern"):
            row_k = find_row_pattern(L, k)
        with _timed(timers, "leading_block"):
            d_old, d_new = solve_leading_block(L, values, updates, k, row_k, ws.delta)
        trailing = 0
        if k < n - 1:
            with _timed(timers, "trailing_column"):
                trailing = correct_trailing_column(L, values, updates, k, d_old, d_new, ws.delta, ws.w)
            with _timed(timers, "trailing_block"):
                rotate_trailing_block(L, values, k, d_old, d_new, ws.wu, ws.wd, work)

    if work is not None:
        work.incr(kernel_calls=1, leading_columns=len(row_k), trailing_entries=trailing)
    logger.debug("row modification of k=%d done (n=%d, nnz=%d)", k, n, L.nnz)
    return L.with_values(values)


__all__ = [
    "RowModifyWorkspace",
    "scratch",
    "find_row_pattern",
    "solve_leading_block",
    "correct_trailing_column",
    "rotate_trailing_block",
    "check_update_pattern",
    "ldl_rowmodify",
]
