"""Synthetic symmetric positive definite problems with a fixed sparsity pattern."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.random import Generator

from .sparse import Factorization, UpdateColumns
from .utils.linalg import dense_ldl


def band_mask(n: int, bandwidth: int) -> np.ndarray:
    idx = np.arange(n)
    return np.abs(idx[:, None] - idx[None, :]) <= bandwidth


def arrow_mask(n: int) -> np.ndarray:
    """Diagonal plus a dense last row and column; factors without fill."""

    mask = np.eye(n, dtype=bool)
    mask[-1, :] = True
    mask[:, -1] = True
    return mask


def symbolic_fill(mask: np.ndarray) -> np.ndarray:
    """Lower-triangular pattern of the factor of a matrix with support ``mask``."""

    n = mask.shape[0]
    filled = np.tril(np.asarray(mask, dtype=bool) | np.eye(n, dtype=bool))
    for j in range(n):
        rows = np.flatnonzero(filled[j + 1 :, j]) + j + 1
        filled[np.ix_(rows, rows)] = True
    return np.tril(filled)


def random_spd(mask: np.ndarray, rng: Generator, *, margin: float = 1.0) -> np.ndarray:
    """Return a diagonally dominant symmetric matrix supported on ``mask``."""

    n = mask.shape[0]
    A = rng.standard_normal((n, n))
    A = 0.5 * (A + A.T) * mask
    np.fill_diagonal(A, 0.0)
    diag = np.abs(A).sum(axis=1) + margin + rng.uniform(0.0, 1.0, size=n)
    return A + np.diag(diag)


def modify_column(
    C: np.ndarray,
    mask: np.ndarray,
    k: int,
    rng: Generator,
    *,
    scale: float = 0.5,
    max_tries: int = 30,
) -> np.ndarray:
    """Perturb row and column ``k`` of ``C`` inside ``mask``, keeping it positive definite."""

    rows = np.flatnonzero(mask[:, k])
    for _ in range(max_tries):
        delta = scale * rng.standard_normal(rows.size)
        C2 = np.array(C, dtype=np.float64, copy=True)
        C2[rows, k] += delta
        C2[k, rows] = C2[rows, k]
        if np.linalg.eigvalsh(C2).min() > 0.0:
            return C2
        scale *= 0.5
    raise RuntimeError(f"could not find a positive definite modification of column {k}")


@dataclass
class RowModifyProblem:
    """A factored matrix together with a pattern-preserving change of column ``k``."""

    C: np.ndarray
    C_new: np.ndarray
    k: int
    mask: np.ndarray
    pattern: np.ndarray
    factor: Factorization
    updates: UpdateColumns

    def refactor(self) -> Factorization:
        """Factor ``C_new`` from scratch into the same pattern."""

        return factor_dense(self.C_new, self.pattern)


def factor_dense(C: np.ndarray, pattern: np.ndarray) -> Factorization:
    unit, pivots = dense_ldl(C)
    return Factorization.from_dense_factors(unit, pivots, pattern)


def update_columns(C: np.ndarray, C_new: np.ndarray, mask: np.ndarray, k: int) -> UpdateColumns:
    rows = np.flatnonzero(mask[:, k])
    return UpdateColumns.from_dense(C[:, k], C_new[:, k], rows)


def make_problem(
    mask: np.ndarray,
    k: int,
    *,
    seed: int = 0,
    scale: float = 0.5,
    rng: Optional[Generator] = None,
) -> RowModifyProblem:
    """Draw ``C`` on ``mask``, factor it and perturb its column ``k``."""

    mask = np.asarray(mask, dtype=bool) | np.eye(mask.shape[0], dtype=bool)
    rng = np.random.default_rng(seed) if rng is None else rng
    C = random_spd(mask, rng)
    C_new = modify_column(C, mask, k, rng, scale=scale)
    pattern = symbolic_fill(mask)
    return RowModifyProblem(
        C=C,
        C_new=C_new,
        k=k,
        mask=mask,
        pattern=pattern,
        factor=factor_dense(C, pattern),
        updates=update_columns(C, C_new, mask, k),
    )


__all__ = [
    "band_mask",
    "arrow_mask",
    "symbolic_fill",
    "random_spd",
    "modify_column",
    "RowModifyProblem",
    "factor_dense",
    "update_columns",
    "make_problem",
]
