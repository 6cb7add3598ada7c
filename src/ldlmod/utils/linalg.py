"""Dense reference factorisations built on top of JAX.

These routines factor small dense matrices from scratch. They are used to
produce starting factors and to check the sparse kernel, never inside it.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
import jax.numpy as jnp

from .jax_setup import Array, nan_guard
from ..sparse import Factorization, SparseColumnMatrix


def symmetrize(S: Array | np.ndarray) -> Array:
    """Return the symmetric part of ``S`` as a float64 array."""
    S64 = jnp.asarray(S, dtype=jnp.float64)
    return 0.5 * (S64 + S64.T)


def safe_cholesky(S: Array | np.ndarray, jitter: float = 1e-10, max_tries: int = 5) -> Array:
    """Return a lower-triangular ``L`` with ``S ≈ L Lᵀ``.

    Parameters
    ----------
    S:
        Symmetric positive definite matrix to factorise. The input is symmetrised
        to avoid numerical asymmetry issues and is always treated as ``float64``.
    jitter:
        Diagonal regularisation added on the first retry.
    max_tries:
        Number of retries with exponentially increasing jitter after the plain
        factorisation fails. ``0`` disables regularisation.

    Raises
    ------
    np.linalg.LinAlgError
        If the matrix cannot be factorised.
    """

    if max_tries < 0:
        raise ValueError("max_tries must be non-negative")

    S_sym = symmetrize(S)
    if S_sym.ndim != 2 or S_sym.shape[0] != S_sym.shape[1]:
        raise ValueError("S must be a square matrix")
    n = S_sym.shape[0]

    eye = jnp.eye(n, dtype=jnp.float64)
    eps = 0.0
    for attempt in range(max_tries + 1):
        # jnp.linalg.cholesky signals failure with NaNs rather than raising.
        L = jnp.linalg.cholesky(S_sym + eps * eye)
        if bool(jnp.all(jnp.isfinite(L))):
            return L
        eps = jitter if attempt == 0 else 10.0 * eps
    raise np.linalg.LinAlgError("Cholesky failed")


def dense_ldl(C: Array | np.ndarray, *, jitter: float = 1e-10, max_tries: int = 0) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(unit_lower, pivots)`` with ``C = L diag(pivots) Lᵀ``."""

    L = safe_cholesky(C, jitter=jitter, max_tries=max_tries)
    diag = jnp.diag(L)
    unit = L / diag[None, :]
    pivots = diag * diag
    nan_guard("dense_ldl", unit, pivots)
    return np.asarray(unit), np.asarray(pivots)


def ldl_residual(factor: Factorization | SparseColumnMatrix, C: Array | np.ndarray) -> float:
    """Relative Frobenius error of ``L·D·Lᵀ`` against ``C``."""

    if isinstance(factor, SparseColumnMatrix):
        factor = Factorization(factor)
    recon = jnp.asarray(factor.reconstruct())
    target = jnp.asarray(C, dtype=jnp.float64)
    scale = jnp.maximum(jnp.linalg.norm(target), jnp.finfo(jnp.float64).tiny)
    return float(jnp.linalg.norm(recon - target) / scale)


__all__ = ["symmetrize", "safe_cholesky", "dense_ldl", "ldl_residual"]
