"""Tests for compressed-column storage and the factor/update containers."""

from __future__ import annotations

import numpy as np
import pytest

from ldlmod.errors import PatternMismatchError, ShapeError
from ldlmod.sparse import Factorization, SparseColumnMatrix, UpdateColumns


def _lower_example() -> np.ndarray:
    return np.array(
        [
            [4.0, 0.0, 0.0, 0.0],
            [0.5, 3.0, 0.0, 0.0],
            [0.0, 0.25, 2.0, 0.0],
            [0.1, 0.0, -0.3, 5.0],
        ]
    )


def test_from_dense_round_trip_and_layout():
    dense = _lower_example()
    M = SparseColumnMatrix.from_dense(dense)

    assert M.shape == (4, 4)
    assert M.nnz == 8
    np.testing.assert_array_equal(M.colptr, [0, 3, 5, 7, 8])
    np.testing.assert_array_equal(M.rowind, [0, 1, 3, 1, 2, 2, 3, 3])
    np.testing.assert_array_equal(M.to_dense(), dense)


def test_from_dense_keeps_explicit_zeros_in_pattern():
    dense = np.diag([1.0, 2.0, 3.0])
    pattern = np.tril(np.ones((3, 3), dtype=bool))
    M = SparseColumnMatrix.from_dense(dense, pattern)

    assert M.nnz == 6
    assert M.find(2, 0) is not None
    assert M.values[M.find(2, 0)] == 0.0


def test_accessors_are_bounds_checked_and_read_only():
    M = SparseColumnMatrix.from_dense(_lower_example())

    rows, vals = M.column(2)
    np.testing.assert_array_equal(rows, [2, 3])
    np.testing.assert_array_equal(vals, [2.0, -0.3])
    with pytest.raises(ValueError):
        vals[0] = 1.0

    assert M.find(3, 1) is None
    assert M.diagonal_offset(1) == 3
    assert M.values[M.diagonal_offset(2)] == 2.0

    with pytest.raises(IndexError):
        M.column(4)
    with pytest.raises(IndexError):
        M.find(4, 0)


def test_constructor_copies_inputs():
    colptr = np.array([0, 1, 2])
    rowind = np.array([0, 1])
    values = np.array([1.0, 2.0])
    M = SparseColumnMatrix((2, 2), colptr, rowind, values)
    values[0] = 99.0

    assert M.values[0] == 1.0
    assert not np.shares_memory(M.colptr, colptr)


def test_with_values_never_aliases_pattern():
    M = SparseColumnMatrix.from_dense(_lower_example())
    N = M.with_values(np.arange(M.nnz, dtype=float))

    assert N.same_pattern(M)
    assert not np.shares_memory(N.colptr, M.colptr)
    assert not np.shares_memory(N.rowind, M.rowind)
    np.testing.assert_array_equal(N.values, np.arange(M.nnz))


@pytest.mark.parametrize(
    "colptr, rowind, values",
    [
        ([1, 1, 2], [0, 1], [1.0, 2.0]),
        ([0, 2, 1], [0, 1], [1.0, 2.0]),
        ([0, 1], [0], [1.0]),
        ([0, 2, 2], [1, 0], [1.0, 2.0]),
        ([0, 1, 2], [0, 2], [1.0, 2.0]),
        ([0, 1, 2], [0, 1], [1.0]),
    ],
)
def test_malformed_storage_is_rejected(colptr, rowind, values):
    with pytest.raises(ShapeError):
        SparseColumnMatrix((2, 2), colptr, rowind, values)


def test_complex_values_are_rejected():
    with pytest.raises(ShapeError):
        SparseColumnMatrix((1, 1), [0, 1], [0], np.array([1.0 + 2.0j]))
    with pytest.raises(ShapeError):
        SparseColumnMatrix.from_dense(np.eye(2, dtype=complex))


def test_factorization_reconstructs_product():
    rng = np.random.default_rng(3)
    unit = np.tril(rng.standard_normal((4, 4)), -1) + np.eye(4)
    pivots = rng.uniform(1.0, 2.0, size=4)
    factor = Factorization.from_dense_factors(unit, pivots)

    np.testing.assert_allclose(factor.pivots, pivots)
    np.testing.assert_allclose(factor.unit_lower(), unit)
    np.testing.assert_allclose(factor.reconstruct(), unit @ np.diag(pivots) @ unit.T, atol=1e-12)


def test_factorization_requires_square_lower_triangular_with_diagonal():
    with pytest.raises(ShapeError):
        Factorization(SparseColumnMatrix.from_dense(np.ones((3, 2))))
    with pytest.raises(ShapeError):
        Factorization(SparseColumnMatrix.from_dense(np.triu(np.ones((3, 3)))))

    no_diag = np.tril(np.ones((3, 3)))
    no_diag[1, 1] = 0.0
    with pytest.raises(PatternMismatchError):
        Factorization(SparseColumnMatrix.from_dense(no_diag))


def test_update_columns_from_dense_and_swap():
    before = np.array([1.0, 2.0, 0.0, 4.0])
    after = np.array([1.5, 2.0, 0.0, 3.0])
    updates = UpdateColumns.from_dense(before, after, rows=[3, 0, 1])

    np.testing.assert_array_equal(updates.rows, [0, 1, 3])
    np.testing.assert_array_equal(updates.delta(), [0.5, 0.0, -1.0])
    swapped = updates.swapped()
    assert swapped.before is updates.after
    np.testing.assert_array_equal(swapped.delta(), [-0.5, 0.0, 1.0])


def test_update_columns_validate_shape():
    col = SparseColumnMatrix.from_column(3, [0], [1.0])
    with pytest.raises(ShapeError):
        UpdateColumns(col, SparseColumnMatrix.from_column(4, [0], [1.0]))
    with pytest.raises(ShapeError):
        UpdateColumns(col, SparseColumnMatrix.from_dense(np.eye(3)))

    other = SparseColumnMatrix.from_column(3, [1], [1.0])
    with pytest.raises(PatternMismatchError):
        UpdateColumns(col, other).delta()
