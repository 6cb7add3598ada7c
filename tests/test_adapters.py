"""Tests for the scipy.sparse marshalling layer."""

from __future__ import annotations

import numpy as np
import pytest
import scipy.sparse as sp

from ldlmod.adapters import column_from_scipy, from_scipy, ldlrowmodify, to_scipy
from ldlmod.errors import ShapeError
from ldlmod.problems import band_mask, make_problem
from ldlmod.rowmodify import ldl_rowmodify


def _scipy_problem(k: int = 3, seed: int = 0):
    problem = make_problem(band_mask(8, 2), k, seed=seed)
    return (
        problem,
        to_scipy(problem.factor.L),
        to_scipy(problem.updates.before),
        to_scipy(problem.updates.after),
    )


def test_round_trip_keeps_explicit_zeros():
    A = sp.csc_matrix(
        (np.array([1.0, 0.0, 2.0]), np.array([0, 2, 1]), np.array([0, 2, 3])), shape=(3, 2)
    )
    M = from_scipy(A)

    assert M.nnz == 3
    assert M.find(2, 0) is not None
    back = to_scipy(M)
    assert back.nnz == 3
    np.testing.assert_array_equal(back.toarray(), A.toarray())


def test_from_scipy_converts_other_formats_and_sorts():
    dense = np.array([[1.0, 0.0], [3.0, 4.0]])
    M = from_scipy(sp.coo_matrix(dense))

    np.testing.assert_array_equal(M.colptr, [0, 2, 3])
    np.testing.assert_array_equal(M.rowind, [0, 1, 1])
    np.testing.assert_array_equal(M.to_dense(), dense)


def test_to_scipy_does_not_share_buffers():
    problem, L, _, _ = _scipy_problem()
    L.data[:] = 0.0
    assert np.all(problem.factor.L.values != 0.0)


def test_non_sparse_and_complex_inputs_are_rejected():
    with pytest.raises(ShapeError):
        from_scipy(np.eye(3))
    with pytest.raises(ShapeError):
        from_scipy(sp.csc_matrix(np.eye(2) * (1.0 + 1.0j)))


def test_dictionary_of_keys_input_is_checked_by_dtype():
    A = sp.dok_matrix((2, 2), dtype=np.float64)
    A[0, 0] = 2.0
    A[1, 0] = -1.0
    np.testing.assert_array_equal(from_scipy(A).to_dense(), [[2.0, 0.0], [-1.0, 0.0]])

    Z = sp.dok_matrix((2, 2), dtype=np.complex128)
    Z[0, 0] = 1.0 + 1.0j
    with pytest.raises(ShapeError):
        from_scipy(Z)


def test_update_column_must_be_n_by_one():
    with pytest.raises(ShapeError):
        column_from_scipy(sp.csc_matrix(np.ones((1, 4))), 4)
    with pytest.raises(ShapeError):
        column_from_scipy(sp.csc_matrix(np.ones((3, 1))), 4)


def test_scipy_entry_matches_core_kernel():
    problem, L, c, c2 = _scipy_problem(k=3, seed=4)
    result = ldlrowmodify(L, c, c2, 3)
    expected = ldl_rowmodify(problem.factor.L, problem.updates.before, problem.updates.after, 3)

    assert isinstance(result, sp.csc_matrix)
    np.testing.assert_array_equal(result.indptr, L.indptr)
    np.testing.assert_array_equal(result.indices, L.indices)
    np.testing.assert_array_equal(result.data, expected.values)


def test_one_based_index_is_converted():
    _, L, c, c2 = _scipy_problem(k=5, seed=2)
    zero_based = ldlrowmodify(L, c, c2, 5)
    one_based = ldlrowmodify(L, c, c2, 6, one_based=True)

    np.testing.assert_array_equal(zero_based.data, one_based.data)


def test_scipy_entry_rejects_shape_problems():
    _, L, c, c2 = _scipy_problem()
    with pytest.raises(ShapeError):
        ldlrowmodify(L[:, :-1], c, c2, 3)
    with pytest.raises(ShapeError):
        ldlrowmodify(L, c[:-1, :], c2[:-1, :], 3)
    with pytest.raises(ShapeError):
        ldlrowmodify(L, c.toarray(), c2, 3)
    with pytest.raises(ShapeError):
        ldlrowmodify(L, c, c2, "3")
