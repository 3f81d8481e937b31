#!/usr/bin/env python3
"""Tests for Gaussian elimination and the dense linear solver."""

import numpy as np
import pytest

from tube_analysis.optimization import (
    SingularMatrixError,
    gaussian_elimination,
    back_substitution,
    solve_linear_system,
)


def test_solve_small_system():
    A = np.array([[2.0, 1.0], [1.0, 3.0]])
    b = np.array([3.0, 5.0])
    x = solve_linear_system(A, b)
    np.testing.assert_allclose(x, [0.8, 1.4])


def test_solve_round_trip_random():
    """A @ solve(A, b) reproduces b for a well conditioned matrix."""
    np.random.seed(42)
    A = np.random.randn(6, 6) + 6 * np.eye(6)
    b = np.random.randn(6)
    x = solve_linear_system(A, b)
    np.testing.assert_allclose(A @ x, b, atol=1e-10)
    np.testing.assert_allclose(x, np.linalg.solve(A, b), rtol=1e-10)


def test_solve_requires_pivoting():
    """Zero in the leading position is handled by row exchange."""
    A = np.array([[0.0, 1.0], [1.0, 1.0]])
    b = np.array([2.0, 3.0])
    np.testing.assert_allclose(solve_linear_system(A, b), [1.0, 2.0])


def test_inputs_not_modified():
    A = np.array([[4.0, 1.0], [2.0, 3.0]])
    b = np.array([1.0, 2.0])
    A_copy, b_copy = A.copy(), b.copy()
    solve_linear_system(A, b)
    np.testing.assert_array_equal(A, A_copy)
    np.testing.assert_array_equal(b, b_copy)


def test_singular_matrix_raises():
    A = np.array([[1.0, 2.0], [2.0, 4.0]])
    with pytest.raises(SingularMatrixError):
        solve_linear_system(A, np.array([1.0, 2.0]))


def test_zero_pivot_column_raises_in_elimination():
    matrix = np.array([[0.0, 1.0, 2.0],
                       [0.0, 3.0, 4.0],
                       [0.0, 5.0, 6.0]])
    with pytest.raises(SingularMatrixError, match="singular"):
        gaussian_elimination(matrix)


def test_singular_is_arithmetic_error():
    assert issubclass(SingularMatrixError, ArithmeticError)


def test_elimination_is_upper_triangular():
    np.random.seed(42)
    matrix = np.random.randn(4, 5)
    gaussian_elimination(matrix)
    assert np.allclose(np.tril(matrix[:, :4], -1), 0.0)


def test_back_substitution():
    augmented = np.array([[2.0, 1.0, 5.0],
                          [0.0, 4.0, 8.0]])
    np.testing.assert_allclose(back_substitution(augmented), [1.5, 2.0])


@pytest.mark.parametrize("A, b", [
    (np.ones((2, 3)), np.ones(2)),
    (np.eye(3), np.ones(2)),
    (np.ones(3), np.ones(3)),
])
def test_shape_mismatch_raises(A, b):
    with pytest.raises(ValueError):
        solve_linear_system(A, b)


def test_empty_matrix_raises():
    with pytest.raises(ValueError):
        gaussian_elimination(np.zeros((0, 0)))
