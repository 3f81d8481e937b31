"""
Dense linear solve by Gaussian elimination with partial pivoting.

Used by the Levenberg-Marquardt refinement to solve the damped normal
equations (J^T J + v I) h = -J^T r.
"""

import numpy as np
from numpy.typing import NDArray


class SingularMatrixError(ArithmeticError):
    """Raised when a pivot is exactly zero."""
    pass


def gaussian_elimination(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Reduce a matrix to upper triangular form in place.

    For each pivot column the row with the largest absolute value at or
    below the pivot row is swapped into place, then the entries below the
    pivot are eliminated. Works on augmented matrices [A | b].

    Parameters
    ----------
    matrix : ndarray, shape (rows, cols)
        Float matrix, modified in place

    Returns
    -------
    matrix : ndarray
        The same array, upper triangular

    Raises
    ------
    ValueError
        If the matrix is not 2-D or is empty
    SingularMatrixError
        If a selected pivot is exactly zero
    """
    if matrix.ndim != 2 or matrix.shape[0] < 1 or matrix.shape[1] < 1:
        raise ValueError(f"Expected non-empty 2-D matrix, got shape {matrix.shape}")

    rows, cols = matrix.shape
    for k in range(min(rows, cols) - 1):
        pivot = k + int(np.argmax(np.abs(matrix[k:, k])))
        if matrix[pivot, k] == 0:
            raise SingularMatrixError("Matrix is singular")
        if pivot != k:
            matrix[[k, pivot]] = matrix[[pivot, k]]
        for i in range(k + 1, rows):
            multiplier = matrix[i, k] / matrix[k, k]
            matrix[i, k + 1:] -= multiplier * matrix[k, k + 1:]
            matrix[i, k] = 0.0
    return matrix


def back_substitution(augmented: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Solve an upper triangular augmented system [U | b].

    Raises
    ------
    SingularMatrixError
        If a diagonal entry is zero
    """
    n = augmented.shape[0]
    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        if augmented[i, i] == 0:
            raise SingularMatrixError("Matrix is singular")
        x[i] = (augmented[i, n] - augmented[i, i + 1:n] @ x[i + 1:]) / augmented[i, i]
    return x


def solve_linear_system(A: NDArray[np.float64], b: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Solve A x = b for square A (inputs are not modified).

    Examples
    --------
    >>> solve_linear_system(np.array([[2.0, 1.0], [1.0, 3.0]]), np.array([3.0, 5.0]))
    array([0.8, 1.4])
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    if A.ndim != 2 or A.shape[0] != A.shape[1] or b.shape != (A.shape[0],):
        raise ValueError(f"Incompatible shapes: A {A.shape}, b {b.shape}")
    augmented = np.column_stack([A, b])
    gaussian_elimination(augmented)
    return back_substitution(augmented)
