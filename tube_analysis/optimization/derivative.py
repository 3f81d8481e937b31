"""
Finite difference Jacobian.

For a residual function r(x) with m outputs and n variables the
Jacobian has elements:
    J[i,j] = d(r_i) / d(x_j)

Supported orders
----------------
1: forward difference   (r(x + h e_j) - r(x)) / h,            h = eps^(1/2)
2: central difference   (r(x + h e_j) - r(x - h e_j)) / (2h), h = eps^(1/3)
4: five point stencil   (r(x-2h) - 8 r(x-h) + 8 r(x+h) - r(x+2h)) / (12h),
                        h = eps^(1/4)
"""

from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray

DBL_EPSILON = np.finfo(float).eps

_STEP_EXPONENTS = {1: 1 / 2, 2: 1 / 3, 4: 1 / 4}


def step_size(order: int) -> float:
    """Default step for the given difference order."""
    if order not in _STEP_EXPONENTS:
        raise ValueError(f"Unsupported order: {order} (expected 1, 2 or 4)")
    return DBL_EPSILON ** _STEP_EXPONENTS[order]


def numeric_jacobian(
    residuals: Callable[[NDArray[np.float64]], NDArray[np.float64]],
    x: NDArray[np.float64],
    order: int = 2,
    h: Optional[float] = None,
    fx: Optional[NDArray[np.float64]] = None
) -> NDArray[np.float64]:
    """
    Jacobian of a vector function by finite differences.

    Parameters
    ----------
    residuals : callable
        r(x) -> ndarray of shape (m,)
    x : ndarray, shape (n,)
        Evaluation point
    order : int
        Difference order: 1, 2 or 4 (default: 2)
    h : float, optional
        Step size (default: step_size(order))
    fx : ndarray, optional
        r(x) if already known (saves one evaluation for order 1)

    Returns
    -------
    J : ndarray, shape (m, n)
    """
    if h is None:
        h = step_size(order)
    elif order not in _STEP_EXPONENTS:
        raise ValueError(f"Unsupported order: {order} (expected 1, 2 or 4)")

    x = np.asarray(x, dtype=float)
    n = x.size
    columns = []
    if order == 1 and fx is None:
        fx = np.asarray(residuals(x), dtype=float)

    with np.errstate(all='ignore'):
        for j in range(n):
            delta = np.zeros(n)
            delta[j] = h
            if order == 1:
                df = (np.asarray(residuals(x + delta)) - fx) / h
            elif order == 2:
                df = (np.asarray(residuals(x + delta)) - np.asarray(residuals(x - delta))) / (2 * h)
            else:
                fph = np.asarray(residuals(x + delta))
                fmh = np.asarray(residuals(x - delta))
                fp2h = np.asarray(residuals(x + 2 * delta))
                fm2h = np.asarray(residuals(x - 2 * delta))
                df = (fm2h - 8 * fmh + 8 * fph - fp2h) / (12 * h)
            columns.append(df)

    return np.column_stack(columns)
