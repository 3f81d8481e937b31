"""
Levenberg-Marquardt least squares minimization.

Minimizes F(x) = r(x)^T r(x) / 2 for a residual function r. Each step
solves the damped normal equations

    (J^T J + v I) h = -J^T r

with Gaussian elimination and adapts the damping v from the ratio of
actual to predicted reduction.

Clean design: No logging in core functions, all diagnostics returned as data.

References
----------
.. [1] C. T. Kelley, "Iterative Methods for Optimization", SIAM (1999),
       Algorithms 3.3.4 (trtestlm) and 3.3.5 (levmar)
"""

from typing import Callable, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from .derivative import numeric_jacobian
from .linear import SingularMatrixError, solve_linear_system
from .options import OptimizationResult
from .trace import OptimizationTrace

MU0 = 0.1
"""Reject a trial step when actual/predicted reduction is below this ratio."""

MU_LOW = 0.25
"""Increase damping when the reduction ratio is below this value."""

MU_HIGH = 0.75
"""Decrease damping when the reduction ratio is above this value."""

W_DOWN = 0.5
W_UP = 2.0
V0 = 0.001
"""Smallest non-zero damping; smaller values are set to zero."""

TRIAL_MAX_ITERATIONS = 50


class TrialStepError(RuntimeError):
    """No acceptable trial step found."""
    pass


def _evaluate(residuals, x, trace: Optional[OptimizationTrace]) -> Tuple[NDArray[np.float64], float]:
    r = np.asarray(residuals(x), dtype=float)
    with np.errstate(all='ignore'):
        fx = float(r @ r) / 2.0
    if trace is not None:
        trace.record(x, fx)
    return r, fx


def _damped_step(xc, jacobian, gradient, v) -> NDArray[np.float64]:
    hessian = jacobian.T @ jacobian + v * np.eye(len(xc))
    return xc - solve_linear_system(hessian, gradient)


def _test_trial_step(residuals, xc, fc, jacobian, gradient, xt, rt, ft, v, trace):
    """Accept or shrink the trial step, adjusting the damping v."""
    for _ in range(TRIAL_MAX_ITERATIONS + 1):
        with np.errstate(all='ignore'):
            actual = np.float64(fc - ft)
            predicted = -np.float64(gradient @ (xt - xc)) / 2.0
            ratio = actual / predicted
        if not ratio >= MU0:
            v = max(W_UP * v, V0)
            xt = _damped_step(xc, jacobian, gradient, v)
            rt, ft = _evaluate(residuals, xt, trace)
        elif ratio < MU_LOW:
            return xt, rt, ft, max(2.0 * v, V0)
        else:
            if ratio > MU_HIGH:
                v *= W_DOWN
                if v < V0:
                    v = 0.0
            return xt, rt, ft, v
    raise TrialStepError("Too many iterations testing trial step")


def levenberg_marquardt(
    residuals: Callable[[NDArray[np.float64]], NDArray[np.float64]],
    x0,
    tolerance: float = 1e-6,
    max_iterations: int = 100,
    trace: Optional[OptimizationTrace] = None
) -> OptimizationResult:
    """
    Minimize r(x)^T r(x) / 2 with the Levenberg-Marquardt method.

    Parameters
    ----------
    residuals : callable
        r(x) -> ndarray of shape (m,)
    x0 : array_like
        Starting point
    tolerance : float
        Stop when the gradient norm ||J^T r|| is at or below this value
    max_iterations : int
        Maximum number of iterations
    trace : OptimizationTrace, optional
        Trace to append evaluations and iterations to

    Returns
    -------
    OptimizationResult
        x, fx = r^T r / 2 at x, converged True when the gradient
        criterion was met. A singular system or a failed trial step
        ends the run with converged False.
    """
    xc = np.array(x0, dtype=float).ravel()
    rc, fc = _evaluate(residuals, xc, trace)
    iteration = 0
    message = None
    modulus = np.inf

    try:
        jacobian = numeric_jacobian(residuals, xc, order=1, fx=rc)
        gradient = jacobian.T @ rc
        modulus = float(np.linalg.norm(gradient))
        v = modulus
        if trace is not None:
            trace.record_iteration(xc, fc)

        while np.isfinite(modulus) and modulus > tolerance and iteration < max_iterations:
            iteration += 1
            xt = _damped_step(xc, jacobian, gradient, v)
            rt, ft = _evaluate(residuals, xt, trace)
            xc, rc, fc, v = _test_trial_step(residuals, xc, fc, jacobian, gradient,
                                             xt, rt, ft, v, trace)
            if trace is not None:
                trace.record_iteration(xc, fc)
            jacobian = numeric_jacobian(residuals, xc, order=1, fx=rc)
            gradient = jacobian.T @ rc
            modulus = float(np.linalg.norm(gradient))
    except (SingularMatrixError, TrialStepError) as e:
        message = str(e)

    if trace is not None:
        trace.iterations += iteration

    converged = message is None and bool(np.isfinite(modulus)) and modulus <= tolerance
    if message is None and not converged:
        if np.isfinite(modulus):
            message = f"Maximum number of iterations ({max_iterations}) reached"
        else:
            message = "Gradient is not finite"
    return OptimizationResult(x=xc, fx=fc, converged=converged, iterations=iteration,
                              trace=trace, message=message)
