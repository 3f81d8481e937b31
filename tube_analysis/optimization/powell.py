"""
Powell direction set minimization.

Derivative-free multivariate minimizer: successive Brent line searches
along a set of directions, replacing the direction of largest decrease by
the average direction moved when that is expected to help (conjugate
direction acceleration). Directions are reset to the coordinate axes
every n iterations to avoid linear dependence.

Clean design: No logging in core functions, all diagnostics returned as data.

References
----------
.. [1] W. H. Press et al., "Numerical Recipes in C", 2nd ed. (1992),
       Chapters 10.1, 10.2 and 10.5
"""

import math
from typing import Callable, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from .options import FitConfiguration, OptimizationResult
from .trace import OptimizationTrace

GOLD = 1.618034
"""Default ratio by which successive bracketing intervals are magnified."""

GLIMIT = 100.0
"""Maximum magnification allowed for a parabolic-fit step."""

TINY = 1e-20
"""Guard against division by zero in parabolic extrapolation."""

CGOLD = 0.381966
"""Golden section ratio used by Brent's method."""

ZEPS = 1e-10
"""Absolute tolerance protecting Brent's method near x = 0."""

BRENT_MAX_ITERATIONS = 500
BRACKET_MAX_ITERATIONS = 1000
LINE_SEARCH_TOLERANCE = 2.0e-4
"""Fractional precision of line minimizations."""


class LineSearchError(RuntimeError):
    """Line search failed (bracketing or Brent iteration limit)."""
    pass


def bracket_minimum(ax: float, bx: float,
                    f: Callable[[float], float]) -> Tuple[float, float, float]:
    """
    Bracket a minimum of a 1-D function.

    Starting from (ax, bx), steps downhill until f(bx) < f(ax) and
    f(bx) <= f(cx).

    Returns
    -------
    (ax, bx, cx) : tuple of float
        Bracketing triplet with bx between ax and cx

    Raises
    ------
    LineSearchError
        If no bracket is found within BRACKET_MAX_ITERATIONS steps
    """
    fa = f(ax)
    fb = f(bx)
    if fb > fa:
        ax, bx = bx, ax
        fa, fb = fb, fa
    cx = bx + GOLD * (bx - ax)
    fc = f(cx)
    iterations = 0
    while fb > fc:
        iterations += 1
        if iterations > BRACKET_MAX_ITERATIONS:
            raise LineSearchError("Too many iterations bracketing minimum")
        r = (bx - ax) * (fb - fc)
        q = (bx - cx) * (fb - fa)
        qr = q - r
        u = bx - ((bx - cx) * q - (bx - ax) * r) / (2.0 * math.copysign(max(abs(qr), TINY), qr))
        ulim = bx + GLIMIT * (cx - bx)
        if (bx - u) * (u - cx) > 0.0:
            # parabolic u between b and c
            fu = f(u)
            if fu < fc:
                return bx, u, cx
            elif fu > fb:
                return ax, bx, u
            u = cx + GOLD * (cx - bx)
            fu = f(u)
        elif (cx - u) * (u - ulim) > 0.0:
            # parabolic u between c and its limit
            fu = f(u)
            if fu < fc:
                bx, cx, u = cx, u, u + GOLD * (u - cx)
                fb, fc, fu = fc, fu, f(u)
        elif (u - ulim) * (ulim - cx) >= 0.0:
            u = ulim
            fu = f(u)
        else:
            u = cx + GOLD * (cx - bx)
            fu = f(u)
        ax, bx, cx = bx, cx, u
        fa, fb, fc = fb, fc, fu
    return ax, bx, cx


def brent_minimize(ax: float, bx: float, cx: float, f: Callable[[float], float],
                   tol: float = LINE_SEARCH_TOLERANCE) -> Tuple[float, float]:
    """
    Isolate a bracketed minimum with Brent's method.

    Parameters
    ----------
    ax, bx, cx : float
        Bracketing triplet (f(bx) below f(ax) and f(cx))
    f : callable
        1-D function
    tol : float
        Fractional precision

    Returns
    -------
    (xmin, fmin) : tuple of float

    Raises
    ------
    LineSearchError
        If BRENT_MAX_ITERATIONS is exceeded
    """
    a, b = min(ax, cx), max(ax, cx)
    x = w = v = bx
    fx = fw = fv = f(x)
    d = e = 0.0
    for _ in range(1, BRENT_MAX_ITERATIONS):
        xm = 0.5 * (a + b)
        tol1 = tol * abs(x) + ZEPS
        tol2 = 2.0 * tol1
        if abs(x - xm) <= tol2 - 0.5 * (b - a):
            return x, fx
        if abs(e) > tol1:
            r = (x - w) * (fx - fv)
            q = (x - v) * (fx - fw)
            p = (x - v) * q - (x - w) * r
            q = 2.0 * (q - r)
            if q > 0.0:
                p = -p
            q = abs(q)
            etemp = e
            e = d
            if abs(p) >= abs(0.5 * q * etemp) or p <= q * (a - x) or p >= q * (b - x):
                e = a - x if x >= xm else b - x
                d = CGOLD * e
            else:
                d = p / q
                u = x + d
                if u - a < tol2 or b - u < tol2:
                    d = math.copysign(tol1, xm - x)
        else:
            e = a - x if x >= xm else b - x
            d = CGOLD * e
        u = x + d if abs(d) >= tol1 else x + math.copysign(tol1, d)
        fu = f(u)
        if fu <= fx:
            if u >= x:
                a = x
            else:
                b = x
            v, w, x = w, x, u
            fv, fw, fx = fw, fx, fu
        else:
            if u < x:
                a = u
            else:
                b = u
            if fu <= fw or w == x:
                v, w = w, u
                fv, fw = fw, fu
            elif fu <= fv or v == x or v == w:
                v = u
                fv = fu
    raise LineSearchError("Too many iterations in brent")


def line_minimize(p: NDArray[np.float64], xi: NDArray[np.float64],
                  f: Callable[[NDArray[np.float64]], float]
                  ) -> Tuple[float, NDArray[np.float64], NDArray[np.float64]]:
    """
    Minimize f along direction xi from p.

    Returns
    -------
    fmin : float
        Function value at the new point
    p_new : ndarray
        Minimum along the line
    displacement : ndarray
        Vector moved, p_new - p
    """
    def f1dim(t: float) -> float:
        with np.errstate(all='ignore'):
            return f(p + t * xi)

    ax, bx, cx = bracket_minimum(0.0, 1.0, f1dim)
    xmin, fmin = brent_minimize(ax, bx, cx, f1dim)
    displacement = xi * xmin
    return fmin, p + displacement, displacement


def _tracked(f, trace: Optional[OptimizationTrace]):
    if trace is None:
        return lambda x: float(f(x))

    def objective(x):
        fx = float(f(x))
        trace.record(x, fx)
        return fx

    return objective


def powell(x0, f: Callable[[NDArray[np.float64]], float],
           config: Optional[FitConfiguration] = None,
           trace: Optional[OptimizationTrace] = None,
           should_stop: Optional[Callable[[], bool]] = None) -> OptimizationResult:
    """
    Minimize f starting at x0 with Powell's direction set method.

    Parameters
    ----------
    x0 : array_like
        Starting point (not modified)
    f : callable
        Objective f(x) -> float
    config : FitConfiguration, optional
        Stopping criteria (default: 100 iterations, relative 1e-6)
    trace : OptimizationTrace, optional
        Existing trace to append to; a new one is created when
        config.trace_enabled is set and no trace is given
    should_stop : callable, optional
        Polled between iterations; returning True stops the search

    Returns
    -------
    OptimizationResult
        Best point found. fx is never worse than f(x0); converged is
        False when stopped by the iteration limit, a failed line search
        or should_stop.

    Examples
    --------
    >>> result = powell([3.0, -2.0], lambda x: (x[0] - 1)**2 + (x[1] + 4)**2)
    >>> result.converged
    True
    """
    if config is None:
        config = FitConfiguration()
    if trace is None and config.trace_enabled:
        trace = OptimizationTrace()

    p = np.array(x0, dtype=float).ravel()
    n = p.size
    if n == 0:
        raise ValueError("Starting point must have at least one dimension")

    objective = _tracked(f, trace)
    start = p.copy()
    f_start = objective(p)
    fret = f_start
    pt = p.copy()
    directions = np.eye(n)
    iteration = 0
    converged = False
    message = None

    try:
        while iteration < config.max_iterations:
            if should_stop is not None and should_stop():
                message = "Cancelled"
                break
            iteration += 1
            fp = fret
            ibig = -1
            delta = 0.0
            for i in range(n):
                fptt = fret
                fret, p, _ = line_minimize(p, directions[:, i].copy(), objective)
                # direction of largest decrease
                if fptt - fret > delta:
                    delta = fptt - fret
                    ibig = i
            if trace is not None:
                trace.record_iteration(p, fret)
            if 2.0 * (fp - fret) <= (config.relative_threshold * (abs(fp) + abs(fret))
                                     + config.absolute_threshold):
                converged = True
                break
            with np.errstate(all='ignore'):
                ptt = 2.0 * p - pt
            xit = p - pt
            pt = p.copy()
            fptt = objective(ptt)
            if fptt < fp and ibig >= 0:
                a = fp - fret - delta
                b = fp - fptt
                t = 2.0 * (fp - 2.0 * fret + fptt) * a * a - delta * b * b
                if t < 0.0:
                    fret, p, xit = line_minimize(p, xit, objective)
                    directions[:, ibig] = directions[:, n - 1]
                    directions[:, n - 1] = xit
            if iteration % n == 0:
                directions = np.eye(n)
        else:
            message = f"Maximum number of iterations ({config.max_iterations}) reached"
    except LineSearchError as e:
        message = str(e)

    if trace is not None:
        trace.iterations += iteration

    if not fret <= f_start:
        p, fret = start, f_start
        converged = False

    return OptimizationResult(x=p, fx=fret, converged=converged, iterations=iteration,
                              trace=trace, message=message)
