#!/usr/bin/env python3
"""
Tests for Powell's direction set method and its line search.

Covers:
1. Bracketing and Brent line minimization
2. Convergence on smooth test functions
3. Never-worse guarantee, iteration limit and cancellation
4. Trace recording
"""

import math

import numpy as np
import pytest

from tube_analysis.optimization import (
    FitConfiguration,
    OptimizationTrace,
    bracket_minimum,
    brent_minimize,
    line_minimize,
    powell,
)


def quadratic(x):
    return (x[0] - 1.0) ** 2 + 10.0 * (x[1] + 2.0) ** 2


def rosenbrock(x):
    return 100.0 * (x[1] - x[0] ** 2) ** 2 + (1.0 - x[0]) ** 2


# ---------------------------------------------------------------------------
# Line search
# ---------------------------------------------------------------------------

def test_bracket_contains_minimum():
    f = lambda t: (t - 3.0) ** 2
    ax, bx, cx = bracket_minimum(0.0, 1.0, f)
    assert min(ax, cx) <= 3.0 <= max(ax, cx)
    assert f(bx) <= f(ax) and f(bx) <= f(cx)


def test_brent_finds_parabola_minimum():
    f = lambda t: (t - 3.0) ** 2 + 1.0
    ax, bx, cx = bracket_minimum(0.0, 1.0, f)
    xmin, fmin = brent_minimize(ax, bx, cx, f, 1e-8)
    assert xmin == pytest.approx(3.0, abs=1e-4)
    assert fmin == pytest.approx(1.0, abs=1e-8)


def test_line_minimize_along_direction():
    p = np.array([0.0, 0.0])
    xi = np.array([1.0, 0.0])
    fmin, p_new, displacement = line_minimize(p, xi, quadratic)
    assert p_new[0] == pytest.approx(1.0, abs=1e-3)
    assert p_new[1] == 0.0
    assert fmin == pytest.approx(40.0, abs=1e-5)
    np.testing.assert_allclose(p_new - p, displacement)


# ---------------------------------------------------------------------------
# Powell
# ---------------------------------------------------------------------------

def test_powell_quadratic():
    result = powell([3.0, 4.0], quadratic)
    assert result.converged
    np.testing.assert_allclose(result.x, [1.0, -2.0], atol=1e-2)
    assert result.fx < 1e-4


def test_powell_rosenbrock():
    config = FitConfiguration(max_iterations=500, relative_threshold=1e-10)
    result = powell([-1.2, 1.0], rosenbrock, config)
    np.testing.assert_allclose(result.x, [1.0, 1.0], atol=1e-2)


def test_powell_one_dimensional():
    result = powell([10.0], lambda x: math.cosh(x[0] - 2.0))
    assert result.x[0] == pytest.approx(2.0, abs=1e-2)


def test_powell_never_worse_than_start():
    """Starting at the minimum returns a value no larger than f(x0)."""
    x0 = [1.0, -2.0]
    result = powell(x0, quadratic)
    assert result.fx <= quadratic(np.array(x0))


def test_powell_does_not_modify_start():
    x0 = np.array([3.0, 4.0])
    powell(x0, quadratic)
    np.testing.assert_array_equal(x0, [3.0, 4.0])


def test_powell_iteration_limit():
    config = FitConfiguration(max_iterations=1, relative_threshold=1e-15, absolute_threshold=0.0)
    result = powell([-1.2, 1.0], rosenbrock, config)
    assert not result.converged
    assert result.iterations == 1
    assert "Maximum number of iterations" in result.message
    assert result.fx <= rosenbrock(np.array([-1.2, 1.0]))


def test_powell_cancellation():
    result = powell([3.0, 4.0], quadratic, should_stop=lambda: True)
    assert not result.converged
    assert result.iterations == 0
    assert result.message == "Cancelled"
    np.testing.assert_array_equal(result.x, [3.0, 4.0])


def test_powell_handles_sentinel_values():
    """Objective with a large sentinel outside the valid region."""
    def f(x):
        if x[0] <= 0:
            return 1e3
        return (math.log(x[0]) - 1.0) ** 2
    result = powell([1.0], f)
    assert result.x[0] == pytest.approx(math.e, rel=1e-2)


def test_powell_empty_start_raises():
    with pytest.raises(ValueError):
        powell([], quadratic)


# ---------------------------------------------------------------------------
# Trace
# ---------------------------------------------------------------------------

def test_trace_records_evaluations():
    config = FitConfiguration(trace_enabled=True)
    result = powell([3.0, 4.0], quadratic, config)
    trace = result.trace
    assert trace is not None
    assert trace.function_calls == len(trace.samples) > 0
    assert len(trace.function_values) == result.iterations
    assert trace.iterations == result.iterations
    # best value per iteration never increases
    assert all(b <= a for a, b in zip(trace.function_values, trace.function_values[1:]))


def test_trace_does_not_change_result():
    plain = powell([3.0, 4.0], quadratic)
    traced = powell([3.0, 4.0], quadratic, FitConfiguration(trace_enabled=True))
    np.testing.assert_array_equal(plain.x, traced.x)
    assert plain.fx == traced.fx


def test_existing_trace_is_resumed():
    trace = OptimizationTrace()
    powell([3.0, 4.0], quadratic, trace=trace)
    calls = trace.function_calls
    iterations = trace.iterations
    powell([0.0, 0.0], quadratic, trace=trace)
    assert trace.function_calls > calls
    assert trace.iterations > iterations
