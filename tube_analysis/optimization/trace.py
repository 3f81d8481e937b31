"""
Optimization trace.

A trace records what an optimizer did: every function evaluation (when
enabled), the best point after each outer iteration, and the estimator
intermediates (per-series averages, feature points) of the estimation
pipeline. A trace can be passed to several optimizer runs; each run
appends to it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np
from numpy.typing import NDArray


@dataclass
class TraceSample:
    """Single function evaluation."""
    x: NDArray[np.float64]
    fx: float


@dataclass
class OptimizationTrace:
    """
    Accumulated optimizer history.

    Attributes
    ----------
    iterations : int
        Outer iterations over all runs
    function_calls : int
        Objective evaluations over all runs
    samples : list of TraceSample
        Every evaluation (x, f(x))
    history : list of ndarray
        Best point after each outer iteration
    function_values : list of float
        Best value after each outer iteration
    estimates : dict
        Estimator intermediates keyed by parameter name
    """
    iterations: int = 0
    function_calls: int = 0
    samples: List[TraceSample] = field(default_factory=list)
    history: List[NDArray[np.float64]] = field(default_factory=list)
    function_values: List[float] = field(default_factory=list)
    estimates: Dict[str, Any] = field(default_factory=dict)

    def record(self, x, fx: float) -> None:
        self.function_calls += 1
        self.samples.append(TraceSample(np.array(x, dtype=float), float(fx)))

    def record_iteration(self, x, fx: float) -> None:
        self.history.append(np.array(x, dtype=float))
        self.function_values.append(float(fx))

    def add_estimate(self, name: str, key: str, value: Any) -> None:
        """Append value to estimates[name][key]."""
        self.estimates.setdefault(name, {}).setdefault(key, []).append(value)

    def set_estimate(self, name: str, key: str, value: Any) -> None:
        self.estimates.setdefault(name, {})[key] = value
