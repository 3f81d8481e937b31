"""
Optimizer options and results.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from .trace import OptimizationTrace


@dataclass(frozen=True)
class FitConfiguration:
    """
    Optimizer stopping criteria.

    Attributes
    ----------
    max_iterations : int
        Maximum number of outer iterations
    relative_threshold : float
        Relative decrease of the objective below which the search stops
    absolute_threshold : float
        Absolute decrease of the objective below which the search stops
    trace_enabled : bool
        Record every evaluation in the trace
    """
    max_iterations: int = 100
    relative_threshold: float = 1e-6
    absolute_threshold: float = 2.220446049250312e-16
    trace_enabled: bool = False


@dataclass
class OptimizationResult:
    """
    Result of an optimizer run.

    Attributes
    ----------
    x : ndarray
        Best point found
    fx : float
        Objective at x
    converged : bool
        True if the stopping criterion was met
    iterations : int
        Outer iterations performed
    trace : OptimizationTrace or None
        Trace (when enabled)
    message : str or None
        Reason for stopping without convergence
    """
    x: NDArray[np.float64]
    fx: float
    converged: bool
    iterations: int
    trace: Optional[OptimizationTrace] = None
    message: Optional[str] = None
