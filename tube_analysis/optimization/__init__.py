"""
Numerical optimization for tube model fitting.

Submodules:
- linear: Gaussian elimination with partial pivoting
- powell: Powell direction set minimizer (Brent line search)
- levenberg_marquardt: damped least squares
- derivative: finite difference Jacobian
- trace: optimizer history
"""

from .linear import (
    SingularMatrixError,
    gaussian_elimination,
    back_substitution,
    solve_linear_system,
)
from .options import FitConfiguration, OptimizationResult
from .trace import OptimizationTrace, TraceSample
from .powell import (
    LineSearchError,
    bracket_minimum,
    brent_minimize,
    line_minimize,
    powell,
)
from .derivative import numeric_jacobian
from .levenberg_marquardt import levenberg_marquardt

__all__ = [
    # Linear algebra
    'SingularMatrixError',
    'gaussian_elimination',
    'back_substitution',
    'solve_linear_system',
    # Options and results
    'FitConfiguration',
    'OptimizationResult',
    'OptimizationTrace',
    'TraceSample',
    # Powell
    'LineSearchError',
    'bracket_minimum',
    'brent_minimize',
    'line_minimize',
    'powell',
    # Levenberg-Marquardt
    'numeric_jacobian',
    'levenberg_marquardt',
]
