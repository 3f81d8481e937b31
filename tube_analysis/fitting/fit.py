"""
Tube model fitting.

Each family is fitted in two steps:
1. initial estimates from the heuristic pipeline (tube_analysis.estimates)
2. refinement of all parameters against the measurements with either
   Powell's method (default) or Levenberg-Marquardt

Powell works on |x| so parameters stay positive. For the Derk families the
parameters that do not enter the Koren kernel (kg1, kg2, a, alpha_s, beta
and the secondary emission set) are refined first, then all together.
Levenberg-Marquardt works on multipliers of the initial parameters,
starting from all ones.

The refined parameters are never worse than the initial estimate.

Clean design: No logging in core functions beyond DEBUG, all diagnostics
returned as data.
"""

import logging
from dataclasses import dataclass, replace
from functools import partial
from typing import Callable, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from ..config import (
    REFINEMENT_CONFIGURATION, LM_TRIODE_TOLERANCE, LM_PENTODE_TOLERANCE, LM_MAX_ITERATIONS,
)
from ..estimates import (
    estimate_triode_parameters, estimate_pentode_parameters,
    estimate_derk_parameters, estimate_derke_parameters,
)
from ..io.measurements import MeasurementFile
from ..models.errors import (
    ModelError, collect_triode_points, collect_pentode_points,
    triode_points_error, pentode_points_error, derk_points_error, derke_points_error,
    triode_residuals, pentode_residuals, derk_residuals, derke_residuals,
)
from ..models.parameters import (
    InitialEstimates, ModelParameterSet, TriodeParameters, PentodeParameters,
    DerkParameters, DerkEParameters,
)
from ..optimization import FitConfiguration, OptimizationTrace, powell, levenberg_marquardt

logger = logging.getLogger(__name__)

POWELL = 'powell'
LEVENBERG_MARQUARDT = 'levenberg-marquardt'
ALGORITHMS = (POWELL, LEVENBERG_MARQUARDT)

MODELS = ('triode', 'pentode', 'derk', 'derke')

# Vector positions of kg1, kg2, a, alpha_s, beta in Derk parameter vectors
_DERK_PERVEANCE_INDICES = [2, 5, 6, 7, 8]
_DERK_SECONDARY_EMISSION_INDICES = [9, 10, 11, 12, 13]


@dataclass
class ModelFitResult:
    """
    Result of a tube model fit.

    Attributes
    ----------
    parameters : ModelParameterSet
        Refined parameters
    initial_parameters : ModelParameterSet
        Estimates the refinement started from
    converged : bool
        True if the (last) refinement met its stopping criterion
    sse : float
        Sum of squared current errors [mA^2]
    rmse : float
        Root mean square current error [mA]
    initial_rmse : float
        RMSE of the initial estimate [mA]
    iterations : int
        Optimizer iterations over all stages
    algorithm : str
        'powell' or 'levenberg-marquardt'
    trace : OptimizationTrace or None
        Estimator intermediates and optimizer history (when enabled)
    message : str or None
        Why the refinement stopped without convergence
    """
    parameters: ModelParameterSet
    initial_parameters: ModelParameterSet
    converged: bool
    sse: float
    rmse: float
    initial_rmse: float
    iterations: int
    algorithm: str
    trace: Optional[OptimizationTrace] = None
    message: Optional[str] = None

    def __repr__(self) -> str:
        lines = [f"Model Fit Result ({self.parameters.model}, {self.algorithm}):"]
        for name, value in self.parameters.as_dict().items():
            lines.append(f"  {name} = {value:.6g}")
        lines.append(f"  RMSE: {self.rmse:.4g} mA (initial {self.initial_rmse:.4g} mA)")
        lines.append(f"  Converged: {self.converged} after {self.iterations} iterations")
        if self.message:
            lines.append(f"  Message: {self.message}")
        return '\n'.join(lines)


# =============================================================================
# Refinement
# =============================================================================

def _masked_sse(error_function, points, build, base, mask, values) -> float:
    x = base.copy()
    x[mask] = values
    return error_function(points, build(x)).sse


def _scaled_residuals(residual_function, points, build, x0, multipliers) -> NDArray[np.float64]:
    return residual_function(points, build(x0 * multipliers))


def _refine(start: ModelParameterSet, build: Callable, points,
            error_function: Callable[..., ModelError], residual_function: Callable,
            algorithm: str, config: FitConfiguration, stages: Sequence[List[int]],
            lm_tolerance: float, trace: Optional[OptimizationTrace],
            should_stop: Optional[Callable[[], bool]]) -> ModelFitResult:
    x0 = start.to_vector()
    initial_error = error_function(points, start)
    logger.debug(f"Refining {start.model} model ({algorithm}), initial RMSE {initial_error.rmse:.4g}")

    if algorithm == POWELL:
        x = x0.copy()
        iterations = 0
        for number, stage in enumerate(stages, start=1):
            mask = np.asarray(stage, dtype=int)
            objective = partial(_masked_sse, error_function, points, build, x.copy(), mask)
            result = powell(x[mask], objective, config, trace, should_stop)
            x[mask] = result.x
            iterations += result.iterations
            logger.debug(f"Stage {number}/{len(stages)}: sse={result.fx:.6g}, "
                         f"iterations={result.iterations}, converged={result.converged}")
    else:
        objective = partial(_scaled_residuals, residual_function, points, build, x0)
        result = levenberg_marquardt(objective, np.ones(x0.size), lm_tolerance,
                                     LM_MAX_ITERATIONS, trace)
        x = x0 * result.x
        iterations = result.iterations

    parameters = build(x)
    error = error_function(points, parameters)
    if not error.sse <= initial_error.sse:
        parameters, error = start, initial_error

    return ModelFitResult(
        parameters=parameters,
        initial_parameters=start,
        converged=result.converged,
        sse=error.sse,
        rmse=error.rmse,
        initial_rmse=initial_error.rmse,
        iterations=iterations,
        algorithm=algorithm,
        trace=trace,
        message=result.message,
    )


def _prepare(initial: Optional[InitialEstimates], algorithm: str, config: Optional[FitConfiguration],
             trace_enabled: bool):
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm '{algorithm}'. Valid options: {ALGORITHMS}")
    estimates = replace(initial) if initial is not None else InitialEstimates()
    if config is None:
        config = REFINEMENT_CONFIGURATION
    trace = OptimizationTrace() if trace_enabled or config.trace_enabled else None
    return estimates, config, trace


def _build(cls, secondary_emission: bool, x) -> ModelParameterSet:
    if issubclass(cls, DerkParameters):
        return cls.from_vector(np.abs(x), secondary_emission=secondary_emission)
    return cls.from_vector(np.abs(x))


# =============================================================================
# Public API
# =============================================================================

def fit_triode_model(
    files: List[MeasurementFile],
    maximum_plate_dissipation: float,
    initial: Optional[InitialEstimates] = None,
    algorithm: str = POWELL,
    config: Optional[FitConfiguration] = None,
    trace_enabled: bool = False,
    should_stop: Optional[Callable[[], bool]] = None
) -> ModelFitResult:
    """
    Fit the Koren triode model.

    Parameters
    ----------
    files : list of MeasurementFile
        Measurements; only triode and triode-connected files are used
    maximum_plate_dissipation : float
        Points above this plate dissipation [W] are ignored
    initial : InitialEstimates, optional
        Known parameter values, kept as starting values (not modified)
    algorithm : str
        'powell' (default) or 'levenberg-marquardt'
    config : FitConfiguration, optional
        Powell stopping criteria (default: REFINEMENT_CONFIGURATION)
    trace_enabled : bool
        Record estimator intermediates and optimizer history
    should_stop : callable, optional
        Polled between Powell iterations to cancel the fit

    Returns
    -------
    ModelFitResult

    Raises
    ------
    ValueError
        If algorithm is unknown
    """
    estimates, config, trace = _prepare(initial, algorithm, config, trace_enabled)
    start = estimate_triode_parameters(files, maximum_plate_dissipation, estimates, trace)
    points = collect_triode_points(files, maximum_plate_dissipation)
    build = partial(_build, TriodeParameters, False)
    return _refine(start, build, points, triode_points_error, triode_residuals, algorithm,
                   config, [list(range(5))], LM_TRIODE_TOLERANCE, trace, should_stop)


def fit_pentode_model(
    files: List[MeasurementFile],
    maximum_plate_dissipation: float,
    initial: Optional[InitialEstimates] = None,
    algorithm: str = POWELL,
    config: Optional[FitConfiguration] = None,
    trace_enabled: bool = False,
    should_stop: Optional[Callable[[], bool]] = None
) -> ModelFitResult:
    """
    Fit the Koren pentode model.

    Plate and screen currents of pentode files are fitted; the kernel
    estimates come from triode-connected files when present. Parameters
    as in :func:`fit_triode_model`.
    """
    estimates, config, trace = _prepare(initial, algorithm, config, trace_enabled)
    start = estimate_pentode_parameters(files, maximum_plate_dissipation, estimates, trace)
    points = collect_pentode_points(files, maximum_plate_dissipation)
    build = partial(_build, PentodeParameters, False)
    return _refine(start, build, points, pentode_points_error, pentode_residuals, algorithm,
                   config, [list(range(6))], LM_PENTODE_TOLERANCE, trace, should_stop)


def _derk_stages(secondary_emission: bool) -> List[List[int]]:
    size = 14 if secondary_emission else 9
    first = list(_DERK_PERVEANCE_INDICES)
    if secondary_emission:
        first += _DERK_SECONDARY_EMISSION_INDICES
    return [first, list(range(size))]


def fit_derk_model(
    files: List[MeasurementFile],
    maximum_plate_dissipation: float,
    initial: Optional[InitialEstimates] = None,
    secondary_emission: bool = False,
    algorithm: str = POWELL,
    config: Optional[FitConfiguration] = None,
    trace_enabled: bool = False,
    should_stop: Optional[Callable[[], bool]] = None
) -> ModelFitResult:
    """
    Fit the Derk pentode model (hyperbolic knee).

    Parameters
    ----------
    secondary_emission : bool
        Include and fit the secondary emission parameters

    Other parameters as in :func:`fit_triode_model`.
    """
    estimates, config, trace = _prepare(initial, algorithm, config, trace_enabled)
    start = estimate_derk_parameters(files, maximum_plate_dissipation, secondary_emission,
                                     estimates, trace)
    points = collect_pentode_points(files, maximum_plate_dissipation)
    build = partial(_build, DerkParameters, secondary_emission)
    return _refine(start, build, points, derk_points_error, derk_residuals, algorithm,
                   config, _derk_stages(secondary_emission), LM_PENTODE_TOLERANCE, trace, should_stop)


def fit_derke_model(
    files: List[MeasurementFile],
    maximum_plate_dissipation: float,
    initial: Optional[InitialEstimates] = None,
    secondary_emission: bool = False,
    algorithm: str = POWELL,
    config: Optional[FitConfiguration] = None,
    trace_enabled: bool = False,
    should_stop: Optional[Callable[[], bool]] = None
) -> ModelFitResult:
    """
    Fit the Derk-E pentode model (exponential knee).

    Parameters as in :func:`fit_derk_model`.
    """
    estimates, config, trace = _prepare(initial, algorithm, config, trace_enabled)
    start = estimate_derke_parameters(files, maximum_plate_dissipation, secondary_emission,
                                      estimates, trace)
    points = collect_pentode_points(files, maximum_plate_dissipation)
    build = partial(_build, DerkEParameters, secondary_emission)
    return _refine(start, build, points, derke_points_error, derke_residuals, algorithm,
                   config, _derk_stages(secondary_emission), LM_PENTODE_TOLERANCE, trace, should_stop)


def fit_model(model: str, files: List[MeasurementFile], maximum_plate_dissipation: float,
              secondary_emission: bool = False, **kwargs) -> ModelFitResult:
    """
    Fit a model selected by name ('triode', 'pentode', 'derk', 'derke').

    Keyword arguments are passed to the family's fit function.
    """
    if model == 'triode':
        return fit_triode_model(files, maximum_plate_dissipation, **kwargs)
    if model == 'pentode':
        return fit_pentode_model(files, maximum_plate_dissipation, **kwargs)
    if model == 'derk':
        return fit_derk_model(files, maximum_plate_dissipation,
                              secondary_emission=secondary_emission, **kwargs)
    if model == 'derke':
        return fit_derke_model(files, maximum_plate_dissipation,
                               secondary_emission=secondary_emission, **kwargs)
    raise ValueError(f"Unknown model '{model}'. Valid options: {MODELS}")


__all__ = [
    'ModelFitResult',
    'ALGORITHMS',
    'MODELS',
    'POWELL',
    'LEVENBERG_MARQUARDT',
    'fit_triode_model',
    'fit_pentode_model',
    'fit_derk_model',
    'fit_derke_model',
    'fit_model',
]
