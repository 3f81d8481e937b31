"""
Analysis workflow handlers for the tube CLI.

Each handler corresponds to a step of the pipeline:
- run_initial_estimation: heuristic initial estimates only (--no-fit)
- run_model_fitting: estimation and refinement
- run_trace_plot: optimizer history plot (--trace)
- run_distortion_analysis: THD of the fitted model (--thd)
"""

import argparse
import logging
from typing import Optional, Tuple

import matplotlib.pyplot as plt

from .logging import log_separator
from .utils import TubeAnalysisError, LoadedMeasurements, save_figure, parse_initial_estimates
from ..analysis import total_harmonic_distortion
from ..estimates import (
    estimate_triode_parameters,
    estimate_pentode_parameters,
    estimate_derk_parameters,
    estimate_derke_parameters,
)
from ..fitting import ModelFitResult, fit_model
from ..models.parameters import InitialEstimates, ModelParameterSet, model_currents
from ..optimization import FitConfiguration
from ..visualization import plot_plate_characteristics, plot_fit_trace

logger = logging.getLogger(__name__)


def _initial_estimates(args: argparse.Namespace) -> Optional[InitialEstimates]:
    try:
        return parse_initial_estimates(args.initial)
    except ValueError as e:
        raise TubeAnalysisError(str(e)) from e


def _secondary_emission(model: str, args: argparse.Namespace) -> bool:
    if args.secondary_emission and model not in ('derk', 'derke'):
        logger.warning(f"--secondary-emission ignored for the {model} model")
        return False
    return args.secondary_emission


def log_parameters(parameters: ModelParameterSet) -> None:
    """Log a parameter set, one parameter per line."""
    for name, value in parameters.as_dict().items():
        logger.info(f"  {name:8s} = {value:.6g}")


# =============================================================================
# Initial Estimation
# =============================================================================

def run_initial_estimation(
    data: LoadedMeasurements,
    model: str,
    args: argparse.Namespace
) -> Tuple[ModelParameterSet, Optional[plt.Figure]]:
    """
    Compute initial estimates without refinement.

    Returns
    -------
    parameters : ModelParameterSet
        Initial estimates
    fig : Figure or None
        Plate curves with the estimated model
    """
    log_separator()
    logger.info(f"Initial estimates ({model} model)")
    log_separator()

    initial = _initial_estimates(args)
    maximum_plate_dissipation = data.maximum_plate_dissipation
    secondary_emission = _secondary_emission(model, args)

    if model == 'triode':
        parameters = estimate_triode_parameters(data.files, maximum_plate_dissipation, initial)
    elif model == 'pentode':
        parameters = estimate_pentode_parameters(data.files, maximum_plate_dissipation, initial)
    elif model == 'derk':
        parameters = estimate_derk_parameters(data.files, maximum_plate_dissipation,
                                              secondary_emission, initial)
    else:
        parameters = estimate_derke_parameters(data.files, maximum_plate_dissipation,
                                               secondary_emission, initial)

    log_parameters(parameters)

    fig = plot_plate_characteristics(data.files, parameters,
                                     title=f"{data.title}: {model} initial estimates")
    save_figure(fig, args.save, 'curves', args.format)
    return parameters, fig


# =============================================================================
# Model Fitting
# =============================================================================

def run_model_fitting(
    data: LoadedMeasurements,
    model: str,
    args: argparse.Namespace
) -> Tuple[ModelFitResult, Optional[plt.Figure]]:
    """
    Estimate and refine model parameters.

    Parameters
    ----------
    data : LoadedMeasurements
        Measurements and dissipation gate
    model : str
        Model family
    args : argparse.Namespace
        CLI arguments (uses: initial, secondary_emission, algorithm,
        max_iterations, tolerance, trace, save, format)

    Returns
    -------
    result : ModelFitResult
        Fit result
    fig : Figure or None
        Plate curves with the fitted model
    """
    log_separator()
    logger.info(f"Fitting {model} model ({args.algorithm})")
    log_separator()

    if args.max_iterations < 1:
        raise TubeAnalysisError(f"--max-iterations must be positive, got {args.max_iterations}")

    config = FitConfiguration(max_iterations=args.max_iterations,
                              relative_threshold=args.tolerance)
    result = fit_model(
        model, data.files, data.maximum_plate_dissipation,
        secondary_emission=_secondary_emission(model, args),
        initial=_initial_estimates(args),
        algorithm=args.algorithm,
        config=config,
        trace_enabled=args.trace,
    )

    logger.info("Parameters:")
    log_parameters(result.parameters)
    logger.info(f"RMSE: {result.rmse:.4g} mA (initial estimate: {result.initial_rmse:.4g} mA)")
    logger.info(f"Iterations: {result.iterations}")
    if not result.converged:
        reason = f" ({result.message})" if result.message else ""
        logger.warning(f"Optimizer did not converge{reason}")

    fig = plot_plate_characteristics(data.files, result.parameters,
                                     title=f"{data.title}: {model} fit "
                                           f"(RMSE {result.rmse:.3g} mA)")
    save_figure(fig, args.save, 'curves', args.format)
    return result, fig


def run_trace_plot(result: ModelFitResult, args: argparse.Namespace) -> Optional[plt.Figure]:
    """Plot the optimizer history when tracing was enabled."""
    if result.trace is None:
        return None
    logger.info(f"Trace: {result.trace.iterations} iterations, "
                f"{result.trace.function_calls} function evaluations")
    fig = plot_fit_trace(result.trace, title=f"{result.parameters.model} refinement")
    save_figure(fig, args.save, 'trace', args.format)
    return fig


# =============================================================================
# Distortion
# =============================================================================

def run_distortion_analysis(
    parameters: ModelParameterSet,
    args: argparse.Namespace
) -> Optional[float]:
    """
    Total harmonic distortion of the plate current for a sine on the grid.

    Operating point: args.thd_plate, args.thd_screen (default: plate
    voltage), grid bias args.thd_bias and amplitude args.thd_amplitude.

    Returns
    -------
    thd : float or None
        THD [%], None when --thd is not set
    """
    if not args.thd:
        return None

    if args.thd_amplitude <= 0:
        raise TubeAnalysisError(f"--thd-amplitude must be positive, got {args.thd_amplitude}")

    ep = args.thd_plate
    es = args.thd_screen if args.thd_screen is not None else ep
    bias = args.thd_bias
    amplitude = args.thd_amplitude

    def plate_current(signal: float) -> float:
        return float(model_currents(parameters, ep, bias + amplitude * signal, es).ip)

    try:
        thd = total_harmonic_distortion(plate_current)
    except ValueError as e:
        raise TubeAnalysisError(f"Cannot compute THD at this operating point: {e}") from e

    log_separator()
    logger.info("Harmonic distortion")
    log_separator()
    logger.info(f"Operating point: Ep = {ep:g} V, Es = {es:g} V, Eg = {bias:g} V, "
                f"amplitude {amplitude:g} V")
    logger.info(f"THD: {thd:.3f} %")
    return thd
