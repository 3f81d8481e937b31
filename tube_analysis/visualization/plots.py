"""
Visualization functions for tube measurements and fitted models.
"""

import numpy as np
import matplotlib.pyplot as plt
from typing import List, Optional

from ..io.measurements import MeasurementFile
from ..models.parameters import ModelParameterSet, model_currents
from ..optimization.trace import OptimizationTrace

PLOT_GRID_ALPHA = 0.3
MODEL_CURVE_POINTS = 200


def _series_screen_voltage(file: MeasurementFile, series, ep: np.ndarray):
    """Screen voltage for a model curve of one series."""
    if file.measurement_type.is_triode:
        return ep
    if series.es is not None:
        return np.full_like(ep, series.es)
    known = [p.es for p in series.points if p.es is not None]
    return np.full_like(ep, np.mean(known) if known else 0.0)


def plot_plate_characteristics(
    files: List[MeasurementFile],
    parameters: Optional[ModelParameterSet] = None,
    title: Optional[str] = None,
    figsize: tuple = (12, 5)
) -> plt.Figure:
    """
    Plot measured plate (and screen) curves with optional model curves.

    Parameters
    ----------
    files : list of MeasurementFile
        Measurements to plot
    parameters : ModelParameterSet, optional
        Fitted parameters; model curves are drawn for every series
    title : str, optional
        Custom plot title
    figsize : tuple, optional
        Figure size (default: (12, 5))

    Returns
    -------
    fig : matplotlib.figure.Figure
        Plate current plot, plus screen current plot when any file has
        screen current
    """
    has_screen = any(p.is_ is not None for f in files for s in f.series for p in s.points)
    if has_screen:
        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=figsize)
    else:
        fig, ax1 = plt.subplots(figsize=(8, 6))
        ax2 = None

    colors = plt.rcParams['axes.prop_cycle'].by_key()['color']
    curve = 0
    for file in files:
        for series in file.series:
            if not series.points:
                continue
            color = colors[curve % len(colors)]
            curve += 1
            ep = np.array([p.ep for p in series.points])
            ip = np.array([p.ip for p in series.points])
            label = f"Eg = {series.eg:g} V"
            ax1.plot(ep, ip, 'o', markersize=3, color=color, label=label)
            if ax2 is not None:
                is_ = np.array([p.is_ if p.is_ is not None else np.nan for p in series.points])
                ax2.plot(ep, is_, 'o', markersize=3, color=color, label=label)

            if parameters is not None:
                ep_model = np.linspace(ep.min(), ep.max(), MODEL_CURVE_POINTS)
                eg_model = series.eg + file.eg_offset
                es_model = _series_screen_voltage(file, series, ep_model)
                currents = model_currents(parameters, ep_model, eg_model, es_model)
                model_ip = np.asarray(currents.ip)
                if file.measurement_type.is_triode and parameters.model != 'triode':
                    model_ip = model_ip + np.asarray(currents.is_)
                ax1.plot(ep_model, model_ip, '-', linewidth=1.5, color=color)
                if ax2 is not None and parameters.model != 'triode':
                    ax2.plot(ep_model, currents.is_, '-', linewidth=1.5, color=color)

    ax1.set_xlabel("Plate voltage Ep [V]")
    ax1.set_ylabel("Plate current Ip [mA]")
    if title:
        ax1.set_title(title)
    elif parameters is not None:
        ax1.set_title(f"Plate characteristics ({parameters.model} fit)")
    else:
        ax1.set_title("Plate characteristics")
    ax1.legend(loc='best', fontsize='small')
    ax1.grid(True, alpha=PLOT_GRID_ALPHA)

    if ax2 is not None:
        ax2.set_xlabel("Plate voltage Ep [V]")
        ax2.set_ylabel("Screen current Is [mA]")
        ax2.set_title("Screen characteristics")
        ax2.grid(True, alpha=PLOT_GRID_ALPHA)

    plt.tight_layout()
    return fig


def plot_fit_trace(trace: OptimizationTrace, title: str = "Optimizer progress") -> plt.Figure:
    """
    Plot the best objective value per iteration and every evaluation.

    Parameters
    ----------
    trace : OptimizationTrace
        Trace of a fit run with tracing enabled
    title : str
        Plot title

    Returns
    -------
    fig : matplotlib.figure.Figure
    """
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 4))

    values = np.asarray(trace.function_values, dtype=float)
    if values.size:
        ax1.semilogy(np.arange(1, values.size + 1), np.maximum(values, 1e-300), 'o-', markersize=3)
    ax1.set_xlabel("Iteration")
    ax1.set_ylabel("Objective")
    ax1.set_title(title)
    ax1.grid(True, alpha=PLOT_GRID_ALPHA, which='both')

    samples = np.array([s.fx for s in trace.samples], dtype=float)
    finite = np.isfinite(samples) & (samples > 0)
    if finite.any():
        ax2.semilogy(np.flatnonzero(finite), samples[finite], '.', markersize=2, alpha=0.5)
    ax2.set_xlabel("Function evaluation")
    ax2.set_ylabel("Objective")
    ax2.set_title(f"{trace.function_calls} evaluations")
    ax2.grid(True, alpha=PLOT_GRID_ALPHA, which='both')

    plt.tight_layout()
    return fig
