"""
Tube Analysis Toolkit
=====================

Parameter estimation for vacuum tube SPICE models (Koren triode and
pentode, Derk and Derk-E pentode with optional secondary emission) from
measured plate and screen curves.

Modules:
- io: Measurement containers, JSON loading and synthetic data
- models: Current equations, parameter sets and error functions
- optimization: Linear solver, Powell and Levenberg-Marquardt minimizers
- estimates: Heuristic initial estimates
- fitting: Estimation + refinement per model family
- analysis: Harmonic distortion
- visualization: Plate curves and optimizer history plots

Version is imported from tube_analysis.version (single source of truth).
"""

from .version import __version__, __version_info__, get_version_string

# I/O
from .io import (
    MeasurementType,
    MeasurementPoint,
    MeasurementSeries,
    MeasurementFile,
    load_measurements_json,
    save_measurements_json,
    generate_triode_measurements,
    generate_pentode_measurements,
)

# Models
from .models import (
    TriodeParameters,
    PentodeParameters,
    DerkParameters,
    DerkEParameters,
    SecondaryEmissionParameters,
    InitialEstimates,
    triode_model,
    pentode_model,
    derk_model,
    derke_model,
    model_currents,
)

# Optimization
from .optimization import (
    FitConfiguration,
    OptimizationResult,
    OptimizationTrace,
    SingularMatrixError,
    solve_linear_system,
    powell,
    levenberg_marquardt,
)

# Estimation and fitting
from .estimates import (
    estimate_triode_parameters,
    estimate_pentode_parameters,
    estimate_derk_parameters,
    estimate_derke_parameters,
)
from .fitting import (
    ModelFitResult,
    fit_triode_model,
    fit_pentode_model,
    fit_derk_model,
    fit_derke_model,
    fit_model,
)

# Analysis
from .analysis import total_harmonic_distortion

# Visualization
from .visualization import plot_plate_characteristics, plot_fit_trace

__all__ = [
    # Version info
    '__version__',
    '__version_info__',
    'get_version_string',
    # I/O
    'MeasurementType',
    'MeasurementPoint',
    'MeasurementSeries',
    'MeasurementFile',
    'load_measurements_json',
    'save_measurements_json',
    'generate_triode_measurements',
    'generate_pentode_measurements',
    # Models
    'TriodeParameters',
    'PentodeParameters',
    'DerkParameters',
    'DerkEParameters',
    'SecondaryEmissionParameters',
    'InitialEstimates',
    'triode_model',
    'pentode_model',
    'derk_model',
    'derke_model',
    'model_currents',
    # Optimization
    'FitConfiguration',
    'OptimizationResult',
    'OptimizationTrace',
    'SingularMatrixError',
    'solve_linear_system',
    'powell',
    'levenberg_marquardt',
    # Estimation and fitting
    'estimate_triode_parameters',
    'estimate_pentode_parameters',
    'estimate_derk_parameters',
    'estimate_derke_parameters',
    'ModelFitResult',
    'fit_triode_model',
    'fit_pentode_model',
    'fit_derk_model',
    'fit_derke_model',
    'fit_model',
    # Analysis
    'total_harmonic_distortion',
    # Visualization
    'plot_plate_characteristics',
    'plot_fit_trace',
]
