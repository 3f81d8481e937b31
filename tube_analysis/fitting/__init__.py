"""
Tube model fitting.

Initial estimation followed by Powell or Levenberg-Marquardt refinement
for the triode, pentode, Derk and Derk-E model families.
"""

from .fit import (
    ModelFitResult,
    ALGORITHMS,
    MODELS,
    POWELL,
    LEVENBERG_MARQUARDT,
    fit_triode_model,
    fit_pentode_model,
    fit_derk_model,
    fit_derke_model,
    fit_model,
)

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
