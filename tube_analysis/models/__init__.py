"""
Tube current models, parameter sets and error functions.
"""

from .currents import (
    PentodeCurrents,
    cathode_current,
    triode_model,
    pentode_model,
    derk_model,
    derke_model,
    derk_alpha,
    derk_knee,
    derke_knee,
    secondary_emission_current,
)
from .parameters import (
    SecondaryEmissionParameters,
    TriodeParameters,
    PentodeParameters,
    DerkParameters,
    DerkEParameters,
    ModelParameterSet,
    InitialEstimates,
    model_currents,
)
from .errors import (
    MAX_VALUE,
    INVALID_ERROR,
    ModelError,
    TriodePoints,
    PentodePoints,
    collect_triode_points,
    collect_pentode_points,
    triode_residuals,
    pentode_residuals,
    derk_residuals,
    derke_residuals,
    triode_points_error,
    pentode_points_error,
    derk_points_error,
    derke_points_error,
    triode_model_error,
    pentode_model_error,
    derk_model_error,
    derke_model_error,
)

__all__ = [
    # Currents
    'PentodeCurrents',
    'cathode_current',
    'triode_model',
    'pentode_model',
    'derk_model',
    'derke_model',
    'derk_alpha',
    'derk_knee',
    'derke_knee',
    'secondary_emission_current',
    # Parameters
    'SecondaryEmissionParameters',
    'TriodeParameters',
    'PentodeParameters',
    'DerkParameters',
    'DerkEParameters',
    'ModelParameterSet',
    'InitialEstimates',
    'model_currents',
    # Errors
    'MAX_VALUE',
    'INVALID_ERROR',
    'ModelError',
    'TriodePoints',
    'PentodePoints',
    'collect_triode_points',
    'collect_pentode_points',
    'triode_residuals',
    'pentode_residuals',
    'derk_residuals',
    'derke_residuals',
    'triode_points_error',
    'pentode_points_error',
    'derk_points_error',
    'derke_points_error',
    'triode_model_error',
    'pentode_model_error',
    'derk_model_error',
    'derke_model_error',
]
