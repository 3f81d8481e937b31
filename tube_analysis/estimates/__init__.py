"""
Initial parameter estimation.

Heuristic estimators deriving starting values for the final model fit
from measurement data. Estimators fill only the unset fields of an
InitialEstimates; the pipelines chain them per model family.
"""

from .triode import (
    plate_swept_triode_files,
    estimate_mu,
    estimate_ex_kg1,
    estimate_kp,
    estimate_kvb,
)
from .pentode import (
    DERK,
    DERKE,
    estimate_kg2,
    estimate_a,
    estimate_alpha_s_beta,
)
from .secondary_emission import (
    ScreenCurrentFeaturePoint,
    find_screen_current_feature_point,
    screen_current_feature_points,
    estimate_secondary_emission_parameters,
    estimate_derk_s,
    estimate_derke_s,
)
from .pipelines import (
    estimate_triode_parameters,
    estimate_pentode_parameters,
    estimate_derk_parameters,
    estimate_derke_parameters,
)

__all__ = [
    # Triode
    'plate_swept_triode_files',
    'estimate_mu',
    'estimate_ex_kg1',
    'estimate_kp',
    'estimate_kvb',
    # Pentode
    'DERK',
    'DERKE',
    'estimate_kg2',
    'estimate_a',
    'estimate_alpha_s_beta',
    # Secondary emission
    'ScreenCurrentFeaturePoint',
    'find_screen_current_feature_point',
    'screen_current_feature_points',
    'estimate_secondary_emission_parameters',
    'estimate_derk_s',
    'estimate_derke_s',
    # Pipelines
    'estimate_triode_parameters',
    'estimate_pentode_parameters',
    'estimate_derk_parameters',
    'estimate_derke_parameters',
]
