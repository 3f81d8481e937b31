"""
Configuration constants for tube model estimation and fitting.

Defaults are the fallback values used when a measurement set does not
contain the data an estimator needs. They describe a generic small-signal
tube and are only starting points for the optimizer.

References
----------
.. [1] N. Koren, "Improved vacuum tube models for SPICE simulations",
       Glass Audio 8 (1996)
.. [2] R. Derk, Derk / Derk-E pentode models with secondary emission
"""

from .optimization.options import FitConfiguration

# =============================================================================
# Optimizer Settings
# =============================================================================

SUBFIT_CONFIGURATION = FitConfiguration(max_iterations=500, relative_threshold=1e-4)
"""
Powell settings for the small per-series fits of the estimators.

The sub-fits are low dimensional (1-2 variables) and only need to be
accurate enough to seed the final refinement.
"""

LINEARIZED_FIT_CONFIGURATION = FitConfiguration(max_iterations=100, relative_threshold=1e-6)
"""Powell settings for the linearized alpha_s/beta line fits."""

REFINEMENT_CONFIGURATION = FitConfiguration(max_iterations=100, relative_threshold=1e-3)
"""Powell settings for the final refinement over all parameters."""

LM_TRIODE_TOLERANCE = 1e-5
"""Gradient norm tolerance of the Levenberg-Marquardt triode refinement."""

LM_PENTODE_TOLERANCE = 1e-4
"""
Gradient norm tolerance of the Levenberg-Marquardt pentode refinements.

Pentode residuals include the screen current, so the gradient is larger
in scale than for triodes.
"""

LM_MAX_ITERATIONS = 500
"""Maximum Levenberg-Marquardt iterations."""

# =============================================================================
# Estimator Settings
# =============================================================================

MU_CURRENT_FRACTION = 0.05
"""
Fraction of the maximum plate current at which mu is measured.

The plate voltage where each grid curve reaches 5% of the maximum current
is interpolated; the voltage shift between two grid curves divided by
their grid voltage difference is the amplification factor.
"""

EX_KG1_POINT_COUNT = 6
"""Number of highest plate voltage points used by the ex/kg1 fit."""

KP_POINT_COUNT = 6
"""Number of lowest plate voltage points used by the kp fit."""

ALPHA_S_BETA_POINT_COUNT = 4
"""Number of low plate voltage points used by the alpha_s/beta line fit."""

ALPHA_S_BETA_START = (5.0, 0.05)
"""Starting (slope, intercept) of the alpha_s/beta line fit."""

KVB_CANDIDATES = (50.0, 100.0, 200.0, 400.0, 800.0, 3200.0)
"""Candidate kvb values scanned by the triode kvb estimator."""

PENTODE_KVB = 100.0
"""
kvb used by pentode models when the caller supplies none.

In the pentode equations kvb only shapes the plate current knee through
atan(ep/kvb); 100 is Koren's recommended value.
"""

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_MU = 50.0
DEFAULT_EX = 1.3
DEFAULT_KG1 = 1000.0
DEFAULT_KP = 300.0
DEFAULT_KVB = 1000.0
DEFAULT_KG2 = 1000.0
DEFAULT_A = 0.001
DEFAULT_ALPHA_S = 5.0
DEFAULT_BETA = 0.001
DEFAULT_ALPHA_P = 0.05
DEFAULT_S = 0.05

TRIODE_FALLBACK = {'mu': 50.0, 'ex': 1.2, 'kg1': 1000.0, 'kp': 100.0, 'kvb': 1000.0}
"""Triode parameters used when no triode measurement is available."""

# =============================================================================
# Distortion
# =============================================================================

THD_SAMPLES = 512
"""Samples per sine cycle for the THD spectrum (even, power of 2)."""

__all__ = [
    'SUBFIT_CONFIGURATION',
    'LINEARIZED_FIT_CONFIGURATION',
    'REFINEMENT_CONFIGURATION',
    'LM_TRIODE_TOLERANCE',
    'LM_PENTODE_TOLERANCE',
    'LM_MAX_ITERATIONS',
    'MU_CURRENT_FRACTION',
    'EX_KG1_POINT_COUNT',
    'KP_POINT_COUNT',
    'ALPHA_S_BETA_POINT_COUNT',
    'ALPHA_S_BETA_START',
    'KVB_CANDIDATES',
    'PENTODE_KVB',
    'DEFAULT_MU',
    'DEFAULT_EX',
    'DEFAULT_KG1',
    'DEFAULT_KP',
    'DEFAULT_KVB',
    'DEFAULT_KG2',
    'DEFAULT_A',
    'DEFAULT_ALPHA_S',
    'DEFAULT_BETA',
    'DEFAULT_ALPHA_P',
    'DEFAULT_S',
    'TRIODE_FALLBACK',
    'THD_SAMPLES',
]
