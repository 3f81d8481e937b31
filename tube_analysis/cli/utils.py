"""
Utility functions and dataclasses for the tube CLI.

Contains:
- Exception classes
- Data containers (dataclasses)
- Helper functions (save_figure, parse_initial_estimates)
"""

import logging
from dataclasses import dataclass, fields
from typing import List, Optional

import matplotlib.pyplot as plt

from ..io.measurements import MeasurementFile
from ..models.parameters import InitialEstimates

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class TubeAnalysisError(Exception):
    """Error reported by the CLI (exit code 1)."""
    pass


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class LoadedMeasurements:
    """
    Container for loaded measurements.

    Attributes
    ----------
    files : list of MeasurementFile
        Measurement files
    title : str
        Input file name or "Synthetic data"
    maximum_plate_dissipation : float
        Dissipation gate used for estimation and fitting [W]
    """
    files: List[MeasurementFile]
    title: str
    maximum_plate_dissipation: float


# =============================================================================
# Helper Functions
# =============================================================================

def save_figure(
    fig: Optional[plt.Figure],
    prefix: Optional[str],
    suffix: str,
    fmt: str = 'png'
) -> None:
    """
    Save figure as '<prefix>_<suffix>.<fmt>' if fig and prefix are given.

    Parameters
    ----------
    fig : Figure or None
        Matplotlib figure to save
    prefix : str or None
        File prefix (from --save argument)
    suffix : str
        File suffix (e.g., 'curves', 'trace')
    fmt : str
        Output format: 'png', 'pdf', 'svg', 'eps' (default: 'png')
    """
    if fig is None or prefix is None:
        return

    filepath = f"{prefix}_{suffix}.{fmt}"
    options = {'dpi': 150} if fmt == 'png' else {}
    try:
        fig.savefig(filepath, bbox_inches='tight', **options)
        logger.info(f"Saved: {filepath}")
    except OSError as e:
        logger.error(f"Error saving figure: {e}")


def parse_initial_estimates(text: Optional[str]) -> Optional[InitialEstimates]:
    """
    Parse 'name=value,name=value' into InitialEstimates.

    Parameter names are the InitialEstimates fields (mu, ex, kg1, kp, kvb,
    kg2, a, alpha_s, beta, s, alpha_p, lambda, v, w); 'lambda' is accepted
    for lambda_.

    Raises
    ------
    ValueError
        If a name is unknown or a value is not a number

    Examples
    --------
    >>> parse_initial_estimates("mu=100, kg1=1060").kg1
    1060.0
    """
    if text is None or not text.strip():
        return None

    valid = {f.name for f in fields(InitialEstimates)}
    values = {}
    for item in text.split(','):
        if not item.strip():
            continue
        name, sep, value = item.partition('=')
        name = name.strip()
        if name == 'lambda':
            name = 'lambda_'
        if not sep or name not in valid:
            raise ValueError(f"Invalid initial estimate '{item.strip()}' "
                             f"(expected name=value with name in {sorted(valid)})")
        try:
            values[name] = float(value)
        except ValueError:
            raise ValueError(f"Invalid value for {name}: '{value.strip()}'")
    return InitialEstimates(**values)
