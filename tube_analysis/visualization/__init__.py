"""
Visualization module for tube measurements and model fits.
"""

from .plots import plot_plate_characteristics, plot_fit_trace

__all__ = [
    'plot_plate_characteristics',
    'plot_fit_trace',
]
