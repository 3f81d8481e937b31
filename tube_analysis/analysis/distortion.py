"""
Harmonic distortion of a tube transfer characteristic.

The characteristic is driven with one cycle of a unit sine wave on the
grid and the plate current spectrum is evaluated with an FFT.
"""

import logging
from typing import Callable

import numpy as np
from scipy.fft import fft

from ..config import THD_SAMPLES

logger = logging.getLogger(__name__)

FUNDAMENTAL_THRESHOLD = 1e-12
"""Smallest |H_1| relative to the largest spectral line."""


def total_harmonic_distortion(transfer_function: Callable[[float], float],
                              samples: int = THD_SAMPLES) -> float:
    """
    Total harmonic distortion of a transfer characteristic.

    Parameters
    ----------
    transfer_function : callable
        Plate current as a function of grid voltage, ip = f(eg)
    samples : int
        Points per cycle (even, ideally a power of 2)

    Returns
    -------
    thd : float
        100 * sqrt(sum |H_k|^2, k = 2..samples/2-1) / |H_1| [%]

    Raises
    ------
    ValueError
        If samples is odd or below 4, or |H_1| vanishes against the
        largest spectral line (e.g. a characteristic cut off over the
        whole swing)

    Notes
    -----
    A linear characteristic gives 0, an ideal square wave
    100*sqrt(pi^2/8 - 1) = 48.34 %.

    Examples
    --------
    >>> round(total_harmonic_distortion(lambda eg: 10 * eg), 9)
    0.0
    """
    if samples < 4 or samples % 2:
        raise ValueError(f"samples must be an even number >= 4, got {samples}")

    t = 2 * np.pi * np.arange(samples) / samples
    currents = np.array([transfer_function(eg) for eg in np.sin(t)], dtype=float)
    spectrum = fft(currents)

    fundamental = np.abs(spectrum[1])
    if not fundamental > FUNDAMENTAL_THRESHOLD * np.max(np.abs(spectrum)):
        raise ValueError("Transfer characteristic has no fundamental (constant or even "
                         "function of the grid voltage), THD is undefined")
    harmonics = spectrum[2:samples // 2]
    thd = 100 * np.sqrt(np.sum(np.abs(harmonics) ** 2)) / fundamental
    logger.debug(f"THD: {thd:.4f}% (fundamental {fundamental:.4g})")
    return float(thd)


__all__ = ['total_harmonic_distortion']
