"""
Electron tube current equations.

All functions are pure and total: they accept scalars or numpy arrays
(broadcast against each other) and never raise for out-of-domain
parameters. Invalid parameter sets produce inf/nan, which the error
functions in :mod:`tube_analysis.models.errors` turn into a sentinel.

Units: voltages [V], currents [mA], perveances kg1/kg2 in the Koren
convention (current in A scaled by 1000).

References
----------
.. [1] N. Koren, "Improved vacuum tube models for SPICE simulations",
       Glass Audio 8 (1996)
.. [2] R. Derk, "Improved pentode model with secondary emission",
       (Derk / Derk-E formulation)
"""

from typing import NamedTuple, Union

import numpy as np
from numpy.typing import NDArray

ArrayLike = Union[float, NDArray[np.float64]]


class PentodeCurrents(NamedTuple):
    """Plate and screen current [mA]."""
    ip: ArrayLike
    is_: ArrayLike


def _output(value):
    """Return python float for 0-d results, array otherwise."""
    if np.ndim(value) == 0:
        return float(value)
    return value


def cathode_current(eg: ArrayLike, es: ArrayLike, kp: float, mu: float,
                    kvb: float, ex: float) -> ArrayLike:
    """
    Koren cathode current kernel.

    E1 = es/kp * ln(1 + exp(kp*(1/mu + eg/sqrt(kvb + es^2))))
    I = E1^ex for E1 > 0, exactly 0 otherwise.

    Parameters
    ----------
    eg : float or ndarray
        Grid voltage [V]
    es : float or ndarray
        Screen voltage [V] (plate voltage for a triode)
    kp, mu, kvb, ex : float
        Koren parameters

    Returns
    -------
    float or ndarray
        Kernel value (not yet divided by a perveance)
    """
    eg = np.asarray(eg, dtype=float)
    es = np.asarray(es, dtype=float)
    with np.errstate(all='ignore'):
        # softplus without overflow for large arguments
        e1 = es * np.logaddexp(0.0, kp * (1.0 / mu + eg / np.sqrt(kvb + es * es))) / kp
        positive = e1 > 0
        value = np.where(positive, np.power(np.where(positive, e1, 1.0), ex), 0.0)
    return _output(value)


def triode_model(ep: ArrayLike, eg: ArrayLike, kp: float, mu: float,
                 kvb: float, ex: float, kg1: float) -> ArrayLike:
    """
    Koren triode plate current [mA].

    Examples
    --------
    >>> round(triode_model(1, 2, 3, 4, 5, 6, 7), 6)
    226.471016
    """
    i = cathode_current(eg, ep, kp, mu, kvb, ex)
    with np.errstate(all='ignore'):
        return _output(1000.0 * np.asarray(i) / kg1)


def pentode_model(ep: ArrayLike, eg: ArrayLike, es: ArrayLike, kp: float,
                  mu: float, kvb: float, ex: float, kg1: float,
                  kg2: float) -> PentodeCurrents:
    """
    Koren pentode plate and screen currents [mA].

    The plate current saturates with plate voltage through atan(ep/kvb).
    """
    i = np.asarray(cathode_current(eg, es, kp, mu, kvb, ex))
    with np.errstate(all='ignore'):
        ip = 1000.0 * i * np.arctan(np.asarray(ep, dtype=float) / kvb) / kg1
        is_ = 1000.0 * i / kg2
    return PentodeCurrents(_output(ip), _output(is_))


def derk_alpha(kg1: float, kg2: float, alpha_s: float) -> float:
    """Derived Derk alpha = 1 - kg1*(1 + alpha_s)/kg2 (not fitted)."""
    return 1.0 - kg1 * (1.0 + alpha_s) / kg2


def secondary_emission_current(ep: ArrayLike, eg: ArrayLike, es: ArrayLike,
                               s: float, alpha_p: float, lambda_: float,
                               v: float, w: float) -> ArrayLike:
    """
    Secondary emission factor.

    se = s*ep*(1 + tanh(-alpha_p*(ep - (es/lambda - v*eg - w))))

    The bracketed term es/lambda - v*eg - w is the plate voltage where
    secondary emission peaks (epmax).
    """
    ep = np.asarray(ep, dtype=float)
    with np.errstate(all='ignore'):
        epmax = np.asarray(es, dtype=float) / lambda_ - v * np.asarray(eg, dtype=float) - w
        return _output(s * ep * (1.0 + np.tanh(-alpha_p * (ep - epmax))))


def derk_knee(ep: ArrayLike, beta: float) -> ArrayLike:
    """Derk knee term 1/(1 + beta*ep)."""
    with np.errstate(all='ignore'):
        return _output(1.0 / (1.0 + beta * np.asarray(ep, dtype=float)))


def derke_knee(ep: ArrayLike, beta: float) -> ArrayLike:
    """Derk-E knee term exp(-(beta*ep)^1.5), sign preserving."""
    with np.errstate(all='ignore'):
        x = beta * np.asarray(ep, dtype=float)
        return _output(np.exp(-x * np.sqrt(np.abs(x))))


def _derk_currents(knee, i, ep, eg, es, kg1, kg2, a, alpha_s,
                   secondary_emission, s, alpha_p, lambda_, v, w):
    ep = np.asarray(ep, dtype=float)
    if secondary_emission:
        se = np.asarray(secondary_emission_current(ep, eg, es, s, alpha_p, lambda_, v, w))
    else:
        se = 0.0
    alpha = derk_alpha(kg1, kg2, alpha_s)
    with np.errstate(all='ignore'):
        ip = 1000.0 * i * (1.0 / kg1 - 1.0 / kg2 + a * ep / kg1 - se / kg2
                           - knee * (alpha / kg1 + alpha_s / kg2))
        is_ = 1000.0 * i * (1.0 + alpha_s * knee + se) / kg2
    return PentodeCurrents(_output(ip), _output(is_))


def derk_model(ep: ArrayLike, eg: ArrayLike, es: ArrayLike, kp: float,
               mu: float, kvb: float, ex: float, kg1: float, kg2: float,
               a: float, alpha_s: float, beta: float,
               secondary_emission: bool = False, s: float = 0.0,
               alpha_p: float = 0.0, lambda_: float = 1.0, v: float = 0.0,
               w: float = 0.0) -> PentodeCurrents:
    """
    Derk pentode currents [mA] with hyperbolic knee 1/(1 + beta*ep).

    Parameters
    ----------
    ep, eg, es : float or ndarray
        Plate, grid and screen voltage [V]
    kp, mu, kvb, ex : float
        Koren kernel parameters
    kg1, kg2 : float
        Plate and screen perveance
    a : float
        Linear plate-voltage slope of the plate current
    alpha_s, beta : float
        Screen current split and knee sharpness
    secondary_emission : bool
        Include the secondary emission term
    s, alpha_p, lambda_, v, w : float
        Secondary emission parameters (ignored when the flag is off)

    Returns
    -------
    PentodeCurrents
        (ip, is_) in mA
    """
    i = np.asarray(cathode_current(eg, es, kp, mu, kvb, ex))
    knee = np.asarray(derk_knee(ep, beta))
    return _derk_currents(knee, i, ep, eg, es, kg1, kg2, a, alpha_s,
                          secondary_emission, s, alpha_p, lambda_, v, w)


def derke_model(ep: ArrayLike, eg: ArrayLike, es: ArrayLike, kp: float,
                mu: float, kvb: float, ex: float, kg1: float, kg2: float,
                a: float, alpha_s: float, beta: float,
                secondary_emission: bool = False, s: float = 0.0,
                alpha_p: float = 0.0, lambda_: float = 1.0, v: float = 0.0,
                w: float = 0.0) -> PentodeCurrents:
    """
    Derk-E pentode currents [mA] with exponential knee.

    Same as :func:`derk_model` with knee exp(-beta*ep*sqrt(|beta*ep|)).
    """
    i = np.asarray(cathode_current(eg, es, kp, mu, kvb, ex))
    knee = np.asarray(derke_knee(ep, beta))
    return _derk_currents(knee, i, ep, eg, es, kg1, kg2, a, alpha_s,
                          secondary_emission, s, alpha_p, lambda_, v, w)
