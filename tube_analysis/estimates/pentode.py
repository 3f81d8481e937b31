"""
Initial estimates of the pentode parameters (kg2, a, alpha_s, beta).

All estimators need the Koren kernel parameters (mu, ex, kp, kvb) and
fill only fields that are still unset.
"""

import logging
import math
from functools import partial
from typing import List, Optional

import numpy as np

from ..config import (
    LINEARIZED_FIT_CONFIGURATION, ALPHA_S_BETA_POINT_COUNT, ALPHA_S_BETA_START,
    DEFAULT_KG2, DEFAULT_A, DEFAULT_ALPHA_S, DEFAULT_BETA,
)
from ..io.measurements import MeasurementFile, MeasurementType
from ..models.currents import cathode_current
from ..models.errors import MAX_VALUE
from ..models.parameters import InitialEstimates
from ..optimization import OptimizationTrace, powell

logger = logging.getLogger(__name__)

DERK = 'derk'
DERKE = 'derke'

_PLATE_SWEPT_PENTODE_TYPES = (
    MeasurementType.IPIS_VA_VG_VS_VH,
    MeasurementType.IPIS_VA_VS_VG_VH,
)


def _kernel(estimates: InitialEstimates, eg: float, es: float) -> float:
    return cathode_current(eg, es, estimates.kp, estimates.mu, estimates.kvb, estimates.ex)


# =============================================================================
# kg2
# =============================================================================

def estimate_kg2(estimates: InitialEstimates, files: List[MeasurementFile],
                 maximum_plate_dissipation: float,
                 trace: Optional[OptimizationTrace] = None) -> None:
    """
    Estimate the screen perveance kg2.

    At high plate voltage the screen current is 1000*I/kg2. For every
    plate-swept series with screen current, the highest plate voltage
    point within the dissipation limit gives kg2 = 1000*I/is.

    Raises
    ------
    ValueError
        If kp, mu, kvb or ex are not known
    """
    if estimates.kg2 is not None:
        return
    if estimates.missing('kp', 'mu', 'kvb', 'ex'):
        raise ValueError("Cannot estimate kg2 without kp, mu, kvb and ex")

    values = []
    for file in files:
        if not file.measurement_type.screen_measured:
            continue
        for series in file.series:
            for point in reversed(series.points):
                is_ = point.is_ or 0.0
                if point.total_current * point.ep / 1000.0 >= maximum_plate_dissipation or is_ <= 0:
                    continue
                i = _kernel(estimates, point.eg + file.eg_offset, point.es or 0.0)
                if i > 0:
                    kg2 = i * 1000.0 / is_
                    values.append(abs(kg2))
                    if trace is not None:
                        trace.add_estimate('kg2', 'average', {'file': file.name, 'kg2': kg2})
                    break

    if not values:
        logger.debug(f"kg2: no screen current data, using default {DEFAULT_KG2}")
    estimates.kg2 = float(np.mean(values)) if values else DEFAULT_KG2


# =============================================================================
# a
# =============================================================================

def estimate_a(estimates: InitialEstimates, files: List[MeasurementFile],
               maximum_plate_dissipation: float,
               trace: Optional[OptimizationTrace] = None) -> None:
    """
    Estimate the plate current slope a of the Derk models.

    Scanning each plate curve from the highest plate voltage down, the
    first pair of points with rising plate current gives
    a = kg1*dip*1e-3/(I*dep), the slope in the saturated region.

    Raises
    ------
    ValueError
        If mu, kp, kg1, ex or kvb are not known
    """
    if estimates.a is not None:
        return
    if estimates.missing('mu', 'kp', 'kg1', 'ex', 'kvb'):
        raise ValueError("Cannot estimate a without mu, kp, kg1, ex and kvb")

    values = []
    for file in files:
        if file.measurement_type not in _PLATE_SWEPT_PENTODE_TYPES:
            continue
        for series in file.series:
            series.sort_by_plate_voltage()
            upper = lower = None
            for point in reversed(series.points):
                if point.plate_dissipation >= maximum_plate_dissipation:
                    continue
                # upper is the previous (higher ep) point
                upper, lower = lower, point
                if upper is None or upper.ip <= lower.ip or upper.ep == lower.ep:
                    continue
                i = _kernel(estimates, upper.eg + file.eg_offset, upper.es or 0.0)
                with np.errstate(all='ignore'):
                    a = estimates.kg1 * (lower.ip - upper.ip) * 1e-3 / (i * (lower.ep - upper.ep))
                if math.isfinite(a):
                    values.append(abs(a))
                    if trace is not None:
                        trace.add_estimate('a', 'average',
                                           {'file': file.name, 'a': a, 'eg': series.eg + file.eg_offset})
                break

    if not values:
        logger.debug(f"a: no plate curve with rising current, using default {DEFAULT_A}")
    estimates.a = float(np.mean(values)) if values else DEFAULT_A


# =============================================================================
# alpha_s, beta
# =============================================================================

def _line_objective(x_values, y_values, x) -> float:
    with np.errstate(all='ignore'):
        value = float(np.sum(np.square(y_values - (x[0] * x_values + x[1]))))
    return value if math.isfinite(value) else MAX_VALUE / 2


def _linearize(family: str, ep: float, ratio: float):
    """Transform (ep, is/ip ratio) into the family's straight line."""
    if family == DERKE:
        # ln(ratio - 1) = ln(alpha_s) - beta^1.5 * ep^1.5
        return ep ** 1.5, math.log(ratio - 1.0)
    # 1/(ratio - 1) = (beta/alpha_s) * ep + 1/alpha_s
    return ep, 1.0 / (ratio - 1.0)


def estimate_alpha_s_beta(estimates: InitialEstimates, files: List[MeasurementFile],
                          maximum_plate_dissipation: float, family: str = DERKE,
                          trace: Optional[OptimizationTrace] = None) -> None:
    """
    Estimate the screen current split alpha_s and knee sharpness beta.

    Without secondary emission the Derk screen to cathode current ratio is
    is*1e-3*kg2/I = 1 + alpha_s*knee(ep). On the lowest plate voltage
    points of each plate curve this is linearized and fitted as a line:

    - Derk:   1/(ratio - 1) = a*ep + b        -> alpha_s = |1/b|, beta = |alpha_s*a|
    - Derk-E: ln(ratio - 1) = a*ep^1.5 + b    -> alpha_s = exp(b), beta = |a|^(2/3)

    (a, b) are averaged over all converged curves before back
    substitution. Without any converged curve alpha_s = 5 and
    beta = 0.001 are used.

    Parameters
    ----------
    family : str
        'derk' or 'derke'

    Raises
    ------
    ValueError
        If kp, mu, kvb, ex or kg2 are not known, or family is unknown
    """
    if family not in (DERK, DERKE):
        raise ValueError(f"Unknown model family '{family}' (expected 'derk' or 'derke')")
    if estimates.alpha_s is not None and estimates.beta is not None:
        return
    if estimates.missing('kp', 'mu', 'kvb', 'ex', 'kg2'):
        raise ValueError("Cannot estimate alpha_s and beta without kp, mu, kvb, ex and kg2")

    slopes, intercepts = [], []
    for file in files:
        if not file.measurement_type.screen_measured:
            continue
        for series in file.series:
            series.sort_by_plate_voltage()
            line = []
            for point in series.points:
                if len(line) >= ALPHA_S_BETA_POINT_COUNT:
                    break
                if not point.is_ or not point.es or point.plate_dissipation >= maximum_plate_dissipation:
                    continue
                i = _kernel(estimates, point.eg + file.eg_offset, point.es)
                if i <= 0:
                    continue
                ratio = point.is_ * 1e-3 * estimates.kg2 / i
                if ratio > 1:
                    line.append(_linearize(family, point.ep, ratio))
            if len(line) < 2:
                continue

            x_values, y_values = (np.array(v, dtype=float) for v in zip(*line))
            result = powell(list(ALPHA_S_BETA_START), partial(_line_objective, x_values, y_values),
                            LINEARIZED_FIT_CONFIGURATION)
            if result.converged:
                slope, intercept = float(result.x[0]), float(result.x[1])
                slopes.append(slope)
                intercepts.append(intercept)
                if trace is not None:
                    entry = {'file': file.name, 'a': slope, 'b': intercept,
                             'eg': series.eg + file.eg_offset}
                    trace.add_estimate('alpha_s', 'average', entry)
                    trace.add_estimate('beta', 'average', entry)

    alpha_s, beta = DEFAULT_ALPHA_S, DEFAULT_BETA
    if slopes:
        slope, intercept = float(np.mean(slopes)), float(np.mean(intercepts))
        with np.errstate(all='ignore'):
            if family == DERKE:
                candidate = (math.exp(min(intercept, 700.0)), abs(slope) ** (2.0 / 3.0))
            else:
                a_s = 1.0 / intercept if intercept != 0 else math.inf
                candidate = (abs(a_s), abs(a_s * slope))
        if all(math.isfinite(v) for v in candidate):
            alpha_s, beta = candidate
    else:
        logger.debug(f"alpha_s, beta: no usable plate curve, using defaults "
                     f"{DEFAULT_ALPHA_S}, {DEFAULT_BETA}")

    if estimates.alpha_s is None:
        estimates.alpha_s = alpha_s
    if estimates.beta is None:
        estimates.beta = beta
