"""
Initial estimates of the Koren triode parameters (mu, ex, kg1, kp, kvb).

Only plate-swept triode measurements (IP_VA_VG_VH, IPIS_VAVS_VG_VH) carry
the information these estimators need; pentode measurements are ignored.
Every estimator leaves fields that are already set untouched.

Clean design: No logging in core functions beyond DEBUG, all
intermediates recorded in the optional trace.
"""

import logging
import math
from functools import partial
from typing import List, Optional

import numpy as np
from numpy.typing import NDArray

from ..config import (
    SUBFIT_CONFIGURATION, MU_CURRENT_FRACTION, EX_KG1_POINT_COUNT,
    KP_POINT_COUNT, KVB_CANDIDATES, DEFAULT_MU, DEFAULT_EX, DEFAULT_KG1,
    DEFAULT_KP, DEFAULT_KVB,
)
from ..io.measurements import MeasurementFile
from ..models.errors import MAX_VALUE, collect_triode_points, triode_points_error
from ..models.parameters import InitialEstimates, TriodeParameters
from ..optimization import OptimizationTrace, powell

logger = logging.getLogger(__name__)


def plate_swept_triode_files(files: List[MeasurementFile]) -> List[MeasurementFile]:
    """Triode files with plate voltage as the swept axis."""
    return [f for f in files
            if f.measurement_type.is_triode and f.measurement_type.plate_swept]


def _sum_of_squares(residuals: NDArray[np.float64]) -> float:
    with np.errstate(all='ignore'):
        value = float(np.sum(np.square(residuals)))
    return value if math.isfinite(value) else MAX_VALUE / 2


# =============================================================================
# mu
# =============================================================================

def estimate_mu(estimates: InitialEstimates, files: List[MeasurementFile],
                trace: Optional[OptimizationTrace] = None) -> None:
    """
    Estimate the amplification factor mu.

    For each grid curve the plate voltage where the total current crosses
    5% of the maximum plate current is found by linear interpolation. The
    two curves closest to eg = 0 give mu = -(ep1 - ep0)/(eg1 - eg0).
    Falls back to DEFAULT_MU when fewer than two crossings exist.

    Sorts series points by plate voltage (in place).
    """
    if estimates.mu is not None:
        return

    files = plate_swept_triode_files(files)
    max_ip = max((p.ip for f in files for s in f.series for p in s.points), default=0.0)
    threshold = MU_CURRENT_FRACTION * max_ip

    crossings = []
    for file in files:
        for series in file.series:
            series.sort_by_plate_voltage()
            lower = upper = None
            for point in series.points:
                lower, upper = upper, point
                if lower is not None and upper.total_current >= threshold:
                    break
            if lower is None or upper is None:
                continue
            i_low, i_up = lower.total_current, upper.total_current
            if i_low <= threshold <= i_up and upper.ep != lower.ep and i_up != i_low:
                slope = (i_up - i_low) / (upper.ep - lower.ep)
                intercept = i_up - slope * upper.ep
                crossings.append(((threshold - intercept) / slope, series.eg + file.eg_offset))

    if trace is not None:
        trace.set_estimate('mu', 'max_ip', max_ip)
        trace.set_estimate('mu', 'ip', threshold)
        trace.set_estimate('mu', 'points', list(crossings))

    mu = None
    crossings.sort(key=lambda c: abs(c[1]))
    if len(crossings) > 1:
        (ep0, eg0) = crossings[0]
        for ep1, eg1 in crossings[1:]:
            if eg1 != eg0:
                mu = -(ep1 - ep0) / (eg1 - eg0)
                break

    if mu is None or not math.isfinite(mu) or mu <= 0:
        logger.debug(f"mu: not enough grid curves, using default {DEFAULT_MU}")
        mu = DEFAULT_MU
    estimates.mu = mu


# =============================================================================
# ex, kg1
# =============================================================================

def _ex_kg1_objective(ep, eg, current, mu, x) -> float:
    ex = abs(x[0])
    kg1 = abs(x[1])
    with np.errstate(all='ignore'):
        residuals = -np.log(current * 1e-3) - np.log(kg1) + ex * np.log(ep / mu + eg)
    return _sum_of_squares(residuals)


def estimate_ex_kg1(estimates: InitialEstimates, files: List[MeasurementFile],
                    maximum_plate_dissipation: float,
                    trace: Optional[OptimizationTrace] = None) -> None:
    """
    Estimate the exponent ex and the perveance kg1.

    Far above cutoff the Koren current reduces to
    I = (ep/mu + eg)^ex / kg1, so ln I is linear in ln(ep/mu + eg).
    Each grid curve is fitted on its highest plate voltage points within
    the dissipation limit; converged fits are averaged.

    Raises
    ------
    ValueError
        If mu is not known
    """
    if estimates.ex is not None and estimates.kg1 is not None:
        return
    if estimates.mu is None:
        raise ValueError("Cannot estimate ex and kg1 without mu")

    mu = estimates.mu
    start = [estimates.ex if estimates.ex is not None else DEFAULT_EX,
             estimates.kg1 if estimates.kg1 is not None else DEFAULT_KG1]
    ex_values, kg1_values = [], []

    for file in plate_swept_triode_files(files):
        for series in file.series:
            series.sort_by_plate_voltage()
            selected = []
            for point in reversed(series.points):
                if len(selected) >= EX_KG1_POINT_COUNT:
                    break
                if point.plate_dissipation >= maximum_plate_dissipation:
                    continue
                eg = point.eg + file.eg_offset
                if point.ep / mu <= -eg:
                    break
                if point.total_current > 0:
                    selected.append((point.ep, eg, point.total_current))
            if len(selected) < 2:
                continue

            ep, eg, current = (np.array(v, dtype=float) for v in zip(*selected))
            result = powell(start, partial(_ex_kg1_objective, ep, eg, current, mu),
                            SUBFIT_CONFIGURATION)
            if result.converged:
                ex, kg1 = abs(result.x[0]), abs(result.x[1])
                ex_values.append(ex)
                kg1_values.append(kg1)
                if trace is not None:
                    series_eg = series.eg + file.eg_offset
                    trace.add_estimate('ex', 'average', {'file': file.name, 'ex': ex, 'eg': series_eg})
                    trace.add_estimate('kg1', 'average', {'file': file.name, 'kg1': kg1, 'eg': series_eg})

    if not ex_values:
        logger.debug(f"ex, kg1: no usable grid curve, using defaults {DEFAULT_EX}, {DEFAULT_KG1}")
    if estimates.ex is None:
        estimates.ex = float(np.mean(ex_values)) if ex_values else DEFAULT_EX
    if estimates.kg1 is None:
        estimates.kg1 = float(np.mean(kg1_values)) if kg1_values else DEFAULT_KG1


# =============================================================================
# kp
# =============================================================================

def _kp_objective(ep, eg, e1, mu, x) -> float:
    kp = abs(x[0])
    with np.errstate(all='ignore'):
        residuals = -np.log(e1) + np.log(ep) - np.log(kp) + kp * (1.0 / mu + eg / ep)
    return _sum_of_squares(residuals)


def estimate_kp(estimates: InitialEstimates, files: List[MeasurementFile],
                maximum_plate_dissipation: float,
                trace: Optional[OptimizationTrace] = None) -> None:
    """
    Estimate kp from the low plate voltage region.

    Near cutoff ln(1 + exp(z)) ~ exp(z), so with E1 recovered from the
    measured current, ln(E1) = ln(ep) - ln(kp) + kp*(1/mu + eg/ep). Each
    grid curve is fitted on its lowest plate voltage points.

    Raises
    ------
    ValueError
        If mu, ex or kg1 are not known
    """
    if estimates.kp is not None:
        return
    if estimates.missing('mu', 'ex', 'kg1'):
        raise ValueError("Cannot estimate kp without mu, ex and kg1")

    mu, ex, kg1 = estimates.mu, estimates.ex, estimates.kg1
    values = []

    for file in plate_swept_triode_files(files):
        for series in file.series:
            series.sort_by_plate_voltage()
            selected = []
            for point in series.points:
                if len(selected) >= KP_POINT_COUNT:
                    break
                current = point.total_current
                if current * point.ep * 1e-3 >= maximum_plate_dissipation or point.ep <= 0:
                    continue
                eg = point.eg + file.eg_offset
                if point.ep / mu > -eg and current > 0:
                    e1 = (current * kg1 / 2000.0) ** (1.0 / ex)
                    if e1 > 0:
                        selected.append((point.ep, eg, e1))
            if len(selected) < 2:
                continue

            ep, eg, e1 = (np.array(v, dtype=float) for v in zip(*selected))
            result = powell([100.0], partial(_kp_objective, ep, eg, e1, mu), SUBFIT_CONFIGURATION)
            if result.converged:
                kp = abs(result.x[0])
                values.append(kp)
                if trace is not None:
                    trace.add_estimate('kp', 'average',
                                       {'file': file.name, 'kp': kp, 'eg': series.eg + file.eg_offset})

    if not values:
        logger.debug(f"kp: no usable grid curve, using default {DEFAULT_KP}")
    estimates.kp = float(np.mean(values)) if values else DEFAULT_KP


# =============================================================================
# kvb
# =============================================================================

def estimate_kvb(estimates: InitialEstimates, files: List[MeasurementFile],
                 maximum_plate_dissipation: float,
                 trace: Optional[OptimizationTrace] = None) -> None:
    """
    Pick kvb from KVB_CANDIDATES by the lowest triode model RMSE.

    Raises
    ------
    ValueError
        If mu, ex, kg1 or kp are not known
    """
    if estimates.kvb is not None:
        return
    if estimates.missing('mu', 'ex', 'kg1', 'kp'):
        raise ValueError("Cannot estimate kvb without kp, mu, ex and kg1")

    points = collect_triode_points(files, maximum_plate_dissipation)
    best_kvb, best_error = DEFAULT_KVB, math.inf
    for candidate in KVB_CANDIDATES:
        parameters = TriodeParameters(estimates.mu, estimates.ex, estimates.kg1, estimates.kp, candidate)
        rmse = triode_points_error(points, parameters).rmse
        if trace is not None:
            trace.add_estimate('kvb', 'average', {'kvb': candidate, 'rmse': rmse})
        if rmse < best_error:
            best_kvb, best_error = candidate, rmse
    estimates.kvb = best_kvb
