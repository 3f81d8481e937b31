"""
Initial estimates of the secondary emission parameters (s, alpha_p,
lambda_, v, w) of the Derk models.

Secondary emission shows as a feature (local extremum or inflection) in
the screen current of plate curves measured at fixed screen voltage. On
such a curve the screen current in excess of the model without secondary
emission is

    excess(ep) = is*1e-3*kg2/I - (1 + alpha_s*knee(ep))
               = s*ep*(1 + tanh(-alpha_p*(ep - epmax)))

Fitting (s, epmax) per curve gives epmax, which follows
epmax = es/lambda - v*eg - w; solving the same relation at the feature
point gives s.
"""

import logging
import math
from dataclasses import dataclass
from functools import partial
from typing import List, Optional

import numpy as np

from ..config import SUBFIT_CONFIGURATION, DEFAULT_ALPHA_P, DEFAULT_S
from ..io.measurements import MeasurementFile, MeasurementPoint
from ..models.currents import cathode_current, derk_knee, derke_knee
from ..models.errors import MAX_VALUE
from ..models.parameters import InitialEstimates
from ..optimization import OptimizationTrace, powell
from .pentode import DERK, DERKE

logger = logging.getLogger(__name__)

INFLECTION_POINT = 'Inflection Point'
LOCAL_MAXIMUM = 'Local Maximum'
LOCAL_MINIMUM = 'Local Minimum'


@dataclass(frozen=True)
class ScreenCurrentFeaturePoint:
    """
    Screen current feature located on a plate curve.

    Attributes
    ----------
    feature_type : str
        'Inflection Point', 'Local Maximum' or 'Local Minimum'
    epmax : float
        Plate voltage of the secondary emission peak [V]
    eg : float
        Grid voltage including offset [V]
    is_, ip : float
        Measured currents [mA]
    ep, es : float
        Measured voltages [V]
    """
    feature_type: str
    epmax: float
    eg: float
    is_: float
    ip: float
    ep: float
    es: float


def find_screen_current_feature_point(points: List[MeasurementPoint]) -> Optional[MeasurementPoint]:
    """
    First point where the screen current slope changes sign or decreases.

    Points must be sorted by plate voltage. Returns the point before the
    change, or None for a monotonic curve with non-decreasing slope.
    """
    feature = _find_feature(points)
    return feature[0] if feature is not None else None


def _find_feature(points: List[MeasurementPoint]):
    if len(points) < 3:
        return None
    last_slope = 0.0
    previous = points[0]
    for k in range(1, len(points)):
        point = points[k]
        dep = point.ep - previous.ep
        if dep == 0:
            continue
        slope = ((point.is_ or 0.0) - (previous.is_ or 0.0)) / dep
        if k > 1:
            if slope * last_slope <= 0:
                return previous, LOCAL_MAXIMUM if last_slope > 0 else LOCAL_MINIMUM
            if slope < last_slope:
                return previous, INFLECTION_POINT
        last_slope = slope
        previous = point
    return None


def _screen_current_excess(estimates: InitialEstimates, knee, eg, es, ep, is_):
    """is*1e-3*kg2/I - (1 + alpha_s*knee(ep)); NaN where the kernel is zero."""
    i = np.asarray(cathode_current(eg, es, estimates.kp, estimates.mu, estimates.kvb, estimates.ex))
    with np.errstate(all='ignore'):
        ratio = np.where(i > 0, np.asarray(is_, dtype=float) * 1e-3 * estimates.kg2 / i, np.nan)
        return ratio - (1.0 + estimates.alpha_s * np.asarray(knee(ep, estimates.beta)))


def _emission_factor(ep, alpha_p: float, epmax):
    """ep*(1 + tanh(-alpha_p*(ep - epmax))), the secondary emission term per unit s."""
    with np.errstate(all='ignore'):
        return ep * (1.0 + np.tanh(-alpha_p * (ep - epmax)))


def _epmax_objective(ep, excess, alpha_p, x) -> float:
    s, epmax = abs(x[0]), abs(x[1])
    with np.errstate(all='ignore'):
        value = float(np.sum(np.square(excess - s * _emission_factor(ep, alpha_p, epmax))))
    return value if math.isfinite(value) else MAX_VALUE / 2


def _vw_objective(epmax, eg, es, lambda_, x) -> float:
    with np.errstate(all='ignore'):
        value = float(np.sum(np.square(epmax - (es / lambda_ - x[0] * eg - x[1]))))
    return value if math.isfinite(value) else MAX_VALUE / 2


def _alpha_p(estimates: InitialEstimates) -> float:
    return estimates.alpha_p if estimates.alpha_p is not None else DEFAULT_ALPHA_P


def screen_current_feature_points(estimates: InitialEstimates, files: List[MeasurementFile],
                                  family: str = DERKE) -> List[ScreenCurrentFeaturePoint]:
    """
    Locate secondary emission features and fit their epmax.

    Features are searched in plate curves measured at fixed screen
    voltage. For each curve with a feature, (s, epmax) are fitted to the
    screen current excess of all its points, starting from half the
    low voltage plateau of excess/ep and the plate voltage where
    excess/ep falls below it. Curves without positive excess are
    skipped; a fit is kept when it converges with epmax inside the
    measured plate voltage range.

    Sorts series points by plate voltage (in place).
    """
    knee = derke_knee if family == DERKE else derk_knee
    alpha_p = _alpha_p(estimates)
    result = []
    for file in files:
        if not file.measurement_type.screen_fixed:
            continue
        for series in file.series:
            series.sort_by_plate_voltage()
            feature = _find_feature(series.points)
            if feature is None:
                continue
            point, feature_type = feature

            usable = [p for p in series.points if p.is_ is not None and p.es and p.ep > 0]
            if len(usable) < 3:
                continue
            ep = np.array([p.ep for p in usable], dtype=float)
            excess = _screen_current_excess(
                estimates, knee,
                np.array([p.eg + file.eg_offset for p in usable], dtype=float),
                np.array([p.es for p in usable], dtype=float),
                ep, np.array([p.is_ for p in usable], dtype=float))
            finite = np.isfinite(excess)
            if np.count_nonzero(finite) < 3:
                continue
            ep, excess = ep[finite], excess[finite]

            s_start = float(np.max(excess / ep)) / 2.0
            if not s_start > 0:
                continue
            below = np.nonzero(excess / ep < s_start)[0]
            epmax_start = float(ep[below[0]]) if below.size else point.ep
            fit = powell([s_start, epmax_start], partial(_epmax_objective, ep, excess, alpha_p),
                         SUBFIT_CONFIGURATION)
            if not fit.converged:
                continue
            s, epmax = abs(float(fit.x[0])), abs(float(fit.x[1]))
            if s > 0 and epmax <= ep[-1]:
                result.append(ScreenCurrentFeaturePoint(feature_type, epmax, point.eg + file.eg_offset,
                                                        point.is_ or 0.0, point.ip, point.ep,
                                                        point.es or 0.0))
    return result


def _estimate_s(estimates: InitialEstimates, feature_points: List[ScreenCurrentFeaturePoint],
                knee, trace: Optional[OptimizationTrace]) -> None:
    if estimates.s is not None:
        return
    if estimates.missing('kp', 'mu', 'kvb', 'ex', 'kg2', 'alpha_s', 'beta'):
        raise ValueError("Cannot estimate s without kp, mu, kvb, ex, kg2, alpha_s and beta")

    alpha_p = _alpha_p(estimates)
    values = []
    for p in feature_points:
        excess = float(_screen_current_excess(estimates, knee, p.eg, p.es, p.ep, p.is_))
        factor = float(_emission_factor(p.ep, alpha_p, p.epmax))
        if not factor > 0:
            continue
        # at ep = epmax this is excess/epmax
        s = excess / factor
        if math.isfinite(s) and s >= 0:
            values.append(s)
            if trace is not None:
                trace.add_estimate('secondary_emission', 's_average', s)

    estimates.s = float(np.mean(values)) if values else DEFAULT_S
    if trace is not None:
        trace.set_estimate('secondary_emission', 's', estimates.s)


def estimate_derk_s(estimates: InitialEstimates, feature_points: List[ScreenCurrentFeaturePoint],
                    trace: Optional[OptimizationTrace] = None) -> None:
    """Estimate s for the Derk model (knee 1/(1 + beta*ep))."""
    _estimate_s(estimates, feature_points, derk_knee, trace)


def estimate_derke_s(estimates: InitialEstimates, feature_points: List[ScreenCurrentFeaturePoint],
                     trace: Optional[OptimizationTrace] = None) -> None:
    """Estimate s for the Derk-E model (exponential knee)."""
    _estimate_s(estimates, feature_points, derke_knee, trace)


def estimate_secondary_emission_parameters(estimates: InitialEstimates,
                                           files: List[MeasurementFile],
                                           family: str = DERKE,
                                           trace: Optional[OptimizationTrace] = None) -> None:
    """
    Estimate s, alpha_p, lambda_, v and w.

    lambda_ defaults to mu and alpha_p to 0.05. When any of v, w or s is
    unset, screen current features are located, (v, w) are fitted to
    epmax = es/lambda - v*eg - w (zero when the fit fails) and s is
    solved from the screen current excess at each feature point.

    Parameters
    ----------
    family : str
        'derk' or 'derke'

    Raises
    ------
    ValueError
        If a Derk parameter needed by the model is not known
    """
    if family not in (DERK, DERKE):
        raise ValueError(f"Unknown model family '{family}' (expected 'derk' or 'derke')")
    if estimates.lambda_ is None:
        if estimates.mu is None:
            raise ValueError("Cannot estimate lambda without mu")
        estimates.lambda_ = estimates.mu
    if estimates.alpha_p is None:
        estimates.alpha_p = DEFAULT_ALPHA_P
    if not estimates.missing('v', 'w', 's'):
        return
    if estimates.missing('kp', 'mu', 'kvb', 'ex', 'kg1', 'kg2', 'a', 'alpha_s', 'beta'):
        raise ValueError("Cannot estimate secondary emission without the Derk model parameters")

    feature_points = screen_current_feature_points(estimates, files, family)
    if trace is not None:
        trace.set_estimate('secondary_emission', 'screen_current_feature_points', feature_points)
    logger.debug(f"Secondary emission: {len(feature_points)} screen current feature point(s)")

    if estimates.v is None or estimates.w is None:
        v, w = 0.0, 0.0
        if feature_points:
            epmax, eg, es = (np.array(values, dtype=float) for values in
                             zip(*[(p.epmax, p.eg, p.es) for p in feature_points]))
            fit = powell([0.0, 0.0], partial(_vw_objective, epmax, eg, es, estimates.lambda_),
                         SUBFIT_CONFIGURATION)
            if fit.converged:
                v, w = float(fit.x[0]), float(fit.x[1])
        if estimates.v is None:
            estimates.v = v
        if estimates.w is None:
            estimates.w = w
        if trace is not None:
            trace.set_estimate('secondary_emission', 'v', abs(estimates.v))
            trace.set_estimate('secondary_emission', 'w', abs(estimates.w))

    if family == DERKE:
        estimate_derke_s(estimates, feature_points, trace)
    else:
        estimate_derk_s(estimates, feature_points, trace)
