"""
Objective (error) functions.

Each family has an error function scoring a parameter set against
measurement files. Points are gathered once into arrays (collect_*),
so optimization loops evaluate the vectorized models without walking
the files again.

A point takes part only while its plate dissipation is within the
maximum. Non-finite sums (invalid parameters) are replaced by the
sentinel MAX_VALUE/2, which an optimizer always treats as worse than
any finite value.

Clean design: No logging in core functions, all diagnostics returned as data.
"""

import math
import sys
from dataclasses import dataclass
from typing import List, NamedTuple

import numpy as np
from numpy.typing import NDArray

from ..io.measurements import MeasurementFile
from .currents import triode_model, pentode_model, derk_model, derke_model
from .parameters import TriodeParameters, PentodeParameters, DerkParameters, DerkEParameters

MAX_VALUE = sys.float_info.max
"""Largest representable float; MAX_VALUE/2 is the invalid-parameter sentinel."""


class ModelError(NamedTuple):
    """Sum of squared errors and root mean square error."""
    sse: float
    rmse: float


INVALID_ERROR = ModelError(MAX_VALUE / 2, MAX_VALUE / 2)


@dataclass(frozen=True)
class TriodePoints:
    """Triode points usable under a dissipation limit."""
    ep: NDArray[np.float64]
    eg: NDArray[np.float64]
    current: NDArray[np.float64]

    def __len__(self):
        return len(self.ep)


@dataclass(frozen=True)
class PentodePoints:
    """Pentode points usable under a dissipation limit."""
    ep: NDArray[np.float64]
    eg: NDArray[np.float64]
    es: NDArray[np.float64]
    ip: NDArray[np.float64]
    is_: NDArray[np.float64]

    def __len__(self):
        return len(self.ep)


def collect_triode_points(files: List[MeasurementFile],
                          maximum_plate_dissipation: float) -> TriodePoints:
    """
    Gather triode and triode-connected points.

    The measured current is ip + is (screen tied to plate); points with
    zero total current or above the dissipation limit are skipped.
    """
    ep, eg, current = [], [], []
    for file in files:
        if not file.measurement_type.is_triode:
            continue
        for series in file.series:
            for point in series.points:
                total = point.total_current
                if total > 0 and point.ep * total * 1e-3 <= maximum_plate_dissipation:
                    ep.append(point.ep)
                    eg.append(point.eg + file.eg_offset)
                    current.append(total)
    return TriodePoints(np.array(ep, dtype=float), np.array(eg, dtype=float),
                        np.array(current, dtype=float))


def collect_pentode_points(files: List[MeasurementFile],
                           maximum_plate_dissipation: float) -> PentodePoints:
    """Gather points of files with independent plate and screen voltages."""
    ep, eg, es, ip, is_ = [], [], [], [], []
    for file in files:
        if file.measurement_type.is_triode:
            continue
        for series in file.series:
            for point in series.points:
                if point.plate_dissipation <= maximum_plate_dissipation:
                    ep.append(point.ep)
                    eg.append(point.eg + file.eg_offset)
                    es.append(point.es if point.es is not None else 0.0)
                    ip.append(point.ip)
                    is_.append(point.is_ if point.is_ is not None else 0.0)
    return PentodePoints(*(np.array(v, dtype=float) for v in (ep, eg, es, ip, is_)))


# =============================================================================
# Residuals
# =============================================================================

def triode_residuals(points: TriodePoints, parameters: TriodeParameters) -> NDArray[np.float64]:
    """Model minus measured total current [mA]."""
    p = parameters
    model = np.asarray(triode_model(points.ep, points.eg, p.kp, p.mu, p.kvb, p.ex, p.kg1))
    return model - points.current


def _pentode_residuals(currents, points: PentodePoints) -> NDArray[np.float64]:
    with np.errstate(all='ignore'):
        return np.concatenate([np.asarray(currents.ip) - points.ip,
                               np.asarray(currents.is_) - points.is_])


def pentode_residuals(points: PentodePoints, parameters: PentodeParameters) -> NDArray[np.float64]:
    """Plate then screen current residuals [mA]."""
    p = parameters
    currents = pentode_model(points.ep, points.eg, points.es, p.kp, p.mu, p.kvb, p.ex, p.kg1, p.kg2)
    return _pentode_residuals(currents, points)


def derk_residuals(points: PentodePoints, parameters: DerkParameters) -> NDArray[np.float64]:
    """Plate then screen current residuals of the Derk model [mA]."""
    currents = derk_model(points.ep, points.eg, points.es, **parameters.model_arguments())
    return _pentode_residuals(currents, points)


def derke_residuals(points: PentodePoints, parameters: DerkEParameters) -> NDArray[np.float64]:
    """Plate then screen current residuals of the Derk-E model [mA]."""
    currents = derke_model(points.ep, points.eg, points.es, **parameters.model_arguments())
    return _pentode_residuals(currents, points)


def error_from_residuals(residuals: NDArray[np.float64], count: int) -> ModelError:
    """
    Aggregate residuals into (sse, rmse).

    Parameters
    ----------
    residuals : ndarray
        Residual vector
    count : int
        Number of measured points (rmse denominator)
    """
    with np.errstate(all='ignore'):
        sse = float(np.sum(np.square(residuals)))
    if not math.isfinite(sse):
        return INVALID_ERROR
    rmse = math.sqrt(sse / count) if count > 0 else 0.0
    return ModelError(sse, rmse)


# =============================================================================
# Error functions
# =============================================================================

def triode_points_error(points: TriodePoints, parameters: TriodeParameters) -> ModelError:
    return error_from_residuals(triode_residuals(points, parameters), len(points))


def pentode_points_error(points: PentodePoints, parameters: PentodeParameters) -> ModelError:
    return error_from_residuals(pentode_residuals(points, parameters), len(points))


def derk_points_error(points: PentodePoints, parameters: DerkParameters) -> ModelError:
    return error_from_residuals(derk_residuals(points, parameters), len(points))


def derke_points_error(points: PentodePoints, parameters: DerkEParameters) -> ModelError:
    return error_from_residuals(derke_residuals(points, parameters), len(points))


def triode_model_error(files: List[MeasurementFile], parameters: TriodeParameters,
                       maximum_plate_dissipation: float) -> ModelError:
    """
    Triode model error.

    Only triode and triode-connected files are used; the model plate
    current is compared to the measured ip + is.

    Parameters
    ----------
    files : list of MeasurementFile
        Measurements
    parameters : TriodeParameters
        Parameter set (any set with triode fields)
    maximum_plate_dissipation : float
        Dissipation gate [W]

    Returns
    -------
    ModelError
        (sse, rmse); (MAX_VALUE/2, MAX_VALUE/2) for invalid parameters
    """
    return triode_points_error(collect_triode_points(files, maximum_plate_dissipation), parameters)


def pentode_model_error(files: List[MeasurementFile], parameters: PentodeParameters,
                        maximum_plate_dissipation: float) -> ModelError:
    """Koren pentode error over pentode files (plate and screen residuals)."""
    return pentode_points_error(collect_pentode_points(files, maximum_plate_dissipation), parameters)


def derk_model_error(files: List[MeasurementFile], parameters: DerkParameters,
                     maximum_plate_dissipation: float) -> ModelError:
    """Derk model error over pentode files (plate and screen residuals)."""
    return derk_points_error(collect_pentode_points(files, maximum_plate_dissipation), parameters)


def derke_model_error(files: List[MeasurementFile], parameters: DerkEParameters,
                      maximum_plate_dissipation: float) -> ModelError:
    """Derk-E model error over pentode files (plate and screen residuals)."""
    return derke_points_error(collect_pentode_points(files, maximum_plate_dissipation), parameters)
