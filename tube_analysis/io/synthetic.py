"""
Synthetic measurement generation for testing and demonstration.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from ..models.parameters import (
    ModelParameterSet, TriodeParameters, DerkEParameters, model_currents,
)
from .measurements import MeasurementFile, MeasurementPoint, MeasurementSeries, MeasurementType

logger = logging.getLogger(__name__)

# 12AX7-like triode
SYNTHETIC_TRIODE = TriodeParameters(mu=100.0, ex=1.4, kg1=1060.0, kp=600.0, kvb=300.0)

# EL84-like pentode (Derk-E)
SYNTHETIC_PENTODE = DerkEParameters(mu=11.0, ex=1.35, kg1=650.0, kp=60.0, kvb=100.0,
                                    kg2=4200.0, a=1e-4, alpha_s=2.5, beta=0.05)


def _noisy(values: np.ndarray, noise: float) -> np.ndarray:
    if noise > 0:
        values = values * (1 + noise * np.random.randn(len(values)))
    return np.clip(values, 0.0, None)


def generate_triode_measurements(
    parameters: TriodeParameters = SYNTHETIC_TRIODE,
    grid_voltages: Sequence[float] = (0.0, -0.5, -1.0, -1.5, -2.0),
    plate_voltages: Optional[Sequence[float]] = None,
    noise: float = 0.0,
    name: str = 'synthetic triode'
) -> MeasurementFile:
    """
    Generate plate curves (IP_VA_VG_VH) of a Koren triode.

    Parameters
    ----------
    parameters : TriodeParameters
        Model used to compute the plate current
    grid_voltages : sequence of float
        One series per grid voltage [V]
    plate_voltages : sequence of float, optional
        Plate sweep [V] (default 0..300 V in 10 V steps)
    noise : float
        Relative Gaussian noise on the currents (0.01 = 1%)
    name : str
        File label

    Returns
    -------
    MeasurementFile
    """
    if plate_voltages is None:
        plate_voltages = np.arange(0.0, 301.0, 10.0)
    ep = np.asarray(plate_voltages, dtype=float)

    logger.debug(f"Generating triode curves: {len(grid_voltages)} x {len(ep)} points, noise={noise}")

    series = []
    index = 0
    for eg in grid_voltages:
        ip = _noisy(np.asarray(model_currents(parameters, ep, eg).ip, dtype=float), noise)
        points = []
        for e, i in zip(ep, ip):
            points.append(MeasurementPoint(ep=float(e), eg=float(eg), ip=float(i), index=index))
            index += 1
        series.append(MeasurementSeries(eg=float(eg), points=points))

    return MeasurementFile(name=name, measurement_type=MeasurementType.IP_VA_VG_VH, series=series)


def generate_pentode_measurements(
    parameters: ModelParameterSet = SYNTHETIC_PENTODE,
    screen_voltage: float = 250.0,
    grid_voltages: Sequence[float] = (0.0, -2.0, -4.0, -6.0, -8.0, -10.0, -12.0),
    plate_voltages: Optional[Sequence[float]] = None,
    noise: float = 0.0,
    triode_connected: bool = False,
    name: str = 'synthetic pentode'
) -> MeasurementFile:
    """
    Generate plate and screen curves of a pentode model.

    Parameters
    ----------
    parameters : ModelParameterSet
        Pentode, Derk or Derk-E parameters
    screen_voltage : float
        Fixed screen voltage [V] (ignored when triode_connected)
    grid_voltages : sequence of float
        One series per grid voltage [V]
    plate_voltages : sequence of float, optional
        Plate sweep [V] (default 0..400 V in 10 V steps)
    noise : float
        Relative Gaussian noise on the currents (0.01 = 1%)
    triode_connected : bool
        Screen tied to the plate (IPIS_VAVS_VG_VH) instead of a fixed
        screen voltage (IPIS_VA_VG_VS_VH)
    name : str
        File label

    Returns
    -------
    MeasurementFile
    """
    if plate_voltages is None:
        plate_voltages = np.arange(0.0, 401.0, 10.0)
    ep = np.asarray(plate_voltages, dtype=float)

    if triode_connected:
        measurement_type = MeasurementType.IPIS_VAVS_VG_VH
        es = ep
    else:
        measurement_type = MeasurementType.IPIS_VA_VG_VS_VH
        es = np.full_like(ep, screen_voltage)

    logger.debug(f"Generating {parameters.model} curves ({measurement_type.value}): "
                 f"{len(grid_voltages)} x {len(ep)} points, noise={noise}")

    series = []
    index = 0
    for eg in grid_voltages:
        currents = model_currents(parameters, ep, eg, es)
        ip = _noisy(np.asarray(currents.ip, dtype=float), noise)
        is_ = _noisy(np.asarray(currents.is_, dtype=float), noise)
        points = []
        for e, s, i, j in zip(ep, es, ip, is_):
            points.append(MeasurementPoint(ep=float(e), eg=float(eg), ip=float(i),
                                           es=float(s), is_=float(j), index=index))
            index += 1
        series.append(MeasurementSeries(eg=float(eg), points=points,
                                        es=None if triode_connected else float(screen_voltage)))

    return MeasurementFile(name=name, measurement_type=measurement_type, series=series)
