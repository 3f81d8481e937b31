"""
Per-family initial estimate pipelines.

Each pipeline runs the estimators in dependency order on a shared
InitialEstimates and returns it (or the finished parameter set).
Caller-supplied values are never overwritten; data that cannot support
an estimate leads to the documented defaults, never an exception.
"""

import logging
from typing import List, Optional

from ..config import PENTODE_KVB, TRIODE_FALLBACK
from ..io.measurements import MeasurementFile, triode_files
from ..models.parameters import (
    InitialEstimates, TriodeParameters, PentodeParameters, DerkParameters, DerkEParameters,
)
from ..optimization import OptimizationTrace
from .triode import estimate_mu, estimate_ex_kg1, estimate_kp, estimate_kvb
from .pentode import DERK, DERKE, estimate_kg2, estimate_a, estimate_alpha_s_beta
from .secondary_emission import estimate_secondary_emission_parameters

logger = logging.getLogger(__name__)


def _koren_kernel_estimates(estimates: InitialEstimates, files: List[MeasurementFile],
                            maximum_plate_dissipation: float,
                            trace: Optional[OptimizationTrace]) -> None:
    estimate_mu(estimates, files, trace)
    estimate_ex_kg1(estimates, files, maximum_plate_dissipation, trace)
    estimate_kp(estimates, files, maximum_plate_dissipation, trace)
    if estimates.kvb is None:
        estimates.kvb = PENTODE_KVB


def estimate_triode_parameters(files: List[MeasurementFile], maximum_plate_dissipation: float,
                               initial: Optional[InitialEstimates] = None,
                               trace: Optional[OptimizationTrace] = None) -> TriodeParameters:
    """
    Initial Koren triode parameters.

    Runs mu, ex/kg1, kp and kvb estimation on the triode (and
    triode-connected) files. Without any triode file the unset fields
    take generic values (mu 50, ex 1.2, kg1 1000, kp 100, kvb 1000).

    Parameters
    ----------
    files : list of MeasurementFile
        Measurements (pentode files are ignored)
    maximum_plate_dissipation : float
        Dissipation gate [W]
    initial : InitialEstimates, optional
        Known values (kept as is); updated in place
    trace : OptimizationTrace, optional
        Collects estimator intermediates

    Returns
    -------
    TriodeParameters
    """
    estimates = initial if initial is not None else InitialEstimates()
    triodes = triode_files(files)
    if triodes:
        estimate_mu(estimates, triodes, trace)
        estimate_ex_kg1(estimates, triodes, maximum_plate_dissipation, trace)
        estimate_kp(estimates, triodes, maximum_plate_dissipation, trace)
        estimate_kvb(estimates, triodes, maximum_plate_dissipation, trace)
    else:
        logger.debug("No triode measurements, using generic triode parameters")
        for name, value in TRIODE_FALLBACK.items():
            if getattr(estimates, name) is None:
                setattr(estimates, name, value)
    return estimates.to_triode()


def estimate_pentode_parameters(files: List[MeasurementFile], maximum_plate_dissipation: float,
                                initial: Optional[InitialEstimates] = None,
                                trace: Optional[OptimizationTrace] = None) -> PentodeParameters:
    """
    Initial Koren pentode parameters.

    Kernel parameters come from triode-connected measurements (defaults
    otherwise), kvb is PENTODE_KVB unless given, kg2 from screen current.
    """
    estimates = initial if initial is not None else InitialEstimates()
    _koren_kernel_estimates(estimates, files, maximum_plate_dissipation, trace)
    estimate_kg2(estimates, files, maximum_plate_dissipation, trace)
    return estimates.to_pentode()


def _derk_family_estimates(family: str, files: List[MeasurementFile],
                           maximum_plate_dissipation: float, secondary_emission: bool,
                           initial: Optional[InitialEstimates],
                           trace: Optional[OptimizationTrace]) -> InitialEstimates:
    estimates = initial if initial is not None else InitialEstimates()
    _koren_kernel_estimates(estimates, files, maximum_plate_dissipation, trace)
    estimate_kg2(estimates, files, maximum_plate_dissipation, trace)
    estimate_a(estimates, files, maximum_plate_dissipation, trace)
    estimate_alpha_s_beta(estimates, files, maximum_plate_dissipation, family, trace)
    if secondary_emission:
        estimate_secondary_emission_parameters(estimates, files, family, trace)
    return estimates


def estimate_derk_parameters(files: List[MeasurementFile], maximum_plate_dissipation: float,
                             secondary_emission: bool = False,
                             initial: Optional[InitialEstimates] = None,
                             trace: Optional[OptimizationTrace] = None) -> DerkParameters:
    """
    Initial Derk parameters.

    Pentode pipeline followed by a, alpha_s/beta (hyperbolic knee) and,
    when secondary_emission is set, the secondary emission parameters.
    """
    estimates = _derk_family_estimates(DERK, files, maximum_plate_dissipation,
                                       secondary_emission, initial, trace)
    return estimates.to_derk(secondary_emission)


def estimate_derke_parameters(files: List[MeasurementFile], maximum_plate_dissipation: float,
                              secondary_emission: bool = False,
                              initial: Optional[InitialEstimates] = None,
                              trace: Optional[OptimizationTrace] = None) -> DerkEParameters:
    """
    Initial Derk-E parameters.

    Pentode pipeline followed by a, alpha_s/beta (exponential knee) and,
    when secondary_emission is set, the secondary emission parameters.
    """
    estimates = _derk_family_estimates(DERKE, files, maximum_plate_dissipation,
                                       secondary_emission, initial, trace)
    return estimates.to_derke(secondary_emission)
