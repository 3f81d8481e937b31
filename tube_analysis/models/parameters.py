"""
Model parameter sets.

Finished parameter sets are a closed family of frozen dataclasses, one per
model. :class:`InitialEstimates` is the mutable in-progress set filled by
the estimators of :mod:`tube_analysis.estimates`.
"""

import math
from dataclasses import dataclass, fields, asdict
from typing import List, Optional, Union

import numpy as np

from .currents import (
    PentodeCurrents, derk_alpha, triode_model, pentode_model, derk_model, derke_model,
)


@dataclass(frozen=True)
class SecondaryEmissionParameters:
    """
    Secondary emission coefficients of the Derk models.

    Attributes
    ----------
    s : float
        Magnitude of the secondary emission term
    alpha_p : float
        Sharpness of the tanh transition
    lambda_ : float
        Screen voltage divider of the emission peak position
    v, w : float
        Grid voltage slope and offset of the emission peak position
    """
    s: float
    alpha_p: float
    lambda_: float
    v: float
    w: float

    def to_list(self) -> List[float]:
        return [self.s, self.alpha_p, self.lambda_, self.v, self.w]


@dataclass(frozen=True)
class TriodeParameters:
    """Koren triode parameters."""
    mu: float
    ex: float
    kg1: float
    kp: float
    kvb: float

    model = 'triode'

    def to_vector(self) -> np.ndarray:
        return np.array([getattr(self, f.name) for f in fields(self)], dtype=float)

    @classmethod
    def from_vector(cls, x) -> 'TriodeParameters':
        return cls(*[float(v) for v in x])

    def is_usable(self) -> bool:
        """True when every field is finite."""
        return all(math.isfinite(v) for v in self.to_vector())

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PentodeParameters(TriodeParameters):
    """Koren pentode parameters (triode set plus screen perveance kg2)."""
    kg2: float

    model = 'pentode'


@dataclass(frozen=True)
class DerkParameters(PentodeParameters):
    """
    Derk pentode parameters.

    secondary_emission is None when the secondary emission term is
    disabled; the derived alpha is exposed as a property.
    """
    a: float
    alpha_s: float
    beta: float
    secondary_emission: Optional[SecondaryEmissionParameters] = None

    model = 'derk'

    @property
    def alpha(self) -> float:
        return derk_alpha(self.kg1, self.kg2, self.alpha_s)

    @property
    def core_field_names(self) -> List[str]:
        return [f.name for f in fields(self) if f.name != 'secondary_emission']

    def to_vector(self) -> np.ndarray:
        values = [getattr(self, name) for name in self.core_field_names]
        if self.secondary_emission is not None:
            values.extend(self.secondary_emission.to_list())
        return np.array(values, dtype=float)

    @classmethod
    def from_vector(cls, x, secondary_emission: bool = False):
        x = [float(v) for v in x]
        core = len(fields(cls)) - 1
        se = SecondaryEmissionParameters(*x[core:core + 5]) if secondary_emission else None
        return cls(*x[:core], secondary_emission=se)

    def model_arguments(self) -> dict:
        """Keyword arguments for derk_model/derke_model."""
        kwargs = {name: getattr(self, name) for name in self.core_field_names}
        if self.secondary_emission is not None:
            kwargs.update(
                secondary_emission=True,
                s=self.secondary_emission.s,
                alpha_p=self.secondary_emission.alpha_p,
                lambda_=self.secondary_emission.lambda_,
                v=self.secondary_emission.v,
                w=self.secondary_emission.w,
            )
        return kwargs

    def as_dict(self) -> dict:
        result = {name: getattr(self, name) for name in self.core_field_names}
        result['alpha'] = self.alpha
        if self.secondary_emission is not None:
            result.update(asdict(self.secondary_emission))
        return result


@dataclass(frozen=True)
class DerkEParameters(DerkParameters):
    """Derk-E pentode parameters (exponential knee)."""

    model = 'derke'


ModelParameterSet = Union[TriodeParameters, PentodeParameters, DerkParameters, DerkEParameters]


@dataclass
class InitialEstimates:
    """
    In-progress parameter estimates.

    Every field starts as None (unknown). Estimators fill only fields that
    are still None, so values supplied by the caller are kept.
    """
    mu: Optional[float] = None
    ex: Optional[float] = None
    kg1: Optional[float] = None
    kp: Optional[float] = None
    kvb: Optional[float] = None
    kg2: Optional[float] = None
    a: Optional[float] = None
    alpha_s: Optional[float] = None
    beta: Optional[float] = None
    s: Optional[float] = None
    alpha_p: Optional[float] = None
    lambda_: Optional[float] = None
    v: Optional[float] = None
    w: Optional[float] = None

    @classmethod
    def from_parameters(cls, parameters: ModelParameterSet) -> 'InitialEstimates':
        """Seed estimates from a finished parameter set."""
        values = {f.name: getattr(parameters, f.name) for f in fields(parameters)
                  if f.name != 'secondary_emission'}
        se = getattr(parameters, 'secondary_emission', None)
        if se is not None:
            values.update(asdict(se))
        return cls(**values)

    def missing(self, *names: str) -> List[str]:
        return [name for name in names if getattr(self, name) is None]

    def _require(self, *names: str) -> None:
        missing = self.missing(*names)
        if missing:
            raise ValueError(f"Estimates incomplete, missing: {', '.join(missing)}")

    def to_triode(self) -> TriodeParameters:
        self._require('mu', 'ex', 'kg1', 'kp', 'kvb')
        return TriodeParameters(self.mu, self.ex, self.kg1, self.kp, self.kvb)

    def to_pentode(self) -> PentodeParameters:
        self._require('mu', 'ex', 'kg1', 'kp', 'kvb', 'kg2')
        return PentodeParameters(self.mu, self.ex, self.kg1, self.kp, self.kvb, self.kg2)

    def _secondary_emission(self, enabled: bool) -> Optional[SecondaryEmissionParameters]:
        if not enabled:
            return None
        self._require('s', 'alpha_p', 'lambda_', 'v', 'w')
        return SecondaryEmissionParameters(self.s, self.alpha_p, self.lambda_, self.v, self.w)

    def to_derk(self, secondary_emission: bool = False) -> DerkParameters:
        self._require('mu', 'ex', 'kg1', 'kp', 'kvb', 'kg2', 'a', 'alpha_s', 'beta')
        return DerkParameters(self.mu, self.ex, self.kg1, self.kp, self.kvb, self.kg2,
                              self.a, self.alpha_s, self.beta,
                              self._secondary_emission(secondary_emission))

    def to_derke(self, secondary_emission: bool = False) -> DerkEParameters:
        self._require('mu', 'ex', 'kg1', 'kp', 'kvb', 'kg2', 'a', 'alpha_s', 'beta')
        return DerkEParameters(self.mu, self.ex, self.kg1, self.kp, self.kvb, self.kg2,
                               self.a, self.alpha_s, self.beta,
                               self._secondary_emission(secondary_emission))


def model_currents(parameters: ModelParameterSet, ep, eg, es=None) -> PentodeCurrents:
    """
    Evaluate the model a parameter set belongs to.

    Parameters
    ----------
    parameters : ModelParameterSet
        Finished parameter set (selects the model)
    ep, eg : float or ndarray
        Plate and grid voltage [V]
    es : float or ndarray, optional
        Screen voltage [V]; ignored for triodes, required otherwise

    Returns
    -------
    PentodeCurrents
        (ip, is_) in mA; is_ is zero for triodes
    """
    if isinstance(parameters, DerkParameters):
        model = derke_model if isinstance(parameters, DerkEParameters) else derk_model
        return model(ep, eg, es, **parameters.model_arguments())
    if isinstance(parameters, PentodeParameters):
        return pentode_model(ep, eg, es, parameters.kp, parameters.mu, parameters.kvb,
                             parameters.ex, parameters.kg1, parameters.kg2)
    ip = triode_model(ep, eg, parameters.kp, parameters.mu, parameters.kvb,
                      parameters.ex, parameters.kg1)
    return PentodeCurrents(ip, np.zeros_like(ip) if np.ndim(ip) else 0.0)
