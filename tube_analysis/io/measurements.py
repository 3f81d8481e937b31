"""
Measurement data model.

Measurements follow the uTracer naming: a file holds one sweep type
(e.g. IP_VA_VG_VH = plate current vs. plate voltage, one series per grid
voltage, heater fixed) and a list of series, each a list of points.

Units: voltages [V], currents [mA].
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class MeasurementType(str, Enum):
    """uTracer measurement tags."""
    IP_VA_VG_VH = 'IP_VA_VG_VH'
    IP_VG_VA_VH = 'IP_VG_VA_VH'
    IPIS_VA_VG_VS_VH = 'IPIS_VA_VG_VS_VH'
    IPIS_VG_VA_VS_VH = 'IPIS_VG_VA_VS_VH'
    IPIS_VS_VG_VA_VH = 'IPIS_VS_VG_VA_VH'
    IPIS_VG_VS_VA_VH = 'IPIS_VG_VS_VA_VH'
    IPIS_VA_VS_VG_VH = 'IPIS_VA_VS_VG_VH'
    IPIS_VG_VAVS_VH = 'IPIS_VG_VAVS_VH'
    IPIS_VAVS_VG_VH = 'IPIS_VAVS_VG_VH'

    @property
    def is_triode(self) -> bool:
        """Triode sweep or pentode with screen tied to plate."""
        return self in _TRIODE_TYPES

    @property
    def plate_swept(self) -> bool:
        """Plate voltage is the innermost (independent) sweep axis."""
        return self in _PLATE_SWEPT_TYPES

    @property
    def screen_fixed(self) -> bool:
        """Plate voltage swept while the screen voltage is held constant."""
        return self is MeasurementType.IPIS_VA_VG_VS_VH

    @property
    def screen_measured(self) -> bool:
        """Plate-swept pentode sweep with screen current recorded."""
        return self in _SCREEN_MEASURED_TYPES


_TRIODE_TYPES = frozenset({
    MeasurementType.IP_VA_VG_VH,
    MeasurementType.IP_VG_VA_VH,
    MeasurementType.IPIS_VG_VAVS_VH,
    MeasurementType.IPIS_VAVS_VG_VH,
})

_PLATE_SWEPT_TYPES = frozenset({
    MeasurementType.IP_VA_VG_VH,
    MeasurementType.IPIS_VA_VG_VS_VH,
    MeasurementType.IPIS_VA_VS_VG_VH,
    MeasurementType.IPIS_VAVS_VG_VH,
})

_SCREEN_MEASURED_TYPES = frozenset({
    MeasurementType.IPIS_VA_VG_VS_VH,
    MeasurementType.IPIS_VA_VS_VG_VH,
    MeasurementType.IPIS_VAVS_VG_VH,
})


@dataclass(frozen=True)
class MeasurementPoint:
    """
    Single measured operating point.

    Attributes
    ----------
    ep : float
        Plate voltage [V]
    eg : float
        Grid voltage [V]
    ip : float
        Plate current [mA]
    es : float or None
        Screen voltage [V]
    is_ : float or None
        Screen current [mA]
    eh : float or None
        Heater voltage [V]
    index : int or None
        Position in the original acquisition
    """
    ep: float
    eg: float
    ip: float
    es: Optional[float] = None
    is_: Optional[float] = None
    eh: Optional[float] = None
    index: Optional[int] = None

    @property
    def total_current(self) -> float:
        """Cathode current ip + is [mA]."""
        return self.ip + (self.is_ or 0.0)

    @property
    def plate_dissipation(self) -> float:
        """Plate dissipation ep * ip [W]."""
        return self.ep * self.ip * 1e-3


@dataclass
class MeasurementSeries:
    """One swept curve at a nominal grid (and optionally screen/plate) voltage."""
    eg: float
    points: List[MeasurementPoint] = field(default_factory=list)
    es: Optional[float] = None
    ep: Optional[float] = None

    def sort_by_plate_voltage(self) -> None:
        """Sort points by ascending plate voltage (in place)."""
        self.points.sort(key=lambda p: p.ep)


@dataclass
class MeasurementFile:
    """
    Measurement file contents.

    Attributes
    ----------
    name : str
        File name or label
    measurement_type : MeasurementType
        Sweep type
    series : list of MeasurementSeries
        Measured curves
    eg_offset : float
        Offset added to every grid voltage before use [V]
    """
    name: str
    measurement_type: MeasurementType
    series: List[MeasurementSeries] = field(default_factory=list)
    eg_offset: float = 0.0

    def __post_init__(self):
        self.measurement_type = MeasurementType(self.measurement_type)

    @property
    def point_count(self) -> int:
        return sum(len(s.points) for s in self.series)


def triode_files(files: List[MeasurementFile]) -> List[MeasurementFile]:
    """Files measured on a triode or a triode-connected pentode."""
    return [f for f in files if f.measurement_type.is_triode]


def pentode_files(files: List[MeasurementFile]) -> List[MeasurementFile]:
    """Files measured with independent plate and screen voltages."""
    return [f for f in files if not f.measurement_type.is_triode]
