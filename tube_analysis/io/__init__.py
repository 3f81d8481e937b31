"""
I/O module for tube measurements.
"""

from .measurements import (
    MeasurementType,
    MeasurementPoint,
    MeasurementSeries,
    MeasurementFile,
    triode_files,
    pentode_files,
)
from .data_loading import (
    parse_measurements,
    load_measurements_json,
    measurements_to_dict,
    save_measurements_json,
)
from .synthetic import (
    SYNTHETIC_TRIODE,
    SYNTHETIC_PENTODE,
    generate_triode_measurements,
    generate_pentode_measurements,
)

__all__ = [
    'MeasurementType',
    'MeasurementPoint',
    'MeasurementSeries',
    'MeasurementFile',
    'triode_files',
    'pentode_files',
    'parse_measurements',
    'load_measurements_json',
    'measurements_to_dict',
    'save_measurements_json',
    'SYNTHETIC_TRIODE',
    'SYNTHETIC_PENTODE',
    'generate_triode_measurements',
    'generate_pentode_measurements',
]
