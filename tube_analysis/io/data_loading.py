"""
Loading and saving tube measurements as JSON.

Document layout::

    {"maximum_plate_dissipation": 2.0,
     "files": [{"name": "12AX7", "measurement_type": "IP_VA_VG_VH",
                "eg_offset": 0,
                "series": [{"eg": -1, "es": null, "ep": null,
                            "points": [{"ep": 0, "eg": -1, "ip": 0,
                                        "es": null, "is": null}]}]}]}

Screen current is stored under "is" (a Python keyword, hence is_ on
MeasurementPoint).
"""

import json
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from .measurements import MeasurementFile, MeasurementPoint, MeasurementSeries, MeasurementType

logger = logging.getLogger(__name__)


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _parse_point(data: Dict[str, Any], index: int) -> MeasurementPoint:
    try:
        point = MeasurementPoint(
            ep=float(data['ep']),
            eg=float(data['eg']),
            ip=float(data['ip']),
            es=_optional_float(data.get('es')),
            is_=_optional_float(data.get('is')),
            eh=_optional_float(data.get('eh')),
            index=data.get('index', index),
        )
    except KeyError as e:
        raise ValueError(f"Measurement point {index} is missing field {e}")
    except (TypeError, ValueError) as e:
        raise ValueError(f"Measurement point {index} has an invalid value: {e}")

    if not (math.isfinite(point.ep) and math.isfinite(point.eg) and math.isfinite(point.ip)):
        raise ValueError(f"Measurement point {index} contains non-finite values")
    return point


def _parse_file(data: Dict[str, Any]) -> MeasurementFile:
    name = data.get('name', 'unnamed')
    try:
        measurement_type = MeasurementType(data['measurement_type'])
    except KeyError:
        raise ValueError(f"File '{name}' has no measurement_type")
    except ValueError:
        valid = ', '.join(t.value for t in MeasurementType)
        raise ValueError(f"File '{name}': unknown measurement_type "
                         f"'{data['measurement_type']}' (valid: {valid})")

    series = []
    index = 0
    for series_data in data.get('series', []):
        points = []
        for point_data in series_data.get('points', []):
            points.append(_parse_point(point_data, index))
            index += 1
        series.append(MeasurementSeries(
            eg=float(series_data.get('eg', points[0].eg if points else 0.0)),
            points=points,
            es=_optional_float(series_data.get('es')),
            ep=_optional_float(series_data.get('ep')),
        ))

    return MeasurementFile(name=name, measurement_type=measurement_type, series=series,
                           eg_offset=float(data.get('eg_offset', 0.0)))


def parse_measurements(document: Dict[str, Any]) -> Tuple[List[MeasurementFile], Optional[float]]:
    """
    Build measurement files from a decoded JSON document.

    Returns
    -------
    files : list of MeasurementFile
    maximum_plate_dissipation : float or None
        Value stored in the document, if any [W]

    Raises
    ------
    ValueError
        If the document structure or a value is invalid
    """
    if not isinstance(document, dict) or 'files' not in document:
        raise ValueError("Measurement document must be an object with a 'files' list")

    files = [_parse_file(f) for f in document['files']]
    if not files:
        raise ValueError("Measurement document contains no files")

    maximum_plate_dissipation = _optional_float(document.get('maximum_plate_dissipation'))
    return files, maximum_plate_dissipation


def load_measurements_json(filename: str) -> Tuple[List[MeasurementFile], Optional[float]]:
    """
    Load measurement files from a JSON document.

    Parameters
    ----------
    filename : str
        Path to .json file

    Returns
    -------
    files : list of MeasurementFile
    maximum_plate_dissipation : float or None
        Dissipation limit stored in the document [W]

    Raises
    ------
    ValueError
        If the file cannot be read or parsed
    """
    try:
        with open(filename, 'r', encoding='utf-8') as f:
            document = json.load(f)
    except FileNotFoundError:
        raise ValueError(f"File not found: {filename}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {filename}: {e}")

    files, maximum_plate_dissipation = parse_measurements(document)
    logger.debug(f"Loaded {len(files)} file(s), "
                 f"{sum(f.point_count for f in files)} points from {filename}")
    return files, maximum_plate_dissipation


def measurements_to_dict(files: List[MeasurementFile],
                         maximum_plate_dissipation: Optional[float] = None) -> Dict[str, Any]:
    """Inverse of parse_measurements."""
    document: Dict[str, Any] = {}
    if maximum_plate_dissipation is not None:
        document['maximum_plate_dissipation'] = maximum_plate_dissipation
    document['files'] = [
        {
            'name': f.name,
            'measurement_type': f.measurement_type.value,
            'eg_offset': f.eg_offset,
            'series': [
                {
                    'eg': s.eg,
                    'es': s.es,
                    'ep': s.ep,
                    'points': [
                        {'ep': p.ep, 'eg': p.eg, 'ip': p.ip, 'es': p.es, 'is': p.is_,
                         'eh': p.eh, 'index': p.index}
                        for p in s.points
                    ],
                }
                for s in f.series
            ],
        }
        for f in files
    ]
    return document


def save_measurements_json(files: List[MeasurementFile], filename: str,
                           maximum_plate_dissipation: Optional[float] = None) -> None:
    """Write measurement files as a JSON document."""
    with open(filename, 'w', encoding='utf-8') as f:
        json.dump(measurements_to_dict(files, maximum_plate_dissipation), f, indent=1)
    logger.debug(f"Saved {len(files)} file(s) to {filename}")
