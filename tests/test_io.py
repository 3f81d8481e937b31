#!/usr/bin/env python3
"""
Tests for measurement containers, JSON loading and synthetic data.
"""

import json

import numpy as np
import pytest

from tube_analysis.io import (
    MeasurementType,
    MeasurementPoint,
    MeasurementSeries,
    MeasurementFile,
    triode_files,
    pentode_files,
    parse_measurements,
    load_measurements_json,
    save_measurements_json,
    generate_triode_measurements,
    generate_pentode_measurements,
    SYNTHETIC_TRIODE,
)


@pytest.fixture
def document():
    return {
        "maximum_plate_dissipation": 2.0,
        "files": [{
            "name": "12AX7",
            "measurement_type": "IP_VA_VG_VH",
            "eg_offset": 0,
            "series": [{
                "eg": -1,
                "points": [
                    {"ep": 0, "eg": -1, "ip": 0, "es": None, "is": None},
                    {"ep": 100, "eg": -1, "ip": 0.5, "es": None, "is": None},
                ],
            }],
        }, {
            "name": "EL84",
            "measurement_type": "IPIS_VA_VG_VS_VH",
            "series": [{
                "eg": -5, "es": 250,
                "points": [{"ep": 200, "eg": -5, "ip": 30, "es": 250, "is": 4}],
            }],
        }],
    }


# ---------------------------------------------------------------------------
# Measurement types and containers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("tag, triode, swept, fixed, measured", [
    ("IP_VA_VG_VH", True, True, False, False),
    ("IP_VG_VA_VH", True, False, False, False),
    ("IPIS_VA_VG_VS_VH", False, True, True, True),
    ("IPIS_VA_VS_VG_VH", False, True, False, True),
    ("IPIS_VAVS_VG_VH", True, True, False, True),
    ("IPIS_VG_VAVS_VH", True, False, False, False),
    ("IPIS_VS_VG_VA_VH", False, False, False, False),
])
def test_measurement_type_properties(tag, triode, swept, fixed, measured):
    t = MeasurementType(tag)
    assert t.is_triode is triode
    assert t.plate_swept is swept
    assert t.screen_fixed is fixed
    assert t.screen_measured is measured


def test_point_properties():
    point = MeasurementPoint(ep=200, eg=-5, ip=30.0, es=250, is_=4.0)
    assert point.total_current == 34.0
    assert point.plate_dissipation == pytest.approx(6.0)
    assert MeasurementPoint(ep=100, eg=-1, ip=2.0).total_current == 2.0


def test_file_coerces_type_and_counts_points():
    series = MeasurementSeries(eg=-1, points=[MeasurementPoint(ep=e, eg=-1, ip=0.1) for e in (50, 10, 30)])
    file = MeasurementFile('f', 'IP_VA_VG_VH', [series])
    assert file.measurement_type is MeasurementType.IP_VA_VG_VH
    assert file.point_count == 3
    series.sort_by_plate_voltage()
    assert [p.ep for p in series.points] == [10, 30, 50]


def test_unknown_type_raises():
    with pytest.raises(ValueError):
        MeasurementFile('f', 'IP_XX', [])


def test_file_selection():
    t = MeasurementFile('t', MeasurementType.IPIS_VAVS_VG_VH)
    p = MeasurementFile('p', MeasurementType.IPIS_VA_VG_VS_VH)
    assert triode_files([t, p]) == [t]
    assert pentode_files([t, p]) == [p]


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def test_parse_document(document):
    files, dissipation = parse_measurements(document)
    assert dissipation == 2.0
    assert [f.name for f in files] == ["12AX7", "EL84"]
    assert files[0].measurement_type is MeasurementType.IP_VA_VG_VH
    assert files[0].point_count == 2
    point = files[1].series[0].points[0]
    assert point.is_ == 4.0
    assert point.es == 250.0
    assert files[1].series[0].es == 250.0
    assert files[0].series[0].points[0].is_ is None


def test_load_and_save_json(tmp_path, document):
    path = tmp_path / "tube.json"
    path.write_text(json.dumps(document))
    files, dissipation = load_measurements_json(str(path))

    out = tmp_path / "copy.json"
    save_measurements_json(files, str(out), dissipation)
    reloaded, reloaded_dissipation = load_measurements_json(str(out))
    assert reloaded_dissipation == dissipation
    assert reloaded == files


def test_load_missing_file(tmp_path):
    with pytest.raises(ValueError, match="File not found"):
        load_measurements_json(str(tmp_path / "missing.json"))


def test_load_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(ValueError, match="Invalid JSON"):
        load_measurements_json(str(path))


@pytest.mark.parametrize("broken", [
    {},
    {"files": []},
    {"files": [{"name": "x"}]},
    {"files": [{"name": "x", "measurement_type": "NOPE"}]},
    {"files": [{"name": "x", "measurement_type": "IP_VA_VG_VH",
                "series": [{"eg": -1, "points": [{"ep": 1, "eg": -1}]}]}]},
    {"files": [{"name": "x", "measurement_type": "IP_VA_VG_VH",
                "series": [{"eg": -1, "points": [{"ep": "a", "eg": -1, "ip": 1}]}]}]},
])
def test_parse_invalid_documents(broken):
    with pytest.raises(ValueError):
        parse_measurements(broken)


# ---------------------------------------------------------------------------
# Synthetic data
# ---------------------------------------------------------------------------

def test_synthetic_triode_shape():
    file = generate_triode_measurements(grid_voltages=(0.0, -1.0), plate_voltages=[0, 100, 200])
    assert file.measurement_type is MeasurementType.IP_VA_VG_VH
    assert len(file.series) == 2
    assert file.point_count == 6
    currents = [p.ip for p in file.series[0].points]
    assert currents[0] == 0.0
    assert currents[1] < currents[2]


def test_synthetic_triode_noise_is_seeded():
    np.random.seed(42)
    a = generate_triode_measurements(SYNTHETIC_TRIODE, noise=0.05)
    np.random.seed(42)
    b = generate_triode_measurements(SYNTHETIC_TRIODE, noise=0.05)
    assert a == b
    assert a != generate_triode_measurements(SYNTHETIC_TRIODE)


def test_synthetic_currents_never_negative():
    np.random.seed(42)
    file = generate_pentode_measurements(noise=0.5)
    assert all(p.ip >= 0 and p.is_ >= 0 for s in file.series for p in s.points)


def test_synthetic_pentode_types():
    fixed = generate_pentode_measurements()
    connected = generate_pentode_measurements(triode_connected=True)
    assert fixed.measurement_type is MeasurementType.IPIS_VA_VG_VS_VH
    assert connected.measurement_type is MeasurementType.IPIS_VAVS_VG_VH
    assert all(p.es == 250.0 for p in fixed.series[0].points)
    assert all(p.es == p.ep for p in connected.series[0].points)
