#!/usr/bin/env python3
"""Tests for the model error functions and measurement point gating."""

import math
from dataclasses import replace

import numpy as np
import pytest

from tube_analysis.io import (
    MeasurementFile,
    MeasurementPoint,
    MeasurementSeries,
    MeasurementType,
    generate_triode_measurements,
    generate_pentode_measurements,
    SYNTHETIC_TRIODE,
    SYNTHETIC_PENTODE,
)
from tube_analysis.models import (
    MAX_VALUE,
    INVALID_ERROR,
    TriodeParameters,
    DerkParameters,
    PentodeParameters,
    collect_triode_points,
    collect_pentode_points,
    triode_model,
    triode_model_error,
    pentode_model_error,
    derk_model_error,
    derke_model_error,
)
from tube_analysis.models.errors import error_from_residuals


def triode_file(points, measurement_type=MeasurementType.IP_VA_VG_VH, eg_offset=0.0):
    return MeasurementFile('test', measurement_type,
                           [MeasurementSeries(eg=points[0].eg, points=list(points))],
                           eg_offset=eg_offset)


@pytest.fixture
def triode_files():
    return [generate_triode_measurements()]


@pytest.fixture
def pentode_files():
    return [generate_pentode_measurements()]


# ---------------------------------------------------------------------------
# Point collection
# ---------------------------------------------------------------------------

def test_triode_points_dissipation_gate():
    points = [MeasurementPoint(ep=100, eg=-1, ip=5.0),    # 0.5 W
              MeasurementPoint(ep=200, eg=-1, ip=10.0),   # 2.0 W, on the limit
              MeasurementPoint(ep=300, eg=-1, ip=10.0)]   # 3.0 W
    collected = collect_triode_points([triode_file(points)], 2.0)
    np.testing.assert_array_equal(collected.ep, [100, 200])


def test_triode_points_skip_zero_current():
    points = [MeasurementPoint(ep=0, eg=-1, ip=0.0), MeasurementPoint(ep=100, eg=-1, ip=1.0)]
    assert len(collect_triode_points([triode_file(points)], 10.0)) == 1


def test_triode_points_use_total_current_and_offset():
    points = [MeasurementPoint(ep=100, eg=-1, ip=2.0, es=100, is_=0.5)]
    file = triode_file(points, MeasurementType.IPIS_VAVS_VG_VH, eg_offset=-0.2)
    collected = collect_triode_points([file], 10.0)
    assert collected.current[0] == 2.5
    assert collected.eg[0] == pytest.approx(-1.2)


def test_pentode_points_ignore_triode_files(triode_files, pentode_files):
    assert len(collect_pentode_points(triode_files, 100.0)) == 0
    assert len(collect_pentode_points(pentode_files, 100.0)) == pentode_files[0].point_count
    assert len(collect_triode_points(pentode_files, 100.0)) == 0


def test_pentode_points_gate_on_plate_dissipation_only():
    """Screen current does not count towards the plate dissipation gate."""
    points = [MeasurementPoint(ep=100, eg=-1, ip=10.0, es=250, is_=100.0)]
    file = MeasurementFile('p', MeasurementType.IPIS_VA_VG_VS_VH,
                           [MeasurementSeries(eg=-1, es=250, points=points)])
    assert len(collect_pentode_points([file], 1.0)) == 1
    assert len(collect_pentode_points([file], 0.5)) == 0


# ---------------------------------------------------------------------------
# Error functions
# ---------------------------------------------------------------------------

def test_triode_error_zero_for_exact_model(triode_files):
    error = triode_model_error(triode_files, SYNTHETIC_TRIODE, 2.0)
    assert error.sse == pytest.approx(0.0, abs=1e-18)
    assert error.rmse == pytest.approx(0.0, abs=1e-9)


def test_triode_error_rmse_definition():
    points = [MeasurementPoint(ep=100, eg=-1, ip=1.0), MeasurementPoint(ep=200, eg=-1, ip=2.0)]
    p = SYNTHETIC_TRIODE
    model = [triode_model(pt.ep, pt.eg, p.kp, p.mu, p.kvb, p.ex, p.kg1) for pt in points]
    sse = sum((m - pt.ip) ** 2 for m, pt in zip(model, points))
    error = triode_model_error([triode_file(points)], p, 10.0)
    assert error.sse == pytest.approx(sse)
    assert error.rmse == pytest.approx(math.sqrt(sse / 2))


def test_triode_error_sentinel_for_zero_kg1(triode_files):
    parameters = TriodeParameters(mu=100, ex=1.4, kg1=0.0, kp=600, kvb=300)
    error = triode_model_error(triode_files, parameters, 2.0)
    assert error == INVALID_ERROR
    assert error.sse == MAX_VALUE / 2


def test_pentode_error_sentinel_for_zero_kg2(pentode_files):
    parameters = PentodeParameters(mu=11, ex=1.35, kg1=650, kp=60, kvb=100, kg2=0.0)
    assert pentode_model_error(pentode_files, parameters, 50.0) == INVALID_ERROR


def test_derke_error_zero_for_exact_model(pentode_files):
    error = derke_model_error(pentode_files, SYNTHETIC_PENTODE, 50.0)
    assert error.rmse == pytest.approx(0.0, abs=1e-8)


def test_derke_error_ignores_points_above_dissipation(pentode_files):
    parameters = replace(SYNTHETIC_PENTODE, kg1=700.0)
    baseline = derke_model_error(pentode_files, parameters, 50.0)

    hot = [MeasurementPoint(ep=400, eg=-1, ip=1000.0, es=250, is_=5.0)]    # 400 W
    files = pentode_files + [MeasurementFile('hot', MeasurementType.IPIS_VA_VG_VS_VH,
                                             [MeasurementSeries(eg=-1, es=250, points=hot)])]
    gated = derke_model_error(files, parameters, 50.0)
    assert baseline.sse > 0
    assert gated.sse == baseline.sse
    assert gated.rmse == baseline.rmse

    assert derke_model_error(files, parameters, 500.0).sse > baseline.sse


def test_derk_error_differs_from_derke(pentode_files):
    """Same parameters evaluated with the hyperbolic knee do not fit Derk-E data."""
    derk = DerkParameters(**{k: v for k, v in SYNTHETIC_PENTODE.as_dict().items() if k != 'alpha'})
    assert derk_model_error(pentode_files, derk, 50.0).rmse > 0.01


def test_error_without_points_is_zero():
    error = triode_model_error([], SYNTHETIC_TRIODE, 2.0)
    assert error.sse == 0.0
    assert error.rmse == 0.0


@pytest.mark.parametrize("bad", [np.inf, np.nan])
def test_error_from_non_finite_residuals(bad):
    assert error_from_residuals(np.array([1.0, bad]), 2) == INVALID_ERROR
