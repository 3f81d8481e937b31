#!/usr/bin/env python3
"""Tests for total harmonic distortion."""

import math

import numpy as np
import pytest

from tube_analysis.analysis import total_harmonic_distortion
from tube_analysis.io import SYNTHETIC_TRIODE
from tube_analysis.models import model_currents


def test_linear_characteristic_has_no_distortion():
    assert total_harmonic_distortion(lambda eg: 10 * eg) == pytest.approx(0.0, abs=1e-6)


def test_offset_does_not_add_distortion():
    """DC offset only changes bin 0."""
    assert total_harmonic_distortion(lambda eg: 3.0 + 2.0 * eg) == pytest.approx(0.0, abs=1e-6)


def test_square_wave():
    expected = 100 * math.sqrt(math.pi ** 2 / 8 - 1)
    thd = total_harmonic_distortion(lambda eg: 1.0 if eg > 0 else -1.0)
    assert thd == pytest.approx(expected, abs=0.5)


def test_square_law_second_harmonic():
    """f(x) = x + c x^2 gives H2/H1 = c/2."""
    c = 0.2
    thd = total_harmonic_distortion(lambda eg: eg + c * eg * eg)
    assert thd == pytest.approx(100 * c / 2, rel=1e-6)


def test_triode_distortion_is_small_but_positive():
    p = SYNTHETIC_TRIODE
    thd = total_harmonic_distortion(lambda x: model_currents(p, 250.0, -1.5 + 0.5 * x).ip)
    assert 0.0 < thd < 20.0


@pytest.mark.parametrize("samples", [0, 3, 7])
def test_invalid_sample_count(samples):
    with pytest.raises(ValueError):
        total_harmonic_distortion(lambda eg: eg, samples=samples)


@pytest.mark.parametrize("transfer_function", [
    lambda eg: 0.0,
    lambda eg: 2.5,
    lambda eg: eg * eg,
])
def test_no_fundamental(transfer_function):
    """Constant and even characteristics have |H1| = 0."""
    with pytest.raises(ValueError, match="no fundamental"):
        total_harmonic_distortion(transfer_function)


def test_cut_off_triode():
    p = SYNTHETIC_TRIODE
    with pytest.raises(ValueError):
        total_harmonic_distortion(lambda x: model_currents(p, 250.0, -1000.0 + 0.5 * x).ip)
