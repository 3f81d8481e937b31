#!/usr/bin/env python3
"""
Tests for the model fitting entry points.

Fits run on noise-free synthetic curves with a short iteration budget;
they check the contract (never worse than the estimate, inputs left
untouched, dispatch) rather than exact parameter recovery.
"""

import math

import pytest

from tube_analysis.fitting import (
    ModelFitResult,
    LEVENBERG_MARQUARDT,
    POWELL,
    fit_triode_model,
    fit_pentode_model,
    fit_derk_model,
    fit_derke_model,
    fit_model,
)
from tube_analysis.io import generate_triode_measurements, generate_pentode_measurements
from tube_analysis.models import (
    InitialEstimates,
    TriodeParameters,
    PentodeParameters,
    DerkParameters,
    DerkEParameters,
)
from tube_analysis.optimization import FitConfiguration

SHORT = FitConfiguration(max_iterations=20)


@pytest.fixture
def triode_data():
    return [generate_triode_measurements()]


@pytest.fixture
def pentode_data():
    return [generate_pentode_measurements(triode_connected=True, name='triode connected'),
            generate_pentode_measurements(name='pentode')]


def assert_not_worse(result: ModelFitResult):
    assert result.sse >= 0
    assert result.rmse <= result.initial_rmse
    assert result.parameters.is_usable()


# ---------------------------------------------------------------------------
# Triode
# ---------------------------------------------------------------------------

def test_triode_powell(triode_data):
    result = fit_triode_model(triode_data, 2.0, config=SHORT)

    assert isinstance(result.parameters, TriodeParameters)
    assert result.algorithm == POWELL
    assert result.iterations > 0
    assert result.trace is None
    assert_not_worse(result)


def test_triode_levenberg_marquardt(triode_data):
    result = fit_triode_model(triode_data, 2.0, algorithm=LEVENBERG_MARQUARDT)
    assert result.algorithm == LEVENBERG_MARQUARDT
    assert_not_worse(result)


def test_triode_initial_not_modified(triode_data):
    initial = InitialEstimates(mu=100.0)
    result = fit_triode_model(triode_data, 2.0, initial=initial, config=SHORT)

    assert initial.ex is None
    assert initial.mu == 100.0
    assert result.initial_parameters.mu == 100.0


def test_triode_trace(triode_data):
    result = fit_triode_model(triode_data, 2.0, config=SHORT, trace_enabled=True)

    trace = result.trace
    assert trace is not None
    assert 'mu' in trace.estimates
    assert trace.function_calls > 0
    assert len(trace.history) == len(trace.function_values) > 0


def test_triode_cancelled(triode_data):
    result = fit_triode_model(triode_data, 2.0, should_stop=lambda: True)

    assert not result.converged
    assert result.message == "Cancelled"
    assert_not_worse(result)


def test_unknown_algorithm(triode_data):
    with pytest.raises(ValueError, match="Unknown algorithm"):
        fit_triode_model(triode_data, 2.0, algorithm='simplex')


def test_repr(triode_data):
    text = repr(fit_triode_model(triode_data, 2.0, config=SHORT))
    assert text.startswith("Model Fit Result (triode, powell):")
    assert "RMSE" in text
    assert "kvb = " in text


# ---------------------------------------------------------------------------
# Pentode families
# ---------------------------------------------------------------------------

def test_pentode(pentode_data):
    result = fit_pentode_model(pentode_data, 50.0, config=SHORT)
    assert type(result.parameters) is PentodeParameters
    assert_not_worse(result)


def test_derk(pentode_data):
    result = fit_derk_model(pentode_data, 50.0, config=SHORT)
    assert type(result.parameters) is DerkParameters
    assert result.parameters.secondary_emission is None
    assert_not_worse(result)


def test_derk_secondary_emission(pentode_data):
    result = fit_derk_model(pentode_data, 50.0, secondary_emission=True, config=SHORT)

    assert result.parameters.secondary_emission is not None
    assert len(result.parameters.to_vector()) == 14
    assert_not_worse(result)


def test_derke_levenberg_marquardt(pentode_data):
    result = fit_derke_model(pentode_data, 50.0, algorithm=LEVENBERG_MARQUARDT)
    assert type(result.parameters) is DerkEParameters
    assert_not_worse(result)


def test_derke_initial_values_kept_as_start(pentode_data):
    initial = InitialEstimates(kg2=4000.0, alpha_s=2.0)
    result = fit_derke_model(pentode_data, 50.0, initial=initial, config=SHORT)

    assert result.initial_parameters.kg2 == 4000.0
    assert result.initial_parameters.alpha_s == 2.0
    assert initial.mu is None


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("model, cls", [
    ('triode', TriodeParameters),
    ('pentode', PentodeParameters),
    ('derk', DerkParameters),
    ('derke', DerkEParameters),
])
def test_fit_model_dispatch(triode_data, pentode_data, model, cls):
    files = triode_data if model == 'triode' else pentode_data
    maximum = 2.0 if model == 'triode' else 50.0
    result = fit_model(model, files, maximum, config=FitConfiguration(max_iterations=2))

    assert type(result.parameters) is cls
    assert math.isfinite(result.rmse)


def test_fit_model_unknown(triode_data):
    with pytest.raises(ValueError, match="Unknown model"):
        fit_model('heptode', triode_data, 2.0)
