#!/usr/bin/env python3
"""
Tests for the tube command line interface.

Covers argument parsing, logging setup, data loading and the complete
workflow through tube.main() on synthetic data.
"""

import logging

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import pytest

import tube
from tube_analysis.cli import (
    TubeAnalysisError,
    LoadedMeasurements,
    parse_arguments,
    setup_logging,
    load_tube_data,
    select_model,
    run_initial_estimation,
    run_model_fitting,
    run_distortion_analysis,
    save_figure,
    parse_initial_estimates,
)
from tube_analysis.cli.logging import _PrefixFormatter
from tube_analysis.io import (
    generate_triode_measurements,
    generate_pentode_measurements,
    save_measurements_json,
    SYNTHETIC_TRIODE,
)


@pytest.fixture(autouse=True)
def restore_logging():
    """Drop the handlers setup_logging() installs on the root logger."""
    root = logging.getLogger()
    level = root.level
    np.random.seed(42)
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, _PrefixFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
    plt.close('all')


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def test_defaults():
    args = parse_arguments([])
    assert args.input is None
    assert args.model is None
    assert args.algorithm == 'powell'
    assert args.max_iterations == 100
    assert args.tolerance == 1e-3
    assert args.noise == 0.01
    assert not args.thd
    assert args.thd_screen is None


def test_options():
    args = parse_arguments(['data.json', '-m', 'derk', '--secondary-emission', '-P', '12',
                            '-a', 'levenberg-marquardt', '--thd', '--thd-bias', '-7'])
    assert args.input == 'data.json'
    assert args.model == 'derk'
    assert args.secondary_emission
    assert args.max_dissipation == 12.0
    assert args.algorithm == 'levenberg-marquardt'
    assert args.thd_bias == -7.0


def test_invalid_model_exits():
    with pytest.raises(SystemExit):
        parse_arguments(['--model', 'heptode'])


def test_parse_initial_estimates():
    estimates = parse_initial_estimates("mu=100, kg1=1060, lambda=12")
    assert estimates.mu == 100.0
    assert estimates.kg1 == 1060.0
    assert estimates.lambda_ == 12.0
    assert estimates.kp is None
    assert parse_initial_estimates(None) is None
    assert parse_initial_estimates("  ") is None


@pytest.mark.parametrize("text", ["gamma=1", "mu", "mu=abc"])
def test_parse_initial_estimates_invalid(text):
    with pytest.raises(ValueError):
        parse_initial_estimates(text)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def test_logging_prefixes(capsys):
    setup_logging(parse_arguments([]))
    log = logging.getLogger('tube_analysis.test')
    log.info("plain")
    log.warning("careful")
    log.error("broken")
    log.debug("hidden")

    captured = capsys.readouterr()
    assert captured.out.splitlines() == ["plain", "! careful"]
    assert captured.err.splitlines() == ["!! broken"]


def test_logging_quiet_verbose(capsys):
    setup_logging(parse_arguments(['-q', '-v']))
    log = logging.getLogger('tube_analysis.test')
    log.info("plain")
    log.debug("details")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.splitlines() == ["[DEBUG] details"]


# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------

def test_synthetic_triode_data():
    data = load_tube_data(parse_arguments([]))
    assert data.title == "Synthetic data"
    assert data.maximum_plate_dissipation == 2.0
    assert select_model(data, parse_arguments([])) == 'triode'


def test_synthetic_pentode_data():
    args = parse_arguments(['-m', 'derke', '-P', '40'])
    data = load_tube_data(args)
    assert len(data.files) == 2
    assert data.maximum_plate_dissipation == 40.0
    assert select_model(data, args) == 'derke'


def test_select_model_for_pentode_file():
    data = LoadedMeasurements([generate_pentode_measurements()], "test", 50.0)
    assert select_model(data, parse_arguments([])) == 'derke'


def test_missing_file():
    with pytest.raises(TubeAnalysisError, match="does not exist"):
        load_tube_data(parse_arguments(['/nonexistent/tube.json']))


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(TubeAnalysisError, match="Error loading file"):
        load_tube_data(parse_arguments([str(path)]))


def test_dissipation_required(tmp_path):
    path = tmp_path / "triode.json"
    save_measurements_json([generate_triode_measurements()], str(path))

    with pytest.raises(TubeAnalysisError, match="--max-dissipation"):
        load_tube_data(parse_arguments([str(path)]))
    with pytest.raises(TubeAnalysisError, match="positive"):
        load_tube_data(parse_arguments([str(path), '-P', '0']))

    data = load_tube_data(parse_arguments([str(path), '-P', '1.5']))
    assert data.title == "triode.json"
    assert data.maximum_plate_dissipation == 1.5


def test_export_json(tmp_path):
    path = tmp_path / "exported.json"
    load_tube_data(parse_arguments(['--export-json', str(path)]))

    data = load_tube_data(parse_arguments([str(path)]))
    assert data.maximum_plate_dissipation == 2.0
    assert data.files[0].point_count == 5 * 31


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def test_initial_estimation_only():
    args = parse_arguments(['--no-fit', '--initial', 'mu=100'])
    data = load_tube_data(args)
    parameters, fig = run_initial_estimation(data, 'triode', args)
    assert parameters.mu == 100.0
    assert fig is not None


def test_invalid_initial_estimates():
    args = parse_arguments(['--initial', 'gamma=1'])
    data = load_tube_data(args)
    with pytest.raises(TubeAnalysisError):
        run_initial_estimation(data, 'triode', args)


def test_fitting_rejects_zero_iterations():
    args = parse_arguments(['--max-iterations', '0'])
    data = load_tube_data(args)
    with pytest.raises(TubeAnalysisError, match="max-iterations"):
        run_model_fitting(data, 'triode', args)


def test_distortion():
    assert run_distortion_analysis(SYNTHETIC_TRIODE, parse_arguments([])) is None

    thd = run_distortion_analysis(SYNTHETIC_TRIODE, parse_arguments(['--thd']))
    assert 0 < thd < 100

    with pytest.raises(TubeAnalysisError):
        run_distortion_analysis(SYNTHETIC_TRIODE, parse_arguments(['--thd', '--thd-amplitude', '0']))
    with pytest.raises(TubeAnalysisError, match="Cannot compute THD"):
        run_distortion_analysis(SYNTHETIC_TRIODE, parse_arguments(['--thd', '--thd-bias', '-1000']))


def test_save_figure(tmp_path):
    fig, ax = plt.subplots()
    ax.plot([0, 1], [0, 1])
    prefix = str(tmp_path / "result")

    save_figure(fig, prefix, 'curves', 'png')
    save_figure(fig, None, 'skipped', 'png')
    save_figure(None, prefix, 'empty', 'png')

    assert [p.name for p in tmp_path.iterdir()] == ["result_curves.png"]


# ---------------------------------------------------------------------------
# Complete workflow
# ---------------------------------------------------------------------------

def test_main_triode(tmp_path):
    prefix = str(tmp_path / "triode")
    tube.main(['--no-show', '-q', '--max-iterations', '5', '--trace', '--thd', '-s', prefix])

    assert (tmp_path / "triode_curves.png").exists()
    assert (tmp_path / "triode_trace.png").exists()


def test_main_pentode_no_fit():
    tube.main(['--no-show', '-q', '-m', 'derk', '--no-fit', '--secondary-emission'])


def test_main_error_exit_code():
    with pytest.raises(SystemExit) as excinfo:
        tube.main(['/nonexistent/tube.json', '--no-show', '-q'])
    assert excinfo.value.code == 1
