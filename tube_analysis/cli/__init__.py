"""
CLI module for the tube model toolkit.

Components:
- logging: custom log formatters and setup
- parser: argument parsing
- data_handling: measurement loading
- handlers: workflow steps
- utils: exceptions, containers and helpers

The main entry point is in the root tube.py script.
"""

from .logging import setup_logging, log_separator
from .parser import parse_arguments, build_parser
from .data_handling import load_tube_data, select_model
from .handlers import (
    log_parameters,
    run_initial_estimation,
    run_model_fitting,
    run_trace_plot,
    run_distortion_analysis,
)
from .utils import (
    TubeAnalysisError,
    LoadedMeasurements,
    save_figure,
    parse_initial_estimates,
)

__all__ = [
    # Logging
    'setup_logging',
    'log_separator',
    # Parser
    'parse_arguments',
    'build_parser',
    # Data handling
    'load_tube_data',
    'select_model',
    # Handlers
    'log_parameters',
    'run_initial_estimation',
    'run_model_fitting',
    'run_trace_plot',
    'run_distortion_analysis',
    # Utils
    'TubeAnalysisError',
    'LoadedMeasurements',
    'save_figure',
    'parse_initial_estimates',
]
