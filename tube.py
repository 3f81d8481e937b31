#!/usr/bin/env python3
"""
Tube Model Parameter Estimation
===============================

CLI tool fitting vacuum tube SPICE model parameters to measured curves.

Version: Imported from tube_analysis.version (single source of truth)

Features:
- Koren triode and pentode models
- Derk / Derk-E pentode models with optional secondary emission
- Heuristic initial estimates from the measured curves
- Powell or Levenberg-Marquardt refinement
- Total harmonic distortion at an operating point

Usage:
    tube                                 # synthetic triode demo
    tube --model derke                   # synthetic pentode demo
    tube 12ax7.json                      # fit triode measurements
    tube el84.json -m derk --secondary-emission -P 12
    tube 12ax7.json --thd --thd-bias -1.5
    tube data.json --no-fit              # initial estimates only

    tube --help                          # help
"""

import argparse
import logging
import sys

import matplotlib.pyplot as plt

from tube_analysis import get_version_string
from tube_analysis.cli import (
    setup_logging,
    log_separator,
    parse_arguments,
    load_tube_data,
    select_model,
    run_initial_estimation,
    run_model_fitting,
    run_trace_plot,
    run_distortion_analysis,
    TubeAnalysisError,
)

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entry point."""
    args = parse_arguments(argv)
    setup_logging(args)

    try:
        _run_analysis(args)
    except TubeAnalysisError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Analysis interrupted by user")
        sys.exit(130)


def _run_analysis(args: argparse.Namespace) -> None:
    """Run the estimation pipeline."""
    log_separator(60)
    logger.info(f"Tube Model Analysis ({get_version_string()})")
    log_separator(60)

    data = load_tube_data(args)
    model = select_model(data, args)

    if args.no_fit:
        parameters, _ = run_initial_estimation(data, model, args)
    else:
        result, _ = run_model_fitting(data, model, args)
        run_trace_plot(result, args)
        parameters = result.parameters

    run_distortion_analysis(parameters, args)

    if not args.no_show:
        plt.show()

    log_separator(60)
    logger.info("Analysis complete")
    log_separator(60)


if __name__ == "__main__":
    main()
