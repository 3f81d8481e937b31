"""
Measurement loading for the tube CLI.

Contains:
- load_tube_data: load from file or generate synthetic data
- select_model: default model family for the loaded data
"""

import argparse
import logging
import os

from .utils import TubeAnalysisError, LoadedMeasurements
from ..io import (
    load_measurements_json,
    save_measurements_json,
    generate_triode_measurements,
    generate_pentode_measurements,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Synthetic Data Configuration
# =============================================================================

SYNTHETIC_TRIODE_DISSIPATION = 2.0
"""Dissipation gate of the synthetic 12AX7-like triode [W]."""

SYNTHETIC_PENTODE_DISSIPATION = 50.0
"""Dissipation gate of the synthetic EL84-like pentode [W]."""


# =============================================================================
# Data Loading
# =============================================================================

def _synthetic_data(args: argparse.Namespace) -> LoadedMeasurements:
    if args.model in (None, 'triode'):
        files = [generate_triode_measurements(noise=args.noise)]
        dissipation = SYNTHETIC_TRIODE_DISSIPATION
    else:
        files = [
            generate_pentode_measurements(noise=args.noise, triode_connected=True,
                                          name='synthetic pentode (triode connected)'),
            generate_pentode_measurements(noise=args.noise),
        ]
        dissipation = SYNTHETIC_PENTODE_DISSIPATION
    if args.max_dissipation is not None:
        dissipation = args.max_dissipation
    return LoadedMeasurements(files=files, title="Synthetic data",
                              maximum_plate_dissipation=dissipation)


def load_tube_data(args: argparse.Namespace) -> LoadedMeasurements:
    """
    Load measurements from file or generate synthetic data.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command line arguments. Uses input, model, noise,
        max_dissipation and export_json.

    Returns
    -------
    LoadedMeasurements

    Raises
    ------
    TubeAnalysisError
        If the file does not exist, cannot be parsed or no dissipation
        limit is known
    """
    if args.input is None:
        data = _synthetic_data(args)
    else:
        if not os.path.exists(args.input):
            raise TubeAnalysisError(f"File '{args.input}' does not exist!")
        try:
            files, stored_dissipation = load_measurements_json(args.input)
        except ValueError as e:
            raise TubeAnalysisError(f"Error loading file: {e}") from e

        dissipation = args.max_dissipation if args.max_dissipation is not None else stored_dissipation
        if dissipation is None:
            raise TubeAnalysisError(
                "Maximum plate dissipation unknown. Use --max-dissipation (-P)."
            )
        if dissipation <= 0:
            raise TubeAnalysisError(f"Maximum plate dissipation must be positive, got {dissipation}")
        data = LoadedMeasurements(files=files, title=os.path.basename(args.input),
                                  maximum_plate_dissipation=dissipation)

    for f in data.files:
        logger.info(f"{f.name}: {f.measurement_type.value}, {len(f.series)} curves, "
                    f"{f.point_count} points")
    logger.info(f"Maximum plate dissipation: {data.maximum_plate_dissipation:g} W")

    if args.export_json:
        try:
            save_measurements_json(data.files, args.export_json, data.maximum_plate_dissipation)
        except OSError as e:
            raise TubeAnalysisError(f"Cannot write {args.export_json}: {e}") from e
        logger.info(f"Saved: {args.export_json}")

    return data


def select_model(data: LoadedMeasurements, args: argparse.Namespace) -> str:
    """
    Model family to fit: --model, else triode when every file is a
    triode measurement, else derke.
    """
    if args.model is not None:
        return args.model
    if all(f.measurement_type.is_triode for f in data.files):
        return 'triode'
    return 'derke'
