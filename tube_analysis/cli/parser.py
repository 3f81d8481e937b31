"""
Argument parsing for the tube CLI.

Options are grouped:
- Input/Output options
- Model options
- Optimizer options
- Distortion options
"""

import argparse
from typing import List, Optional

from ..config import REFINEMENT_CONFIGURATION
from ..fitting import ALGORITHMS, MODELS
from ..version import get_version_string


class OnePerLineHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """Usage formatter listing one option per line."""

    def _format_usage(self, usage, actions, groups, prefix):
        if prefix is None:
            prefix = 'usage: '

        if usage is not None:
            return f'{prefix}{usage % dict(prog=self._prog)}\n\n'

        indent = ' ' * 14
        lines = [f'{prefix}{self._prog}']
        for action in actions:
            if not action.option_strings:
                if action.dest == 'help':
                    continue
                lines.append(f'{indent}[{action.dest}]' if action.nargs == '?'
                             else f'{indent}{action.dest}')
                continue
            option = action.option_strings[0]
            if action.nargs == 0:
                lines.append(f'{indent}[{option}]')
            else:
                metavar = action.metavar or action.dest.upper()
                lines.append(f'{indent}[{option} {metavar}]')

        return '\n'.join(lines) + '\n\n'


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (exposed for tests)."""
    parser = argparse.ArgumentParser(
        description=f'Vacuum tube model parameter estimation ({get_version_string()})',
        usage='tube [input] [options]',
        formatter_class=OnePerLineHelpFormatter,
        epilog="""
Examples:
  tube                                   Synthetic triode demo
  tube --model derke                     Synthetic pentode demo
  tube el84.json --model derke -P 12     Fit Derk-E model
  tube 12ax7.json -a levenberg-marquardt Fit triode with LM
  tube 12ax7.json --thd --thd-bias -1.5 --thd-plate 250
                                         THD of the fitted triode
        """
    )

    parser.add_argument('--version', action='version',
                        version=f'%(prog)s {get_version_string()}')

    # ==========================================================================
    # Input/Output Group
    # ==========================================================================
    io_group = parser.add_argument_group('Input/Output')

    io_group.add_argument('input', nargs='?', default=None,
                          help='Measurement file (.json). '
                               'Without argument, synthetic data is used.')
    io_group.add_argument('--save', '-s', type=str, default=None,
                          help='Save plots to files with this prefix')
    io_group.add_argument('--format', '-f', type=str, default='png',
                          choices=['png', 'pdf', 'svg', 'eps'],
                          help='Output format for saved plots (default: png)')
    io_group.add_argument('--no-show', action='store_true',
                          help='Do not display plots (useful with --save)')
    io_group.add_argument('--export-json', type=str, default=None, metavar='FILE',
                          help='Write the (loaded or synthetic) measurements to FILE')
    io_group.add_argument('--verbose', '-v', action='count', default=0,
                          help='Show debug messages on stderr')
    io_group.add_argument('--quiet', '-q', action='store_true',
                          help='Quiet mode - hide INFO messages, show only warnings and errors')

    # ==========================================================================
    # Model Group
    # ==========================================================================
    model_group = parser.add_argument_group('Model')

    model_group.add_argument('--model', '-m', type=str, default=None, choices=MODELS,
                             help='Model family (default: triode for triode data, derke otherwise)')
    model_group.add_argument('--max-dissipation', '-P', type=float, default=None, metavar='W',
                             help='Maximum plate dissipation [W]; points above are ignored '
                                  '(default: value stored in the input file)')
    model_group.add_argument('--secondary-emission', action='store_true',
                             help='Include secondary emission (derk, derke)')
    model_group.add_argument('--initial', type=str, default=None, metavar='LIST',
                             help="Known parameters kept as starting values, e.g. 'mu=100,kg1=1060'")
    model_group.add_argument('--noise', type=float, default=0.01,
                             help='Relative noise of synthetic data (default: 0.01)')

    # ==========================================================================
    # Optimizer Group
    # ==========================================================================
    opt_group = parser.add_argument_group('Optimizer')

    opt_group.add_argument('--algorithm', '-a', type=str, default='powell', choices=ALGORITHMS,
                           help='Refinement algorithm (default: powell)')
    opt_group.add_argument('--max-iterations', type=int,
                           default=REFINEMENT_CONFIGURATION.max_iterations,
                           help='Powell iterations per stage (default: 100)')
    opt_group.add_argument('--tolerance', type=float,
                           default=REFINEMENT_CONFIGURATION.relative_threshold,
                           help='Powell relative convergence threshold (default: 1e-3)')
    opt_group.add_argument('--trace', action='store_true',
                           help='Record and plot the optimizer history')
    opt_group.add_argument('--no-fit', action='store_true',
                           help='Only compute initial estimates')

    # ==========================================================================
    # Distortion Group
    # ==========================================================================
    thd_group = parser.add_argument_group('Distortion')

    thd_group.add_argument('--thd', action='store_true',
                           help='Compute total harmonic distortion of the fitted model')
    thd_group.add_argument('--thd-bias', type=float, default=-1.0, metavar='EG',
                           help='Grid bias [V] (default: -1)')
    thd_group.add_argument('--thd-amplitude', type=float, default=0.5, metavar='V',
                           help='Grid signal amplitude [V] (default: 0.5)')
    thd_group.add_argument('--thd-plate', type=float, default=250.0, metavar='EP',
                           help='Plate voltage [V] (default: 250)')
    thd_group.add_argument('--thd-screen', type=float, default=None, metavar='ES',
                           help='Screen voltage [V] (default: plate voltage)')

    return parser


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Parameters
    ----------
    argv : list of str, optional
        Arguments (default: sys.argv[1:])

    Returns
    -------
    args : argparse.Namespace
        Parsed command line arguments
    """
    return build_parser().parse_args(argv)
