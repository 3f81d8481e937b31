"""
Custom logging configuration for the tube CLI.

Level-split output:
- INFO: no prefix, stdout
- WARNING: "! " prefix, stdout
- ERROR: "!! " prefix, stderr
- DEBUG: "[DEBUG] " prefix, stderr (only with -v)
"""

import argparse
import logging
import sys

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Formatters
# =============================================================================

class _PrefixFormatter(logging.Formatter):
    prefix = ''

    def format(self, record):
        return f"{self.prefix}{record.getMessage()}"


class InfoFormatter(_PrefixFormatter):
    """INFO - plain message."""


class WarningFormatter(_PrefixFormatter):
    """WARNING - prefix '! '."""
    prefix = '! '


class ErrorFormatter(_PrefixFormatter):
    """ERROR/CRITICAL - prefix '!! '."""
    prefix = '!! '


class DebugFormatter(_PrefixFormatter):
    """DEBUG - prefix '[DEBUG] '."""
    prefix = '[DEBUG] '


class LevelFilter(logging.Filter):
    """Pass only records of the given level(s)."""

    def __init__(self, levels):
        super().__init__()
        self.levels = levels if isinstance(levels, (list, tuple)) else [levels]

    def filter(self, record):
        return record.levelno in self.levels


# =============================================================================
# Setup Functions
# =============================================================================

def _add_handler(stream, level: int, formatter: logging.Formatter, exact: bool = True) -> None:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    if exact:
        handler.addFilter(LevelFilter(level))
    handler.setFormatter(formatter)
    logging.getLogger().addHandler(handler)


def setup_logging(args: argparse.Namespace) -> None:
    """
    Configure the root logger from the command line switches.

    - default: INFO and WARNING on stdout, ERROR on stderr
    - -q: INFO suppressed
    - -v: DEBUG on stderr in addition

    Parameters
    ----------
    args : argparse.Namespace
        Parsed arguments with 'quiet' and 'verbose' attributes
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    if not args.quiet:
        _add_handler(sys.stdout, logging.INFO, InfoFormatter())
    _add_handler(sys.stdout, logging.WARNING, WarningFormatter())
    _add_handler(sys.stderr, logging.ERROR, ErrorFormatter(), exact=False)
    if args.verbose >= 1:
        _add_handler(sys.stderr, logging.DEBUG, DebugFormatter())

    # matplotlib font manager is noisy at DEBUG
    logging.getLogger('matplotlib').setLevel(logging.WARNING)


def log_separator(length: int = 50, char: str = "=") -> None:
    """Log a separator line at INFO."""
    logger.info(char * length)
