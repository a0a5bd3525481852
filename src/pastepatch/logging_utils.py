"""Logging setup for the pastepatch command line."""

from __future__ import annotations

import logging

PACKAGE_LOGGER = "pastepatch"

# Indexed by the number of ``-v`` flags, capped at the last entry.
_VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def level_for_verbosity(verbosity: int) -> int:
    """Map a ``-v`` count to a logging level."""
    return _VERBOSITY_LEVELS[min(max(verbosity, 0), len(_VERBOSITY_LEVELS) - 1)]


def configure_logging(verbosity: int) -> None:
    """Send pastepatch diagnostics to stderr.

    No flag shows per-file warnings only. ``-v`` adds the JSON events of the
    ``pastepatch.telemetry`` logger; ``-vv`` adds parser and applier detail.
    Other libraries stay at WARNING.
    """
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger(PACKAGE_LOGGER).setLevel(level_for_verbosity(verbosity))
