"""Top-level package for the wallchart project.

This package provides a command-line interface via :mod:`wallchart.cli`,
data providers in :mod:`wallchart.providers`, chart computation and
rendering in :mod:`wallchart.charts`, and the minute-aligned scheduler
and snapshot pipeline in :mod:`wallchart.orchestration`.
"""

__all__ = [
    "cli",
    "config",
    "providers",
    "charts",
    "orchestration",
]
