"""Orchestration helpers for wallchart.

This package provides the snapshot pipeline that runs one update cycle
and the minute-aligned scheduler that drives it.  These helpers are
intended to be used by the CLI commands defined in :mod:`wallchart.cli`.
"""

from .pipeline import SnapshotPipeline, write_atomic  # noqa: F401
from .scheduler import (  # noqa: F401
    SchedulerState,
    UpdateScheduler,
    compute_next_boundary,
    ms_until_next_minute,
)
