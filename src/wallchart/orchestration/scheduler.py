"""Minute-aligned update scheduler for wallchart.

The scheduler waits until the next wall-clock minute boundary, fires one
update cycle, and then fires again every ``interval`` seconds.  Cycles
are started as independent asyncio tasks, so the timer never waits for
a cycle to finish and a slow cycle may overlap with the next one unless
``skip_if_busy`` is enabled.

Only the first firing is aligned; later firings are spaced by the fixed
interval and may drift by the event loop's scheduling latency.
"""

from __future__ import annotations

import asyncio
import enum
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional, Set

import click

from ..config import UPDATE_INTERVAL_SECONDS

Cycle = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    WAITING_FOR_BOUNDARY = "waiting_for_boundary"
    REPEATING = "repeating"
    STOPPED = "stopped"


def ms_until_next_minute(now: datetime) -> int:
    """Milliseconds from ``now`` until the start of the next minute.

    At ``HH:MM:45.500`` this is ``14500``.  Exactly on a boundary it is a
    full minute, never zero.
    """
    return (60 - now.second) * 1000 - now.microsecond // 1000


def compute_next_boundary(now: Optional[datetime] = None) -> datetime:
    """Return the datetime of the first firing for a scheduler started at ``now``."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now + timedelta(milliseconds=ms_until_next_minute(now))


class UpdateScheduler:
    """Own the timing of update cycles.

    Parameters
    ----------
    cycle : callable
        Zero-argument coroutine function that runs one update cycle.
    interval : float
        Seconds between firings once aligned.  Defaults to 60.
    clock : callable, optional
        Returns the current datetime; only used for the initial alignment.
    sleep : callable, optional
        Awaitable sleep; injected by tests to avoid real waiting.
    skip_if_busy : bool
        When true, a firing is skipped while a previous cycle is still
        in flight.
    """

    def __init__(
        self,
        cycle: Cycle,
        interval: float = UPDATE_INTERVAL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Sleep = asyncio.sleep,
        skip_if_busy: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._cycle = cycle
        self.interval = interval
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._sleep = sleep
        self.skip_if_busy = skip_if_busy
        self.state = SchedulerState.IDLE
        self.fired = 0
        self.skipped = 0
        self._inflight: Set[asyncio.Task] = set()
        self._runner: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> int:
        return len(self._inflight)

    async def _wait_for_boundary(self) -> None:
        delay_ms = ms_until_next_minute(self._clock())
        self.state = SchedulerState.WAITING_FOR_BOUNDARY
        click.echo(f"Waiting {delay_ms} ms until the start of the next minute...")
        await self._sleep(delay_ms / 1000)

    async def run(self) -> None:
        """Align to the next minute, then fire every ``interval`` until stopped."""
        if self.state is not SchedulerState.IDLE:
            raise RuntimeError(f"Scheduler cannot start from state {self.state.value}")
        self._runner = asyncio.current_task()
        try:
            await self._wait_for_boundary()
            if self.state is SchedulerState.STOPPED:
                return
            self.state = SchedulerState.REPEATING
            while self.state is SchedulerState.REPEATING:
                self.fire()
                await self._sleep(self.interval)
        except asyncio.CancelledError:
            if self.state is not SchedulerState.STOPPED:
                raise
        finally:
            self._runner = None

    async def run_once(self) -> Any:
        """Align to the next minute, run a single cycle to completion and stop."""
        if self.state is not SchedulerState.IDLE:
            raise RuntimeError(f"Scheduler cannot start from state {self.state.value}")
        try:
            await self._wait_for_boundary()
            self.fired += 1
            return await self._cycle()
        finally:
            self.state = SchedulerState.STOPPED

    def fire(self) -> Optional[asyncio.Task]:
        """Start one cycle as a background task without waiting for it."""
        if self.skip_if_busy and self._inflight:
            self.skipped += 1
            click.echo("Previous update still running; skipping this minute", err=True)
            return None
        task = asyncio.ensure_future(self._cycle())
        self.fired += 1
        self._inflight.add(task)
        task.add_done_callback(self._on_cycle_done)
        return task

    def _on_cycle_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            click.echo(f"Update cycle crashed: {type(exc).__name__}: {exc}", err=True)

    def stop(self) -> None:
        """Stop arming timers and abandon any in-flight cycles."""
        if self.state is SchedulerState.STOPPED:
            return
        self.state = SchedulerState.STOPPED
        for task in list(self._inflight):
            task.cancel()
        runner = self._runner
        if runner is not None and runner is not _current_task_or_none():
            runner.cancel()


def _current_task_or_none() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
