"""Fixed-step scheduler with decoupled physics and flush cadences.

The physics cadence ticks every max(1 ms, floor(dt * 1000)) ms and runs as
many steps per tick as keep simulated time at 1:1 with wall time. The flush
cadence (16 ms by default) snapshots history for the display side.

Both cadences are SimPy processes on one virtual clock (1 unit = 1 ms).
`run_for()` advances that clock directly; `run_realtime()` advances it to
follow the event loop's monotonic clock. `tick()` and `flush()` can also be
called on their own.
"""

import asyncio
import logging
import math
from typing import Callable

import simpy

from playground.core.session import SessionState

logger = logging.getLogger(__name__)

FLUSH_INTERVAL_MS = 16
REALTIME_RESOLUTION_S = 0.001


def tick_interval_ms(dt: float) -> int:
    """Physics timer period for a given step size."""
    return max(1, math.floor(dt * 1000))


def steps_per_tick(dt: float, interval_ms: int) -> int:
    return max(1, round(dt * 1000 / interval_ms))


class LoopScheduler:
    """Owns both cadences of one session."""

    def __init__(
        self,
        session: SessionState,
        flush_interval_ms: int = FLUSH_INTERVAL_MS,
        on_flush: Callable[[dict], None] | None = None,
    ):
        self.session = session
        self.flush_interval_ms = flush_interval_ms
        self.on_flush = on_flush
        self.env = simpy.Environment()
        self._generation = 0
        self._armed_interval_ms: int | None = None
        self._flush_armed = False
        self.ticks = 0
        self.flushes = 0

    @property
    def interval_ms(self) -> int:
        return tick_interval_ms(self.session.params.dt)

    @property
    def steps_per_tick(self) -> int:
        return steps_per_tick(self.session.params.dt, self.interval_ms)

    @property
    def armed(self) -> bool:
        return self._armed_interval_ms is not None

    def tick(self) -> int:
        """Run one physics tick. Returns the number of steps taken."""
        self.ticks += 1
        if not self.session.running:
            return 0
        n = self.steps_per_tick
        for _ in range(n):
            self.session.step()
        return n

    def flush(self) -> dict:
        """Snapshot history as a `data` message and hand it to on_flush."""
        frame = {"type": "data", **self.session.snapshot()}
        self.flushes += 1
        if self.on_flush is not None:
            self.on_flush(frame)
        return frame

    # ------------------------------------------------------------------
    # Cadences
    # ------------------------------------------------------------------
    def arm(self) -> bool:
        """Arm both cadences, re-arming physics only if its period changed.

        The flush cadence never depends on dt and is started once. Returns
        True when a new physics cadence was started.
        """
        if not self._flush_armed:
            self._flush_armed = True
            self.env.process(self._flush_process())

        interval = self.interval_ms
        if interval == self._armed_interval_ms:
            return False
        self._generation += 1
        self._armed_interval_ms = interval
        self.env.process(self._physics_process(self._generation, interval))
        logger.debug("Physics cadence armed (interval=%d ms, steps/tick=%d)",
                     interval, self.steps_per_tick)
        return True

    def run_for(self, duration_ms: float):
        """Advance the virtual clock, arming the cadences on first use."""
        if not self.armed:
            self.arm()
        self.env.run(until=self.env.now + duration_ms)

    async def run_realtime(self, resolution_s: float = REALTIME_RESOLUTION_S):
        """Keep the virtual clock in step with the event loop clock.

        Runs until cancelled. Events due up to the current wall time are
        processed on each wake-up, so simulated time never runs ahead.
        """
        if not self.armed:
            self.arm()
        loop = asyncio.get_running_loop()
        origin = loop.time() - self.env.now / 1000.0
        while True:
            await asyncio.sleep(resolution_s)
            target = (loop.time() - origin) * 1000.0
            if target > self.env.now:
                self.env.run(until=target)

    @property
    def now_ms(self) -> float:
        return self.env.now

    def _physics_process(self, generation: int, interval_ms: int):
        while True:
            yield self.env.timeout(interval_ms)
            if generation != self._generation:
                return
            self.tick()

    def _flush_process(self):
        while True:
            yield self.env.timeout(self.flush_interval_ms)
            self.flush()
