"""Session lifecycle manager.

Each session is one closed-loop simulation with its own state and one
asyncio background task that keeps the scheduler's virtual clock in step
with wall time. The physics and ~60 Hz flush cadences run on that clock,
cooperatively on the event loop, so session state needs no locking.
Consumers subscribe to data frames through bounded queues that always
hold only the newest frame.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from backend.api.models.schemas import (
    CommandMessage,
    RandomizeMessage,
    ResetMessage,
    SessionStatus,
    StartMessage,
    UpdateMessage,
)
from backend.core.config import settings
from playground.core.metrics import response_metrics
from playground.core.parameters import SimulationParameters
from playground.core.scheduler import LoopScheduler
from playground.core.session import SessionState

logger = logging.getLogger(__name__)

EMPTY_FRAME = {"type": "data", "t": [], "y": [], "u": [], "sp": []}


class SessionRunner:
    """A single simulation session with its cadence clock task."""

    def __init__(
        self,
        session_id: uuid.UUID,
        seed: int | None = None,
        flush_interval_ms: int | None = None,
        history_capacity: int | None = None,
    ):
        self.id = session_id
        self.status = SessionStatus.PENDING
        self.created_at = datetime.now(timezone.utc)
        self.session = SessionState(
            running=False,
            seed=seed,
            history_capacity=history_capacity or settings.HISTORY_CAPACITY,
        )
        self.scheduler = LoopScheduler(
            self.session,
            flush_interval_ms=flush_interval_ms or settings.FLUSH_INTERVAL_MS,
            on_flush=self._publish,
        )
        self.latest_frame: dict[str, Any] = dict(EMPTY_FRAME)
        self._subscribers: set[asyncio.Queue] = set()
        self._clock_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def handle(self, message: CommandMessage):
        """Apply one command message from the display side."""
        if isinstance(message, StartMessage):
            self.session.start(message.params.to_engine(), message.running)
            self.arm()
        elif isinstance(message, UpdateMessage):
            self.session.update(message.params.to_engine(), message.running)
            self.arm()
        elif isinstance(message, RandomizeMessage):
            self.session.randomize(friction=message.friction)
        elif isinstance(message, ResetMessage):
            self.session.reset()

    def start(self, params: SimulationParameters, running: bool = True):
        self.session.start(params, running)
        self.arm()

    def arm(self):
        """Arm the cadences and start the clock task on first use.

        Only a changed physics period restarts the physics cadence; the
        flush cadence and the clock task keep running across updates.
        """
        if self.status in (SessionStatus.STOPPED, SessionStatus.FAILED):
            return
        if self.scheduler.arm():
            logger.info("Session %s physics cadence armed (%d ms, %d steps/tick)",
                        self.id, self.scheduler.interval_ms, self.scheduler.steps_per_tick)
        if self._clock_task is None:
            self._clock_task = asyncio.create_task(self._clock_loop())
        self.status = SessionStatus.RUNNING

    async def _clock_loop(self):
        try:
            await self.scheduler.run_realtime()
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.exception("Session %s cadence failed: %s", self.id, e)
            self.status = SessionStatus.FAILED

    def _publish(self, frame: dict):
        self.latest_frame = frame
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()   # drop the stale frame
            queue.put_nowait(frame)

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------
    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        self._subscribers.discard(queue)

    def get_snapshot(self, window_s: float | None = None) -> dict[str, Any]:
        """Session status plus loop state; `window_s` trims the data frame."""
        state = self.session.get_state()
        if window_s is None:
            data = self.latest_frame
        else:
            data = {"type": "data", **self.session.history.window(window_s)}
        return {
            "session_id": self.id,
            "status": self.status,
            "running": state["running"],
            "simulation_time": state["t"],
            "params": self.session.params,
            "controller": state["controller"],
            "actuator": state["actuator"],
            "total_samples": self.session.history.total_samples,
            "latest": self.session.history.latest(),
            "data": data,
        }

    def get_metrics(self) -> dict[str, Any]:
        return response_metrics(self.session.snapshot(), origin=self.session.step_origin)

    async def stop(self):
        """Cancel the cadences and release buffers."""
        self.status = SessionStatus.STOPPED
        if self._clock_task is not None:
            self._clock_task.cancel()
            try:
                await self._clock_task
            except asyncio.CancelledError:
                pass
        self._clock_task = None
        self._subscribers.clear()
        self.session.history.clear()
        logger.info("Session %s torn down", self.id)




class SessionManager:
    """Singleton manager for all live sessions."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._sessions: dict[uuid.UUID, SessionRunner] = {}
        return cls._instance

    async def create_session(
        self,
        params: SimulationParameters | None = None,
        running: bool = True,
        randomize_system: bool = False,
        seed: int | None = None,
        autostart: bool = True,
    ) -> SessionRunner:
        """Create a session; with autostart, send it `start` right away."""
        if self.active_count >= settings.MAX_CONCURRENT_SESSIONS:
            raise RuntimeError(
                f"Max concurrent sessions ({settings.MAX_CONCURRENT_SESSIONS}) reached"
            )

        runner = SessionRunner(session_id=uuid.uuid4(), seed=seed)
        self._sessions[runner.id] = runner
        logger.info("Session %s created", runner.id)

        if params is not None:
            runner.session.params = params
        if randomize_system:
            runner.session.randomize(friction=True)
        if autostart:
            runner.start(runner.session.params, running)
        return runner

    def get_session(self, session_id: uuid.UUID) -> SessionRunner | None:
        return self._sessions.get(session_id)

    async def send_command(self, session_id: uuid.UUID, message: CommandMessage) -> bool:
        runner = self._sessions.get(session_id)
        if runner is None:
            return False
        runner.handle(message)
        return True

    async def get_snapshot(
        self, session_id: uuid.UUID, window_s: float | None = None
    ) -> dict | None:
        runner = self._sessions.get(session_id)
        if runner is None:
            return None
        return runner.get_snapshot(window_s)

    async def get_metrics(self, session_id: uuid.UUID) -> dict | None:
        runner = self._sessions.get(session_id)
        if runner is None:
            return None
        return runner.get_metrics()

    async def stop_session(self, session_id: uuid.UUID) -> bool:
        """Tear a session down and forget it."""
        runner = self._sessions.pop(session_id, None)
        if runner is None:
            return False
        await runner.stop()
        return True

    async def shutdown(self):
        for session_id in list(self._sessions):
            await self.stop_session(session_id)

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    @property
    def all_sessions(self) -> list[dict]:
        return [
            {
                "id": str(r.id),
                "status": r.status.value,
                "plant": r.session.plant_kind.value,
                "running": r.session.running,
                "simulation_time": round(r.session.t, 3),
                "created_at": r.created_at.isoformat(),
            }
            for r in self._sessions.values()
        ]
