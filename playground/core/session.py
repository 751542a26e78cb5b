"""Session state and command handling for one closed-loop simulation.

A SessionState exclusively owns its parameters, hidden plant constants,
controller, actuator, plant state and history. Nothing is shared between
sessions, so several demos can run side by side.

Commands:
    start      reset all dynamic state, adopt parameters
    update     adopt parameters in place, dynamic state kept
    randomize  resample hidden constants only
    reset      zero dynamic state and history, parameters kept
"""

import logging

import numpy as np

from playground import physics
from playground.control.actuator import LaggedActuator
from playground.control.pid_controller import PIDController
from playground.core.history import DEFAULT_CAPACITY, HistoryBuffer
from playground.core.parameters import (
    HiddenPlantConstants,
    PlantKind,
    SimulationParameters,
)

logger = logging.getLogger(__name__)

FRICTION_RANGE = (0.0, 3.0)


class SessionState:
    """All state of one simulation session."""

    def __init__(
        self,
        params: SimulationParameters | None = None,
        constants: HiddenPlantConstants | None = None,
        running: bool = True,
        seed: int | None = None,
        history_capacity: int = DEFAULT_CAPACITY,
    ):
        self.params = params or SimulationParameters()
        self.constants = constants or HiddenPlantConstants()
        self.running = running
        self.rng = np.random.default_rng(seed)

        self.controller = PIDController()
        self.actuator = LaggedActuator()
        self.history = HistoryBuffer(history_capacity)
        self.plant_kind = PlantKind(self.params.plant)
        self.plant = physics.initial_state(self.plant_kind)
        self.t = 0.0
        self.step_origin = 0.0

        self._apply_gains()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def start(self, params: SimulationParameters, running: bool = True):
        self.params = params
        self.running = running
        self._reset_dynamic()
        self._apply_gains()
        logger.info("Session started (plant=%s, dt=%.4f, running=%s)",
                    self.plant_kind.value, params.dt, running)

    def update(self, params: SimulationParameters, running: bool = True):
        if params.setpoint != self.params.setpoint:
            # a setpoint change starts a new step from where the output is now
            self.step_origin = self.plant.y
        self.params = params
        self.running = running
        self._apply_gains()
        if PlantKind(params.plant) != self.plant_kind:
            logger.info("Plant change to %s deferred until reset",
                        PlantKind(params.plant).value)

    def randomize(self, friction: bool = False):
        """Resample hidden constants; optionally also the visible friction."""
        self.constants = HiddenPlantConstants.sample(self.rng)
        if friction:
            lo, hi = FRICTION_RANGE
            value = round(lo + self.rng.random() * (hi - lo), 2)
            self.params = self.params.with_changes(friction=value)
        logger.info("Hidden constants randomized (mass=%.3f, K=%.3f)",
                    self.constants.mass, self.constants.gain)

    def reset(self):
        self._reset_dynamic()
        logger.info("Session reset")

    # ------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------
    def step(self):
        """One fixed step: controller -> actuator -> plant -> history.

        No-op while paused.
        """
        if not self.running:
            return
        dt = self.params.dt
        command = self.controller.update(self.plant.y, dt)
        u_eff = self.actuator.step(command, dt)
        self.plant = physics.advance(
            self.plant_kind, self.plant, u_eff, self.params, self.constants, dt
        )
        self.t += dt
        self.history.append(
            self.t, self.plant.y, self.actuator.output, self.params.setpoint, u_eff
        )

    def snapshot(self) -> dict[str, list[float]]:
        return self.history.snapshot()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _apply_gains(self):
        p = self.params
        self.controller.configure(p.kp, p.ki, p.kd, setpoint=p.setpoint)

    def _reset_dynamic(self):
        self.controller.reset()
        self.actuator.reset()
        self.plant_kind = PlantKind(self.params.plant)
        self.plant = physics.initial_state(self.plant_kind)
        self.history.clear()
        self.t = 0.0
        self.step_origin = self.plant.y

    @property
    def y(self) -> float:
        return self.plant.y

    def get_state(self) -> dict:
        latest = self.history.latest()
        return {
            "t": self.t,
            "running": self.running,
            "plant": self.plant_kind.value,
            "y": self.plant.y,
            "setpoint": self.params.setpoint,
            "samples": len(self.history),
            "latest": latest,
            "controller": self.controller.get_state(),
            "actuator": self.actuator.get_state(),
        }
