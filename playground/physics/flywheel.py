"""Flywheel: rotational inertia with viscous drag and a constant load torque.

    J * domega/dt = K * u - c * omega - tau_load

Explicit forward-Euler update. The observable output y is the speed omega
itself, not an integrated angle.
"""

from dataclasses import dataclass

from playground.core.parameters import HiddenPlantConstants, SimulationParameters

MIN_INERTIA = 1e-6


@dataclass(frozen=True)
class FlywheelState:
    omega: float = 0.0    # angular speed, rad/s

    @property
    def y(self) -> float:
        return self.omega


def advance(
    state: FlywheelState,
    u_eff: float,
    params: SimulationParameters,
    constants: HiddenPlantConstants,
    dt: float,
) -> FlywheelState:
    """Advance the flywheel by one step of dt seconds."""
    inertia = max(params.inertia_j, MIN_INERTIA)
    torque = constants.gain * u_eff - params.drag * state.omega - params.load_torque
    return FlywheelState(omega=state.omega + torque / inertia * dt)
