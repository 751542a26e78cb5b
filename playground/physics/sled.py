"""Sled: translational mass with viscous friction and no restoring force.

    m * dv/dt + b * v = K * u
    dy/dt = v

Explicit forward-Euler update; y is position.
"""

from dataclasses import dataclass

from playground.core.parameters import HiddenPlantConstants, SimulationParameters

MIN_MASS = 1e-6


@dataclass(frozen=True)
class SledState:
    y: float = 0.0    # position
    v: float = 0.0    # velocity


def advance(
    state: SledState,
    u_eff: float,
    params: SimulationParameters,
    constants: HiddenPlantConstants,
    dt: float,
) -> SledState:
    """Advance the sled by one step of dt seconds."""
    mass = max(constants.mass, MIN_MASS)
    dv = (constants.gain * u_eff - params.friction * state.v) / mass * dt
    v = state.v + dv
    return SledState(y=state.y + v * dt, v=v)
