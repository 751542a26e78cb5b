"""Simulation parameters and hidden plant constants.

SimulationParameters are user-visible and mutable between steps.
HiddenPlantConstants are owned by one session and only change on randomize.
"""

from dataclasses import dataclass, replace
from enum import Enum


class PlantKind(str, Enum):
    """Interchangeable plant models."""
    SLED = "sled"            # translational mass with viscous friction
    FLYWHEEL = "flywheel"    # rotational inertia with drag and load torque


@dataclass(frozen=True)
class SimulationParameters:
    dt: float = 0.01             # s, fixed integration step
    kp: float = 1.0
    ki: float = 0.0
    kd: float = 0.0
    setpoint: float = 1.0
    friction: float = 0.5        # sled viscous coefficient
    plant: PlantKind = PlantKind.SLED
    drag: float = 0.1            # flywheel viscous drag
    inertia_j: float = 1.0       # flywheel inertia, kg*m^2
    load_torque: float = 0.0     # flywheel constant opposing torque

    def with_changes(self, **changes) -> "SimulationParameters":
        return replace(self, **changes)


@dataclass(frozen=True)
class HiddenPlantConstants:
    mass: float = 1.0            # sled inertial mass, kg
    gain: float = 1.0            # actuator-to-force/torque coupling K

    MASS_RANGE = (0.5, 5.0)
    GAIN_RANGE = (0.5, 3.0)

    @classmethod
    def sample(cls, rng) -> "HiddenPlantConstants":
        """Draw new constants uniformly from their ranges."""
        m_lo, m_hi = cls.MASS_RANGE
        k_lo, k_hi = cls.GAIN_RANGE
        return cls(
            mass=m_lo + rng.random() * (m_hi - m_lo),
            gain=k_lo + rng.random() * (k_hi - k_lo),
        )
