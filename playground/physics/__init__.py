"""Plant models for the control playground.

Modules:
    sled: translational inertial plant with viscous friction
    flywheel: rotational inertial plant with drag and constant load

Each module exposes a state dataclass with a `y` output and a pure
`advance(state, u_eff, params, constants, dt) -> state` function.
"""

from playground.core.parameters import PlantKind
from playground.physics import flywheel, sled

PLANT_MODELS = {
    PlantKind.SLED: (sled.SledState, sled.advance),
    PlantKind.FLYWHEEL: (flywheel.FlywheelState, flywheel.advance),
}


def initial_state(kind: PlantKind):
    """Return the at-rest state for a plant kind."""
    state_cls, _ = PLANT_MODELS[PlantKind(kind)]
    return state_cls()


def advance(kind: PlantKind, state, u_eff, params, constants, dt):
    """Dispatch one step to the model selected by `kind`."""
    _, step_fn = PLANT_MODELS[PlantKind(kind)]
    return step_fn(state, u_eff, params, constants, dt)
