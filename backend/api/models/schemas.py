"""Pydantic schemas for the session API and the message-passing contract."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from playground.core.parameters import PlantKind, SimulationParameters


class SessionStatus(str, Enum):
    PENDING = "pending"      # created, no loop armed yet
    RUNNING = "running"      # cadences armed (may be logically paused)
    FAILED = "failed"
    STOPPED = "stopped"


class SimulationParams(BaseModel):
    """User-visible simulation parameters (camelCase on the wire)."""
    model_config = ConfigDict(populate_by_name=True)

    dt: float = Field(gt=0, description="Fixed integration step (s)")
    kp: float = Field(description="Proportional gain")
    ki: float = Field(default=0.0, description="Integral gain")
    kd: float = Field(default=0.0, description="Derivative gain")
    setpoint: float = Field(description="Target output")
    friction: float = Field(description="Sled viscous friction coefficient")
    plant: PlantKind = PlantKind.SLED
    drag: float = Field(default=0.1, description="Flywheel viscous drag")
    inertia_j: float = Field(default=1.0, alias="inertiaJ", description="Flywheel inertia")
    load_torque: float = Field(default=0.0, alias="loadTorque", description="Flywheel load torque")

    def to_engine(self) -> SimulationParameters:
        return SimulationParameters(
            dt=self.dt,
            kp=self.kp,
            ki=self.ki,
            kd=self.kd,
            setpoint=self.setpoint,
            friction=self.friction,
            plant=self.plant,
            drag=self.drag,
            inertia_j=self.inertia_j,
            load_torque=self.load_torque,
        )

    @classmethod
    def from_engine(cls, p: SimulationParameters) -> "SimulationParams":
        return cls(
            dt=p.dt,
            kp=p.kp,
            ki=p.ki,
            kd=p.kd,
            setpoint=p.setpoint,
            friction=p.friction,
            plant=p.plant,
            drag=p.drag,
            inertia_j=p.inertia_j,
            load_torque=p.load_torque,
        )


# ---------------------------------------------------------------------------
# Display -> engine commands
# ---------------------------------------------------------------------------
class StartMessage(BaseModel):
    type: Literal["start"]
    params: SimulationParams
    running: bool = True


class UpdateMessage(BaseModel):
    type: Literal["update"]
    params: SimulationParams
    running: bool = True


class RandomizeMessage(BaseModel):
    type: Literal["randomize"]
    friction: bool = Field(default=False, description="Also randomize visible friction")


class ResetMessage(BaseModel):
    type: Literal["reset"]


CommandMessage = Annotated[
    Union[StartMessage, UpdateMessage, RandomizeMessage, ResetMessage],
    Field(discriminator="type"),
]
command_adapter = TypeAdapter(CommandMessage)


# ---------------------------------------------------------------------------
# Engine -> display messages
# ---------------------------------------------------------------------------
class ReadyMessage(BaseModel):
    type: Literal["ready"] = "ready"
    session_id: UUID | None = None


class DataMessage(BaseModel):
    type: Literal["data"] = "data"
    t: list[float] = []
    y: list[float] = []
    u: list[float] = []
    sp: list[float] = []


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    detail: str


# ---------------------------------------------------------------------------
# REST models
# ---------------------------------------------------------------------------
class SessionCreate(BaseModel):
    """Request to create (and start) a new session."""
    params: SimulationParams | None = None
    running: bool = True
    randomize_system: bool = Field(
        default=False, description="Randomize hidden constants and friction on creation"
    )
    seed: int | None = Field(default=None, description="Seed for reproducible randomize")


class SessionResponse(BaseModel):
    id: UUID
    status: SessionStatus
    created_at: datetime
    params: SimulationParams


class LiveReadout(BaseModel):
    """Latest sample, for the position/setpoint readout."""
    t: float
    y: float
    u: float
    sp: float


class SessionSnapshot(BaseModel):
    session_id: UUID
    status: SessionStatus
    running: bool
    simulation_time: float = Field(description="Simulated time since start/reset (s)")
    params: SimulationParams
    controller: dict[str, Any] = Field(default_factory=dict, description="PID controller state")
    actuator: dict[str, Any] = Field(default_factory=dict, description="Actuator lag state")
    total_samples: int = Field(0, description="Samples recorded since start/reset, including evicted ones")
    latest: LiveReadout | None = None
    data: DataMessage


class ResponseMetrics(BaseModel):
    samples: int
    latest_y: float
    setpoint: float
    steady_state_error: float
    peak_to_peak: float
    overshoot_pct: float
