"""
Actuator model between controller command and plant input.

  - First-order lag toward the command (time constant TAU_LAG)
  - Output saturation at +/-1 (full scale)
  - Deadband: below 2% of full scale no motion is produced
"""

import numpy as np

TAU_LAG = 0.08        # s
DEADBAND = 0.02       # fraction of full scale
OUTPUT_LIMIT = 1.0
MIN_TAU = 1e-6


class LaggedActuator:
    """First-order lag actuator with deadband and saturation."""

    def __init__(self, tau_lag: float = TAU_LAG, deadband: float = DEADBAND,
                 limit: float = OUTPUT_LIMIT):
        self.tau_lag = tau_lag
        self.deadband = deadband
        self.limit = limit

        self._output = 0.0     # lagged output u
        self._command = 0.0    # last unlagged command uCmd

    @property
    def output(self) -> float:
        """Lagged output before the deadband (the recorded control signal)."""
        return self._output

    @property
    def command(self) -> float:
        return self._command

    @property
    def effective(self) -> float:
        """Output after the deadband: what actually reaches the plant."""
        if abs(self._output) < self.deadband:
            return 0.0
        return self._output

    def step(self, command: float, dt: float) -> float:
        """Advance the lag by dt seconds and return the effective output."""
        self._command = command
        du = (command - self._output) / max(self.tau_lag, MIN_TAU) * dt
        self._output = float(np.clip(self._output + du, -self.limit, self.limit))
        return self.effective

    def reset(self):
        self._output = 0.0
        self._command = 0.0

    def get_state(self) -> dict:
        return {
            "command": self._command,
            "output": self._output,
            "effective": self.effective,
        }
