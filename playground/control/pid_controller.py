"""PID controller for the closed-loop playground.

P, PI and PID behaviour come from the same law; ki and kd default to 0.
Anti-windup is conditional integration: the integral is frozen on any step
where the command would already saturate in the direction of the error.
"""

import numpy as np

# Blow-up guards
INTEGRAL_LIMIT = 1000.0
DERIVATIVE_LIMIT = 1000.0
MIN_DT = 1e-6


class PIDController:
    """Discrete PID controller with conditional-integration anti-windup."""

    def __init__(
        self,
        kp: float = 1.0,
        ki: float = 0.0,
        kd: float = 0.0,
        setpoint: float = 0.0,
        output_min: float = -1.0,
        output_max: float = 1.0,
    ):
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.setpoint = setpoint
        self.output_min = output_min
        self.output_max = output_max

        self._integral = 0.0
        self._prev_error = 0.0
        self.last_tentative = 0.0
        self.last_output = 0.0
        self.integrating = True

    def configure(self, kp: float, ki: float = 0.0, kd: float = 0.0,
                  setpoint: float | None = None):
        """Change gains in place. Integral and derivative memory are kept."""
        self.kp = kp
        self.ki = ki
        self.kd = kd
        if setpoint is not None:
            self.setpoint = setpoint

    def update(self, measured_value: float, dt: float) -> float:
        """Compute the saturated command.

        Args:
            measured_value: Current plant output y.
            dt: Time step in seconds.

        Returns:
            Command clamped to output_min..output_max.
        """
        error = self.setpoint - measured_value

        derivative = (error - self._prev_error) / max(dt, MIN_DT)
        derivative = float(np.clip(derivative, -DERIVATIVE_LIMIT, DERIVATIVE_LIMIT))

        # Tentative command with the integral as it stood before this step
        tentative = self.kp * error + self.kd * derivative + self.ki * self._integral
        saturating_high = tentative > self.output_max and error > 0
        saturating_low = tentative < self.output_min and error < 0
        self.integrating = not (saturating_high or saturating_low)

        if self.integrating:
            self._integral += error * dt
            self._integral = float(np.clip(self._integral, -INTEGRAL_LIMIT, INTEGRAL_LIMIT))

        output = self.kp * error + self.ki * self._integral + self.kd * derivative
        output = float(np.clip(output, self.output_min, self.output_max))

        self._prev_error = error
        self.last_tentative = tentative
        self.last_output = output
        return output

    def reset(self):
        """Reset controller state."""
        self._integral = 0.0
        self._prev_error = 0.0
        self.last_tentative = 0.0
        self.last_output = 0.0
        self.integrating = True

    @property
    def integral(self) -> float:
        return self._integral

    @property
    def prev_error(self) -> float:
        return self._prev_error

    def get_state(self) -> dict:
        return {
            "kp": self.kp,
            "ki": self.ki,
            "kd": self.kd,
            "setpoint": self.setpoint,
            "integral": self._integral,
            "prev_error": self._prev_error,
            "command": self.last_output,
            "integrating": self.integrating,
        }
