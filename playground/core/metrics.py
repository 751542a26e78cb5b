"""Step-response readouts computed from a history snapshot."""

import numpy as np

MIN_STEP = 1e-9


def response_metrics(
    snapshot: dict, window_fraction: float = 0.1, origin: float | None = None
) -> dict:
    """Summarize overshoot, residual oscillation and steady-state error.

    Args:
        snapshot: Dict with "t", "y", "sp" sequences (as from HistoryBuffer).
        window_fraction: Share of the newest samples treated as settled.
        origin: Output level the current step started from. Defaults to the
            last sample before the setpoint took its current value, or the
            first sample when it never changed.

    Returns:
        Dict of metrics; all zero for an empty snapshot.
    """
    y = np.asarray(snapshot.get("y", []), dtype=float)
    sp = np.asarray(snapshot.get("sp", []), dtype=float)
    n = len(y)
    if n == 0:
        return {
            "samples": 0,
            "latest_y": 0.0,
            "setpoint": 0.0,
            "steady_state_error": 0.0,
            "peak_to_peak": 0.0,
            "overshoot_pct": 0.0,
        }

    setpoint = float(sp[-1])
    tail = y[-max(1, int(n * window_fraction)):]

    # overshoot only counts samples taken since the setpoint last changed
    changed = np.flatnonzero(sp != setpoint)
    start = int(changed[-1]) + 1 if len(changed) else 0
    if origin is None:
        origin = float(y[start - 1]) if start > 0 else float(y[0])

    step = setpoint - origin
    overshoot = 0.0
    if abs(step) > MIN_STEP:
        # Excursion past the setpoint in the direction of the step
        excursion = (y[start:] - setpoint) * np.sign(step)
        overshoot = max(0.0, float(excursion.max())) / abs(step) * 100.0

    return {
        "samples": n,
        "latest_y": float(y[-1]),
        "setpoint": setpoint,
        "steady_state_error": setpoint - float(tail.mean()),
        "peak_to_peak": float(tail.max() - tail.min()),
        "overshoot_pct": overshoot,
    }
