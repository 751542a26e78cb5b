"""Bounded time-series history for live readout and chart windows.

Keeps parallel series of equal length; once capacity is reached the oldest
sample is evicted first.
"""

from collections import deque

DEFAULT_CAPACITY = 2000


class HistoryBuffer:
    """Ring buffer of (t, y, u, setpoint) samples plus the effective input."""

    SERIES = ("t", "y", "u", "sp")

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = capacity
        self._t: deque[float] = deque(maxlen=capacity)
        self._y: deque[float] = deque(maxlen=capacity)
        self._u: deque[float] = deque(maxlen=capacity)
        self._sp: deque[float] = deque(maxlen=capacity)
        self._u_eff: deque[float] = deque(maxlen=capacity)
        self._total_samples = 0

    def append(self, t: float, y: float, u: float, setpoint: float,
               u_eff: float | None = None):
        """Record one integration step."""
        self._t.append(float(t))
        self._y.append(float(y))
        self._u.append(float(u))
        self._sp.append(float(setpoint))
        self._u_eff.append(float(u if u_eff is None else u_eff))
        self._total_samples += 1

    def clear(self):
        self._t.clear()
        self._y.clear()
        self._u.clear()
        self._sp.clear()
        self._u_eff.clear()
        self._total_samples = 0

    def snapshot(self) -> dict[str, list[float]]:
        """Copy of the outward series, oldest first."""
        return {
            "t": list(self._t),
            "y": list(self._y),
            "u": list(self._u),
            "sp": list(self._sp),
        }

    def latest(self) -> dict[str, float] | None:
        """Most recent sample, for the live position/setpoint readout."""
        if not self._t:
            return None
        return {
            "t": self._t[-1],
            "y": self._y[-1],
            "u": self._u[-1],
            "sp": self._sp[-1],
        }

    def window(self, seconds: float) -> dict[str, list[float]]:
        """Samples whose timestamp lies within `seconds` of the newest one."""
        if not self._t:
            return {name: [] for name in self.SERIES}
        cutoff = self._t[-1] - seconds
        start = 0
        for i, ts in enumerate(self._t):
            if ts >= cutoff:
                start = i
                break
        snap = self.snapshot()
        return {name: values[start:] for name, values in snap.items()}

    @property
    def t(self) -> list[float]:
        return list(self._t)

    @property
    def y(self) -> list[float]:
        return list(self._y)

    @property
    def u(self) -> list[float]:
        return list(self._u)

    @property
    def sp(self) -> list[float]:
        return list(self._sp)

    @property
    def u_eff(self) -> list[float]:
        return list(self._u_eff)

    @property
    def total_samples(self) -> int:
        return self._total_samples

    def __len__(self) -> int:
        return len(self._t)
