"""Unit tests for step-response readouts."""

import pytest

from playground.core.metrics import response_metrics


class TestResponseMetrics:
    def test_empty_snapshot(self):
        m = response_metrics({"t": [], "y": [], "u": [], "sp": []})
        assert m["samples"] == 0
        assert m["overshoot_pct"] == 0.0

    def test_overshoot_upward_step(self):
        snap = {"y": [0.0, 0.5, 1.2, 1.0], "sp": [1.0] * 4}
        m = response_metrics(snap)
        assert m["overshoot_pct"] == pytest.approx(20.0)
        assert m["latest_y"] == 1.0
        assert m["steady_state_error"] == pytest.approx(0.0)

    def test_overshoot_downward_step(self):
        snap = {"y": [2.0, 1.0, 0.5, 1.0], "sp": [1.0] * 4}
        m = response_metrics(snap)
        assert m["overshoot_pct"] == pytest.approx(50.0)

    def test_no_step_no_overshoot(self):
        m = response_metrics({"y": [1.0, 1.0], "sp": [1.0, 1.0]})
        assert m["overshoot_pct"] == 0.0

    def test_tail_statistics(self):
        y = [0.0] * 90 + [0.9, 0.95] * 5
        m = response_metrics({"y": y, "sp": [1.0] * 100})
        assert m["peak_to_peak"] == pytest.approx(0.05)
        assert m["steady_state_error"] == pytest.approx(0.075)

    def test_setpoint_change_measured_from_switch_level(self):
        # settled at 1.0, then stepped to 2.0 and peaked at 2.1
        snap = {"y": [1.0, 1.0, 1.5, 2.1, 2.0], "sp": [1.0, 1.0, 2.0, 2.0, 2.0]}
        m = response_metrics(snap)
        assert m["overshoot_pct"] == pytest.approx(10.0)

    def test_samples_before_setpoint_change_ignored(self):
        # 30 % overshoot on the first step must not leak into the second
        snap = {"y": [0.0, 1.3, 1.0, 1.5, 2.0], "sp": [1.0, 1.0, 1.0, 2.0, 2.0]}
        m = response_metrics(snap)
        assert m["overshoot_pct"] == 0.0

    def test_explicit_origin(self):
        snap = {"y": [0.5, 1.2, 1.0], "sp": [1.0] * 3}
        m = response_metrics(snap, origin=0.0)
        assert m["overshoot_pct"] == pytest.approx(20.0)

    def test_origin_survives_buffer_wrap(self):
        # oldest retained sample is already near the setpoint
        snap = {"y": [0.98, 1.02, 1.01, 1.0], "sp": [1.0] * 4}
        assert response_metrics(snap)["overshoot_pct"] == pytest.approx(100.0)
        assert response_metrics(snap, origin=0.0)["overshoot_pct"] == pytest.approx(2.0)
