"""Tests for CalibrationSession, CalibrationConfig and PeriodicSampler."""

import threading

import pytest

from backend.smile_engine.calibration import (
    CalibrationConfig,
    CalibrationMode,
    CalibrationSession,
    PeriodicSampler,
)
from backend.smile_engine.errors import InsufficientSamples


class TestCalibrationSession:

    def test_inactive_by_default(self):
        session = CalibrationSession(capacity=3)
        assert session.offer(1.0) is None
        assert session.sample_count == 0

    def test_baseline_is_mean_at_capacity(self):
        values = [0.18, 0.2, 0.22, 0.19, 0.21]
        session = CalibrationSession(capacity=len(values))
        session.start()
        emitted = [session.offer(v) for v in values]
        assert emitted[:-1] == [None] * (len(values) - 1)
        assert emitted[-1] == pytest.approx(sum(values) / len(values))
        assert not session.is_active

    def test_never_emits_below_capacity(self):
        session = CalibrationSession(capacity=50)
        session.start()
        for _ in range(49):
            assert session.offer(1.0) is None
        assert session.is_active
        assert session.progress == pytest.approx(49 / 50)

    def test_offer_after_completion_is_noop(self):
        session = CalibrationSession(capacity=2)
        session.start()
        session.offer(1.0)
        assert session.offer(3.0) == pytest.approx(2.0)
        assert session.offer(10.0) is None
        assert session.offer(10.0) is None
        assert session.sample_count == 2

    def test_restart_clears_samples(self):
        session = CalibrationSession(capacity=3)
        session.start()
        session.offer(100.0)
        session.offer(100.0)
        session.start()
        session.start()
        assert session.sample_count == 0
        session.offer(1.0)
        session.offer(2.0)
        assert session.offer(3.0) == pytest.approx(2.0)

    def test_finish_early_uses_collected_samples(self):
        session = CalibrationSession(capacity=50)
        session.start()
        session.offer(1.0)
        session.offer(2.0)
        assert session.finish() == pytest.approx(1.5)
        assert not session.is_active

    def test_finish_without_samples_raises(self):
        session = CalibrationSession(capacity=50)
        session.start()
        with pytest.raises(InsufficientSamples):
            session.finish()
        # calibration stays incomplete
        assert session.is_active

    def test_cancel(self):
        session = CalibrationSession(capacity=2)
        session.start()
        session.offer(1.0)
        session.cancel()
        assert not session.is_active
        assert session.offer(1.0) is None

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            CalibrationSession(capacity=0)


class TestCalibrationConfig:

    def test_defaults(self):
        cfg = CalibrationConfig()
        assert cfg.mode == CalibrationMode.PER_OBSERVATION
        assert cfg.capacity == 50
        assert cfg.sample_period == pytest.approx(0.06)

    def test_mode_from_string(self):
        assert CalibrationConfig(mode="timed").mode is CalibrationMode.TIMED

    def test_explicit_period_wins(self):
        assert CalibrationConfig(capacity=10, duration=5.0, period=0.2).sample_period == pytest.approx(0.2)

    def test_period_from_duration(self):
        assert CalibrationConfig(capacity=10, duration=5.0).sample_period == pytest.approx(0.5)

    def test_rejects_unknown_mode(self):
        with pytest.raises(ValueError):
            CalibrationConfig(mode="sometimes")

    def test_rejects_bad_values(self):
        with pytest.raises(ValueError):
            CalibrationConfig(capacity=0)
        with pytest.raises(ValueError):
            CalibrationConfig(period=0)
        with pytest.raises(ValueError):
            CalibrationConfig(mode="timed", duration=0.0)
        with pytest.raises(ValueError):
            CalibrationConfig(duration=-1.0)


class TestPeriodicSampler:

    def test_ticks_until_cancelled(self):
        ticks = []
        reached = threading.Event()

        def tick():
            ticks.append(1)
            if len(ticks) >= 3:
                reached.set()

        sampler = PeriodicSampler(0.005, tick)
        sampler.start()
        assert reached.wait(5.0)
        sampler.cancel()
        assert not sampler.running

    def test_double_cancel_is_safe(self):
        sampler = PeriodicSampler(0.01, lambda: None)
        sampler.start()
        sampler.cancel()
        sampler.cancel()
        assert not sampler.running

    def test_cancel_from_inside_callback(self):
        done = threading.Event()
        holder = {}

        def tick():
            holder["sampler"].cancel()
            done.set()

        sampler = PeriodicSampler(0.005, tick)
        holder["sampler"] = sampler
        sampler.start()
        assert done.wait(5.0)
        assert not sampler.running

    def test_failing_tick_keeps_running(self):
        calls = []
        reached = threading.Event()

        def tick():
            calls.append(1)
            if len(calls) >= 2:
                reached.set()
            raise RuntimeError("boom")

        sampler = PeriodicSampler(0.005, tick)
        sampler.start()
        assert reached.wait(5.0)
        sampler.cancel()
