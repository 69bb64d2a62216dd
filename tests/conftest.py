"""Shared fixtures for smile engine tests."""

import pytest

from backend import processing_config
from backend.smile_engine.calibration import CalibrationConfig
from backend.smile_engine.engine import EngineConfig, SmileEngine

from helpers import FakeDetector, FakeLandmarker, FakeTracker


@pytest.fixture(autouse=True)
def _reset_config():
    processing_config.reset_config()
    yield
    processing_config.reset_config()


@pytest.fixture
def detector():
    return FakeDetector()


@pytest.fixture
def tracker():
    return FakeTracker()


@pytest.fixture
def landmarker():
    return FakeLandmarker()


@pytest.fixture
def make_engine(detector, tracker, landmarker):
    """Factory fixture: SmileEngine on fake capabilities."""
    engines = []

    def _make(mode="per-observation", capacity=50, period=None, threshold=1.1,
              default_baseline=None, **kwargs):
        config = EngineConfig(
            calibration=CalibrationConfig(mode=mode, capacity=capacity, period=period),
            smile_threshold=threshold,
            default_baseline=default_baseline,
        )
        engine = SmileEngine(detector, tracker, landmarker, config=config, **kwargs)
        engines.append(engine)
        return engine

    yield _make
    for engine in engines:
        engine.close()
