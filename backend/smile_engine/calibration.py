"""
Neutral mouth-width calibration.

A calibration burst collects `capacity` mouth-width samples while the user
holds a neutral face and reduces them to a single baseline (arithmetic mean).
Completion is a one-shot event: exactly one baseline per `start()`.

Two ways of feeding samples are supported (see `CalibrationMode`):
  - timed: a `PeriodicSampler` grabs the current frame every
    `duration / capacity` seconds and measures it from scratch. Ticks that do
    not find a face add nothing, so the burst may run longer than `duration`.
  - per-observation: every landmark observation the frame pipeline produces
    while the session is active is offered as a sample.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from backend.smile_engine.errors import InsufficientSamples

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50
DEFAULT_DURATION = 3.0


class CalibrationMode(str, Enum):
    TIMED = "timed"
    PER_OBSERVATION = "per-observation"


@dataclass(frozen=True)
class CalibrationConfig:
    mode: CalibrationMode = CalibrationMode.PER_OBSERVATION
    capacity: int = DEFAULT_CAPACITY
    period: Optional[float] = None
    duration: float = DEFAULT_DURATION

    def __post_init__(self):
        object.__setattr__(self, "mode", CalibrationMode(self.mode))
        if self.capacity < 1:
            raise ValueError(f"calibration capacity must be >= 1, got {self.capacity}")
        if self.period is not None and self.period <= 0:
            raise ValueError(f"calibration period must be > 0, got {self.period}")
        if self.duration <= 0:
            raise ValueError(f"calibration duration must be > 0, got {self.duration}")

    @property
    def sample_period(self) -> float:
        """Seconds between timed samples (explicit period wins over duration)."""
        if self.period is not None:
            return float(self.period)
        return float(self.duration) / self.capacity


class CalibrationSession:
    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = int(capacity)
        self.samples: List[float] = []
        self.active = False

    @property
    def is_active(self) -> bool:
        return self.active

    @property
    def sample_count(self) -> int:
        return len(self.samples)

    @property
    def progress(self) -> float:
        return min(1.0, len(self.samples) / self.capacity)

    def start(self):
        """Begin (or restart) a burst with an empty sample buffer."""
        self.samples = []
        self.active = True

    def cancel(self):
        self.samples = []
        self.active = False

    def offer(self, width: float) -> Optional[float]:
        """
        Add one sample. Returns the baseline when this sample fills the
        buffer, otherwise None. Ignored when no burst is active.
        """
        if not self.active:
            return None
        self.samples.append(float(width))
        logger.debug("calibration sample %d/%d: %.4f", len(self.samples), self.capacity, width)
        if len(self.samples) >= self.capacity:
            return self._complete()
        return None

    def finish(self) -> float:
        """Complete the burst early with the samples collected so far."""
        if not self.active:
            raise InsufficientSamples("no calibration in progress")
        if not self.samples:
            raise InsufficientSamples("no mouth widths captured")
        return self._complete()

    def _complete(self) -> float:
        baseline = sum(self.samples) / len(self.samples)
        self.active = False
        return baseline


class PeriodicSampler:
    """
    Calls `callback` every `period` seconds on a background thread until
    cancelled. `cancel()` may be called any number of times, from any thread,
    including from inside the callback.
    """

    def __init__(self, period: float, callback: Callable[[], None], name: str = "calibration-sampler"):
        self.period = float(period)
        self.callback = callback
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stop.is_set()

    def start(self):
        with self._lock:
            if self._thread is not None:
                return
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()

    def _run(self):
        while not self._stop.wait(self.period):
            try:
                self.callback()
            except Exception:
                logger.exception("calibration sampler tick failed")

    def cancel(self):
        with self._lock:
            if self._stop.is_set():
                return
            self._stop.set()
        logger.debug("calibration sampler cancelled")
