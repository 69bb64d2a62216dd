import itertools
import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence

from backend.logger import log_event
from backend.smile_engine.calibration import (
    CalibrationConfig,
    CalibrationMode,
    CalibrationSession,
    PeriodicSampler,
)
from backend.smile_engine.classifier import DEFAULT_SMILE_THRESHOLD, ExpressionClassifier
from backend.smile_engine.errors import CapabilityFailure, MissingObservation
from backend.smile_engine.geometry import mouth_width
from backend.smile_engine.observation import (
    BoundingBox,
    ClassificationResult,
    FrameResult,
    LandmarkRegion,
    Observation,
    Point,
    TrackCandidate,
    TrackResult,
    WidthSample,
)
from backend.smile_engine.tracking import DEFAULT_TRACK_CONFIDENCE, TrackingStateMachine

logger = logging.getLogger(__name__)

DEFAULT_BASELINE_KEY = "neutral_mouth_width"


class FaceDetector(Protocol):
    def detect(self, frame: Any) -> Sequence[Observation]: ...


class ObjectTracker(Protocol):
    def track(self, candidates: Sequence[TrackCandidate], frame: Any) -> Sequence[Optional[TrackResult]]: ...


class LandmarkDetector(Protocol):
    def detect_landmarks(self, frame: Any, seed: BoundingBox) -> Mapping[LandmarkRegion, Sequence[Point]]: ...


@dataclass(frozen=True)
class EngineConfig:
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    smile_threshold: float = DEFAULT_SMILE_THRESHOLD
    track_confidence: float = DEFAULT_TRACK_CONFIDENCE
    default_baseline: Optional[float] = None
    baseline_key: str = DEFAULT_BASELINE_KEY

    @classmethod
    def from_dict(cls, cfg: Dict) -> "EngineConfig":
        """Build from a `processing_config.get_config()` style dict."""
        calibration = CalibrationConfig(
            mode=cfg.get("calibration_mode", CalibrationMode.PER_OBSERVATION),
            capacity=int(cfg.get("calibration_capacity", 50)),
            period=cfg.get("calibration_period"),
            duration=float(cfg.get("calibration_duration", 3.0)),
        )
        return cls(
            calibration=calibration,
            smile_threshold=float(cfg.get("smile_threshold", DEFAULT_SMILE_THRESHOLD)),
            track_confidence=float(cfg.get("track_confidence", DEFAULT_TRACK_CONFIDENCE)),
            default_baseline=cfg.get("default_baseline"),
            baseline_key=cfg.get("baseline_key", DEFAULT_BASELINE_KEY),
        )


class SmileEngine:
    """
    SmileEngine runs the per-frame pipeline: detect-or-track, landmark pass,
    mouth width, then calibration or classification.

    Frames must be handled strictly in arrival order. `process_frame` does the
    work synchronously under a lock; `submit` hands the frame to a single
    dedicated worker thread and returns a Future, so callers on a UI or event
    loop thread are never blocked.

    Results reach the host through the returned `FrameResult`, through the
    optional `on_calibration_complete` / `on_classification` callbacks and
    through the `events` queue.
    """

    def __init__(self, detector: FaceDetector, tracker: ObjectTracker, landmarker: LandmarkDetector,
                 config: Optional[EngineConfig] = None,
                 frame_source: Optional[Callable[[], Any]] = None,
                 store=None,
                 on_calibration_complete: Optional[Callable[[float], None]] = None,
                 on_classification: Optional[Callable[[ClassificationResult], None]] = None):
        self.config = config or EngineConfig()
        self.detector = detector
        self.landmarker = landmarker
        self.frame_source = frame_source
        self.store = store
        self.on_calibration_complete = on_calibration_complete
        self.on_classification = on_classification

        self.tracking = TrackingStateMachine(detector, tracker, self.config.track_confidence)
        self.calibration = CalibrationSession(self.config.calibration.capacity)
        self.classifier = ExpressionClassifier(self.config.smile_threshold, self.config.default_baseline)
        self.events: "queue.Queue" = queue.Queue()

        self._lock = threading.RLock()
        self._frames = itertools.count()
        self._sample_ids = itertools.count()
        self._sampler: Optional[PeriodicSampler] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

        if self.store is not None:
            stored = self.store.get(self.config.baseline_key)
            if stored is not None:
                self.classifier.set_baseline(float(stored))
                logger.info("loaded neutral mouth width %.4f", float(stored))

    @property
    def baseline(self) -> Optional[float]:
        return self.classifier.baseline

    @property
    def state(self):
        return self.tracking.state

    @property
    def is_calibrating(self) -> bool:
        return self.calibration.is_active

    @property
    def is_sampling(self) -> bool:
        """True while a timed calibration sampler is ticking."""
        sampler = self._sampler
        return sampler is not None and sampler.running

    # -- frame pipeline ---------------------------------------------------

    def submit(self, frame: Any) -> Future:
        """Queue a frame on the engine's worker; frames run one at a time, in order."""
        return self._worker().submit(self.process_frame, frame)

    def process_frame(self, frame: Any) -> FrameResult:
        with self._lock:
            index = next(self._frames)
            try:
                step = self.tracking.step(frame)
            except CapabilityFailure as exc:
                logger.warning("frame %d dropped: %s", index, exc)
                return FrameResult(frame_index=index, state=self.tracking.state.value, error=str(exc))

            result = FrameResult(frame_index=index, state=self.tracking.state.value, detected=step.detected)
            if step.lost:
                log_event({"timestamp": time.time(), "type": "track_lost", "frame": index})

            for candidate in step.candidates:
                try:
                    observation = self._landmark_pass(frame, candidate.region, candidate.confidence)
                except CapabilityFailure as exc:
                    logger.warning("frame %d: %s", index, exc)
                    result.error = str(exc)
                    continue
                result.observations.append(observation)
                try:
                    width = _measure(observation.landmarks)
                except MissingObservation:
                    continue
                sample = WidthSample(next(self._sample_ids), width)
                result.samples.append(sample)

                if self.config.calibration.mode == CalibrationMode.PER_OBSERVATION:
                    baseline = self.calibration.offer(width)
                    if baseline is not None:
                        self._complete_calibration(baseline)
                        result.baseline = baseline

                classification = self.classifier.evaluate(width)
                if classification is not None:
                    result.classifications.append(classification)
                    self._publish("classification", classification)
                    if self.on_classification is not None:
                        self.on_classification(classification)
            return result

    def _landmark_pass(self, frame, seed: BoundingBox, confidence: float) -> Observation:
        try:
            landmarks = self.landmarker.detect_landmarks(frame, seed)
        except Exception as exc:
            raise CapabilityFailure("landmark detection", exc) from exc
        return Observation(region=seed, confidence=confidence, landmarks=landmarks or {})

    # -- calibration ------------------------------------------------------

    def start_calibration(self):
        """Start (or restart) a neutral-face calibration burst."""
        timed = self.config.calibration.mode == CalibrationMode.TIMED
        if timed and self.frame_source is None:
            raise ValueError("timed calibration needs a frame_source")
        with self._lock:
            self.calibration.start()
            self._stop_sampler()
            if timed:
                self._sampler = PeriodicSampler(self.config.calibration.sample_period, self._on_tick)
                self._sampler.start()
            logger.info("started capturing mouth widths (%s, %d samples)",
                        self.config.calibration.mode.value, self.calibration.capacity)

    def cancel_calibration(self):
        with self._lock:
            self.calibration.cancel()
            self._stop_sampler()

    def finish_calibration(self) -> float:
        """Force completion with the samples collected so far.

        Raises InsufficientSamples when nothing was collected.
        """
        with self._lock:
            baseline = self.calibration.finish()
            self._complete_calibration(baseline)
            return baseline

    def capture_sample(self, frame: Any = None) -> Optional[WidthSample]:
        """
        One timed-calibration tick: measure a fresh frame from scratch (full
        detection, no tracking state) and offer its mouth width.

        Returns the sample, or None when nothing was measured.
        """
        with self._lock:
            if not self.calibration.is_active:
                return None
            if frame is None and self.frame_source is not None:
                frame = self.frame_source()
            if frame is None:
                return None
            try:
                faces = self.detector.detect(frame)
            except Exception as exc:
                logger.warning("calibration capture dropped: face detection failed: %s", exc)
                return None
            if not faces:
                return None
            face = faces[0]
            landmarks = face.landmarks
            if not landmarks:
                try:
                    landmarks = self._landmark_pass(frame, face.region, face.confidence).landmarks
                except CapabilityFailure as exc:
                    logger.warning("calibration capture dropped: %s", exc)
                    return None
            try:
                width = _measure(landmarks)
            except MissingObservation:
                return None
            sample = WidthSample(next(self._sample_ids), width)
            baseline = self.calibration.offer(width)
            if baseline is not None:
                self._complete_calibration(baseline)
            return sample

    def _on_tick(self):
        try:
            future = self._worker().submit(self.capture_sample)
        except RuntimeError:
            # engine closed between ticks
            return
        future.add_done_callback(_log_failure)

    def _complete_calibration(self, baseline: float):
        self.classifier.set_baseline(baseline)
        logger.info("average neutral mouth width: %.4f", baseline)
        if self.store is not None:
            self.store.set(self.config.baseline_key, baseline)
        log_event({"timestamp": time.time(), "type": "calibration_complete", "baseline": baseline})
        # queued before the sampler stops: watchers poll `is_sampling`
        self._publish("calibration_complete", baseline)
        self._stop_sampler()
        if self.on_calibration_complete is not None:
            self.on_calibration_complete(baseline)

    def _stop_sampler(self):
        if self._sampler is not None:
            self._sampler.cancel()
            self._sampler = None

    # -- plumbing ---------------------------------------------------------

    def _publish(self, kind: str, payload):
        self.events.put((kind, payload))

    def drain_events(self):
        """Return and remove every event published so far."""
        out = []
        while True:
            try:
                out.append(self.events.get_nowait())
            except queue.Empty:
                return out

    def _worker(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._closed:
                raise RuntimeError("engine is closed")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="smile-frames")
            return self._executor

    def close(self):
        with self._lock:
            self._closed = True
            self._stop_sampler()
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        for capability in (self.detector, self.tracking.tracker, self.landmarker):
            close = getattr(capability, "close", None)
            if callable(close):
                close()


def _measure(landmarks) -> float:
    width = mouth_width(landmarks)
    if width is None:
        raise MissingObservation("no outer lips region this frame")
    return width


def _log_failure(future: Future):
    exc = future.exception()
    if exc is not None:
        logger.error("calibration tick failed: %s", exc)
