"""
Detect-or-track policy for faces across video frames.

Full face detection is expensive, so it runs only while nothing is being
tracked. Once a face is found, each following frame runs the cheaper
incremental tracker on the active candidates. A candidate whose tracking
confidence is not above `confidence_threshold` is marked as its last frame:
it still takes part in that frame's landmark pass (so its final position is
flushed) and is dropped at the start of the next frame. When no candidate is
left the machine falls back to detection.
"""
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence

from backend.smile_engine.errors import CapabilityFailure
from backend.smile_engine.observation import Observation, TrackCandidate, TrackResult

logger = logging.getLogger(__name__)

DEFAULT_TRACK_CONFIDENCE = 0.3


class TrackingState(str, Enum):
    IDLE = "idle"
    HAS_CANDIDATES = "has_candidates"


@dataclass
class TrackingStep:
    """Outcome of feeding one frame to the state machine."""

    detected: bool = False
    lost: bool = False
    # Candidates that need a landmark pass on this frame (live and just-terminated).
    candidates: List[TrackCandidate] = field(default_factory=list)


class TrackingStateMachine:
    def __init__(self, detector, tracker, confidence_threshold: float = DEFAULT_TRACK_CONFIDENCE):
        """
        Args:
          detector: object with `detect(frame) -> Sequence[Observation]`
          tracker: object with `track(candidates, frame) -> Sequence[Optional[TrackResult]]`,
                   one entry per candidate, in order
          confidence_threshold: tracking continues only above this confidence
        """
        self.detector = detector
        self.tracker = tracker
        self.confidence_threshold = float(confidence_threshold)
        self.candidates: List[TrackCandidate] = []
        self._ids = itertools.count(1)

    @property
    def state(self) -> TrackingState:
        return TrackingState.HAS_CANDIDATES if self.candidates else TrackingState.IDLE

    def reset(self):
        self.candidates = []
        self._reset_tracker()

    def _reset_tracker(self, frame=None):
        # trackers that keep per-stream state start over from the detection frame
        reset = getattr(self.tracker, "reset", None)
        if callable(reset):
            reset(frame)

    def step(self, frame: Any) -> TrackingStep:
        if not self.candidates:
            return self._detect(frame)
        return self._track(frame)

    def _detect(self, frame) -> TrackingStep:
        try:
            observations: Sequence[Observation] = self.detector.detect(frame)
        except Exception as exc:
            raise CapabilityFailure("face detection", exc) from exc

        found = [
            TrackCandidate(track_id=next(self._ids), observation=observation, confidence=observation.confidence)
            for observation in observations or []
        ]
        if found:
            try:
                self._reset_tracker(frame)
            except Exception as exc:
                raise CapabilityFailure("object tracking", exc) from exc
            self.candidates = found
            logger.info("initial face found, tracking %d candidate(s)", len(self.candidates))
        # Landmarks start on the next frame, once tracking has taken over.
        return TrackingStep(detected=True)

    def _track(self, frame) -> TrackingStep:
        live = [c for c in self.candidates if not c.is_last_frame]
        if not live:
            self.candidates = []
            logger.info("face object lost, resetting detection")
            return TrackingStep(lost=True)

        try:
            results = list(self.tracker.track(live, frame) or [])
        except Exception as exc:
            raise CapabilityFailure("object tracking", exc) from exc

        for i, candidate in enumerate(live):
            result: Optional[TrackResult] = results[i] if i < len(results) else None
            confidence = float(result.confidence) if result is not None else 0.0
            candidate.confidence = confidence
            if result is not None and confidence > self.confidence_threshold:
                candidate.observation = Observation(region=result.region, confidence=confidence)
            else:
                candidate.is_last_frame = True
                logger.debug("track %d dropped below confidence (%.2f)", candidate.track_id, confidence)

        self.candidates = live
        return TrackingStep(candidates=list(live))
