"""Fake capabilities and frame builders for smile engine tests.

Capabilities are fakes driven by the frame itself -- NO ML models needed.
A frame is a dict such as {"faces": 1, "confidence": 0.9, "width": 1.0}.
"""

from backend.smile_engine.observation import (
    BoundingBox,
    LandmarkRegion,
    Observation,
    TrackResult,
)

FACE_BOX = BoundingBox(0.3, 0.3, 0.4, 0.4)


def make_frame(width=1.0, faces=1, confidence=0.9, **extra):
    frame = {"width": width, "faces": faces, "confidence": confidence}
    frame.update(extra)
    return frame


def lips(width, y=0.0):
    """Outer-lip points whose first-to-last distance is `width`."""
    return [(0.0, y), (width / 2.0, y + 0.05), (width, y)]


class FakeDetector:
    def __init__(self):
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        if frame.get("detect_error"):
            raise RuntimeError("malformed input")
        return [Observation(region=FACE_BOX, confidence=0.95) for _ in range(frame.get("faces", 1))]


class FakeTracker:
    def __init__(self):
        self.calls = 0
        self.seen = []
        self.resets = []

    def reset(self, frame=None):
        self.resets.append(frame)

    def track(self, candidates, frame):
        self.calls += 1
        self.seen.append([c.track_id for c in candidates])
        if frame.get("track_error"):
            raise RuntimeError("tracker exploded")
        if frame.get("no_track_results"):
            return []
        return [TrackResult(frame.get("confidence", 0.9), c.region) for c in candidates]


class FakeLandmarker:
    def __init__(self):
        self.calls = 0
        self.seeds = []

    def detect_landmarks(self, frame, seed):
        self.calls += 1
        self.seeds.append(seed)
        if frame.get("landmark_error"):
            raise RuntimeError("landmarks exploded")
        if frame.get("no_lips"):
            return {LandmarkRegion.LEFT_EYE: [(0.1, 0.1), (0.2, 0.1)]}
        return {LandmarkRegion.OUTER_LIPS: lips(frame["width"])}


