"""
Data types passed between the tracking, geometry, calibration and
classification stages.

All coordinates are normalized to the frame (0..1 on both axes) so that the
mouth-width signal does not depend on the camera resolution.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, NamedTuple

Point = Tuple[float, float]


class LandmarkRegion(str, Enum):
    OUTER_LIPS = "outer_lips"
    INNER_LIPS = "inner_lips"
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    LEFT_EYEBROW = "left_eyebrow"
    RIGHT_EYEBROW = "right_eyebrow"
    NOSE = "nose"


# A missing key or a None value both mean "region not found this frame".
Landmarks = Mapping[LandmarkRegion, Optional[Sequence[Point]]]


@dataclass(frozen=True)
class BoundingBox:
    """Normalized rectangle: origin at (x, y), size (width, height)."""

    x: float
    y: float
    width: float
    height: float

    def expanded(self, margin: float) -> "BoundingBox":
        """Grow the box by `margin` (fraction of its size) on every side."""
        dx = self.width * margin
        dy = self.height * margin
        return BoundingBox(self.x - dx, self.y - dy, self.width + 2 * dx, self.height + 2 * dy)

    def clamped(self) -> "BoundingBox":
        x0 = min(max(self.x, 0.0), 1.0)
        y0 = min(max(self.y, 0.0), 1.0)
        x1 = min(max(self.x + self.width, 0.0), 1.0)
        y1 = min(max(self.y + self.height, 0.0), 1.0)
        return BoundingBox(x0, y0, x1 - x0, y1 - y0)

    def to_pixels(self, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
        """Return (x0, y0, x1, y1) pixel bounds clipped to the image."""
        box = self.clamped()
        x0 = int(round(box.x * image_width))
        y0 = int(round(box.y * image_height))
        x1 = int(round((box.x + box.width) * image_width))
        y1 = int(round((box.y + box.height) * image_height))
        return x0, y0, x1, y1

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Observation:
    """One detected face in one frame."""

    region: BoundingBox
    confidence: float = 1.0
    landmarks: Optional[Landmarks] = None

    def landmark_region(self, name: LandmarkRegion) -> Optional[Sequence[Point]]:
        if not self.landmarks:
            return None
        return self.landmarks.get(name)


class TrackResult(NamedTuple):
    confidence: float
    region: BoundingBox


@dataclass
class TrackCandidate:
    """
    A face followed frame-to-frame by the incremental tracker.

    `is_last_frame` is set once confidence drops to or below the threshold;
    the candidate is flushed through one final landmark pass and then dropped.
    """

    track_id: int
    observation: Observation
    confidence: float
    is_last_frame: bool = False

    @property
    def region(self) -> BoundingBox:
        return self.observation.region


class WidthSample(NamedTuple):
    index: int
    width: float


@dataclass(frozen=True)
class ClassificationResult:
    width: float
    baseline: float
    is_smiling: bool

    def to_dict(self) -> Dict:
        return {"width": self.width, "baseline": self.baseline, "is_smiling": self.is_smiling}


@dataclass
class FrameResult:
    """Everything the pipeline produced for a single frame."""

    frame_index: int
    state: str
    detected: bool = False
    observations: List[Observation] = field(default_factory=list)
    samples: List[WidthSample] = field(default_factory=list)
    classifications: List[ClassificationResult] = field(default_factory=list)
    baseline: Optional[float] = None
    error: Optional[str] = None

    @property
    def face_found(self) -> bool:
        return bool(self.observations)

    def to_dict(self) -> Dict:
        return {
            "frame_index": self.frame_index,
            "state": self.state,
            "detected": self.detected,
            "face": self.face_found,
            "widths": [s.width for s in self.samples],
            "classifications": [c.to_dict() for c in self.classifications],
            "baseline": self.baseline,
            "error": self.error,
        }
