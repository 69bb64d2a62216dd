import math
from typing import Optional

from backend.smile_engine.observation import LandmarkRegion, Landmarks, Point


def distance(p1: Point, p2: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def mouth_width(landmarks: Optional[Landmarks]) -> Optional[float]:
    """
    Width of the mouth: distance between the first and last outer-lip points.

    The landmark provider orders the outer-lips region starting at the left
    mouth corner and ending at the right one. Returns None when the region is
    missing or has fewer than two points.
    """
    if not landmarks:
        return None
    lips = landmarks.get(LandmarkRegion.OUTER_LIPS)
    if lips is None or len(lips) < 2:
        return None
    return distance(lips[0], lips[-1])
