from typing import Dict, List, Optional

from backend.smile_engine.observation import BoundingBox, LandmarkRegion, Point


# FaceMesh landmark indices per region (MediaPipe 468-point topology).
# Each list is ordered along the contour. OUTER_LIPS must start at the left
# mouth corner (61) and end at the right one (291): the mouth width is the
# distance between its first and last points.
REGION_INDICES: Dict[LandmarkRegion, List[int]] = {
    LandmarkRegion.OUTER_LIPS: [61, 185, 40, 39, 37, 0, 267, 269, 270, 409, 291],
    LandmarkRegion.INNER_LIPS: [78, 191, 80, 81, 82, 13, 312, 311, 310, 415, 308],
    LandmarkRegion.LEFT_EYE: [33, 160, 158, 133, 153, 144],
    LandmarkRegion.RIGHT_EYE: [362, 385, 387, 263, 373, 380],
    LandmarkRegion.LEFT_EYEBROW: [70, 63, 105, 66, 107],
    LandmarkRegion.RIGHT_EYEBROW: [336, 296, 334, 293, 300],
    LandmarkRegion.NOSE: [168, 6, 197, 195, 5, 4, 1],
}


def extract_regions(mp_landmarks, crop: BoundingBox) -> Dict[LandmarkRegion, Optional[List[Point]]]:
    """
    Convert a FaceMesh result computed on a crop into named regions in
    normalized full-frame coordinates.

    Args:
      mp_landmarks: MediaPipe landmark list (`.landmark[i].x/.y` in 0..1 of the crop)
      crop: the normalized region of the frame the crop was cut from

    A region referencing an index the result does not have is reported as None.
    """
    points = mp_landmarks.landmark
    n = len(points)
    regions: Dict[LandmarkRegion, Optional[List[Point]]] = {}
    for region, indices in REGION_INDICES.items():
        if any(idx >= n for idx in indices):
            regions[region] = None
            continue
        regions[region] = [
            (crop.x + float(points[idx].x) * crop.width, crop.y + float(points[idx].y) * crop.height)
            for idx in indices
        ]
    return regions


def to_pixels(points: List[Point], image_shape) -> List[tuple]:
    """Normalized points -> integer pixel coordinates for drawing."""
    h, w = image_shape[0], image_shape[1]
    return [(int(x * w), int(y * h)) for x, y in points]
