"""
Incremental face tracker based on OpenCV template matching.

Each tracked face is followed by cutting its last-known box out of the
previous frame and searching for that patch in a window around the same spot
of the new frame. The normalized correlation of the best match
(`cv2.TM_CCOEFF_NORMED`) is reported as the tracking confidence, so a face
that turns away or leaves the window quickly falls below the threshold and
the pipeline goes back to full detection.

The tracker remembers the previous frame between calls, like a sequence
request handler: feed it consecutive frames of one stream only.
"""
import cv2
import numpy as np

from backend.smile_engine.observation import BoundingBox, TrackResult


class SequenceTracker:
    def __init__(self, search_margin: float = 0.5, min_patch: int = 8):
        """
        Args:
          search_margin: search window = box grown by this fraction on every side
          min_patch: smallest template side in pixels worth matching
        """
        self.search_margin = float(search_margin)
        self.min_patch = int(min_patch)
        self._previous = None

    def reset(self, frame=None):
        """Forget the previous frame; seed it with `frame` (the detection frame) when given."""
        self._previous = None if frame is None else _gray(frame)

    def track(self, candidates, frame):
        gray = _gray(frame)
        # Not seeded: match against the current frame itself.
        previous = self._previous if self._previous is not None and self._previous.shape == gray.shape else gray
        h, w = gray.shape[:2]

        results = []
        for candidate in candidates:
            results.append(self._match(previous, gray, candidate.region, w, h))
        self._previous = gray
        return results

    def _match(self, previous, current, region: BoundingBox, w: int, h: int):
        x0, y0, x1, y1 = region.to_pixels(w, h)
        if x1 - x0 < self.min_patch or y1 - y0 < self.min_patch:
            return None
        template = previous[y0:y1, x0:x1]

        sx0, sy0, sx1, sy1 = region.expanded(self.search_margin).to_pixels(w, h)
        window = current[sy0:sy1, sx0:sx1]
        if window.shape[0] < template.shape[0] or window.shape[1] < template.shape[1]:
            return None

        scores = cv2.matchTemplate(window, template, cv2.TM_CCOEFF_NORMED)
        _, best, _, (bx, by) = cv2.minMaxLoc(scores)
        if not np.isfinite(best):
            # flat template (e.g. a uniform patch): correlation is undefined
            return None
        moved = BoundingBox((sx0 + bx) / w, (sy0 + by) / h, (x1 - x0) / w, (y1 - y0) / h)
        return TrackResult(confidence=float(max(0.0, min(1.0, best))), region=moved)


def _gray(frame):
    return frame if frame.ndim == 2 else cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
