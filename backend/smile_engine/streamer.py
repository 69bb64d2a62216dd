import logging
import threading
import time

import cv2

from backend.smile_engine.factory import create_engine
from backend.smile_engine.landmarks import to_pixels
from backend.smile_engine.observation import LandmarkRegion

logger = logging.getLogger(__name__)

SMILE_COLOR = (0, 0, 255)
NEUTRAL_COLOR = (0, 255, 255)


class WebcamSmileStreamer:
    """
    WebcamSmileStreamer captures frames from a webcam, hands them to a
    SmileEngine and shows the result.

    The capture/display loop stays on the calling thread; the engine works on
    its own worker thread, and the latest finished FrameResult is drawn on the
    next displayed frame. Keys: 'c' starts a neutral-face calibration, 'q'
    quits.
    """

    def __init__(self, src=0, width=640, height=480, fps=30, cfg=None):
        self.src = src
        self.width = width
        self.height = height
        self.fps = fps
        self._frame_lock = threading.Lock()
        self._latest_frame = None
        self._pending = None
        self.last_result = None
        self.is_smiling = False
        self.engine = create_engine(cfg, frame_source=self.current_frame)

    def current_frame(self):
        """Latest captured frame (timed calibration pulls from here)."""
        with self._frame_lock:
            return None if self._latest_frame is None else self._latest_frame.copy()

    def _collect(self):
        # pick up the previous frame's result without blocking the display loop
        if self._pending is not None and self._pending.done():
            exc = self._pending.exception()
            if exc is not None:
                logger.error("frame processing failed: %s", exc)
            else:
                self.last_result = self._pending.result()
            self._pending = None
        for kind, payload in self.engine.drain_events():
            if kind == "calibration_complete":
                print(f"[calibration] neutral mouth width: {payload:.4f} - begin testing!")
            elif kind == "classification":
                self.is_smiling = payload.is_smiling

    def draw_overlay(self, frame):
        """Draw face boxes, outer lips and the smile label in-place."""
        result = self.last_result
        if result is None:
            return frame
        color = SMILE_COLOR if self.is_smiling else NEUTRAL_COLOR
        h, w = frame.shape[:2]
        for obs in result.observations:
            x0, y0, x1, y1 = obs.region.to_pixels(w, h)
            cv2.rectangle(frame, (x0, y0), (x1, y1), color, 1)
            lips = obs.landmark_region(LandmarkRegion.OUTER_LIPS)
            if lips:
                pts = to_pixels(list(lips), frame.shape)
                for a, b in zip(pts, pts[1:]):
                    cv2.line(frame, a, b, color, 2)
        if self.engine.is_calibrating:
            label = f"Calibrating {int(self.engine.calibration.progress * 100)}%"
        elif self.engine.baseline is None:
            label = "Press 'c' with a neutral face"
        else:
            label = "Smiling" if self.is_smiling else "Neutral"
        cv2.putText(frame, label, (10, 60), cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2)
        return frame

    def run_display(self, show_fps=True):
        """Start webcam loop, display annotated frames and return when 'q' pressed."""
        cap = cv2.VideoCapture(self.src)
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        cap.set(cv2.CAP_PROP_FPS, self.fps)

        prev = time.time()
        try:
            while True:
                ret, frame = cap.read()
                if not ret:
                    logger.error("[webcam] frame read failed")
                    break

                with self._frame_lock:
                    self._latest_frame = frame
                self._collect()
                # one frame in flight at a time; frames arriving meanwhile are shown but not analysed
                if self._pending is None:
                    self._pending = self.engine.submit(frame.copy())

                display = self.draw_overlay(frame.copy())
                if show_fps:
                    now = time.time()
                    dt = now - prev if now - prev > 0 else 1e-6
                    prev = now
                    cv2.putText(display, f"FPS: {int(1.0 / dt)}", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 255, 0), 2)

                cv2.imshow("Smile Tracker", display)

                key = cv2.waitKey(1) & 0xFF
                if key == ord("q"):
                    break
                if key == ord("c"):
                    self.engine.start_calibration()

        finally:
            cap.release()
            cv2.destroyAllWindows()
            self.engine.close()
