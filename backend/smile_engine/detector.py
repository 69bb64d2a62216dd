import logging

import cv2
import mediapipe as mp

from backend.smile_engine.landmarks import extract_regions
from backend.smile_engine.observation import BoundingBox, Observation

logger = logging.getLogger(__name__)


class FaceDetector:
    def __init__(self, min_detection_confidence=0.5, model_selection=0):
        """
        FaceDetector wraps MediaPipe Face Detection (full-frame, expensive path).

        Args:
            min_detection_confidence: detection threshold
            model_selection: 0 for faces within ~2m of the camera, 1 for up to ~5m
        """
        self.mp_face = mp.solutions.face_detection
        self.face_detection = self.mp_face.FaceDetection(
            model_selection=model_selection,
            min_detection_confidence=min_detection_confidence,
        )

    def detect(self, image):
        # image: BGR numpy array
        img_rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        results = self.face_detection.process(img_rgb)
        if not results.detections:
            return []
        faces = []
        for det in results.detections:
            box = det.location_data.relative_bounding_box
            region = BoundingBox(box.xmin, box.ymin, box.width, box.height).clamped()
            score = float(det.score[0]) if det.score else 0.0
            faces.append(Observation(region=region, confidence=score))
        return faces

    def close(self):
        self.face_detection.close()


class FaceMeshLandmarker:
    def __init__(self, margin=0.25, min_detection_confidence=0.5, refine_landmarks=False):
        """
        Landmark pass seeded by a face region: FaceMesh runs on a crop around
        the seed so the tracker decides where, and the mesh decides the shape.

        Args:
            margin: fraction of the seed size added on every side of the crop
            min_detection_confidence: FaceMesh detection threshold
            refine_landmarks: whether to enable iris refinement (slower)
        """
        self.margin = float(margin)
        self.mp_mesh = mp.solutions.face_mesh
        self.face_mesh = self.mp_mesh.FaceMesh(
            static_image_mode=True,
            max_num_faces=1,
            refine_landmarks=refine_landmarks,
            min_detection_confidence=min_detection_confidence,
        )

    def detect_landmarks(self, image, seed: BoundingBox):
        crop_box = seed.expanded(self.margin).clamped()
        x0, y0, x1, y1 = crop_box.to_pixels(image.shape[1], image.shape[0])
        if x1 - x0 < 2 or y1 - y0 < 2:
            return {}
        crop = image[y0:y1, x0:x1]
        results = self.face_mesh.process(cv2.cvtColor(crop, cv2.COLOR_BGR2RGB))
        if not results.multi_face_landmarks:
            return {}
        # pixel-exact crop bounds, back in normalized frame units
        h, w = image.shape[0], image.shape[1]
        exact = BoundingBox(x0 / w, y0 / h, (x1 - x0) / w, (y1 - y0) / h)
        return extract_regions(results.multi_face_landmarks[0], exact)

    def close(self):
        self.face_mesh.close()
