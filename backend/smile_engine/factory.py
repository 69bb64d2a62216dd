from typing import Callable, Dict, Optional

from backend.processing_config import get_config
from backend.settings_store import BaselineStore
from backend.smile_engine.detector import FaceDetector, FaceMeshLandmarker
from backend.smile_engine.engine import EngineConfig, SmileEngine
from backend.smile_engine.sequence_tracker import SequenceTracker


def create_engine(cfg: Optional[Dict] = None, frame_source: Optional[Callable] = None, **callbacks) -> SmileEngine:
    """
    Build a SmileEngine wired to MediaPipe detection/landmarks and the OpenCV
    tracker, configured from `processing_config` unless `cfg` is given.
    """
    cfg = cfg or get_config()
    store = BaselineStore(cfg["baseline_path"]) if cfg.get("baseline_path") else None
    return SmileEngine(
        detector=FaceDetector(),
        tracker=SequenceTracker(),
        landmarker=FaceMeshLandmarker(),
        config=EngineConfig.from_dict(cfg),
        frame_source=frame_source,
        store=store,
        **callbacks,
    )
