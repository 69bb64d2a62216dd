from typing import Optional

from backend.smile_engine.observation import ClassificationResult

DEFAULT_SMILE_THRESHOLD = 1.1


def classify(width: float, baseline: float, threshold: float = DEFAULT_SMILE_THRESHOLD) -> bool:
    """True when the mouth is wider than `threshold` times the neutral width."""
    return width > baseline * threshold


class ExpressionClassifier:
    """
    Smile / neutral classifier against a calibrated neutral mouth width.

    Every frame is judged on its own (no smoothing, no hysteresis). Until a
    baseline is known, `evaluate` returns None so no classification is
    emitted, unless a `default_baseline` was configured.
    """

    def __init__(self, threshold: float = DEFAULT_SMILE_THRESHOLD, default_baseline: Optional[float] = None):
        self.threshold = float(threshold)
        self.default_baseline = default_baseline
        self.baseline: Optional[float] = None

    @property
    def is_calibrated(self) -> bool:
        return self.baseline is not None

    def set_baseline(self, baseline: float):
        self.baseline = float(baseline)

    def evaluate(self, width: float) -> Optional[ClassificationResult]:
        baseline = self.baseline if self.baseline is not None else self.default_baseline
        if baseline is None:
            return None
        return ClassificationResult(
            width=float(width),
            baseline=float(baseline),
            is_smiling=classify(width, baseline, self.threshold),
        )
