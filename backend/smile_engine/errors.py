"""Error types raised by the smile engine."""


class SmileEngineError(Exception):
    """Base class for all smile engine errors."""


class MissingObservation(SmileEngineError):
    """No face, or no landmark region of the required type, in this frame."""


class InsufficientSamples(SmileEngineError):
    """Calibration was forced to complete before any sample was collected."""


class CapabilityFailure(SmileEngineError):
    """An external detection, tracking or landmark call raised."""

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause
