"""Vision package exports."""

from vision.detections import BoundingBox, DetectionResult
from vision.distance import DistanceEstimator, DistanceFilterState
from vision.frames import Frame, MalformedFrameError

__all__ = [
    "BoundingBox",
    "DetectionResult",
    "DistanceEstimator",
    "DistanceFilterState",
    "Frame",
    "MalformedFrameError",
]
