"""Hardware-facing package: detector runtime and frame intake."""

from hardware.detection_model import DetectionModel, LiteRtDetectionModel, ModelUnavailableError
from hardware.frame_worker import LatestFrameWorker

__all__ = [
    "DetectionModel",
    "LatestFrameWorker",
    "LiteRtDetectionModel",
    "ModelUnavailableError",
]
