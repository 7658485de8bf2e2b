"""Detection strategies: model-backed inference and the luminance fallback."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from config.settings import DetectionSettings, HeuristicSettings, PipelineSettings
from core.logging import logger
from hardware.detection_model import (
    DetectionModel,
    ModelUnavailableError,
    load_detection_model,
    load_labels,
    preprocess,
)
from vision.detections import BoundingBox, DetectionResult
from vision.distance import DistanceEstimator
from vision.frames import Frame, mean_luminance, to_rgb
from vision.postprocess import DetectionPostProcessor


class DetectionStrategy(Protocol):
    """Per-frame detector producing at most one vehicle detection."""

    name: str

    def detect(self, frame: Frame) -> DetectionResult | None:
        """Detect the best vehicle in ``frame``.

        Raises ``MalformedFrameError`` for unusable frames; any other exception
        is an inference failure for the caller to contain.
        """

    def close(self) -> None:
        """Release model or device resources."""


class ModelDetectionStrategy:
    """Runs the detector and keeps the single best vehicle candidate."""

    name = "model"

    def __init__(self, model: DetectionModel, post_processor: DetectionPostProcessor) -> None:
        self._model = model
        self._post_processor = post_processor

    def detect(self, frame: Frame) -> DetectionResult | None:
        rgb = to_rgb(frame)
        input_width, input_height = self._model.input_size
        output = self._model.run(preprocess(rgb, (input_width, input_height)))
        return self._post_processor.process(
            output,
            frame_width=frame.width,
            frame_height=frame.height,
            input_width=input_width,
            input_height=input_height,
        )

    def close(self) -> None:
        self._model.close()


class HeuristicDetectionStrategy:
    """Reduced-fidelity detector that infers a pseudo-vehicle from brightness.

    A frame brighter than ``brightness_threshold`` yields a confidence that
    grows linearly to 1.0 at full white. A centred box whose width is
    ``width_fraction * confidence`` of the frame is synthesized and routed
    through the distance estimator like a real detection.
    """

    name = "heuristic"
    label = "vehicle"

    def __init__(
        self,
        estimator: DistanceEstimator,
        settings: HeuristicSettings | None = None,
    ) -> None:
        self._estimator = estimator
        self.settings = settings or HeuristicSettings()

    def detect(self, frame: Frame) -> DetectionResult | None:
        luminance = mean_luminance(frame)
        threshold = self.settings.brightness_threshold
        if luminance <= threshold:
            return None

        confidence = min(1.0, (luminance - threshold) / (255.0 - threshold))
        fraction = self.settings.width_fraction * confidence
        if fraction <= 0.0:
            return None

        if self.settings.use_geometry:
            width_px = max(1, int(round(frame.width * fraction)))
            distance_m = self._estimator.estimate(width_px, frame.width)
        else:
            distance_m = self._estimator.estimate_from_confidence(confidence)

        half = min(fraction, 1.0) / 2.0
        box = BoundingBox(left=0.5 - half, top=0.5 - half, right=0.5 + half, bottom=0.5 + half)
        logger.debug(
            "[DETECT] Heuristic luminance=%.1f confidence=%.2f distance=%.2fm",
            luminance,
            confidence,
            distance_m,
        )
        return DetectionResult(
            label=self.label,
            distance_m=distance_m,
            confidence=confidence,
            bounding_box=box,
        )

    def close(self) -> None:
        return None


@dataclass(frozen=True)
class StrategySelection:
    """Chosen strategy and, when degraded, the reason the model was skipped."""

    strategy: DetectionStrategy
    degraded_reason: str | None = None


def create_model_strategy(
    settings: DetectionSettings,
    estimator: DistanceEstimator,
) -> ModelDetectionStrategy:
    """Load the detector and labels; raises ``ModelUnavailableError``."""

    model = load_detection_model(settings.model_path)
    labels = load_labels(settings.labels_path)
    return ModelDetectionStrategy(model, DetectionPostProcessor(estimator, labels, settings))


def create_detection_strategy(
    settings: PipelineSettings,
    estimator: DistanceEstimator,
) -> StrategySelection:
    """Prefer the model; degrade to the heuristic when it cannot be loaded."""

    try:
        return StrategySelection(create_model_strategy(settings.detection, estimator))
    except ModelUnavailableError as exc:
        reason = str(exc)

    if not settings.heuristic.enabled:
        logger.error("[DETECT] Model unavailable and heuristic disabled: %s", reason)
        raise RuntimeError(f"no detection strategy available: {reason}")

    logger.warning("[DETECT] Model unavailable (%s); using luminance heuristic", reason)
    return StrategySelection(
        HeuristicDetectionStrategy(estimator, settings.heuristic),
        degraded_reason=reason,
    )
