"""Interpret raw detector output into the single best vehicle detection."""

from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np

from config.settings import DetectionSettings
from core.logging import logger
from vision.detections import BoundingBox, DetectionResult
from vision.distance import DistanceEstimator


# Leading COCO class names, used when no label file can be read.
DEFAULT_LABELS: tuple[str, ...] = (
    "person",
    "bicycle",
    "car",
    "motorcycle",
    "airplane",
    "bus",
    "train",
    "truck",
)

# cx, cy, w, h, objectness, then at least one class score
_MIN_ROW_LENGTH = 6


class DetectionPostProcessor:
    """Best-of selection over one frame of ``(cx, cy, w, h, obj, scores...)`` rows.

    No suppression across candidates is performed: the frame yields the one
    vehicle row with the highest combined confidence, ties keeping the
    earliest row. The distance estimator is advanced once per frame, and only
    when a row is selected.
    """

    def __init__(
        self,
        estimator: DistanceEstimator,
        labels: Sequence[str] | None = None,
        settings: DetectionSettings | None = None,
    ) -> None:
        self._estimator = estimator
        self.settings = settings or DetectionSettings()
        self.labels: tuple[str, ...] = tuple(labels) if labels else DEFAULT_LABELS
        self._vehicle_labels = frozenset(label.lower() for label in self.settings.vehicle_labels)
        self._label_mismatch_logged = False

    def label_for(self, class_index: int) -> str:
        if 0 <= class_index < len(self.labels):
            return self.labels[class_index]
        return str(class_index)

    def process(
        self,
        output: Any,
        frame_width: int,
        frame_height: int,
        input_width: int,
        input_height: int,
    ) -> DetectionResult | None:
        """Return the best vehicle detection in model output, or ``None``."""

        rows = np.asarray(output, dtype=np.float64)
        if rows.ndim == 3 and rows.shape[0] == 1:
            rows = rows[0]
        if rows.ndim != 2 or rows.shape[0] == 0 or rows.shape[1] < _MIN_ROW_LENGTH:
            logger.debug("[DETECT] Unusable output shape %s", rows.shape)
            return None
        if frame_width <= 0 or frame_height <= 0:
            logger.debug("[DETECT] Invalid frame size %sx%s", frame_width, frame_height)
            return None

        class_count = rows.shape[1] - 5
        self._check_label_count(class_count)

        with np.errstate(invalid="ignore", over="ignore"):
            finite = np.isfinite(rows).all(axis=1)
            scores = rows[:, 5:]
            class_index = np.argmax(np.where(np.isnan(scores), -np.inf, scores), axis=1)
            class_confidence = scores[np.arange(rows.shape[0]), class_index]
            objectness = np.clip(rows[:, 4], 0.0, 1.0)
            confidence = np.clip(objectness * class_confidence, 0.0, 1.0)

            vehicle = np.isin(class_index, self._vehicle_indices(class_count))
            confident = confidence >= self.settings.confidence_threshold

            scale_x = frame_width / input_width if input_width > 0 else 1.0
            scale_y = frame_height / input_height if input_height > 0 else 1.0
            center_x = rows[:, 0] * scale_x
            center_y = rows[:, 1] * scale_y
            box_width = rows[:, 2] * scale_x
            box_height = rows[:, 3] * scale_y
            left = np.clip(center_x - box_width / 2.0, 0.0, float(frame_width))
            top = np.clip(center_y - box_height / 2.0, 0.0, float(frame_height))
            right = np.clip(center_x + box_width / 2.0, 0.0, float(frame_width))
            bottom = np.clip(center_y + box_height / 2.0, 0.0, float(frame_height))
            valid_box = (right > left) & (bottom > top)

        keep = finite & vehicle & confident & valid_box
        if not keep.any():
            logger.debug(
                "[DETECT] No candidate: rows=%d non_finite=%d non_vehicle=%d "
                "below_threshold=%d invalid_bbox=%d",
                rows.shape[0],
                int((~finite).sum()),
                int((finite & ~vehicle).sum()),
                int((finite & vehicle & ~confident).sum()),
                int((finite & vehicle & confident & ~valid_box).sum()),
            )
            return None

        candidates = np.flatnonzero(keep)
        best = int(candidates[int(np.argmax(confidence[candidates]))])

        width_px = max(1, int(math.floor(float(box_width[best]) + 0.5)))
        distance_m = self._estimator.estimate(width_px, frame_width)

        label = self.label_for(int(class_index[best]))
        result = DetectionResult(
            label=label,
            distance_m=distance_m,
            confidence=float(confidence[best]),
            bounding_box=BoundingBox(
                left=float(left[best]) / frame_width,
                top=float(top[best]) / frame_height,
                right=float(right[best]) / frame_width,
                bottom=float(bottom[best]) / frame_height,
            ),
        )
        logger.debug(
            "[DETECT] Accepted label=%s confidence=%.2f distance=%.2fm candidates=%d",
            result.label,
            result.confidence,
            result.distance_m,
            candidates.size,
        )
        return result

    def _vehicle_indices(self, class_count: int) -> list[int]:
        return [
            index
            for index in range(class_count)
            if self.label_for(index).lower() in self._vehicle_labels
        ]

    def _check_label_count(self, class_count: int) -> None:
        if self._label_mismatch_logged or class_count == len(self.labels):
            return
        logger.warning(
            "[DETECT] Label list has %d entries but model reports %d classes",
            len(self.labels),
            class_count,
        )
        self._label_mismatch_logged = True
