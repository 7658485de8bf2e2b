"""Detection value types shared by the vision and warning stages.

Bounding boxes are normalized to the source frame dimensions and represented as
``(left, top, right, bottom)`` with each value in the inclusive range
``[0.0, 1.0]``.
"""

from __future__ import annotations

from dataclasses import dataclass
import math


@dataclass(frozen=True)
class BoundingBox:
    """Normalized detection region relative to the frame size."""

    left: float
    top: float
    right: float
    bottom: float

    def __post_init__(self) -> None:
        for name in ("left", "top", "right", "bottom"):
            value = getattr(self, name)
            if not math.isfinite(value) or not (0.0 <= value <= 1.0):
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if not self.left < self.right:
            raise ValueError(f"left must be < right, got {self.left} >= {self.right}")
        if not self.top < self.bottom:
            raise ValueError(f"top must be < bottom, got {self.top} >= {self.bottom}")

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True)
class DetectionResult:
    """Best vehicle detection for one frame; carries no cross-frame identity."""

    label: str
    distance_m: float
    confidence: float
    bounding_box: BoundingBox | None = None

    def __post_init__(self) -> None:
        if not math.isfinite(self.distance_m) or self.distance_m < 0.0:
            raise ValueError(f"distance_m must be finite and >= 0, got {self.distance_m}")
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")
