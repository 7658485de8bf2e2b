"""Monocular distance estimation with exponential smoothing.

The estimator follows the pinhole camera relation: an object of known real
width ``W`` that spans ``w`` pixels under focal length ``f`` lies at
``W * f / w``. The result is rescaled by ``frame_width / f`` to account for
the analysed resolution differing from the calibration resolution, clamped,
and blended into the previous estimate.

State is an explicit value. ``estimate_distance`` and
``estimate_from_confidence`` are pure ``(state, input) -> (state', output)``
functions; ``DistanceEstimator`` owns one state for a camera session.
"""

from __future__ import annotations

from dataclasses import dataclass

from config.settings import DistanceSettings


@dataclass(frozen=True)
class DistanceFilterState:
    """Smoothing memory of one estimator; ``None`` until the first sample."""

    last_estimate: float | None = None


def smooth(previous: float | None, value: float, alpha: float) -> float:
    if previous is None:
        return value
    return previous + alpha * (value - previous)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def estimate_distance(
    state: DistanceFilterState,
    bbox_width_px: int,
    frame_width_px: int,
    settings: DistanceSettings,
) -> tuple[DistanceFilterState, float]:
    """Return the new state and smoothed distance for an observed box width."""

    if frame_width_px <= 0:
        raise ValueError(f"frame_width_px must be positive, got {frame_width_px}")

    effective_width = max(int(bbox_width_px), 1)
    focal = settings.focal_length_px
    if focal <= 0:
        focal = frame_width_px * 1.2
    raw = (settings.known_width_m * focal) / effective_width
    rescaled = raw * (frame_width_px / focal)
    clamped = clamp(rescaled, settings.min_distance_m, settings.max_distance_m)
    smoothed = smooth(state.last_estimate, clamped, settings.smoothing_factor)
    return DistanceFilterState(last_estimate=smoothed), smoothed


def estimate_from_confidence(
    state: DistanceFilterState,
    confidence: float,
    settings: DistanceSettings,
) -> tuple[DistanceFilterState, float]:
    """Map confidence linearly onto the fallback range; lower means farther."""

    normalized = clamp(float(confidence), 0.0, 1.0)
    near = settings.min_confidence_distance_m
    far = settings.max_confidence_distance_m
    distance = (far - near) * (1.0 - normalized) + near
    smoothed = smooth(state.last_estimate, distance, settings.smoothing_factor)
    return DistanceFilterState(last_estimate=smoothed), smoothed


class DistanceEstimator:
    """Owns the smoothing state for one camera session."""

    def __init__(self, settings: DistanceSettings | None = None) -> None:
        self.settings = settings or DistanceSettings()
        self._state = DistanceFilterState()

    @property
    def state(self) -> DistanceFilterState:
        return self._state

    def estimate(self, bbox_width_px: int, frame_width_px: int) -> float:
        self._state, distance = estimate_distance(
            self._state, bbox_width_px, frame_width_px, self.settings
        )
        return distance

    def estimate_from_confidence(self, confidence: float) -> float:
        self._state, distance = estimate_from_confidence(self._state, confidence, self.settings)
        return distance

    def reset(self) -> None:
        """Forget the smoothing memory; call when the camera session restarts."""

        self._state = DistanceFilterState()
