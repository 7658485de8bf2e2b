"""Scalar Kalman filter for noisy speed samples."""

from __future__ import annotations

from dataclasses import dataclass

from config.settings import SpeedFilterSettings


@dataclass(frozen=True)
class KalmanState:
    """Filter memory; ``initialized`` is false until the first measurement."""

    estimate: float = 0.0
    error_covariance: float = 1.0
    initialized: bool = False


def kalman_update(
    state: KalmanState,
    measurement: float,
    settings: SpeedFilterSettings,
) -> tuple[KalmanState, float]:
    """Blend ``measurement`` into ``state``; the first sample passes through."""

    if not state.initialized:
        return KalmanState(estimate=measurement, error_covariance=1.0, initialized=True), measurement

    predicted_error = state.error_covariance + settings.process_noise
    gain = predicted_error / (predicted_error + settings.measurement_noise)
    estimate = state.estimate + gain * (measurement - state.estimate)
    error_covariance = (1.0 - gain) * predicted_error
    return KalmanState(estimate=estimate, error_covariance=error_covariance, initialized=True), estimate


class SpeedFilter:
    """Owns one Kalman state for a sensor session. Units are the caller's."""

    def __init__(self, settings: SpeedFilterSettings | None = None) -> None:
        self.settings = settings or SpeedFilterSettings()
        self._state = KalmanState()

    @property
    def state(self) -> KalmanState:
        return self._state

    def filter(self, measurement: float) -> float:
        self._state, estimate = kalman_update(self._state, float(measurement), self.settings)
        return estimate

    def reset(self) -> None:
        self._state = KalmanState()
