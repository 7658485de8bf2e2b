"""Time-to-collision from detected distance and filtered ego speed."""

from __future__ import annotations

import math

from config.settings import CollisionSettings


KMH_PER_MS = 3.6


def time_to_collision(
    distance_m: float,
    speed_kmh: float,
    settings: CollisionSettings | None = None,
) -> float | None:
    """Seconds until contact at the current speed, rounded to 0.01 s.

    Returns ``None`` when the vehicle is effectively stationary, the distance
    is not positive, or the arithmetic degenerates.
    """

    settings = settings or CollisionSettings()
    if not (speed_kmh > settings.min_speed_kmh) or not (distance_m > 0.0):
        return None
    speed_ms = speed_kmh / KMH_PER_MS
    if speed_ms <= 0.0:
        return None
    ttc = distance_m / speed_ms
    if not math.isfinite(ttc) or ttc < 0.0:
        return None
    rounded = round(ttc, 2)
    return rounded if math.isfinite(rounded) else None


class CollisionPredictor:
    def __init__(self, settings: CollisionSettings | None = None) -> None:
        self.settings = settings or CollisionSettings()

    def ttc(self, distance_m: float, speed_kmh: float) -> float | None:
        return time_to_collision(distance_m, speed_kmh, self.settings)
