"""Speed intake: filters raw GPS samples and publishes the latest km/h value."""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Generic, TypeVar

from config.settings import SpeedFilterSettings
from services.speed_filter import SpeedFilter


LOGGER = logging.getLogger(__name__)

MS_TO_KMH = 3.6

T = TypeVar("T")

SpeedSource = Callable[[], "float | None"]


class LatestValue(Generic[T]):
    """Last-write-wins cell shared between one writer and any readers."""

    def __init__(self, initial: T) -> None:
        self._lock = threading.Lock()
        self._value = initial
        self._updated_monotonic: float | None = None

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value
            self._updated_monotonic = time.monotonic()

    def get(self) -> T:
        with self._lock:
            return self._value

    def age_s(self) -> float | None:
        with self._lock:
            if self._updated_monotonic is None:
                return None
            return time.monotonic() - self._updated_monotonic


class SpeedMonitor:
    """Accepts raw speed samples in m/s and exposes the filtered speed in km/h.

    Samples may be pushed directly from a location callback or polled from a
    ``SpeedSource`` on a background loop. Readers never block on the intake.
    """

    def __init__(self, settings: SpeedFilterSettings | None = None) -> None:
        self._filter = SpeedFilter(settings)
        self._filter_lock = threading.Lock()
        self._speed_kmh: LatestValue[float] = LatestValue(0.0)
        self._observers: list[Callable[[float], None]] = []
        self._stop_event = threading.Event()
        self._loop_thread: threading.Thread | None = None
        self._samples_accepted = 0
        self._samples_rejected = 0

    def push_sample(self, speed_mps: float | None) -> float | None:
        """Filter one raw sample; returns the new km/h value, or ``None`` if dropped."""

        try:
            value = float(speed_mps)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            value = math.nan
        if not math.isfinite(value):
            self._samples_rejected += 1
            LOGGER.debug("[SPEED] Dropped non-finite sample: %r", speed_mps)
            return None

        with self._filter_lock:
            filtered_mps = self._filter.filter(max(0.0, value))
            self._samples_accepted += 1
        speed_kmh = filtered_mps * MS_TO_KMH
        self._speed_kmh.set(speed_kmh)
        self._notify(speed_kmh)
        return speed_kmh

    def current_speed_kmh(self) -> float:
        return self._speed_kmh.get()

    def sample_age_s(self) -> float | None:
        return self._speed_kmh.age_s()

    def register_observer(self, observer: Callable[[float], None]) -> None:
        self._observers.append(observer)

    def unregister_observer(self, observer: Callable[[float], None]) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def reset(self) -> None:
        with self._filter_lock:
            self._filter.reset()
        self._speed_kmh.set(0.0)

    def get_runtime_status(self) -> dict[str, int | float]:
        age = self.sample_age_s()
        return {
            "speed_kmh": round(self.current_speed_kmh(), 2),
            "samples_accepted": self._samples_accepted,
            "samples_rejected": self._samples_rejected,
            "last_sample_age_s": round(age, 3) if age is not None else -1.0,
            "loop_alive": int(self.is_loop_alive()),
        }

    def start_loop(self, source: SpeedSource, period_s: float = 0.5) -> None:
        if self._loop_thread is None or not self._loop_thread.is_alive():
            period_s = max(period_s, 0.05)
            self._stop_event.clear()
            self._loop_thread = threading.Thread(
                target=self._loop,
                args=(source, period_s),
                name="speed-sampling-loop",
                daemon=True,
            )
            self._loop_thread.start()

    def stop_loop(self, timeout_s: float = 2.0) -> None:
        if self._loop_thread is not None:
            self._stop_event.set()
            self._loop_thread.join(timeout=timeout_s)
            if self._loop_thread.is_alive():
                LOGGER.warning("[SPEED] Sampling loop did not stop within timeout")
                return
            self._loop_thread = None

    def is_loop_alive(self) -> bool:
        return self._loop_thread is not None and self._loop_thread.is_alive()

    def _loop(self, source: SpeedSource, period_s: float) -> None:
        while not self._stop_event.is_set():
            try:
                sample = source()
                if sample is not None:
                    self.push_sample(sample)
            except Exception as exc:
                LOGGER.exception("[SPEED] Error reading speed source (retrying): %s", exc)
            self._stop_event.wait(period_s)

    def _notify(self, speed_kmh: float) -> None:
        for observer in list(self._observers):
            try:
                observer(speed_kmh)
            except Exception as exc:
                LOGGER.exception("[SPEED] Observer failed: %s", exc)
