"""Driving session: wires detection, distance, speed and warnings together."""

from __future__ import annotations

from dataclasses import dataclass
import threading
import time
from typing import Callable

from config.settings import PipelineSettings
from core.collision import CollisionPredictor
from core.logging import logger
from core.warning import WarningController, WarningLevel
from hardware.frame_worker import LatestFrameWorker
from interaction.alerts import AlertCommand, AlertOutput
from interaction.display import DisplaySink
from services.speed_monitor import SpeedMonitor
from vision.detections import DetectionResult
from vision.distance import DistanceEstimator
from vision.frames import Frame, MalformedFrameError
from vision.strategies import StrategySelection, create_detection_strategy


StrategyFactory = Callable[[PipelineSettings, DistanceEstimator], StrategySelection]


@dataclass(frozen=True)
class FrameOutcome:
    """Result of running one frame through the pipeline."""

    frame_index: int
    detection: DetectionResult | None
    ttc_s: float | None
    level: WarningLevel
    command: AlertCommand | None
    skipped: bool = False


class DrivingSession:
    """One camera/speed session from start to stop.

    Frames submitted with ``submit_frame`` are processed on a dedicated
    worker; only the newest pending frame is kept. ``process_frame`` runs the
    same per-frame path synchronously, for replay and tests.
    """

    def __init__(
        self,
        settings: PipelineSettings | None = None,
        display: DisplaySink | None = None,
        alerts: AlertOutput | None = None,
        speed_monitor: SpeedMonitor | None = None,
        strategy_factory: StrategyFactory | None = None,
        on_outcome: Callable[[FrameOutcome], None] | None = None,
        on_degraded: Callable[[str], None] | None = None,
        clock_ms: Callable[[], float] | None = None,
    ) -> None:
        self.settings = settings or PipelineSettings()
        self.estimator = DistanceEstimator(self.settings.distance)
        factory = strategy_factory or create_detection_strategy
        selection = factory(self.settings, self.estimator)
        self.strategy = selection.strategy
        self.degraded_reason = selection.degraded_reason
        self.speed_monitor = speed_monitor or SpeedMonitor(self.settings.speed_filter)
        self.collision = CollisionPredictor(self.settings.collision)
        self.warning = WarningController(
            display=display,
            alerts=alerts,
            settings=self.settings.warning,
            clock_ms=clock_ms,
        )
        self._on_degraded = on_degraded
        self._degraded_notified = False
        self._worker: LatestFrameWorker[Frame, FrameOutcome] = LatestFrameWorker(
            self.process_frame,
            on_result=on_outcome,
            name="brake-assist-frames",
        )
        self._pipeline_lock = threading.Lock()
        self._running = False
        self._closed = False
        self._frame_index = 0
        self._frames_skipped = 0
        self._inference_failures = 0
        self._detections = 0
        self._last_status_log = time.monotonic()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._closed:
            raise RuntimeError("Session already stopped; create a new one")
        if self._running:
            return
        if self.degraded_reason is not None and not self._degraded_notified:
            self._degraded_notified = True
            if self._on_degraded is not None:
                try:
                    self._on_degraded(self.degraded_reason)
                except Exception:
                    logger.exception("[SESSION] Degraded-mode callback failed")
        self._worker.start()
        self._running = True
        logger.info(
            "[SESSION] Started (strategy=%s%s)",
            self.strategy.name,
            f", degraded: {self.degraded_reason}" if self.degraded_reason else "",
        )

    def stop(self) -> None:
        """Tear down in order: worker, detector, alerts, per-session state."""

        if self._closed:
            return
        self._running = False
        self._closed = True
        self._worker.stop(timeout_s=self.settings.worker.stop_timeout_s)
        try:
            self.strategy.close()
        except Exception:
            logger.exception("[SESSION] Detector close failed")
        self.warning.release()
        with self._pipeline_lock:
            self.warning.reset()
            self.estimator.reset()
        logger.info("[SESSION] Stopped: %s", self.get_runtime_status())

    def submit_frame(self, frame: Frame) -> bool:
        if not self._running:
            return False
        return self._worker.submit(frame)

    def submit_speed_sample(self, speed_mps: float | None) -> float | None:
        return self.speed_monitor.push_sample(speed_mps)

    def rebind(self) -> None:
        """Camera was restarted: earlier distance history no longer applies."""

        with self._pipeline_lock:
            self.estimator.reset()
        logger.info("[SESSION] Camera rebound; distance smoothing reset")

    def process_frame(self, frame: Frame) -> FrameOutcome:
        with self._pipeline_lock:
            outcome = self._process_locked(frame)
        self._maybe_log_status()
        return outcome

    def get_runtime_status(self) -> dict[str, object]:
        worker = self._worker.get_runtime_status()
        return {
            "strategy": self.strategy.name,
            "degraded_reason": self.degraded_reason,
            "running": self._running,
            "frames_seen": self._frame_index,
            "frames_dropped": worker["frames_dropped"],
            "frames_skipped": self._frames_skipped,
            "inference_failures": self._inference_failures,
            "detections": self._detections,
            "level": self.warning.state.last_level.name,
            "speed_kmh": round(self.speed_monitor.current_speed_kmh(), 2),
        }

    def _process_locked(self, frame: Frame) -> FrameOutcome:
        self._frame_index += 1
        index = self._frame_index
        try:
            detection = self.strategy.detect(frame)
        except MalformedFrameError as exc:
            self._frames_skipped += 1
            logger.warning("[SESSION] Skipping malformed frame %s: %s", index, exc)
            return FrameOutcome(
                frame_index=index,
                detection=None,
                ttc_s=None,
                level=self.warning.state.last_level,
                command=None,
                skipped=True,
            )
        except Exception:
            self._inference_failures += 1
            logger.exception("[SESSION] Detection failed on frame %s", index)
            detection = None

        if detection is None:
            decision = self.warning.on_no_detection()
            return FrameOutcome(index, None, None, decision.level, decision.command)

        self._detections += 1
        speed_kmh = self.speed_monitor.current_speed_kmh()
        ttc_s = self.collision.ttc(detection.distance_m, speed_kmh)
        decision = self.warning.on_detection(detection, ttc_s)
        return FrameOutcome(index, detection, ttc_s, decision.level, decision.command)

    def _maybe_log_status(self) -> None:
        period = self.settings.worker.status_log_period_s
        now = time.monotonic()
        if period > 0 and now - self._last_status_log >= period:
            self._last_status_log = now
            logger.info("[SESSION] Status: %s", self.get_runtime_status())
