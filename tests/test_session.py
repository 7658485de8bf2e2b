"""Tests for the driving session and its per-frame error handling."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from config.settings import HeuristicSettings, PipelineSettings
from core.session import DrivingSession, FrameOutcome
from core.warning import WarningLevel
from hardware.detection_model import ModelUnavailableError
from interaction.alerts import AlertCommand, FakeAlertOutput
from interaction.display import RecordingDisplay
from vision import strategies
from vision.detections import DetectionResult
from vision.distance import DistanceEstimator
from vision.frames import Frame, MalformedFrameError
from vision.strategies import HeuristicDetectionStrategy, StrategySelection


def _frame(value: int = 0) -> Frame:
    return Frame(pixels=np.full((4, 4), value, dtype=np.uint8), width=4, height=4, pixel_format="GRAY8")


class ScriptedStrategy:
    """Replays a list of outcomes; exceptions are raised, anything else returned."""

    name = "scripted"

    def __init__(self, script: list) -> None:
        self.script = list(script)
        self.closed = False

    def detect(self, frame: Frame) -> DetectionResult | None:
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


def _session(script: list, **kwargs) -> tuple[DrivingSession, ScriptedStrategy]:
    strategy = ScriptedStrategy(script)
    session = DrivingSession(
        strategy_factory=lambda settings, estimator: StrategySelection(strategy),
        **kwargs,
    )
    return session, strategy


def test_detection_flows_through_ttc_and_warning() -> None:
    alerts = FakeAlertOutput()
    session, _ = _session(
        [DetectionResult(label="car", distance_m=8.0, confidence=0.9)],
        alerts=alerts,
        clock_ms=lambda: 0.0,
    )
    for _ in range(30):
        session.submit_speed_sample(10.0)

    outcome = session.process_frame(_frame())

    assert outcome.frame_index == 1
    assert outcome.ttc_s == pytest.approx(0.8)
    assert outcome.level is WarningLevel.DANGER
    assert outcome.command is AlertCommand.PLAY_ALARM
    assert alerts.commands == [AlertCommand.PLAY_ALARM]


def test_stationary_vehicle_has_no_ttc() -> None:
    session, _ = _session([DetectionResult(label="car", distance_m=8.0, confidence=0.9)])

    outcome = session.process_frame(_frame())

    assert outcome.ttc_s is None
    assert outcome.level is WarningLevel.CLEAR


def test_malformed_frame_is_skipped_without_touching_warning_state() -> None:
    alerts = FakeAlertOutput()
    session, _ = _session(
        [
            DetectionResult(label="car", distance_m=8.0, confidence=0.9),
            MalformedFrameError("empty buffer"),
        ],
        alerts=alerts,
        clock_ms=lambda: 0.0,
    )
    session.submit_speed_sample(10.0)
    session.process_frame(_frame())

    outcome = session.process_frame(_frame())

    assert outcome.skipped
    assert outcome.detection is None
    assert outcome.level is WarningLevel.DANGER
    assert alerts.commands == [AlertCommand.PLAY_ALARM]
    assert session.get_runtime_status()["frames_skipped"] == 1


def test_inference_failure_fails_open_to_clear() -> None:
    alerts = FakeAlertOutput()
    session, _ = _session(
        [
            DetectionResult(label="car", distance_m=8.0, confidence=0.9),
            RuntimeError("delegate crashed"),
        ],
        alerts=alerts,
        clock_ms=lambda: 0.0,
    )
    session.submit_speed_sample(10.0)
    session.process_frame(_frame())

    outcome = session.process_frame(_frame())

    assert not outcome.skipped
    assert outcome.level is WarningLevel.CLEAR
    assert outcome.command is AlertCommand.CLEAR
    assert alerts.commands == [AlertCommand.PLAY_ALARM, AlertCommand.CLEAR]
    assert session.get_runtime_status()["inference_failures"] == 1


def test_degraded_notice_delivered_once(monkeypatch) -> None:
    def unavailable(path):
        raise ModelUnavailableError("no runtime")

    monkeypatch.setattr(strategies, "load_detection_model", unavailable)
    notices: list[str] = []
    session = DrivingSession(on_degraded=notices.append)

    session.start()
    session.start()
    session.stop()

    assert notices == ["no runtime"]
    assert session.get_runtime_status()["strategy"] == "heuristic"


def test_no_strategy_at_all_is_reported_upward(monkeypatch) -> None:
    def unavailable(path):
        raise ModelUnavailableError("no runtime")

    monkeypatch.setattr(strategies, "load_detection_model", unavailable)
    settings = PipelineSettings(heuristic=HeuristicSettings(enabled=False))

    with pytest.raises(RuntimeError):
        DrivingSession(settings=settings)


def test_rebind_resets_distance_smoothing() -> None:
    captured: list[DistanceEstimator] = []

    def factory(settings, estimator):
        captured.append(estimator)
        return StrategySelection(HeuristicDetectionStrategy(estimator, settings.heuristic))

    session = DrivingSession(strategy_factory=factory)
    bright = Frame(pixels=np.full((100, 100), 255, dtype=np.uint8), width=100, height=100, pixel_format="GRAY8")
    session.process_frame(bright)
    assert captured[0].state.last_estimate is not None

    session.rebind()

    assert captured[0].state.last_estimate is None


def test_worker_delivers_outcomes_and_stop_tears_down() -> None:
    alerts = FakeAlertOutput()
    display = RecordingDisplay()
    received: list[FrameOutcome] = []
    delivered = threading.Event()

    def on_outcome(outcome: FrameOutcome) -> None:
        received.append(outcome)
        delivered.set()

    session, strategy = _session([None], alerts=alerts, display=display, on_outcome=on_outcome)
    assert session.submit_frame(_frame()) is False

    session.start()
    assert session.submit_frame(_frame())
    assert delivered.wait(timeout=2.0)
    session.stop()

    assert received[0].detection is None
    assert received[0].level is WarningLevel.CLEAR
    assert display.updates
    assert strategy.closed
    assert alerts.commands[-1] is AlertCommand.CLEAR
    assert session.submit_frame(_frame()) is False
    with pytest.raises(RuntimeError):
        session.start()
