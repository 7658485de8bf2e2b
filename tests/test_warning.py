"""Tests for danger levels and alert hysteresis."""

from __future__ import annotations

from config.settings import WarningSettings
from core.warning import (
    DisplayUpdate,
    WarningController,
    WarningLevel,
    WarningState,
    advance_alert,
    clear_alert,
    determine_level,
)
from interaction.alerts import AlertCommand, FakeAlertOutput
from interaction.display import RecordingDisplay
from vision.detections import BoundingBox, DetectionResult


def _detection(distance_m: float = 8.0) -> DetectionResult:
    return DetectionResult(
        label="car",
        distance_m=distance_m,
        confidence=0.85,
        bounding_box=BoundingBox(0.4, 0.4, 0.6, 0.6),
    )


def test_levels_from_distance_and_ttc() -> None:
    assert determine_level(8.0, 1.5) is WarningLevel.DANGER
    assert determine_level(15.0, 3.0) is WarningLevel.CAUTION
    assert determine_level(15.0, 5.0) is WarningLevel.CLEAR
    assert determine_level(15.0, 1.5) is WarningLevel.CAUTION
    assert determine_level(8.0, None) is WarningLevel.CLEAR


def test_first_alert_fires_without_prior_history() -> None:
    state, command = advance_alert(WarningState(), WarningLevel.CLEAR, 0.0)

    assert command is AlertCommand.CLEAR
    assert state.last_alert_ms == 0.0


def test_cooldown_suppresses_repeat_at_same_level() -> None:
    settings = WarningSettings()
    state, first = advance_alert(WarningState(), WarningLevel.DANGER, 0.0, settings)
    state, second = advance_alert(state, WarningLevel.DANGER, 200.0, settings)
    state, third = advance_alert(state, WarningLevel.DANGER, 1600.0, settings)

    assert first is AlertCommand.PLAY_ALARM
    assert second is None
    assert third is AlertCommand.PLAY_ALARM
    assert state.last_alert_ms == 1600.0


def test_level_change_bypasses_cooldown() -> None:
    state, _ = advance_alert(WarningState(), WarningLevel.CAUTION, 0.0)
    state, command = advance_alert(state, WarningLevel.DANGER, 100.0)

    assert command is AlertCommand.PLAY_ALARM
    assert state.last_level is WarningLevel.DANGER


def test_clear_alert_only_cancels_active_level() -> None:
    active = WarningState(last_level=WarningLevel.DANGER, last_alert_ms=50.0)
    cleared, command = clear_alert(active)

    assert command is AlertCommand.CLEAR
    assert cleared == WarningState(last_level=WarningLevel.CLEAR, last_alert_ms=50.0)
    assert clear_alert(cleared)[1] is None


def test_controller_plays_one_alarm_per_cooldown_window() -> None:
    alerts = FakeAlertOutput()
    controller = WarningController(alerts=alerts)

    for now_ms in (0.0, 200.0, 1600.0):
        decision = controller.on_detection(_detection(8.0), 1.5, now_ms=now_ms)
        assert decision.level is WarningLevel.DANGER

    assert alerts.count(AlertCommand.PLAY_ALARM) == 2


def test_no_detection_clears_immediately_despite_cooldown() -> None:
    alerts = FakeAlertOutput()
    display = RecordingDisplay()
    controller = WarningController(display=display, alerts=alerts)

    controller.on_detection(_detection(8.0), 1.5, now_ms=0.0)
    decision = controller.on_no_detection()

    assert decision.level is WarningLevel.CLEAR
    assert decision.command is AlertCommand.CLEAR
    assert alerts.commands == [AlertCommand.PLAY_ALARM, AlertCommand.CLEAR]
    assert display.latest == DisplayUpdate(level=WarningLevel.CLEAR)


def test_display_receives_every_frame() -> None:
    display = RecordingDisplay()
    controller = WarningController(display=display, clock_ms=lambda: 0.0)

    controller.on_detection(_detection(15.0), 3.0)
    controller.on_detection(_detection(15.0), 3.0)

    assert len(display.updates) == 2
    latest = display.latest
    assert latest is not None
    assert latest.level is WarningLevel.CAUTION
    assert latest.boxes == (BoundingBox(0.4, 0.4, 0.6, 0.6),)


def test_sink_failures_do_not_escape() -> None:
    class BrokenDisplay:
        def update(self, update: DisplayUpdate) -> None:
            raise RuntimeError("display gone")

    alerts = FakeAlertOutput(fail=True)
    controller = WarningController(display=BrokenDisplay(), alerts=alerts)

    decision = controller.on_detection(_detection(8.0), 1.5, now_ms=0.0)

    assert decision.command is AlertCommand.PLAY_ALARM
    assert controller.state.last_level is WarningLevel.DANGER


def test_release_silences_output() -> None:
    alerts = FakeAlertOutput()
    controller = WarningController(alerts=alerts)

    controller.release()

    assert alerts.commands == [AlertCommand.CLEAR]


def test_display_lines_use_placeholders() -> None:
    update = DisplayUpdate(level=WarningLevel.CLEAR)
    assert update.format_lines() == ["Level: CLEAR", "Distance: --", "TTC: --"]

    full = DisplayUpdate(
        level=WarningLevel.DANGER,
        distance_m=12.34,
        ttc_s=2.1,
        confidence=0.85,
        label="truck",
    )
    assert full.format_lines() == [
        "Level: DANGER",
        "Object: truck",
        "Distance: 12.3 m",
        "TTC: 2.10 s",
        "Confidence: 85%",
    ]
