"""Danger level evaluation and alert hysteresis.

The level shown to the driver is recomputed from scratch every frame. Only
the audible/haptic cue carries memory: it re-fires when the level changes or
once the cooldown has elapsed at an unchanged level. A frame without a
detection forces the level to Clear and cancels an active cue at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
import time
from typing import TYPE_CHECKING, Callable

from config.settings import WarningSettings
from core.logging import logger
from interaction.alerts import AlertCommand, AlertOutput, dispatch
from vision.detections import BoundingBox, DetectionResult

if TYPE_CHECKING:
    from interaction.display import DisplaySink


class WarningLevel(IntEnum):
    """Ordered danger levels; higher is more urgent."""

    CLEAR = 0
    CAUTION = 1
    DANGER = 2


_COMMAND_FOR_LEVEL = {
    WarningLevel.CLEAR: AlertCommand.CLEAR,
    WarningLevel.CAUTION: AlertCommand.PLAY_WARNING,
    WarningLevel.DANGER: AlertCommand.PLAY_ALARM,
}


@dataclass(frozen=True)
class DisplayUpdate:
    """Everything the overlay needs to redraw for one frame."""

    level: WarningLevel
    distance_m: float | None = None
    ttc_s: float | None = None
    confidence: float | None = None
    boxes: tuple[BoundingBox, ...] = field(default_factory=tuple)
    label: str | None = None

    def format_lines(self) -> list[str]:
        """Human-readable fields; placeholders for missing values."""

        lines = [f"Level: {self.level.name}"]
        if self.label:
            lines.append(f"Object: {self.label}")
        lines.append(f"Distance: {self.distance_m:.1f} m" if self.distance_m is not None else "Distance: --")
        lines.append(f"TTC: {self.ttc_s:.2f} s" if self.ttc_s is not None else "TTC: --")
        if self.confidence is not None:
            lines.append(f"Confidence: {self.confidence * 100:.0f}%")
        return lines


@dataclass(frozen=True)
class WarningState:
    """Alert memory; ``last_alert_ms`` is ``None`` until the first cue."""

    last_level: WarningLevel = WarningLevel.CLEAR
    last_alert_ms: float | None = None


@dataclass(frozen=True)
class WarningDecision:
    """Outcome of one frame: level, cue to issue (if any), display payload."""

    level: WarningLevel
    command: AlertCommand | None
    display: DisplayUpdate


def determine_level(
    distance_m: float,
    ttc_s: float | None,
    settings: WarningSettings | None = None,
) -> WarningLevel:
    settings = settings or WarningSettings()
    if ttc_s is not None and ttc_s < settings.danger_ttc_s and distance_m < settings.danger_distance_m:
        return WarningLevel.DANGER
    if ttc_s is not None and ttc_s < settings.caution_ttc_s:
        return WarningLevel.CAUTION
    return WarningLevel.CLEAR


def advance_alert(
    state: WarningState,
    level: WarningLevel,
    now_ms: float,
    settings: WarningSettings | None = None,
) -> tuple[WarningState, AlertCommand | None]:
    """Apply the cooldown guard; returns the new state and the cue to issue."""

    settings = settings or WarningSettings()
    if (
        level == state.last_level
        and state.last_alert_ms is not None
        and now_ms - state.last_alert_ms < settings.alert_cooldown_ms
    ):
        return state, None
    return WarningState(last_level=level, last_alert_ms=now_ms), _COMMAND_FOR_LEVEL[level]


def clear_alert(state: WarningState) -> tuple[WarningState, AlertCommand | None]:
    """No-detection transition: force Clear, cancelling a non-Clear cue."""

    command = AlertCommand.CLEAR if state.last_level != WarningLevel.CLEAR else None
    return WarningState(last_level=WarningLevel.CLEAR, last_alert_ms=state.last_alert_ms), command


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class WarningController:
    """Turns per-frame detections into display updates and alert cues."""

    def __init__(
        self,
        display: "DisplaySink | None" = None,
        alerts: AlertOutput | None = None,
        settings: WarningSettings | None = None,
        clock_ms: Callable[[], float] | None = None,
    ) -> None:
        self._display = display
        self._alerts = alerts
        self.settings = settings or WarningSettings()
        self._clock_ms = clock_ms or _monotonic_ms
        self._state = WarningState()

    @property
    def state(self) -> WarningState:
        return self._state

    def on_detection(
        self,
        result: DetectionResult,
        ttc_s: float | None,
        now_ms: float | None = None,
    ) -> WarningDecision:
        level = determine_level(result.distance_m, ttc_s, self.settings)
        update = DisplayUpdate(
            level=level,
            distance_m=result.distance_m,
            ttc_s=ttc_s,
            confidence=result.confidence,
            boxes=(result.bounding_box,) if result.bounding_box is not None else (),
            label=result.label,
        )
        previous = self._state.last_level
        now = self._clock_ms() if now_ms is None else now_ms
        self._state, command = advance_alert(self._state, level, now, self.settings)
        if level != previous:
            logger.info(
                "[WARN] Level %s -> %s (distance=%.1fm ttc=%s)",
                previous.name,
                level.name,
                result.distance_m,
                f"{ttc_s:.2f}s" if ttc_s is not None else "none",
            )
        return self._deliver(WarningDecision(level=level, command=command, display=update))

    def on_no_detection(self) -> WarningDecision:
        previous = self._state.last_level
        self._state, command = clear_alert(self._state)
        if previous != WarningLevel.CLEAR:
            logger.info("[WARN] Level %s -> CLEAR (no detection)", previous.name)
        update = DisplayUpdate(level=WarningLevel.CLEAR)
        return self._deliver(WarningDecision(level=WarningLevel.CLEAR, command=command, display=update))

    def release(self) -> None:
        """Silence any active cue; called on session teardown."""

        if self._alerts is not None:
            self._send(AlertCommand.CLEAR)

    def reset(self) -> None:
        self._state = WarningState()

    def _deliver(self, decision: WarningDecision) -> WarningDecision:
        if self._display is not None:
            try:
                self._display.update(decision.display)
            except Exception:
                logger.exception("[WARN] Display update failed")
        if decision.command is not None and self._alerts is not None:
            self._send(decision.command)
        return decision

    def _send(self, command: AlertCommand) -> None:
        try:
            dispatch(self._alerts, command)
        except Exception:
            logger.exception("[WARN] Alert output failed for %s", command.value)
