"""Tests for alert outputs and display sinks."""

from __future__ import annotations

import sys
import threading
import time
import types

import numpy as np
import pytest

from core.warning import DisplayUpdate, WarningLevel
from interaction.alerts import (
    ALARM_TONE,
    SAMPLE_RATE,
    AlertCommand,
    FakeAlertOutput,
    LoggingAlertOutput,
    ToneAlertPlayer,
    dispatch,
    synthesize_tone,
)
from interaction import alerts as alerts_module
from interaction.display import LoggingDisplay, RecordingDisplay


def test_dispatch_routes_each_command() -> None:
    output = FakeAlertOutput()

    for command in (AlertCommand.PLAY_WARNING, AlertCommand.PLAY_ALARM, AlertCommand.CLEAR):
        dispatch(output, command)

    assert output.commands == [AlertCommand.PLAY_WARNING, AlertCommand.PLAY_ALARM, AlertCommand.CLEAR]
    assert output.count(AlertCommand.PLAY_ALARM) == 1


def test_fake_output_can_fail() -> None:
    with pytest.raises(RuntimeError):
        dispatch(FakeAlertOutput(fail=True), AlertCommand.CLEAR)


def test_logging_output_accepts_all_commands() -> None:
    output = LoggingAlertOutput()

    for command in AlertCommand:
        dispatch(output, command)


def test_synthesized_tone_shape_and_fades() -> None:
    samples = synthesize_tone(ALARM_TONE)

    assert samples.dtype == np.int16
    assert samples.size == int(SAMPLE_RATE * ALARM_TONE.duration_ms / 1000)
    assert samples[0] == 0
    assert np.abs(samples).max() <= 32767


def test_tone_player_requires_pyaudio(monkeypatch) -> None:
    monkeypatch.setattr(alerts_module.importlib.util, "find_spec", lambda name: None)

    with pytest.raises(RuntimeError, match="PyAudio"):
        ToneAlertPlayer()


def test_recording_display_keeps_history() -> None:
    display = RecordingDisplay()
    assert display.latest is None

    display.update(DisplayUpdate(level=WarningLevel.CAUTION))
    display.update(DisplayUpdate(level=WarningLevel.CLEAR))

    assert [update.level for update in display.updates] == [WarningLevel.CAUTION, WarningLevel.CLEAR]
    assert display.latest == DisplayUpdate(level=WarningLevel.CLEAR)


def test_logging_display_accepts_updates() -> None:
    display = LoggingDisplay()

    display.update(DisplayUpdate(level=WarningLevel.DANGER, distance_m=4.0, ttc_s=0.5))
    display.update(DisplayUpdate(level=WarningLevel.DANGER, distance_m=3.5, ttc_s=0.4))


class _SlowStream:
    """Output stream stand-in whose writes take a fixed wall time."""

    def __init__(self, write_delay_s: float = 0.02) -> None:
        self.writes: list[bytes] = []
        self.closed = False
        self._delay = write_delay_s
        self._lock = threading.Lock()

    def write(self, data: bytes) -> None:
        time.sleep(self._delay)
        with self._lock:
            self.writes.append(data)

    def written(self) -> list[bytes]:
        with self._lock:
            return list(self.writes)

    def stop_stream(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_pyaudio(monkeypatch):
    stream = _SlowStream()
    module = types.ModuleType("pyaudio")
    module.paInt16 = 8

    class PyAudio:
        terminated = False

        def open(self, **kwargs):
            return stream

        def terminate(self) -> None:
            PyAudio.terminated = True

    module.PyAudio = PyAudio
    monkeypatch.setitem(sys.modules, "pyaudio", module)
    monkeypatch.setattr(alerts_module.importlib.util, "find_spec", lambda name: object())
    return module, stream


def _chunks(payload: bytes) -> list[bytes]:
    size = alerts_module._CHUNK_FRAMES * 2
    return [payload[offset : offset + size] for offset in range(0, len(payload), size)]


def _wait_for(predicate, timeout_s: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_alarm_cuts_off_playing_warning(fake_pyaudio) -> None:
    module, stream = fake_pyaudio
    player = ToneAlertPlayer()
    warning_chunks = _chunks(player._tones[AlertCommand.PLAY_WARNING])
    alarm_chunks = _chunks(player._tones[AlertCommand.PLAY_ALARM])

    try:
        player.play_warning()
        time.sleep(0.05)
        player.play_alarm()

        assert _wait_for(lambda: stream.written()[-len(alarm_chunks):] == alarm_chunks)
    finally:
        player.release()

    writes = stream.written()
    assert writes[0] == warning_chunks[0]
    assert len(writes) < len(warning_chunks) + len(alarm_chunks)
    assert stream.closed
    assert module.PyAudio.terminated


def test_clear_stops_playing_tone(fake_pyaudio) -> None:
    _, stream = fake_pyaudio
    player = ToneAlertPlayer()
    alarm_chunks = _chunks(player._tones[AlertCommand.PLAY_ALARM])

    try:
        player.play_alarm()
        assert _wait_for(lambda: len(stream.written()) >= 1)
        player.clear()
        time.sleep(0.1)
        settled = len(stream.written())
        time.sleep(0.1)

        assert len(stream.written()) == settled
        assert settled < len(alarm_chunks)
    finally:
        player.release()
