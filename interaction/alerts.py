"""Alert outputs for the audio/haptic collaborator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import importlib
import importlib.util
import queue
import threading
from typing import Protocol

import numpy as np

from core.logging import logger


class AlertCommand(str, Enum):
    """Discrete cue requested by the warning controller."""

    CLEAR = "clear"
    PLAY_WARNING = "play_warning"
    PLAY_ALARM = "play_alarm"


class AlertOutput(Protocol):
    """Device-level cue player. Every call must be safe to repeat."""

    def clear(self) -> None:
        """Cancel any ongoing cue."""

    def play_warning(self) -> None:
        """Play the caution cue."""

    def play_alarm(self) -> None:
        """Play the danger cue."""


def dispatch(output: AlertOutput, command: AlertCommand) -> None:
    """Invoke the ``output`` method matching ``command``."""

    if command is AlertCommand.CLEAR:
        output.clear()
    elif command is AlertCommand.PLAY_WARNING:
        output.play_warning()
    elif command is AlertCommand.PLAY_ALARM:
        output.play_alarm()
    else:
        raise ValueError(f"Unknown alert command: {command!r}")


@dataclass
class FakeAlertOutput:
    """Records commands instead of playing them; used offline and in tests."""

    commands: list[AlertCommand] = field(default_factory=list)
    fail: bool = False

    def clear(self) -> None:
        self._record(AlertCommand.CLEAR)

    def play_warning(self) -> None:
        self._record(AlertCommand.PLAY_WARNING)

    def play_alarm(self) -> None:
        self._record(AlertCommand.PLAY_ALARM)

    def count(self, command: AlertCommand) -> int:
        return sum(1 for item in self.commands if item is command)

    def _record(self, command: AlertCommand) -> None:
        if self.fail:
            raise RuntimeError("Fake alert output failure")
        self.commands.append(command)


class LoggingAlertOutput:
    """Alert output that only logs, for replay runs without audio hardware."""

    def clear(self) -> None:
        logger.info("[ALERT] clear")

    def play_warning(self) -> None:
        logger.warning("[ALERT] caution cue")

    def play_alarm(self) -> None:
        logger.error("[ALERT] DANGER cue")


@dataclass(frozen=True)
class Tone:
    frequency_hz: float
    duration_ms: int


WARNING_TONE = Tone(frequency_hz=880.0, duration_ms=250)
ALARM_TONE = Tone(frequency_hz=1320.0, duration_ms=400)
SAMPLE_RATE = 44100
_CHUNK_FRAMES = 1024


def synthesize_tone(tone: Tone, sample_rate: int = SAMPLE_RATE, volume: float = 0.6) -> np.ndarray:
    """Return a 16-bit mono sine burst with short linear fades."""

    frames = max(1, int(sample_rate * tone.duration_ms / 1000))
    t = np.arange(frames, dtype=np.float32) / sample_rate
    wave = np.sin(2.0 * np.pi * tone.frequency_hz * t) * volume
    fade = min(frames // 2, int(sample_rate * 0.005))
    if fade > 0:
        ramp = np.linspace(0.0, 1.0, fade, dtype=np.float32)
        wave[:fade] *= ramp
        wave[-fade:] *= ramp[::-1]
    return (wave * 32767).astype(np.int16)


class ToneAlertPlayer:
    """Plays alert tones through PyAudio on a background worker.

    Every ``clear``/``play_*`` call bumps a generation counter. The worker
    checks it before each chunk write, so a newer cue cuts the current tone
    off within one chunk.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE) -> None:
        if importlib.util.find_spec("pyaudio") is None:
            raise RuntimeError("PyAudio is required for ToneAlertPlayer")

        pyaudio = importlib.import_module("pyaudio")
        self._sample_rate = sample_rate
        self._audio = pyaudio.PyAudio()
        self._stream = self._audio.open(
            format=pyaudio.paInt16,
            channels=1,
            rate=sample_rate,
            output=True,
        )
        self._tones = {
            AlertCommand.PLAY_WARNING: synthesize_tone(WARNING_TONE, sample_rate).tobytes(),
            AlertCommand.PLAY_ALARM: synthesize_tone(ALARM_TONE, sample_rate).tobytes(),
        }
        self._q: queue.Queue[tuple[int, bytes] | None] = queue.Queue()
        self._lock = threading.Lock()
        self._generation = 0
        self._t = threading.Thread(target=self._worker, name="alert-tone-player", daemon=True)
        self._t.start()

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._drain()

    def play_warning(self) -> None:
        self._enqueue(AlertCommand.PLAY_WARNING)

    def play_alarm(self) -> None:
        self._enqueue(AlertCommand.PLAY_ALARM)

    def release(self) -> None:
        self.clear()
        self._q.put(None)
        self._t.join(timeout=2.0)
        if self._t.is_alive():
            logger.warning("[ALERT] Tone worker did not stop within timeout")
        try:
            self._stream.stop_stream()
            self._stream.close()
        finally:
            self._audio.terminate()

    def _enqueue(self, command: AlertCommand) -> None:
        with self._lock:
            self._generation += 1
            self._drain()
            self._q.put((self._generation, self._tones[command]))

    def _drain(self) -> None:
        while True:
            try:
                self._q.get_nowait()
            except queue.Empty:
                break

    def _worker(self) -> None:
        chunk_bytes = _CHUNK_FRAMES * 2
        while True:
            item = self._q.get()
            if item is None:
                return
            generation, payload = item
            for offset in range(0, len(payload), chunk_bytes):
                if generation != self._generation:
                    break
                try:
                    self._stream.write(payload[offset : offset + chunk_bytes])
                except Exception:
                    logger.exception("[ALERT] Tone playback failed")
                    break
