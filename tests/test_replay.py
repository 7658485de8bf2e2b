"""Tests for offline replay of image directories."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

import main
from config.settings import PipelineSettings
from hardware.detection_model import ModelUnavailableError
from interaction import alerts as alerts_module
from interaction.alerts import LoggingAlertOutput
from vision import strategies
from vision.replay import iter_frames, list_images


def _unavailable(path):
    raise ModelUnavailableError("no runtime")


def _write_images(directory, values) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for index, value in enumerate(values):
        Image.new("RGB", (40, 20), (value, value, value)).save(directory / f"frame_{index:03d}.png")


def test_frames_are_sorted_and_timestamped(tmp_path) -> None:
    _write_images(tmp_path / "frames", [10, 200])
    (tmp_path / "frames" / "notes.txt").write_text("skip me", encoding="utf-8")

    frames = list(iter_frames(tmp_path / "frames", fps=4.0))

    assert [path.name for path in list_images(tmp_path / "frames")] == ["frame_000.png", "frame_001.png"]
    assert len(frames) == 2
    assert frames[0].width == 40 and frames[0].height == 20
    assert frames[1].pixels[0, 0].tolist() == [200, 200, 200]
    assert frames[1].timestamp_s == pytest.approx(0.25)


def test_unreadable_images_are_skipped(tmp_path) -> None:
    _write_images(tmp_path / "frames", [50])
    (tmp_path / "frames" / "frame_999.png").write_bytes(b"not an image")

    assert len(list(iter_frames(tmp_path / "frames"))) == 1


def test_missing_directory_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        list_images(tmp_path / "nope")


def test_replay_runs_degraded_session(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(strategies, "load_detection_model", _unavailable)
    _write_images(tmp_path / "frames", [0, 255, 255, 0])

    assert main.replay(tmp_path / "frames", speed_kmh=36.0, fps=10.0, settings=PipelineSettings()) == 0


def test_replay_reports_missing_directory(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(strategies, "load_detection_model", _unavailable)

    assert main.replay(tmp_path / "missing", speed_kmh=36.0, fps=10.0, settings=PipelineSettings()) == 1


def test_frame_pixels_are_uint8(tmp_path) -> None:
    _write_images(tmp_path / "frames", [128])

    frame = next(iter_frames(tmp_path / "frames"))

    assert isinstance(frame.pixels, np.ndarray)
    assert frame.pixels.dtype == np.uint8


class _RecordingPlayer:
    instances: list["_RecordingPlayer"] = []

    def __init__(self) -> None:
        self.calls: list[str] = []
        _RecordingPlayer.instances.append(self)

    def clear(self) -> None:
        self.calls.append("clear")

    def play_warning(self) -> None:
        self.calls.append("play_warning")

    def play_alarm(self) -> None:
        self.calls.append("play_alarm")

    def release(self) -> None:
        self.calls.append("release")


def test_replay_with_audio_uses_and_releases_tone_player(monkeypatch, tmp_path) -> None:
    _RecordingPlayer.instances = []
    monkeypatch.setattr(strategies, "load_detection_model", _unavailable)
    monkeypatch.setattr(alerts_module, "ToneAlertPlayer", _RecordingPlayer)
    _write_images(tmp_path / "frames", [0, 255])

    result = main.replay(
        tmp_path / "frames", speed_kmh=36.0, fps=10.0, settings=PipelineSettings(), audio=True
    )

    assert result == 0
    [player] = _RecordingPlayer.instances
    assert player.calls[-2:] == ["clear", "release"]


def test_audio_falls_back_to_logging_without_pyaudio(monkeypatch) -> None:
    monkeypatch.setattr(alerts_module.importlib.util, "find_spec", lambda name: None)

    assert isinstance(main.create_alert_output(audio=True), LoggingAlertOutput)
    assert isinstance(main.create_alert_output(audio=False), LoggingAlertOutput)


def test_parse_args_audio_switch() -> None:
    assert main.parse_args(["--replay", "frames", "--audio"]).audio is True
    assert main.parse_args(["--replay", "frames"]).audio is False
