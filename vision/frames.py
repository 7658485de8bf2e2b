"""Camera frame container and pixel format conversion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


SUPPORTED_FORMATS = ("RGB888", "RGBA8888", "GRAY8", "YUV420")


class MalformedFrameError(ValueError):
    """Raised for frames with an empty buffer, bad size or unsupported format."""


@dataclass(frozen=True)
class Frame:
    """One camera frame as delivered by the capture collaborator.

    ``pixels`` is any buffer numpy can view as ``uint8``: an ``(H, W, C)``
    array for packed formats, or a flat/2-D planar buffer for ``YUV420``
    (I420 layout: full-size Y plane followed by quarter-size U and V planes).
    """

    pixels: Any
    width: int
    height: int
    pixel_format: str = "RGB888"
    timestamp_s: float = 0.0


def _buffer(frame: Frame) -> np.ndarray:
    if frame.width <= 0 or frame.height <= 0:
        raise MalformedFrameError(f"Invalid frame size {frame.width}x{frame.height}")
    if frame.pixels is None:
        raise MalformedFrameError("Frame has no pixel buffer")
    if isinstance(frame.pixels, (bytes, bytearray, memoryview)):
        data = np.frombuffer(frame.pixels, dtype=np.uint8)
    else:
        data = np.asarray(frame.pixels)
        if data.dtype != np.uint8:
            raise MalformedFrameError(f"Expected uint8 pixels, got {data.dtype}")
    if data.size == 0:
        raise MalformedFrameError("Frame pixel buffer is empty")
    return data.reshape(-1)


def _expect_size(data: np.ndarray, expected: int, frame: Frame) -> None:
    if data.size != expected:
        raise MalformedFrameError(
            f"{frame.pixel_format} frame {frame.width}x{frame.height} expects "
            f"{expected} bytes, got {data.size}"
        )


def _yuv420_planes(data: np.ndarray, frame: Frame) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    w, h = frame.width, frame.height
    cw, ch = (w + 1) // 2, (h + 1) // 2
    _expect_size(data, w * h + 2 * cw * ch, frame)
    y = data[: w * h].reshape(h, w)
    u = data[w * h : w * h + cw * ch].reshape(ch, cw)
    v = data[w * h + cw * ch :].reshape(ch, cw)
    return y, u, v


def to_rgb(frame: Frame) -> np.ndarray:
    """Return an ``(H, W, 3)`` uint8 RGB array for any supported format."""

    fmt = frame.pixel_format.upper()
    if fmt not in SUPPORTED_FORMATS:
        raise MalformedFrameError(f"Unsupported pixel format: {frame.pixel_format}")

    data = _buffer(frame)
    w, h = frame.width, frame.height

    if fmt == "RGB888":
        _expect_size(data, w * h * 3, frame)
        return data.reshape(h, w, 3)

    if fmt == "RGBA8888":
        _expect_size(data, w * h * 4, frame)
        return np.ascontiguousarray(data.reshape(h, w, 4)[:, :, :3])

    if fmt == "GRAY8":
        _expect_size(data, w * h, frame)
        return np.repeat(data.reshape(h, w, 1), 3, axis=2)

    y, u, v = _yuv420_planes(data, frame)
    u_full = np.repeat(np.repeat(u, 2, axis=0), 2, axis=1)[:h, :w].astype(np.float32) - 128.0
    v_full = np.repeat(np.repeat(v, 2, axis=0), 2, axis=1)[:h, :w].astype(np.float32) - 128.0
    y_f = y.astype(np.float32)
    # BT.601 full range
    r = y_f + 1.402 * v_full
    g = y_f - 0.344136 * u_full - 0.714136 * v_full
    b = y_f + 1.772 * u_full
    rgb = np.stack((r, g, b), axis=2)
    return np.clip(np.rint(rgb), 0, 255).astype(np.uint8)


def mean_luminance(frame: Frame) -> float:
    """Average luma of the frame on a 0..255 scale."""

    fmt = frame.pixel_format.upper()
    if fmt == "GRAY8":
        data = _buffer(frame)
        _expect_size(data, frame.width * frame.height, frame)
        return float(data.mean())
    if fmt == "YUV420":
        y, _, _ = _yuv420_planes(_buffer(frame), frame)
        return float(y.mean())

    rgb = to_rgb(frame).astype(np.float32)
    luma = 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]
    return float(luma.mean())
