"""Offline frame source: replays still images from a directory."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import numpy as np
from PIL import Image

from core.logging import logger
from vision.frames import Frame


IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".bmp")


def list_images(directory: Path) -> list[Path]:
    """Image files in ``directory`` sorted by name."""

    if not directory.is_dir():
        raise FileNotFoundError(f"Replay directory not found: {directory}")
    return sorted(
        path for path in directory.iterdir() if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES
    )


def iter_frames(directory: Path, fps: float = 10.0) -> Iterator[Frame]:
    """Yield RGB888 frames with timestamps spaced ``1/fps`` apart.

    Unreadable images are logged and skipped.
    """

    period_s = 1.0 / fps if fps > 0 else 0.0
    for index, path in enumerate(list_images(directory)):
        try:
            with Image.open(path) as image:
                pixels = np.asarray(image.convert("RGB"), dtype=np.uint8)
        except OSError as exc:
            logger.warning("[REPLAY] Skipping unreadable image %s: %s", path.name, exc)
            continue
        height, width = pixels.shape[:2]
        yield Frame(
            pixels=pixels,
            width=width,
            height=height,
            pixel_format="RGB888",
            timestamp_s=index * period_s,
        )
