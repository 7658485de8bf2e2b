"""Detection model runtime loading with safe degraded behavior."""

from __future__ import annotations

import importlib
import importlib.util
from pathlib import Path
from typing import Any, Protocol, Sequence

import numpy as np
from PIL import Image

from core.logging import logger
from vision.postprocess import DEFAULT_LABELS


# Runtimes exposing a TFLite-compatible ``Interpreter``, in preference order.
_RUNTIME_MODULES = ("ai_edge_litert.interpreter", "tflite_runtime.interpreter")


class ModelUnavailableError(RuntimeError):
    """Raised when no detection model can be loaded."""


class DetectionModel(Protocol):
    """Minimal detector contract: NHWC float input, ``[1, N, 5 + C]`` output."""

    @property
    def input_size(self) -> tuple[int, int]:
        """Return the model input ``(width, height)``."""

    def run(self, input_tensor: np.ndarray) -> np.ndarray:
        """Run inference on a ``[1, H, W, 3]`` float32 tensor."""

    def close(self) -> None:
        """Release the runtime."""


def _find_runtime_module() -> str | None:
    for module_name in _RUNTIME_MODULES:
        package = module_name.split(".", 1)[0]
        if importlib.util.find_spec(package) is None:
            continue
        try:
            if importlib.util.find_spec(module_name) is not None:
                return module_name
        except ModuleNotFoundError:
            continue
    return None


def backend_available() -> tuple[bool, str]:
    """Return whether a model runtime is importable, with a reason if not."""

    module_name = _find_runtime_module()
    if module_name is None:
        return False, "missing ai-edge-litert / tflite-runtime"
    return True, module_name


class LiteRtDetectionModel:
    """TFLite-format detector run through LiteRT (or the legacy tflite runtime)."""

    def __init__(self, model_path: Path, interpreter: Any) -> None:
        self.model_path = model_path
        self._interpreter = interpreter
        self._interpreter.allocate_tensors()
        self._input_detail = self._interpreter.get_input_details()[0]
        self._output_detail = self._interpreter.get_output_details()[0]
        shape = [int(value) for value in self._input_detail.get("shape", ())]
        # NHWC
        height = shape[1] if len(shape) > 1 and shape[1] > 0 else 640
        width = shape[2] if len(shape) > 2 and shape[2] > 0 else 640
        self._input_size = (width, height)
        self._warmed_up = False

    @property
    def input_size(self) -> tuple[int, int]:
        return self._input_size

    def run(self, input_tensor: np.ndarray) -> np.ndarray:
        self._warm_up()
        return self._invoke(input_tensor)

    def close(self) -> None:
        self._interpreter = None

    def _invoke(self, input_tensor: np.ndarray) -> np.ndarray:
        if self._interpreter is None:
            raise RuntimeError("Detection model is closed")
        dtype = self._input_detail.get("dtype", np.float32)
        self._interpreter.set_tensor(self._input_detail["index"], input_tensor.astype(dtype, copy=False))
        self._interpreter.invoke()
        return np.array(self._interpreter.get_tensor(self._output_detail["index"]))

    def _warm_up(self) -> None:
        if self._warmed_up:
            return
        width, height = self._input_size
        self._invoke(np.zeros((1, height, width, 3), dtype=np.float32))
        self._warmed_up = True
        logger.info("[MODEL] Warm-up complete (input=%sx%s)", width, height)


def load_detection_model(model_path: str | Path) -> DetectionModel:
    """Load the detector, raising ``ModelUnavailableError`` on any failure."""

    path = Path(model_path).expanduser()
    module_name = _find_runtime_module()
    if module_name is None:
        raise ModelUnavailableError("no TFLite runtime installed (ai-edge-litert or tflite-runtime)")
    if not path.is_file():
        raise ModelUnavailableError(f"model file not found: {path}")

    try:
        runtime = importlib.import_module(module_name)
        interpreter = runtime.Interpreter(model_path=str(path))
        model = LiteRtDetectionModel(path, interpreter)
    except Exception as exc:
        raise ModelUnavailableError(f"failed to load {path}: {exc}") from exc

    logger.info(
        "[MODEL] Loaded %s via %s (input=%sx%s)",
        path.name,
        module_name,
        *model.input_size,
    )
    return model


def preprocess(rgb: np.ndarray, input_size: tuple[int, int]) -> np.ndarray:
    """Resize to the model input with bilinear filtering and scale to [0, 1]."""

    width, height = input_size
    image = Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8))
    if image.size != (width, height):
        image = image.resize((width, height), Image.BILINEAR)
    tensor = np.asarray(image, dtype=np.float32) / 255.0
    return tensor[np.newaxis, ...]


def load_labels(labels_path: str | Path | None) -> tuple[str, ...]:
    """Read one class name per line, falling back to ``DEFAULT_LABELS``."""

    if labels_path is None:
        return DEFAULT_LABELS
    path = Path(labels_path).expanduser()
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        logger.warning("[MODEL] Labels unavailable at %s (%s); using defaults", path, exc)
        return DEFAULT_LABELS
    labels: Sequence[str] = [line.strip() for line in lines if line.strip()]
    if not labels:
        logger.warning("[MODEL] Labels file %s is empty; using defaults", path)
        return DEFAULT_LABELS
    return tuple(labels)
