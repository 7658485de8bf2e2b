"""Diagnostics routines for hardware dependencies."""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass
from pathlib import Path

from diagnostics.models import DiagnosticResult, DiagnosticStatus


@dataclass(frozen=True)
class HardwareProbeConfig:
    """Configuration for hardware dependency checks."""

    require_all: bool = False
    model_path: str | None = None


def probe(config: HardwareProbeConfig | None = None, available_modules: set[str] | None = None) -> DiagnosticResult:
    """Run a hardware probe to validate the detector runtime.

    Args:
        config: Optional configuration for probe behavior.
        available_modules: Optional override set for offline testing.

    Returns:
        Diagnostic result indicating hardware dependency readiness.
    """

    name = "hardware"
    settings = config or HardwareProbeConfig()
    required = ["numpy", "PIL"]
    runtimes = ["ai_edge_litert", "tflite_runtime"]

    def is_available(module_name: str) -> bool:
        if available_modules is not None:
            return module_name in available_modules
        return importlib.util.find_spec(module_name) is not None

    missing = [module_name for module_name in required if not is_available(module_name)]
    if missing:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Missing hardware deps: {', '.join(missing)}",
        )

    problems: list[str] = []
    if available_modules is not None:
        runtime_ok = any(module_name in available_modules for module_name in runtimes)
    else:
        from hardware.detection_model import backend_available

        runtime_ok, _ = backend_available()
    if not runtime_ok:
        problems.append(f"no detector runtime ({' or '.join(runtimes)})")
    if settings.model_path is not None and not Path(settings.model_path).exists():
        problems.append(f"model file missing at {settings.model_path}")

    if problems:
        status = DiagnosticStatus.FAIL if settings.require_all else DiagnosticStatus.WARN
        details = f"Detector degraded to heuristic: {'; '.join(problems)}"
        return DiagnosticResult(name=name, status=status, details=details)

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details="Hardware dependencies available",
    )
