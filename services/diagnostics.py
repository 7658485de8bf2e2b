"""Diagnostics routines for the services subsystem."""

from __future__ import annotations

from config.settings import SpeedFilterSettings
from diagnostics.models import DiagnosticResult, DiagnosticStatus
from services.speed_monitor import SpeedMonitor


def probe(settings: SpeedFilterSettings | None = None) -> DiagnosticResult:
    """Run a services probe that feeds synthetic samples through speed intake.

    Args:
        settings: Optional filter tuning to validate.

    Returns:
        Diagnostic result indicating speed intake readiness.
    """

    name = "services"
    monitor = SpeedMonitor(settings)
    for _ in range(50):
        monitor.push_sample(10.0)
    rejected = monitor.push_sample(float("nan"))
    speed_kmh = monitor.current_speed_kmh()

    if rejected is not None:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="Speed intake accepted a non-finite sample",
        )
    if abs(speed_kmh - 36.0) > 0.5:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details=f"Speed filter slow to converge: {speed_kmh:.2f} km/h after 50 samples",
        )
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"Speed filter converged to {speed_kmh:.2f} km/h",
    )
