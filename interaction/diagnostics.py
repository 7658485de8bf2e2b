"""Diagnostics routines for the alert output subsystem."""

from __future__ import annotations

import importlib
import importlib.util

from core.logging import logger
from diagnostics.models import DiagnosticResult, DiagnosticStatus
from interaction.alerts import AlertCommand, AlertOutput, dispatch


def probe(output: AlertOutput | None = None) -> DiagnosticResult:
    """Run an alert probe to validate cue output availability.

    Args:
        output: Optional offline alert output for testing.

    Returns:
        Diagnostic result indicating alert output readiness.
    """

    name = "alert_output"

    if output is not None:
        try:
            dispatch(output, AlertCommand.CLEAR)
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.PASS,
                details=f"Offline alert output: {type(output).__name__}",
            )
        except Exception as exc:  # noqa: BLE001 - probe should not raise
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                details=f"Offline alert probe failed: {exc}",
            )

    if importlib.util.find_spec("pyaudio") is None:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details="PyAudio is not installed; alerts are logged only",
        )

    try:
        pyaudio = importlib.import_module("pyaudio")
        audio = pyaudio.PyAudio()
        try:
            devices = [audio.get_device_info_by_index(i) for i in range(audio.get_device_count())]
            outputs = [info for info in devices if info.get("maxOutputChannels", 0) > 0]
        finally:
            audio.terminate()
    except Exception as exc:  # noqa: BLE001 - probe should not raise
        logger.exception("[ALERT DIAG] Device enumeration failed")
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Alert output probe failed: {exc}",
        )

    if not outputs:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details="No audio output devices found",
        )
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"Output devices: {', '.join(str(info.get('name')) for info in outputs)}",
    )
