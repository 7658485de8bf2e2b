"""Diagnostics routines for the core subsystem."""

from __future__ import annotations

import importlib.util

from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe() -> DiagnosticResult:
    """Run a core probe to validate logging and the warning arithmetic.

    Returns:
        Diagnostic result indicating core readiness.
    """

    name = "core"
    from core import logging as core_logging
    from core.collision import time_to_collision
    from core.warning import WarningLevel, determine_level

    logger = core_logging.logger
    rich_available = importlib.util.find_spec("rich") is not None
    details = "Rich logging enabled" if rich_available else "Rich logging not available (fallback)"
    if logger is None:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="Core logger failed to initialize",
        )

    ttc = time_to_collision(20.0, 36.0)
    if ttc != 2.0 or determine_level(5.0, 1.0) is not WarningLevel.DANGER:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Collision arithmetic self-check failed (ttc={ttc})",
        )
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=details,
    )
