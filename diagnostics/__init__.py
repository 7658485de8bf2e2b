"""Diagnostics helpers for the brake assist runtime."""

from diagnostics.models import DiagnosticResult, DiagnosticStatus, exit_code
from diagnostics.runner import format_results, run_diagnostics

__all__ = [
    "DiagnosticResult",
    "DiagnosticStatus",
    "exit_code",
    "format_results",
    "run_diagnostics",
]
