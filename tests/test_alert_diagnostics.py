"""Tests for alert output diagnostics."""

from __future__ import annotations

from diagnostics.models import DiagnosticStatus
from interaction.alerts import FakeAlertOutput
from interaction.diagnostics import probe


def test_alert_probe_offline_pass() -> None:
    """Offline alert probe should pass with a fake output."""

    output = FakeAlertOutput()
    result = probe(output=output)
    assert result.status is DiagnosticStatus.PASS
    assert output.commands


def test_alert_probe_offline_fail() -> None:
    """Offline alert probe should fail when the output raises."""

    result = probe(output=FakeAlertOutput(fail=True))
    assert result.status is DiagnosticStatus.FAIL
