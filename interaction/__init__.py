"""Interaction package: alert outputs and display sinks."""

from interaction.alerts import AlertCommand, AlertOutput, FakeAlertOutput, LoggingAlertOutput

__all__ = ["AlertCommand", "AlertOutput", "FakeAlertOutput", "LoggingAlertOutput"]
